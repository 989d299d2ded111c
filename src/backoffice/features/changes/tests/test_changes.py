import asyncio
import json

import pytest

from backoffice.features.changes.feed import (
    CUSTOMERS,
    ORDERS,
    STOCK,
    ChangeFeed,
    change_feed,
)
from backoffice.features.changes.router import _event_stream
from backoffice.features.customers.schemas import CustomerCreate
from backoffice.features.customers.service import create_customer


class FakeRequest:
    """Stands in for a Starlette request that disconnects after `polls` checks."""

    def __init__(self, polls: int):
        self.polls = polls

    async def is_disconnected(self) -> bool:
        self.polls -= 1
        return self.polls < 0


@pytest.mark.asyncio
async def test_publish_reaches_only_the_owner():
    feed = ChangeFeed(queue_size=10)
    async with feed.subscribe(1) as mine, feed.subscribe(2) as theirs:
        assert feed.publish(1, ORDERS, "INSERT", "abc") == 1
        event = mine.get_nowait()
        assert (event.table, event.action, event.public_id) == (ORDERS, "INSERT", "abc")
        assert theirs.empty()
    assert feed.subscriber_count(1) == 0
    assert feed.publish(1, ORDERS, "DELETE") == 0


@pytest.mark.asyncio
async def test_table_filter():
    feed = ChangeFeed(queue_size=10)
    async with feed.subscribe(1, tables=[STOCK]) as queue:
        feed.publish(1, ORDERS, "UPDATE")
        feed.publish(1, STOCK, "UPDATE", "p1")
        assert queue.qsize() == 1
        assert queue.get_nowait().table == STOCK


@pytest.mark.asyncio
async def test_full_queue_drops_events(caplog):
    feed = ChangeFeed(queue_size=1)
    async with feed.subscribe(1) as queue:
        assert feed.publish(1, STOCK, "UPDATE") == 1
        assert feed.publish(1, STOCK, "UPDATE") == 0
        assert queue.qsize() == 1
    assert "queue full" in caplog.text


@pytest.mark.asyncio
async def test_services_publish_after_writes(session):
    async with change_feed.subscribe(session.owner_id) as queue:
        customer = await create_customer(
            session, CustomerCreate(name="Ana", phone="(11) 98765-4321")
        )
        event = queue.get_nowait()
    assert (event.table, event.action, event.public_id) == (CUSTOMERS, "INSERT", customer.public_id)


@pytest.mark.asyncio
async def test_event_stream_formats_server_sent_events(session):
    stream = _event_stream(FakeRequest(polls=1), session.owner_id, None)
    assert await stream.__anext__() == ": connected\n\n"

    next_chunk = asyncio.ensure_future(stream.__anext__())
    await asyncio.sleep(0)
    change_feed.publish(session.owner_id, ORDERS, "UPDATE", "order-1")
    chunk = await asyncio.wait_for(next_chunk, timeout=1)

    header, data = chunk.strip().split("\n")
    assert header == "event: change"
    payload = json.loads(data.removeprefix("data: "))
    assert (payload["table"], payload["action"], payload["public_id"]) == (ORDERS, "UPDATE", "order-1")

    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
    assert change_feed.subscriber_count(session.owner_id) == 0


@pytest.mark.asyncio
async def test_stream_rejects_unknown_tables(auth_client):
    response = await auth_client.get("/api/v1/changes/stream", params={"tables": "nope"})
    assert response.status_code == 400
    assert "nope" in response.json()["detail"]
