"""In-process change feed.

Services publish one event per committed write; every stream subscribed by the
same owner receives it. Events are deliberately coarse (table, action and the
affected public id): a subscriber is expected to re-fetch whatever it displays.
"""
import asyncio
import datetime
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

from pydantic import BaseModel, Field

from ...core.config import CHANGE_FEED_QUEUE_SIZE

logger = logging.getLogger(__name__)

CUSTOMERS = "customers"
STOCK = "stock"
PRODUCT_COMBOS = "product_combos"
ORDERS = "orders"
ORDER_ITEMS = "order_items"
FINANCIAL_TRANSACTIONS = "financial_transactions"

TABLES = frozenset(
    {CUSTOMERS, STOCK, PRODUCT_COMBOS, ORDERS, ORDER_ITEMS, FINANCIAL_TRANSACTIONS}
)


class ChangeEvent(BaseModel):
    table: str
    action: str = Field(..., description="INSERT, UPDATE or DELETE")
    public_id: Optional[str] = None
    occurred_at: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )


class _Subscription:
    def __init__(self, tables: Optional[frozenset[str]], queue_size: int):
        self.tables = tables
        self.queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=queue_size)

    def wants(self, table: str) -> bool:
        return self.tables is None or table in self.tables


class ChangeFeed:
    def __init__(self, queue_size: int = CHANGE_FEED_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscriptions: dict[int, set[_Subscription]] = {}

    def subscriber_count(self, owner_id: int) -> int:
        return len(self._subscriptions.get(owner_id, ()))

    def publish(
        self, owner_id: int, table: str, action: str, public_id: Optional[str] = None
    ) -> int:
        """Fan an event out to the owner's subscribers. Returns how many received it."""
        event = ChangeEvent(table=table, action=action, public_id=public_id)
        delivered = 0
        for subscription in list(self._subscriptions.get(owner_id, ())):
            if not subscription.wants(table):
                continue
            try:
                subscription.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    f"Change feed queue full for owner {owner_id}; dropped {table} {action}"
                )
        logger.debug(f"Published {table} {action} {public_id} to {delivered} subscriber(s)")
        return delivered

    @asynccontextmanager
    async def subscribe(
        self, owner_id: int, tables: Optional[Iterable[str]] = None
    ) -> AsyncIterator[asyncio.Queue]:
        wanted = frozenset(tables) if tables else None
        subscription = _Subscription(wanted, self.queue_size)
        self._subscriptions.setdefault(owner_id, set()).add(subscription)
        logger.info(f"Change feed subscriber added for owner {owner_id} (tables={wanted or 'all'})")
        try:
            yield subscription.queue
        finally:
            owner_subscriptions = self._subscriptions.get(owner_id)
            if owner_subscriptions is not None:
                owner_subscriptions.discard(subscription)
                if not owner_subscriptions:
                    del self._subscriptions[owner_id]
            logger.info(f"Change feed subscriber removed for owner {owner_id}")


change_feed = ChangeFeed()
