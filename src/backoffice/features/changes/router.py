"""Server-sent events stream of change notifications for the session owner."""
import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from ..auth.session import Session
from .feed import TABLES, change_feed

logger = logging.getLogger(__name__)

KEEP_ALIVE_SECONDS = 15.0

router = APIRouter(
    prefix="/changes",
    tags=["Changes"],
)


async def _event_stream(request: Request, owner_id: int, tables: Optional[List[str]]):
    async with change_feed.subscribe(owner_id, tables) as queue:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=KEEP_ALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"event: change\ndata: {event.model_dump_json()}\n\n"


@router.get("/stream", summary="Stream change notifications")
async def stream_changes(
    request: Request,
    session: Session,
    tables: Optional[List[str]] = Query(None, description="Only notify about these tables"),
):
    if tables:
        unknown = sorted(set(tables) - TABLES)
        if unknown:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown table(s): {', '.join(unknown)}",
            )
    return StreamingResponse(
        _event_stream(request, session.owner_id, tables),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
