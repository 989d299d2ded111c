from fastapi import APIRouter, status, Query
from typing import List, Optional
import datetime

# Schemas from this feature
from .models import OrderStatus
from .schemas import (
    OrderCreateSchema, OrderPublicSchema, OrderStatusUpdateSchema, OrderUpdateSchema
)

# Service imports
from . import service

# Session dependency: resolves the authenticated user that owns every record touched
from ..auth.session import Session

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    responses={404: {"description": "Not found"}},
)

@router.post("/", response_model=OrderPublicSchema, status_code=status.HTTP_201_CREATED)
async def place_order(order_data: OrderCreateSchema, session: Session):
    # Stock is checked and consumed atomically with the order insert
    return await service.place_order(session, order_data)


@router.get("/", response_model=List[OrderPublicSchema])
async def list_orders(
    session: Session,
    page: int = Query(1, ge=1), size: int = Query(20, ge=1, le=100),
    statuses: Optional[List[OrderStatus]] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Filter by customer name"),
    delivery_date: Optional[datetime.date] = Query(None, description="YYYY-MM-DD"),
):
    return await service.get_all_orders(session, page, size, statuses, search, delivery_date)

@router.get("/today", response_model=List[OrderPublicSchema], summary="Orders to deliver today")
async def todays_orders(session: Session):
    return await service.get_todays_orders(session)

@router.get("/{order_public_id}", response_model=OrderPublicSchema)
async def get_order(order_public_id: str, session: Session):
    return await service.get_order(session, order_public_id)

@router.put("/{order_public_id}", response_model=OrderPublicSchema, summary="Edit an order's details and items")
async def edit_order(order_public_id: str, order_data: OrderUpdateSchema, session: Session):
    return await service.edit_order(session, order_public_id, order_data)

@router.patch("/{order_public_id}/status", response_model=OrderPublicSchema)
async def change_order_status(
    order_public_id: str, status_data: OrderStatusUpdateSchema, session: Session
):
    return await service.change_order_status(session, order_public_id, status_data.status)

@router.delete("/{order_public_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(order_public_id: str, session: Session):
    await service.delete_order(session, order_public_id)
    return None
