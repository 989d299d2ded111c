import logging
from typing import List, Optional

from fastapi import HTTPException, status
from tortoise.expressions import Q

from ..auth.session import SessionContext
from ..changes.feed import CUSTOMERS, change_feed
from ..orders.models import Order
from .models import Customer
from .schemas import CustomerCreate, CustomerUpdate, CustomerResponse

logger = logging.getLogger(__name__)


async def get_customer_model(session: SessionContext, customer_public_id: str) -> Customer:
    customer = await Customer.get_or_none(
        public_id=customer_public_id, owner_id=session.owner_id
    )
    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Customer {customer_public_id} not found",
        )
    return customer


async def create_customer(session: SessionContext, customer_in: CustomerCreate) -> CustomerResponse:
    """
    Creates a new customer owned by the session user.

    Args:
        session: The request session.
        customer_in: The data for the new customer.

    Returns:
        The created customer.
    """
    customer = await Customer.create(**customer_in.model_dump(), owner_id=session.owner_id)
    logger.info(f"Customer {customer.public_id} created by {session.username}")
    change_feed.publish(session.owner_id, CUSTOMERS, "INSERT", customer.public_id)
    return CustomerResponse.model_validate(customer)


async def list_customers(session: SessionContext, search: Optional[str]) -> List[CustomerResponse]:
    """Lists the session user's customers ordered by name, optionally filtered by name or phone."""
    query = Customer.filter(owner_id=session.owner_id)
    if search and search.strip():
        term = search.strip()
        query = query.filter(Q(name__icontains=term) | Q(phone__icontains=term))
    customers = await query.order_by("name")
    return [CustomerResponse.model_validate(c) for c in customers]


async def get_customer(session: SessionContext, customer_public_id: str) -> CustomerResponse:
    customer = await get_customer_model(session, customer_public_id)
    return CustomerResponse.model_validate(customer)


async def update_customer(
    session: SessionContext, customer_public_id: str, customer_in: CustomerUpdate
) -> CustomerResponse:
    customer = await get_customer_model(session, customer_public_id)
    update_data = customer_in.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No fields for update"
        )
    for field in ("name", "phone"):
        if field in update_data and update_data[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Customer {field} cannot be empty",
            )
    for key, value in update_data.items():
        setattr(customer, key, value)
    await customer.save()
    change_feed.publish(session.owner_id, CUSTOMERS, "UPDATE", customer.public_id)
    return CustomerResponse.model_validate(customer)


async def delete_customer(session: SessionContext, customer_public_id: str):
    """
    Deletes a customer.

    Customers referenced by any order are kept; the caller gets a 409 instead.
    """
    customer = await get_customer_model(session, customer_public_id)
    if await Order.filter(customer_id=customer.id).exists():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Customer {customer.name} has orders and cannot be deleted",
        )
    await customer.delete()
    logger.info(f"Customer {customer_public_id} deleted by {session.username}")
    change_feed.publish(session.owner_id, CUSTOMERS, "DELETE", customer_public_id)
    return None
