"""API routes for managing customer records."""
from fastapi import APIRouter, status, Query
from typing import Optional, List

from ..auth.session import Session
from .schemas import CustomerCreate, CustomerUpdate, CustomerResponse
from . import service

router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new customer",
)
async def create_customer(customer_in: CustomerCreate, session: Session):
    return await service.create_customer(session, customer_in)


@router.get("/", response_model=List[CustomerResponse], summary="List customers")
async def list_customers(
    session: Session,
    search: Optional[str] = Query(None, description="Filter by name or phone"),
):
    return await service.list_customers(session, search)


@router.get("/{customer_public_id}", response_model=CustomerResponse, summary="Get a customer")
async def get_customer(customer_public_id: str, session: Session):
    return await service.get_customer(session, customer_public_id)


@router.put("/{customer_public_id}", response_model=CustomerResponse, summary="Update a customer")
async def update_customer(customer_public_id: str, customer_in: CustomerUpdate, session: Session):
    return await service.update_customer(session, customer_public_id, customer_in)


@router.delete(
    "/{customer_public_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a customer without orders",
)
async def delete_customer(customer_public_id: str, session: Session):
    await service.delete_customer(session, customer_public_id)
    return None
