"""API routes for managing stock products."""
from fastapi import APIRouter, status, Query
from typing import Optional

from ..auth.session import Session
from .models import StockStatus
from .schemas import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    PaginatedProductResponse,
)
from . import service

router = APIRouter(
    prefix="/inventory",
    tags=["Inventory"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "/products/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
)
async def create_product(product_in: ProductCreate, session: Session):
    return await service.create_product(session, product_in)


@router.get(
    "/products/",
    response_model=PaginatedProductResponse,
    summary="List products",
)
async def list_products(
    session: Session,
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(50, ge=1, le=200, description="Number of products per page"),
    search: Optional[str] = Query(None, description="Filter by product name"),
    category: Optional[str] = Query(None, description="Filter by category"),
    stock_status: Optional[StockStatus] = Query(None, alias="status", description="Filter by stock status"),
):
    return await service.list_products(session, page, size, search, category, stock_status)


@router.get(
    "/products/{product_public_id}",
    response_model=ProductResponse,
    summary="Get a specific product",
)
async def get_product(product_public_id: str, session: Session):
    return await service.get_product(session, product_public_id)


@router.put(
    "/products/{product_public_id}",
    response_model=ProductResponse,
    summary="Update a product",
)
async def update_product(product_public_id: str, product_in: ProductUpdate, session: Session):
    return await service.update_product(session, product_public_id, product_in)


@router.delete(
    "/products/{product_public_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an unreferenced product",
)
async def delete_product(product_public_id: str, session: Session):
    await service.delete_product(session, product_public_id)
    return None
