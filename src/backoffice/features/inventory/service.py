import logging
from typing import Optional
from fastapi import HTTPException, status

from ..auth.session import SessionContext
from ..changes.feed import STOCK, change_feed
from ..combos.models import ComboItem
from ..orders.models import OrderItem
from .models import Product, StockStatus
from .schemas import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    PaginatedProductResponse,
)

logger = logging.getLogger(__name__)


def _to_product_response(product: Product) -> ProductResponse:
    """Converts a Product model instance to a ProductResponse schema."""
    return ProductResponse(
        public_id=product.public_id,
        name=product.name,
        price=product.price,
        quantity=product.quantity,
        min_quantity=product.min_quantity,
        category=product.category,
        unit=product.unit,
        status=product.status,
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


async def get_product_model(session: SessionContext, product_public_id: str) -> Product:
    product = await Product.get_or_none(public_id=product_public_id, owner_id=session.owner_id)
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Product {product_public_id} not found"
        )
    return product


async def create_product(session: SessionContext, product_in: ProductCreate) -> ProductResponse:
    """
    Creates a new product in stock.

    Args:
        session: The request session; the product is owned by its user.
        product_in: The data for the new product.

    Returns:
        The created product.
    """
    try:
        product = await Product.create(**product_in.model_dump(), owner_id=session.owner_id)
    except Exception as e:
        logger.error(f"Error creating product: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create product.",
        )
    logger.info(f"Product {product.public_id} ({product.name}) created with quantity {product.quantity}")
    change_feed.publish(session.owner_id, STOCK, "INSERT", product.public_id)
    return _to_product_response(product)


async def list_products(
    session: SessionContext,
    page: int,
    size: int,
    search: Optional[str] = None,
    category: Optional[str] = None,
    stock_status: Optional[StockStatus] = None,
) -> PaginatedProductResponse:
    """
    Lists products ordered by name.

    Args:
        session: The request session.
        page: The page number.
        size: The number of products per page.
        search: Case-insensitive substring of the product name.
        category: Exact category to filter by.
        stock_status: Only return products in this stock status.

    Returns:
        A paginated list of products.
    """
    filters = {"owner_id": session.owner_id}
    if search and search.strip():
        filters["name__icontains"] = search.strip()
    if category:
        filters["category"] = category

    offset = (page - 1) * size
    if stock_status is not None:
        # Status is derived, so filter in Python before paginating
        candidates = await Product.filter(**filters).order_by("name")
        matching = [p for p in candidates if p.status == stock_status]
        return PaginatedProductResponse(
            items=[_to_product_response(p) for p in matching[offset:offset + size]],
            total=len(matching),
            page=page,
            size=size,
        )

    products = await Product.filter(**filters).order_by("name").offset(offset).limit(size)
    total = await Product.filter(**filters).count()
    return PaginatedProductResponse(
        items=[_to_product_response(p) for p in products], total=total, page=page, size=size
    )


async def get_product(session: SessionContext, product_public_id: str) -> ProductResponse:
    product = await get_product_model(session, product_public_id)
    return _to_product_response(product)


async def update_product(
    session: SessionContext, product_public_id: str, product_in: ProductUpdate
) -> ProductResponse:
    """
    Updates a product, including direct stock corrections of its quantity.

    Args:
        session: The request session.
        product_public_id: The public ID of the product to update.
        product_in: The new data for the product.

    Returns:
        The updated product.
    """
    product = await get_product_model(session, product_public_id)

    update_data = product_in.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No fields for update"
        )
    null_fields = [key for key, value in update_data.items() if value is None]
    if null_fields:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Fields cannot be null: {', '.join(null_fields)}",
        )

    if "quantity" in update_data and update_data["quantity"] != product.quantity:
        logger.info(
            f"Stock of {product.name} set from {product.quantity} to {update_data['quantity']} by {session.username}"
        )
    for key, value in update_data.items():
        setattr(product, key, value)
    await product.save()
    change_feed.publish(session.owner_id, STOCK, "UPDATE", product.public_id)
    return _to_product_response(product)


async def delete_product(session: SessionContext, product_public_id: str):
    """
    Deletes a product that no order item or combo references.

    Args:
        session: The request session.
        product_public_id: The public ID of the product to delete.
    """
    product = await get_product_model(session, product_public_id)
    if await OrderItem.filter(product_id=product.id).exists():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Product {product.name} is referenced by orders and cannot be deleted",
        )
    if await ComboItem.filter(product_id=product.id).exists():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Product {product.name} is part of a combo and cannot be deleted",
        )
    await product.delete()
    logger.info(f"Product {product_public_id} ({product.name}) deleted by {session.username}")
    change_feed.publish(session.owner_id, STOCK, "DELETE", product_public_id)
    return None
