import logging
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from tortoise.transactions import in_transaction

from ..auth.session import SessionContext
from ..changes.feed import PRODUCT_COMBOS, change_feed
from ..inventory.models import Product
from ..orders.models import OrderItem
from .models import Combo, ComboItem
from .schemas import ComboCreate, ComboUpdate, ComboItemIn, ComboItemResponse, ComboResponse

logger = logging.getLogger(__name__)


def _to_combo_response(combo: Combo) -> ComboResponse:
    # Ensure "items__product" is prefetched before calling this
    items = sorted(combo.items, key=lambda item: item.position)
    items_resp = []
    available: Optional[int] = None
    for item in items:
        product = item.product
        items_resp.append(
            ComboItemResponse(
                product_public_id=product.public_id,
                product_name=product.name,
                quantity=item.quantity,
                unit=product.unit,
            )
        )
        buildable = max(product.quantity, 0) // item.quantity
        available = buildable if available is None else min(available, buildable)

    return ComboResponse(
        public_id=combo.public_id,
        name=combo.name,
        description=combo.description,
        price=combo.price,
        items=items_resp,
        available_quantity=available or 0,
        created_at=combo.created_at,
        updated_at=combo.updated_at,
    )


async def _resolve_items(session: SessionContext, items_in: List[ComboItemIn]) -> Dict[int, int]:
    """Maps product ids to per-combo quantities, merging repeated products."""
    public_ids = {item.product_public_id for item in items_in}
    products = await Product.filter(public_id__in=public_ids, owner_id=session.owner_id)
    by_public_id = {p.public_id: p for p in products}
    missing = sorted(public_ids - by_public_id.keys())
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product(s) not found: {', '.join(missing)}",
        )
    quantities: Dict[int, int] = {}
    for item in items_in:
        product_id = by_public_id[item.product_public_id].id
        quantities[product_id] = quantities.get(product_id, 0) + item.quantity
    return quantities


async def _replace_items(combo: Combo, quantities: Dict[int, int], conn) -> None:
    await ComboItem.filter(combo_id=combo.id).using_db(conn).delete()
    for position, (product_id, quantity) in enumerate(quantities.items()):
        await ComboItem.create(
            combo=combo, product_id=product_id, quantity=quantity, position=position, using_db=conn
        )


async def _fetch_combo(session: SessionContext, combo_public_id: str) -> Combo:
    combo = await Combo.get_or_none(
        public_id=combo_public_id, owner_id=session.owner_id
    ).prefetch_related("items__product")
    if not combo:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Combo {combo_public_id} not found"
        )
    return combo


async def create_combo(session: SessionContext, combo_in: ComboCreate) -> ComboResponse:
    quantities = await _resolve_items(session, combo_in.items)
    async with in_transaction() as conn:
        combo = await Combo.create(
            **combo_in.model_dump(exclude={"items"}), owner_id=session.owner_id, using_db=conn
        )
        await _replace_items(combo, quantities, conn)
    logger.info(f"Combo {combo.public_id} ({combo.name}) created with {len(quantities)} product(s)")
    change_feed.publish(session.owner_id, PRODUCT_COMBOS, "INSERT", combo.public_id)
    return await get_combo(session, combo.public_id)


async def list_combos(session: SessionContext, search: Optional[str] = None) -> List[ComboResponse]:
    query = Combo.filter(owner_id=session.owner_id)
    if search and search.strip():
        query = query.filter(name__icontains=search.strip())
    combos = await query.prefetch_related("items__product").order_by("name")
    return [_to_combo_response(c) for c in combos]


async def get_combo(session: SessionContext, combo_public_id: str) -> ComboResponse:
    combo = await _fetch_combo(session, combo_public_id)
    return _to_combo_response(combo)


async def update_combo(
    session: SessionContext, combo_public_id: str, combo_in: ComboUpdate
) -> ComboResponse:
    """
    Updates a combo. When `items` is given it replaces the whole composition.

    Orders already placed keep the price and composition they were placed
    with, so editing or canceling them reconciles stock against what they
    actually consumed.
    """
    combo = await _fetch_combo(session, combo_public_id)
    update_data = combo_in.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No fields for update"
        )
    for field in ("name", "price", "items"):
        if field in update_data and update_data[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=f"Combo {field} cannot be null"
            )

    quantities = None
    if "items" in update_data:
        quantities = await _resolve_items(session, combo_in.items)
        update_data.pop("items")

    async with in_transaction() as conn:
        for key, value in update_data.items():
            setattr(combo, key, value)
        await combo.save(using_db=conn)
        if quantities is not None:
            await _replace_items(combo, quantities, conn)
    change_feed.publish(session.owner_id, PRODUCT_COMBOS, "UPDATE", combo.public_id)
    return await get_combo(session, combo.public_id)


async def delete_combo(session: SessionContext, combo_public_id: str):
    """Deletes a combo that no order item references."""
    combo = await _fetch_combo(session, combo_public_id)
    if await OrderItem.filter(combo_id=combo.id).exists():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Combo {combo.name} is referenced by orders and cannot be deleted",
        )
    await combo.delete()
    logger.info(f"Combo {combo_public_id} ({combo.name}) deleted by {session.username}")
    change_feed.publish(session.owner_id, PRODUCT_COMBOS, "DELETE", combo_public_id)
    return None
