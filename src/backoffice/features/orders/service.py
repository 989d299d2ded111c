# External dependencies
from tortoise.transactions import in_transaction
from fastapi import HTTPException, status

# Typing
import datetime
import logging
from typing import Dict, Iterable, List, Optional, Tuple

# Models from this feature and related features
from .models import Order, OrderItem, OrderStatus
from ...common.models import today
from ..combos.models import Combo, ComboItem
from ..customers.models import Customer
from ..customers.service import get_customer_model
from ..finance.models import FinancialTransaction
from ..finance.service import ensure_order_entry
from ..inventory.models import Product
from ..auth.session import SessionContext
from ..changes.feed import (
    FINANCIAL_TRANSACTIONS,
    ORDER_ITEMS,
    ORDERS,
    STOCK,
    change_feed,
)

# Schemas and fulfillment arithmetic
from .schemas import (
    OrderCreateSchema,
    OrderCustomerSchema,
    OrderItemCreateSchema,
    OrderItemPublicSchema,
    OrderPublicSchema,
    OrderUpdateSchema,
)
from .fulfillment import (
    RECORD_CANCELLATION,
    RECORD_SALE,
    RESTORE_STOCK,
    ComboComponents,
    ComboNotFoundError,
    InvalidTransitionError,
    LineKey,
    ProductNotFoundError,
    cancellation_idempotency_key,
    check_availability,
    compute_edit_deltas,
    compute_order_total,
    consolidate_requirements,
    merge_lines,
    sale_idempotency_key,
    transition_effects,
)

logger = logging.getLogger(__name__)

Snapshot = Tuple[str, float]


async def _resolve_lines(
    session: SessionContext, items_in: List[OrderItemCreateSchema], conn
) -> Tuple[Dict[LineKey, int], Dict[LineKey, Snapshot]]:
    """
    Resolves request lines to internal ids, merging repeated products or combos.

    Returns the merged quantities and the current (name, price) of every referenced item.
    """
    product_public_ids = {i.item_public_id for i in items_in if not i.is_combo}
    combo_public_ids = {i.item_public_id for i in items_in if i.is_combo}

    products = {}
    if product_public_ids:
        products = {
            p.public_id: p
            for p in await Product.filter(
                public_id__in=product_public_ids, owner_id=session.owner_id
            ).using_db(conn)
        }
    missing = sorted(product_public_ids - products.keys())
    if missing:
        raise ProductNotFoundError(f"Product(s) not found: {', '.join(missing)}")

    combos = {}
    if combo_public_ids:
        combos = {
            c.public_id: c
            for c in await Combo.filter(
                public_id__in=combo_public_ids, owner_id=session.owner_id
            ).using_db(conn)
        }
    missing = sorted(combo_public_ids - combos.keys())
    if missing:
        raise ComboNotFoundError(f"Combo(s) not found: {', '.join(missing)}")

    snapshots: Dict[LineKey, Snapshot] = {}
    keyed_lines = []
    for item in items_in:
        record = combos[item.item_public_id] if item.is_combo else products[item.item_public_id]
        key = (item.is_combo, record.id)
        snapshots[key] = (record.name, record.price)
        keyed_lines.append((key, item.quantity))
    return merge_lines(keyed_lines), snapshots


async def _load_components(combo_ids: Iterable[int], conn) -> ComboComponents:
    """Current composition of the given combos as {combo_id: [(product_id, quantity)]}."""
    combo_ids = set(combo_ids)
    if not combo_ids:
        return {}
    rows = await (
        ComboItem.filter(combo_id__in=combo_ids)
        .using_db(conn)
        .order_by("position")
        .values_list("combo_id", "product_id", "quantity")
    )
    components: Dict[int, List[Tuple[int, int]]] = {}
    for combo_id, product_id, quantity in rows:
        components.setdefault(combo_id, []).append((product_id, quantity))
    return components


def _combo_ids(*line_sets: Iterable[LineKey]) -> set:
    return {item_id for lines in line_sets for (is_combo, item_id) in lines if is_combo}


async def _lock_products(product_ids: Iterable[int], conn) -> Dict[int, Product]:
    product_ids = set(product_ids)
    if not product_ids:
        return {}
    products = await Product.filter(id__in=product_ids).select_for_update().using_db(conn)
    by_id = {p.id: p for p in products}
    if len(by_id) != len(product_ids):
        raise ProductNotFoundError(
            f"Product(s) not found: {', '.join(str(pid) for pid in sorted(product_ids - by_id.keys()))}"
        )
    return by_id


async def _apply_stock_changes(products: Dict[int, Product], consumed: Dict[int, int], conn) -> None:
    """Subtracts `consumed` from each product; negative values give stock back."""
    for product_id, quantity in consumed.items():
        product = products[product_id]
        product.quantity -= quantity
        await product.save(using_db=conn, update_fields=["quantity"])
        logger.debug(f"Stock of {product.name} changed by {-quantity} to {product.quantity}")


async def _create_items(
    order: Order,
    lines: Dict[LineKey, int],
    snapshots: Dict[LineKey, Snapshot],
    components: ComboComponents,
    conn,
) -> None:
    for (is_combo, item_id), quantity in lines.items():
        name, price = snapshots[(is_combo, item_id)]
        await OrderItem.create(
            order=order,
            is_combo=is_combo,
            product_id=None if is_combo else item_id,
            combo_id=item_id if is_combo else None,
            name_at_purchase=name,
            price_at_purchase=price,
            quantity=quantity,
            components_at_purchase=[list(c) for c in components[item_id]] if is_combo else None,
            using_db=conn,
        )


def _purchased_components(items: Iterable[OrderItem]) -> Dict[int, List[Tuple[int, int]]]:
    """Composition each combo line had when it was added to the order."""
    return {item.combo_id: item.components for item in items if item.is_combo}


async def _sync_sale(sale: FinancialTransaction, order: Order, conn) -> bool:
    if (sale.amount, sale.transaction_date) == (order.total_amount, order.delivery_date):
        return False
    sale.amount = order.total_amount
    sale.transaction_date = order.delivery_date
    await sale.save(using_db=conn, update_fields=["amount", "transaction_date", "updated_at"])
    logger.debug(f"Sale of order {order.order_number} now {sale.amount:.2f} on {sale.transaction_date}")
    return True


async def _record_sale(order: Order, conn) -> Optional[str]:
    """Records the order's sale, or brings the one from an earlier ready up to date."""
    sale, created = await ensure_order_entry(
        order,
        sale_idempotency_key(order.id),
        order.total_amount,
        f"Sale of order {order.order_number}",
        using_db=conn,
    )
    if created:
        return "INSERT"
    return "UPDATE" if await _sync_sale(sale, order, conn) else None


async def _record_cancellation(order: Order, conn) -> Optional[str]:
    _, created = await ensure_order_entry(
        order,
        cancellation_idempotency_key(order.id),
        -order.total_amount,
        f"Cancellation of order {order.order_number}",
        using_db=conn,
    )
    return "INSERT" if created else None


async def _to_order_public_schemas(orders: List[Order]) -> List[OrderPublicSchema]:
    # Ensure "customer" and "items" are prefetched before calling this
    product_ids, combo_ids = set(), set()
    for order in orders:
        for item in order.items:
            (combo_ids if item.is_combo else product_ids).add(item.item_id)
    product_public_ids = dict(
        await Product.filter(id__in=product_ids).values_list("id", "public_id")
    ) if product_ids else {}
    combo_public_ids = dict(
        await Combo.filter(id__in=combo_ids).values_list("id", "public_id")
    ) if combo_ids else {}

    responses = []
    for order in orders:
        items_resp = []
        for item in sorted(order.items, key=lambda i: i.id):
            public_ids = combo_public_ids if item.is_combo else product_public_ids
            items_resp.append(OrderItemPublicSchema(
                public_id=item.public_id,
                item_public_id=public_ids.get(item.item_id, ""),
                is_combo=item.is_combo,
                quantity=item.quantity,
                name=item.name_at_purchase,
                price=item.price_at_purchase,
                line_total=round(item.price_at_purchase * item.quantity, 2),
            ))
        responses.append(OrderPublicSchema(
            public_id=order.public_id,
            order_number=order.order_number,
            customer=OrderCustomerSchema.model_validate(order.customer),
            delivery_address=order.delivery_address,
            notes=order.notes,
            delivery_date=order.delivery_date,
            delivery_time=order.delivery_time,
            delivery_fee=order.delivery_fee,
            status=order.status,
            total_amount=order.total_amount,
            items=items_resp,
            created_at=order.created_at,
            updated_at=order.updated_at,
        ))
    return responses


async def get_order_model(session: SessionContext, order_public_id: str) -> Order:
    order = await Order.get_or_none(public_id=order_public_id, owner_id=session.owner_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order {order_public_id} not found.")
    return order


async def get_order(session: SessionContext, order_public_id: str) -> OrderPublicSchema:
    order = await get_order_model(session, order_public_id)
    await order.fetch_related("customer", "items")
    return (await _to_order_public_schemas([order]))[0]


async def get_all_orders(
    session: SessionContext,
    page: int,
    size: int,
    statuses: Optional[List[OrderStatus]] = None,
    search: Optional[str] = None,
    delivery_date: Optional[datetime.date] = None,
) -> List[OrderPublicSchema]:
    offset = (page - 1) * size
    query = Order.filter(owner_id=session.owner_id).order_by("-created_at", "-id")

    if statuses:
        query = query.filter(status__in=[s.value for s in statuses])
    if search and search.strip():
        query = query.filter(customer__name__icontains=search.strip())
    if delivery_date:
        query = query.filter(delivery_date=delivery_date)

    orders = await query.offset(offset).limit(size).prefetch_related("customer", "items")
    return await _to_order_public_schemas(orders)


async def get_todays_orders(session: SessionContext) -> List[OrderPublicSchema]:
    """Orders to deliver today, earliest delivery time first."""
    orders = await (
        Order.filter(owner_id=session.owner_id, delivery_date=today())
        .order_by("delivery_time", "id")
        .prefetch_related("customer", "items")
    )
    return await _to_order_public_schemas(orders)


async def place_order(session: SessionContext, order_in: OrderCreateSchema) -> OrderPublicSchema:
    """
    Places an order and consumes its stock.

    Combos are expanded into their component products and requirements are
    summed per product before stock is checked, so a product requested both
    directly and through a combo is checked once against its total. Any
    shortfall rejects the whole order without changing stock. An order placed
    as ready records its sale in the same transaction.
    """
    customer: Customer = await get_customer_model(session, order_in.customer_public_id)

    async with in_transaction() as conn:
        lines, snapshots = await _resolve_lines(session, order_in.items, conn)
        components = await _load_components(_combo_ids(lines), conn)
        required = consolidate_requirements(lines.items(), components)

        products = await _lock_products(required.keys(), conn)
        check_availability(
            required,
            {pid: p.quantity for pid, p in products.items()},
            {pid: p.name for pid, p in products.items()},
        )

        order = await Order.create(
            order_number=await Order.generate_next_order_number(using_db=conn),
            customer=customer,
            delivery_address=order_in.delivery_address or customer.address,
            notes=order_in.notes,
            delivery_date=order_in.delivery_date,
            delivery_time=order_in.delivery_time,
            delivery_fee=order_in.delivery_fee,
            total_amount=compute_order_total(
                ((snapshots[key][1], qty) for key, qty in lines.items()), order_in.delivery_fee
            ),
            status=order_in.status,
            owner_id=session.owner_id,
            using_db=conn,
        )
        await _create_items(order, lines, snapshots, components, conn)
        await _apply_stock_changes(products, required, conn)
        sale_recorded = order.status == OrderStatus.READY and await _record_sale(order, conn)

    logger.info(
        f"Order {order.order_number} placed by {session.username} for {customer.name}: "
        f"{len(lines)} line(s), total {order.total_amount:.2f}"
    )
    change_feed.publish(session.owner_id, ORDERS, "INSERT", order.public_id)
    change_feed.publish(session.owner_id, ORDER_ITEMS, "INSERT")
    for product in products.values():
        change_feed.publish(session.owner_id, STOCK, "UPDATE", product.public_id)
    if sale_recorded:
        change_feed.publish(session.owner_id, FINANCIAL_TRANSACTIONS, "INSERT")
    return await get_order(session, order.public_id)


async def change_order_status(
    session: SessionContext, order_public_id: str, new_status: OrderStatus
) -> OrderPublicSchema:
    """
    Moves an order to `new_status` and applies the transition's side effects.

    Entering ready records the sale once, or updates it to the current total
    when an earlier ready already recorded it. Entering canceled gives back the
    stock each line consumed and records a negative entry for the order total.
    Re-sending the current status changes nothing.
    """
    order = await get_order_model(session, order_public_id)
    restored: List[Product] = []
    ledger_action: Optional[str] = None

    async with in_transaction() as conn:
        # Lock the order row for update
        order_locked = await Order.get(id=order.id, using_db=conn).select_for_update()
        previous_status = order_locked.status
        effects = transition_effects(previous_status, new_status)

        if RESTORE_STOCK in effects:
            items = await OrderItem.filter(order_id=order_locked.id).using_db(conn)
            lines = merge_lines((item.line_key, item.quantity) for item in items)
            to_restore = consolidate_requirements(lines.items(), _purchased_components(items))
            products = await _lock_products(to_restore.keys(), conn)
            await _apply_stock_changes(
                products, {pid: -qty for pid, qty in to_restore.items()}, conn
            )
            restored = list(products.values())
        if RECORD_SALE in effects:
            ledger_action = await _record_sale(order_locked, conn)
        if RECORD_CANCELLATION in effects:
            ledger_action = await _record_cancellation(order_locked, conn)

        if previous_status != new_status:
            order_locked.status = new_status
            await order_locked.save(using_db=conn, update_fields=["status", "updated_at"])

    if previous_status == new_status:
        logger.debug(f"Order {order.order_number} already {new_status.value}; nothing to do")
        return await get_order(session, order_public_id)

    logger.info(
        f"Order {order.order_number} moved from {previous_status.value} to {new_status.value} by {session.username}"
    )
    change_feed.publish(session.owner_id, ORDERS, "UPDATE", order.public_id)
    for product in restored:
        change_feed.publish(session.owner_id, STOCK, "UPDATE", product.public_id)
    if ledger_action:
        change_feed.publish(session.owner_id, FINANCIAL_TRANSACTIONS, ledger_action)
    return await get_order(session, order_public_id)


async def edit_order(
    session: SessionContext, order_public_id: str, order_in: OrderUpdateSchema
) -> OrderPublicSchema:
    """
    Replaces an order's details and lines, reconciling stock by difference.

    Only the per-product change between the old and new lines touches stock,
    and only increases are checked against availability. Lines kept from the
    old order keep their original price and combo composition; new lines take
    the current ones. A recorded sale entry follows the new total and delivery
    date whatever the current status, so a later ready or cancel nets correctly.
    """
    order = await get_order_model(session, order_public_id)
    changed_products: List[Product] = []

    async with in_transaction() as conn:
        order_locked = await Order.get(id=order.id, using_db=conn).select_for_update()
        if order_locked.status == OrderStatus.CANCELED:
            raise InvalidTransitionError("Canceled orders cannot be edited")

        old_items = await OrderItem.filter(order_id=order_locked.id).using_db(conn)
        old_lines = merge_lines((item.line_key, item.quantity) for item in old_items)
        old_snapshots = {
            item.line_key: (item.name_at_purchase, item.price_at_purchase) for item in old_items
        }
        new_lines, current_snapshots = await _resolve_lines(session, order_in.items, conn)
        snapshots = {key: old_snapshots.get(key, current_snapshots[key]) for key in new_lines}

        old_components = _purchased_components(old_items)
        added_components = await _load_components(_combo_ids(new_lines) - set(old_components), conn)
        new_components = {**added_components, **old_components}
        deltas = compute_edit_deltas(old_lines, new_lines, old_components, new_components)
        products = await _lock_products(deltas.keys(), conn)
        check_availability(
            deltas,
            {pid: p.quantity for pid, p in products.items()},
            {pid: p.name for pid, p in products.items()},
        )

        order_locked.delivery_address = order_in.delivery_address
        order_locked.notes = order_in.notes
        order_locked.delivery_date = order_in.delivery_date
        order_locked.delivery_time = order_in.delivery_time
        order_locked.delivery_fee = order_in.delivery_fee
        order_locked.total_amount = compute_order_total(
            ((snapshots[key][1], qty) for key, qty in new_lines.items()), order_in.delivery_fee
        )
        await order_locked.save(using_db=conn)

        await OrderItem.filter(order_id=order_locked.id).using_db(conn).delete()
        await _create_items(order_locked, new_lines, snapshots, new_components, conn)
        await _apply_stock_changes(products, deltas, conn)
        changed_products = list(products.values())

        ledger_action: Optional[str] = None
        sale = await FinancialTransaction.get_or_none(
            idempotency_key=sale_idempotency_key(order_locked.id), using_db=conn
        )
        if sale:
            ledger_action = "UPDATE" if await _sync_sale(sale, order_locked, conn) else None
        elif order_locked.status == OrderStatus.READY:
            ledger_action = await _record_sale(order_locked, conn)

    logger.info(
        f"Order {order.order_number} edited by {session.username}: "
        f"{len(deltas)} product(s) reconciled, total {order_locked.total_amount:.2f}"
    )
    change_feed.publish(session.owner_id, ORDERS, "UPDATE", order.public_id)
    change_feed.publish(session.owner_id, ORDER_ITEMS, "UPDATE")
    for product in changed_products:
        change_feed.publish(session.owner_id, STOCK, "UPDATE", product.public_id)
    if ledger_action:
        change_feed.publish(session.owner_id, FINANCIAL_TRANSACTIONS, ledger_action)
    return await get_order(session, order_public_id)


async def delete_order(session: SessionContext, order_public_id: str):
    """
    Deletes an order with its items and ledger entries.

    Stock is not given back; cancel the order first to restore it.
    """
    order = await get_order_model(session, order_public_id)
    async with in_transaction() as conn:
        deleted_entries = await FinancialTransaction.filter(order_id=order.id).using_db(conn).delete()
        await order.delete(using_db=conn)

    logger.info(
        f"Order {order.order_number} deleted by {session.username} ({deleted_entries} ledger entr(ies) removed)"
    )
    change_feed.publish(session.owner_id, ORDERS, "DELETE", order_public_id)
    change_feed.publish(session.owner_id, ORDER_ITEMS, "DELETE")
    if deleted_entries:
        change_feed.publish(session.owner_id, FINANCIAL_TRANSACTIONS, "DELETE")
    return None
