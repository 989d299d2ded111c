"""Order fulfillment arithmetic.

Combo expansion, stock requirement consolidation, availability checks, order
totals, edit deltas and the side effects of status transitions. Nothing in
this module touches the database: the order service loads the rows, calls
these functions, and persists the outcome inside one transaction.

Order lines are keyed by `(is_combo, item_id)` so a product and a combo that
share an integer id never collide.
"""
from collections import defaultdict
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .models import OrderStatus

LineKey = Tuple[bool, int]
ComboComponents = Mapping[int, Sequence[Tuple[int, int]]]

RESTORE_STOCK = "restore_stock"
RECORD_SALE = "record_sale"
RECORD_CANCELLATION = "record_cancellation"


class FulfillmentError(Exception):
    """Base error for rejected order operations; carries the HTTP status to answer with."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ComboNotFoundError(FulfillmentError):
    status_code = 404


class ProductNotFoundError(FulfillmentError):
    status_code = 404


class InsufficientStockError(FulfillmentError):
    def __init__(self, product_name: str, required: int, available: int):
        self.product_name = product_name
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}: required {required}, available {available}"
        )


class InvalidTransitionError(FulfillmentError):
    status_code = 409


def merge_lines(lines: Iterable[Tuple[LineKey, int]]) -> Dict[LineKey, int]:
    """Sums quantities of lines that reference the same product or combo, keeping first-seen order."""
    merged: Dict[LineKey, int] = {}
    for key, quantity in lines:
        merged[key] = merged.get(key, 0) + quantity
    return merged


def expand_combo(combo_id: int, components: ComboComponents, multiplier: int) -> Dict[int, int]:
    """Translates `multiplier` units of a combo into the product quantities they consume."""
    if combo_id not in components:
        raise ComboNotFoundError(f"Combo {combo_id} not found")
    consumed: Dict[int, int] = defaultdict(int)
    for product_id, per_combo in components[combo_id]:
        consumed[product_id] += per_combo * multiplier
    return dict(consumed)


def consolidate_requirements(
    lines: Iterable[Tuple[LineKey, int]], components: ComboComponents
) -> Dict[int, int]:
    """Maps every product touched by `lines` to its summed quantity.

    Quantities may be negative (edit deltas); products whose quantities cancel
    out are dropped.
    """
    required: Dict[int, int] = defaultdict(int)
    for (is_combo, item_id), quantity in lines:
        if is_combo:
            for product_id, consumed in expand_combo(item_id, components, quantity).items():
                required[product_id] += consumed
        else:
            required[item_id] += quantity
    return {product_id: qty for product_id, qty in required.items() if qty != 0}


def check_availability(
    required: Mapping[int, int],
    on_hand: Mapping[int, int],
    names: Mapping[int, str],
) -> None:
    """Raises for the first product whose positive requirement exceeds its on-hand quantity."""
    for product_id, quantity in required.items():
        if quantity <= 0:
            continue
        if product_id not in on_hand:
            raise ProductNotFoundError(f"Product {names.get(product_id, product_id)} not found")
        available = on_hand[product_id]
        if quantity > available:
            raise InsufficientStockError(names.get(product_id, str(product_id)), quantity, available)


def compute_order_total(items: Iterable[Tuple[float, int]], delivery_fee: float) -> float:
    """total = sum(snapshot price x quantity) + delivery fee, rounded to cents."""
    subtotal = sum(price * quantity for price, quantity in items)
    return round(subtotal + delivery_fee, 2)


def compute_edit_deltas(
    old_lines: Mapping[LineKey, int],
    new_lines: Mapping[LineKey, int],
    old_components: ComboComponents,
    new_components: Optional[ComboComponents] = None,
) -> Dict[int, int]:
    """Per-product stock to consume (positive) or give back (negative) when an order's lines change.

    `old_components` is what the old lines consumed per combo; `new_components`
    (the same by default) is what the new lines will consume.
    """
    if new_components is None:
        new_components = old_components
    consumed = consolidate_requirements(old_lines.items(), old_components)
    required = consolidate_requirements(new_lines.items(), new_components)
    deltas = {
        product_id: required.get(product_id, 0) - consumed.get(product_id, 0)
        for product_id in {**consumed, **required}
    }
    return {product_id: qty for product_id, qty in deltas.items() if qty != 0}


def transition_effects(current: OrderStatus, new: OrderStatus) -> Tuple[str, ...]:
    """Side effects to apply when an order moves from `current` to `new`.

    Returns an empty tuple for a repeated status, which makes re-sending a
    transition a no-op. Canceled is terminal.
    """
    if current == new:
        return ()
    if current == OrderStatus.CANCELED:
        raise InvalidTransitionError("Canceled orders cannot change status")
    if new == OrderStatus.READY:
        return (RECORD_SALE,)
    if new == OrderStatus.CANCELED:
        return (RESTORE_STOCK, RECORD_CANCELLATION)
    return ()


def sale_idempotency_key(order_id: int) -> str:
    return f"order:{order_id}:sale"


def cancellation_idempotency_key(order_id: int) -> str:
    return f"order:{order_id}:cancel"
