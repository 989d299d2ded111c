"""Data models for stock management: products and their stock status."""

from enum import Enum

from tortoise import fields
from ...common.models import TimestampMixin, generate_ksuid
from ...core.config import LOW_STOCK_CRITICAL_RATIO


class StockStatus(str, Enum):
    OK = "ok"
    LOW = "low"
    CRITICAL = "critical"


def calculate_stock_status(
    quantity: int, min_quantity: int, critical_ratio: float = LOW_STOCK_CRITICAL_RATIO
) -> StockStatus:
    """Critical at or below `critical_ratio` of the minimum, low at or below the minimum."""
    if quantity <= min_quantity * critical_ratio:
        return StockStatus.CRITICAL
    if quantity <= min_quantity:
        return StockStatus.LOW
    return StockStatus.OK


class Product(TimestampMixin):
    id = fields.IntField(primary_key=True)
    public_id = fields.CharField(
        max_length=27, unique=True, default=generate_ksuid, db_index=True
    )
    name = fields.CharField(max_length=255)
    price = fields.FloatField(default=0.0, description="Current unit price")
    quantity = fields.IntField(default=0, description="On-hand quantity")
    min_quantity = fields.IntField(default=0, description="Minimum quantity threshold")
    category = fields.CharField(max_length=100)
    unit = fields.CharField(max_length=20, default="un", description="Unit label, e.g. un, kg")

    owner: fields.ForeignKeyRelation["User"] = fields.ForeignKeyField(
        "models.User", related_name="products", on_delete=fields.CASCADE
    )

    order_items_relation: fields.ReverseRelation["OrderItem"]
    combo_items_relation: fields.ReverseRelation["ComboItem"]

    @property
    def status(self) -> StockStatus:
        return calculate_stock_status(self.quantity, self.min_quantity)

    def __str__(self):
        return f"{self.name} (Stock: {self.quantity} {self.unit}, Price: ${self.price:.2f})"

    class Meta:
        table = "stock"
