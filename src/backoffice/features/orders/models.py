import datetime
from enum import Enum

from tortoise import fields
from ...common.models import TimestampMixin, generate_ksuid


class OrderStatus(str, Enum):
    UNDER_REVIEW = "under_review"
    IN_PRODUCTION = "in_production"
    READY = "ready"
    CANCELED = "canceled"


class Order(TimestampMixin):
    id = fields.IntField(primary_key=True)
    order_number = fields.CharField(
        max_length=50, unique=True, description="Pattern: <year+0000> e.g. 20260001"
    )
    public_id = fields.CharField(
        max_length=27, unique=True, default=generate_ksuid, db_index=True
    )

    customer: fields.ForeignKeyRelation["Customer"] = fields.ForeignKeyField(
        "models.Customer", related_name="orders", on_delete=fields.RESTRICT
    )
    delivery_address = fields.TextField(null=True)
    notes = fields.TextField(null=True)
    delivery_date = fields.DateField()
    delivery_time = fields.TimeField(null=True)
    delivery_fee = fields.FloatField(default=0.0)
    total_amount = fields.FloatField(default=0.0, description="Sum of item snapshots plus delivery fee")
    status = fields.CharEnumField(OrderStatus, max_length=20, default=OrderStatus.UNDER_REVIEW)

    owner: fields.ForeignKeyRelation["User"] = fields.ForeignKeyField(
        "models.User", related_name="orders", on_delete=fields.CASCADE
    )

    items: fields.ReverseRelation["OrderItem"]
    transactions: fields.ReverseRelation["FinancialTransaction"]

    @classmethod
    async def generate_next_order_number(cls, using_db=None):
        year_str = str(datetime.datetime.now().year)
        last_order = (
            await cls.filter(order_number__startswith=year_str)
            .using_db(using_db)
            .order_by("-order_number")
            .first()
        )
        if last_order and last_order.order_number.startswith(year_str):
            last_sequence = int(last_order.order_number[len(year_str) :])
            next_sequence = last_sequence + 1
        else:
            next_sequence = 1
        return f"{year_str}{next_sequence:04d}"

    def __str__(self):
        return f"Order {self.order_number} ({self.public_id}) - Status: {self.status}"

    class Meta:
        table = "orders"


class OrderItem(TimestampMixin):
    """One order line. Name, price and, for combos, the composition are snapshots taken when the line was added."""

    id = fields.IntField(primary_key=True)
    public_id = fields.CharField(
        max_length=27, unique=True, default=generate_ksuid, db_index=True
    )

    order: fields.ForeignKeyRelation[Order] = fields.ForeignKeyField(
        "models.Order",
        related_name="items",
        on_delete=fields.CASCADE,
    )
    is_combo = fields.BooleanField(default=False)
    product: fields.ForeignKeyNullableRelation["Product"] = fields.ForeignKeyField(
        "models.Product",
        related_name="order_items_relation",
        on_delete=fields.RESTRICT,
        null=True,
    )
    combo: fields.ForeignKeyNullableRelation["Combo"] = fields.ForeignKeyField(
        "models.Combo",
        related_name="order_items_relation",
        on_delete=fields.RESTRICT,
        null=True,
    )

    name_at_purchase = fields.CharField(max_length=255)
    price_at_purchase = fields.FloatField()
    quantity = fields.IntField()
    components_at_purchase = fields.JSONField(
        null=True, description="Combo lines only: [[product_id, quantity per combo], ...]"
    )

    @property
    def components(self) -> list[tuple[int, int]]:
        return [(product_id, quantity) for product_id, quantity in self.components_at_purchase or []]

    @property
    def item_id(self) -> int:
        return self.combo_id if self.is_combo else self.product_id

    @property
    def line_key(self) -> tuple[bool, int]:
        return (self.is_combo, self.item_id)

    def __str__(self):
        return f"{self.quantity} x {self.name_at_purchase} for order {self.order_id}"

    class Meta:
        table = "order_items"
