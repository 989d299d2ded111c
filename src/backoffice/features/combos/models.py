"""Combos: named bundles of stock products sold at their own price."""

from tortoise import fields
from ...common.models import TimestampMixin, generate_ksuid


class Combo(TimestampMixin):
    id = fields.IntField(primary_key=True)
    public_id = fields.CharField(
        max_length=27, unique=True, default=generate_ksuid, db_index=True
    )
    name = fields.CharField(max_length=255)
    description = fields.TextField(null=True)
    price = fields.FloatField(default=0.0)

    owner: fields.ForeignKeyRelation["User"] = fields.ForeignKeyField(
        "models.User", related_name="combos", on_delete=fields.CASCADE
    )

    items: fields.ReverseRelation["ComboItem"]
    order_items_relation: fields.ReverseRelation["OrderItem"]

    def __str__(self):
        return f"{self.name} (${self.price:.2f})"

    class Meta:
        table = "product_combos"


class ComboItem(TimestampMixin):
    id = fields.IntField(primary_key=True)
    combo: fields.ForeignKeyRelation[Combo] = fields.ForeignKeyField(
        "models.Combo", related_name="items", on_delete=fields.CASCADE
    )
    product: fields.ForeignKeyRelation["Product"] = fields.ForeignKeyField(
        "models.Product", related_name="combo_items_relation", on_delete=fields.RESTRICT
    )
    quantity = fields.IntField(description="Units of the product in one combo")
    position = fields.IntField(default=0)

    def __str__(self):
        return f"{self.quantity} x product {self.product_id} in combo {self.combo_id}"

    class Meta:
        table = "combo_items"
        ordering = ["position"]
        unique_together = (("combo", "product"),)
