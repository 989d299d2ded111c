"""Customer records owned by a back-office user."""

from tortoise import fields
from ...common.models import TimestampMixin, generate_ksuid


class Customer(TimestampMixin):
    id = fields.IntField(primary_key=True)
    public_id = fields.CharField(
        max_length=27, unique=True, default=generate_ksuid, db_index=True
    )
    name = fields.CharField(max_length=255)
    phone = fields.CharField(max_length=20, description="Pattern: (DD) NNNNN-NNNN")
    address = fields.TextField(null=True)
    notes = fields.TextField(null=True)

    owner: fields.ForeignKeyRelation["User"] = fields.ForeignKeyField(
        "models.User", related_name="customers", on_delete=fields.CASCADE
    )

    orders: fields.ReverseRelation["Order"]

    def __str__(self):
        return f"{self.name} ({self.phone})"

    class Meta:
        table = "customers"
        ordering = ["name"]
