from tortoise import fields
from ...common.models import TimestampMixin, generate_ksuid


class User(TimestampMixin):
    id = fields.IntField(primary_key=True)
    public_id = fields.CharField(max_length=27, unique=True, default=generate_ksuid, db_index=True)
    username = fields.CharField(max_length=100, unique=True, db_index=True)
    email = fields.CharField(max_length=255, unique=True, db_index=True)
    hashed_password = fields.CharField(max_length=255)
    is_active = fields.BooleanField(default=True)

    customers: fields.ReverseRelation["Customer"]
    products: fields.ReverseRelation["Product"]
    combos: fields.ReverseRelation["Combo"]
    orders: fields.ReverseRelation["Order"]
    transactions: fields.ReverseRelation["FinancialTransaction"]

    def __str__(self):
        return f"{self.username} ({'active' if self.is_active else 'inactive'})"

    class Meta:
        table = "users"
