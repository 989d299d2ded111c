"""Ledger entries (financial transactions) and their receipt attachments."""

from enum import Enum

from tortoise import fields
from ...common.models import TimestampMixin, generate_ksuid


class TransactionType(str, Enum):
    REVENUE = "revenue"
    EXPENSE = "expense"


class TransactionCategory(str, Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    SALARY = "salary"
    RENT = "rent"
    OTHER = "other"


class FinancialTransaction(TimestampMixin):
    id = fields.IntField(primary_key=True)
    public_id = fields.CharField(
        max_length=27, unique=True, default=generate_ksuid, db_index=True
    )
    transaction_date = fields.DateField()
    description = fields.CharField(max_length=255)
    category = fields.CharEnumField(TransactionCategory, max_length=20)
    amount = fields.FloatField(description="Signed amount; sale cancellations are negative")
    type = fields.CharEnumField(TransactionType, max_length=20)
    idempotency_key = fields.CharField(
        max_length=100,
        unique=True,
        null=True,
        description="Set on entries created by order workflows, e.g. order:12:sale",
    )

    order: fields.ForeignKeyNullableRelation["Order"] = fields.ForeignKeyField(
        "models.Order", related_name="transactions", on_delete=fields.SET_NULL, null=True
    )
    owner: fields.ForeignKeyRelation["User"] = fields.ForeignKeyField(
        "models.User", related_name="transactions", on_delete=fields.CASCADE
    )

    receipt: fields.BackwardOneToOneRelation["Receipt"]

    def __str__(self):
        return f"{self.transaction_date} {self.type.value} {self.amount:.2f} - {self.description}"

    class Meta:
        table = "financial_transactions"
        ordering = ["-transaction_date", "-id"]


class Receipt(TimestampMixin):
    id = fields.IntField(primary_key=True)
    transaction: fields.OneToOneRelation[FinancialTransaction] = fields.OneToOneField(
        "models.FinancialTransaction", related_name="receipt", on_delete=fields.CASCADE
    )
    file_name = fields.CharField(max_length=255)
    content_type = fields.CharField(max_length=100)
    size = fields.IntField()
    content = fields.BinaryField()

    def __str__(self):
        return f"{self.file_name} ({self.size} bytes)"

    class Meta:
        table = "receipts"
