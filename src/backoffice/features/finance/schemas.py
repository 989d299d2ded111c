from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import datetime

from ...common.models import today
from .models import TransactionCategory, TransactionType


class TransactionBase(BaseModel):
    transaction_date: datetime.date = Field(
        default_factory=today, description="Date the money moved (YYYY-MM-DD)"
    )
    description: str = Field(..., min_length=1, max_length=255)
    category: TransactionCategory = Field(default=TransactionCategory.OTHER)
    type: TransactionType = Field(..., description="revenue or expense")

class TransactionCreate(TransactionBase):
    amount: float = Field(..., gt=0, description="Positive amount; the type gives its direction")

class ReceiptInfo(BaseModel):
    file_name: str
    content_type: str
    size: int

    model_config = ConfigDict(from_attributes=True)

class TransactionResponse(TransactionBase):
    public_id: str = Field(..., description="Public unique identifier for the transaction (KSUID)")
    amount: float
    order_public_id: Optional[str] = Field(None, description="Order this entry was generated for")
    order_number: Optional[str] = None
    receipt: Optional[ReceiptInfo] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
