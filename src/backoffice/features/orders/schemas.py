from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
import datetime

from .models import OrderStatus


# Schemas for status changes (PATCH requests)
class OrderStatusUpdateSchema(BaseModel):
    status: OrderStatus = Field(..., description="New status of the order")

# Order Item Schemas
class OrderItemBase(BaseModel):
    item_public_id: str = Field(..., description="Public KSUID of the product or combo")
    is_combo: bool = Field(False, description="True when item_public_id refers to a combo")
    quantity: int = Field(..., gt=0, description="Quantity ordered")

class OrderItemCreateSchema(OrderItemBase):
    pass

class OrderItemPublicSchema(OrderItemBase):
    public_id: str = Field(..., description="Public KSUID of this order item")
    name: str = Field(..., description="Name of the product or combo when it was ordered")
    price: float = Field(..., description="Unit price when it was ordered")
    line_total: float

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

class OrderCustomerSchema(BaseModel):
    public_id: str
    name: str
    phone: str

    model_config = ConfigDict(from_attributes=True)

# Order Schemas
class OrderBase(BaseModel):
    delivery_address: Optional[str] = None
    notes: Optional[str] = None
    delivery_date: datetime.date
    delivery_time: Optional[datetime.time] = None
    delivery_fee: float = Field(0.0, ge=0)

class OrderCreateSchema(OrderBase):
    customer_public_id: str = Field(..., description="Public KSUID of the customer")
    status: OrderStatus = Field(OrderStatus.UNDER_REVIEW, description="Initial status; ready records the sale at once")
    items: List[OrderItemCreateSchema] = Field(..., min_length=1)

    @field_validator("status")
    @classmethod
    def not_canceled(cls, value: OrderStatus) -> OrderStatus:
        if value == OrderStatus.CANCELED:
            raise ValueError("An order cannot be placed as canceled")
        return value

class OrderUpdateSchema(OrderBase):
    items: List[OrderItemCreateSchema] = Field(..., min_length=1, description="Replaces all items")

class OrderPublicSchema(OrderBase):
    public_id: str
    order_number: str
    customer: OrderCustomerSchema
    status: OrderStatus
    total_amount: float
    items: List[OrderItemPublicSchema]
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
