from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import datetime

from .models import StockStatus


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Name of the product")
    price: float = Field(..., ge=0, description="Current unit price of the product")
    quantity: int = Field(default=0, ge=0, description="Current stock quantity of the product")
    min_quantity: int = Field(default=0, ge=0, description="Quantity at or below which stock is low")
    category: str = Field(..., min_length=1, max_length=100, description="Product category")
    unit: str = Field(default="un", min_length=1, max_length=20, description="Unit label")

class ProductCreate(ProductBase):
    pass

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="New name of the product")
    price: Optional[float] = Field(None, ge=0, description="New unit price")
    quantity: Optional[int] = Field(None, ge=0, description="New stock quantity")
    min_quantity: Optional[int] = Field(None, ge=0, description="New minimum quantity")
    category: Optional[str] = Field(None, min_length=1, max_length=100, description="New category")
    unit: Optional[str] = Field(None, min_length=1, max_length=20, description="New unit label")

class ProductResponse(ProductBase):
    public_id: str = Field(..., description="Public unique identifier for the product (KSUID)")
    status: StockStatus = Field(..., description="Stock status derived from quantity and minimum")
    created_at: datetime.datetime = Field(..., description="Timestamp of when the product was created")
    updated_at: datetime.datetime = Field(..., description="Timestamp of when the product was last updated")

    model_config = ConfigDict(
        from_attributes=True,
        protected_namespaces=(),
    )

class PaginatedProductResponse(BaseModel):
    items: list[ProductResponse]
    total: int
    page: int
    size: int

    model_config = ConfigDict(
        from_attributes=True,
        protected_namespaces=(),
    )
