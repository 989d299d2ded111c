from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import datetime


class ComboItemIn(BaseModel):
    product_public_id: str = Field(..., description="Public KSUID of the product")
    quantity: int = Field(..., gt=0, description="Units of the product in one combo")

class ComboBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    price: float = Field(..., ge=0, description="Price of one combo")

class ComboCreate(ComboBase):
    items: List[ComboItemIn] = Field(..., min_length=1)

class ComboUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    price: Optional[float] = Field(None, ge=0)
    items: Optional[List[ComboItemIn]] = Field(None, min_length=1, description="Replaces all items")

class ComboItemResponse(BaseModel):
    product_public_id: str
    product_name: str
    quantity: int
    unit: str

class ComboResponse(ComboBase):
    public_id: str = Field(..., description="Public unique identifier for the combo (KSUID)")
    items: List[ComboItemResponse]
    available_quantity: int = Field(
        ..., description="How many combos the current stock of every component allows"
    )
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
