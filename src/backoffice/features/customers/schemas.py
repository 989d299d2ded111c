import re
import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def format_phone_number(value: str) -> str:
    """Formats a phone number as (DD) NNNNN-NNNN, keeping at most 11 digits.

    Shorter inputs are formatted as far as their digits go, e.g. "11" stays
    "11" and "1198765" becomes "(11) 98765".
    """
    digits = re.sub(r"\D", "", value)
    if len(digits) <= 2:
        return digits
    if len(digits) <= 7:
        return f"({digits[:2]}) {digits[2:]}"
    if len(digits) == 10:
        # Landline: (DD) NNNN-NNNN
        return f"({digits[:2]}) {digits[2:6]}-{digits[6:]}"
    return f"({digits[:2]}) {digits[2:7]}-{digits[7:11]}"


def _normalise_phone(value: str) -> str:
    digits = re.sub(r"\D", "", value)
    if not 10 <= len(digits) <= 11:
        raise ValueError("Phone number must have 10 or 11 digits including the area code")
    return format_phone_number(digits)


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Customer name")
    phone: str = Field(..., min_length=1, max_length=20, description="Customer phone number")
    address: Optional[str] = Field(None, description="Default delivery address")
    notes: Optional[str] = Field(None, description="Free-form notes about the customer")

    @field_validator("phone")
    @classmethod
    def normalise_phone(cls, value: str) -> str:
        return _normalise_phone(value)


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, min_length=1, max_length=20)
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def normalise_phone(cls, value: Optional[str]) -> Optional[str]:
        return _normalise_phone(value) if value is not None else None


class CustomerResponse(BaseModel):
    public_id: str = Field(..., description="Public unique identifier for the customer (KSUID)")
    name: str
    phone: str
    address: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())
