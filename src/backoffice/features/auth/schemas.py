"""Pydantic schemas for back-office accounts.

Every account is an owner: customers, stock, combos, orders and ledger
entries all belong to exactly one of them.
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr
import datetime


class OwnerBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=100, description="Login name")
    email: EmailStr = Field(..., description="Contact email, unique per owner")


class OwnerCreate(OwnerBase):
    password: str = Field(..., min_length=8, description="Plain password, stored as a bcrypt hash")


class OwnerResponse(OwnerBase):
    public_id: str = Field(..., description="Owner KSUID; also the subject of issued tokens")
    is_active: bool = Field(..., description="Disabled owners cannot log in")
    created_at: datetime.datetime
    updated_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class OwnedRecordCounts(BaseModel):
    customers: int = 0
    products: int = 0
    combos: int = 0
    orders: int = 0
    transactions: int = 0


class OwnerProfileResponse(OwnerResponse):
    records: OwnedRecordCounts


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    sub: str = Field(..., min_length=1, description="Public id of the owner the token was issued to")
