"""
Request and response schemas

Payload models declare the field constraints checked on every write:
- required: a field without a default (and min_length=1 for strings and lists)
- gt / gte: Field(gt=...) / Field(ge=...)
- oneof: Literal[...]
- email: EmailStr

*Update models carry the same constraints on optional fields, so only the
fields a client sends are checked and written. *Out models render table rows.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


MAX_ID = 2**31 - 1

Role = Literal["admin", "client"]
# row ids are 32-bit signed integers in the database
RowId = Annotated[int, Field(gt=0, le=MAX_ID)]


class UserIn(BaseModel):
    name: str = Field(..., min_length=1, description="Full name")
    email: EmailStr = Field(..., description="Email address, unique across users")
    address: Optional[str] = Field(None, description="Postal address")
    role: Role = Field(..., description="admin or client")


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    role: Optional[Role] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    address: Optional[str] = None
    registration_date: datetime
    role: str


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., min_length=1, description="Product description")
    price: float = Field(..., gt=0, description="Unit price")
    category: str = Field(..., min_length=1, description="Product category")
    quantity: int = Field(..., ge=0, le=MAX_ID, description="Units in stock")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    category: Optional[str] = Field(None, min_length=1)
    quantity: Optional[int] = Field(None, ge=0, le=MAX_ID)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: float
    category: str
    quantity: int
    created_at: datetime


class OrderIn(BaseModel):
    """
    Order payload, used for both create and update.
    order_date is never taken from the client.
    """
    user_id: RowId = Field(..., description="Ordering user")
    product_ids: List[RowId] = Field(..., min_length=1, description="Ordered products, in order")
    total_price: float = Field(..., gt=0)
    status: str = Field(..., min_length=1, description="new, processing, ...")


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    product_ids: List[int]
    total_price: float
    status: str
    order_date: datetime


class PaymentIn(BaseModel):
    user_id: RowId
    order_id: RowId
    amount: float = Field(..., gt=0)
    # overwritten with the gateway's answer on create
    payment_status: Optional[str] = None


class PaymentUpdate(BaseModel):
    user_id: Optional[RowId] = None
    order_id: Optional[RowId] = None
    amount: Optional[float] = Field(None, gt=0)
    payment_status: Optional[str] = None


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    order_id: int
    amount: float
    payment_status: Optional[str] = None
    created_at: datetime
