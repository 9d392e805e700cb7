"""
Database Schemas for the storefront

Request bodies are validated here before anything touches the database.
Orders live in the "orders" collection, catalog items in "products".
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

ORDER_STATUSES = ("Pending", "Paid & Pending", "Shipped", "Delivered", "Cancelled")

OrderStatus = Literal["Pending", "Paid & Pending", "Shipped", "Delivered", "Cancelled"]

DEFAULT_STATUS: OrderStatus = "Pending"
DEFAULT_LANDMARK = "N/A"

# Upper bound for any amount in major currency units
MAX_AMOUNT = 10_000_000


def require_number(v: Any) -> Any:
    # Lax mode would accept true and "100" as numbers
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValueError("must be a number")
    return v


class OrderCreate(BaseModel):
    customerName: str = Field(..., min_length=1, description="Customer full name")
    email: EmailStr
    pincode: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    landmark: Optional[str] = Field(DEFAULT_LANDMARK, description="Optional delivery hint")
    items: List[Dict[str, Any]] = Field(..., min_length=1, description="Line items, stored as sent")
    total: float = Field(
        ..., gt=0, le=MAX_AMOUNT, allow_inf_nan=False, description="Order total in major currency units"
    )
    paymentId: Optional[str] = Field(None, description="Gateway order id, when paid online")

    @field_validator("total", mode="before")
    @classmethod
    def total_is_number(cls, v: Any) -> Any:
        return require_number(v)

    @field_validator("customerName", "pincode", "city", "address")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("landmark")
    @classmethod
    def default_landmark(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            return DEFAULT_LANDMARK
        return v.strip()

    def to_document(self, now: datetime) -> Dict[str, Any]:
        doc = self.model_dump()
        doc["status"] = DEFAULT_STATUS
        doc["date"] = now
        return doc


class StatusUpdate(BaseModel):
    status: OrderStatus


class PaymentRequest(BaseModel):
    amount: float = Field(
        ..., gt=0, le=MAX_AMOUNT, allow_inf_nan=False, description="Amount in major currency units"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def amount_is_number(cls, v: Any) -> Any:
        return require_number(v)


class OrderCreated(BaseModel):
    success: bool = True
    orderId: str
    customerName: str
    total: float


class OrderTracking(BaseModel):
    status: str
    customerName: str
    date: datetime
    total: float
