"""
Customer-facing trade-in order schemas.

Covers order submission, order tracking and the customer's answers to a
revised offer (accept, decline or cancel).
"""

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from src.schemas.common import (
    Money,
    MoneyInput,
    RequestModel,
    ResponseModel,
    UTCDateTime,
    validate_email_address,
)
from src.services.orders.enums import OrderStatus, PaymentMethod


class TradeInSubmitRequest(RequestModel):
    """Order submission with customer contact details and catalog references."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)
    address_line1: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)

    device_model_id: UUID
    condition_id: UUID
    storage_option_id: UUID
    quoted_amount: Optional[MoneyInput] = Field(
        None,
        description="Amount shown to the customer; recomputed by the server",
    )
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        return validate_email_address(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        digits = "".join(filter(str.isdigit, v))
        if len(digits) < 7:
            raise ValueError("Phone number must contain at least 7 digits")
        return v


class TrackOrderRequest(RequestModel):
    email: str = Field(..., min_length=3, max_length=255)
    order_number: str = Field(..., min_length=1, max_length=50)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        return validate_email_address(v)

    @field_validator("order_number")
    @classmethod
    def normalize_order_number(cls, v: str) -> str:
        return v.upper()


class OfferDecision(str, Enum):
    """Customer answer to a revised offer."""

    ACCEPT = "ACCEPT"
    DECLINE = "DECLINE"


class OfferResponseRequest(RequestModel):
    order_id: UUID
    email: str = Field(..., min_length=3, max_length=255)
    response: OfferDecision
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        return validate_email_address(v)

    @field_validator("response", mode="before")
    @classmethod
    def normalize_response(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper()
        return v


class CancelOrderRequest(RequestModel):
    order_id: UUID
    email: str = Field(..., min_length=3, max_length=255)
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        return validate_email_address(v)


class OrderSummaryResponse(ResponseModel):
    """Order view returned to the customer."""

    id: UUID
    order_number: str
    status: OrderStatus
    quoted_amount: Money
    final_amount: Optional[Money] = None
    payment_method: Optional[PaymentMethod] = None
    submitted_at: UTCDateTime
    processed_at: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    customer_name: str
    device_model: str
    storage: str
    condition: str
    notes: Optional[str] = None
