"""
Staff-facing schemas for order management, the client view and identity.
"""

from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from src.database.models.staff import StaffRole
from src.schemas.common import Money, MoneyInput, RequestModel, ResponseModel, UTCDateTime
from src.services.orders.enums import OrderStatus, PaymentMethod


class StaffOrderUpdate(RequestModel):
    """Partial order update; each update appends one history entry.

    ``notes`` is stored on that history entry, not on the order.
    """

    status: Optional[OrderStatus] = None
    final_amount: Optional[MoneyInput] = None
    notes: Optional[str] = Field(None, max_length=2000)
    payment_method: Optional[PaymentMethod] = None
    tracking_number: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "StaffOrderUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class StatusHistoryResponse(ResponseModel):
    id: UUID
    sequence: int
    status: OrderStatus
    notes: Optional[str] = None
    changed_by: str
    created_at: UTCDateTime


class OrderCustomerResponse(ResponseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None


class OrderDeviceResponse(ResponseModel):
    id: UUID
    name: str
    display_name: str


class OrderConditionResponse(ResponseModel):
    id: UUID
    name: str


class OrderStorageResponse(ResponseModel):
    id: UUID
    storage: str


class StaffOrderResponse(ResponseModel):
    """Order detail for staff, with the full status history."""

    id: UUID
    order_number: str
    status: OrderStatus
    quoted_amount: Money
    final_amount: Optional[Money] = None
    payment_method: Optional[PaymentMethod] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    submitted_at: UTCDateTime
    processed_at: Optional[UTCDateTime] = None
    completed_at: Optional[UTCDateTime] = None
    created_at: UTCDateTime
    updated_at: UTCDateTime
    customer: OrderCustomerResponse
    device_model: OrderDeviceResponse
    condition: OrderConditionResponse
    storage_option: OrderStorageResponse
    status_history: list[StatusHistoryResponse]


class OrderDeleteResponse(ResponseModel):
    id: UUID
    order_number: str
    deleted: bool


class ClientOrderSummary(ResponseModel):
    id: UUID
    order_number: str
    status: OrderStatus
    quoted_amount: Money
    final_amount: Optional[Money] = None
    submitted_at: UTCDateTime


class ClientResponse(ResponseModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    created_at: UTCDateTime
    order_count: int
    orders: list[ClientOrderSummary]


class StaffIdentityResponse(ResponseModel):
    id: UUID
    email: str
    full_name: str
    role: StaffRole
    is_active: bool
