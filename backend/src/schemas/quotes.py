"""
Quote calculation schemas.
"""

from uuid import UUID

from pydantic import Field

from src.database.models.catalog import ConditionTier
from src.schemas.common import Money, RequestModel, ResponseModel


class QuoteRequest(RequestModel):
    """Quote request for a device model, storage label and condition label."""

    device_model_id: UUID = Field(..., description="Device model identifier")
    storage: str = Field(..., min_length=1, max_length=20, description="Storage label, e.g. 256GB")
    condition: str = Field(
        ..., min_length=1, max_length=50, description="Condition name or tier, e.g. excellent"
    )


class QuoteResponse(ResponseModel):
    device_model_id: UUID
    device_model: str
    storage_option_id: UUID
    storage: str
    condition_id: UUID
    condition: str
    tier: ConditionTier
    amount: Money
