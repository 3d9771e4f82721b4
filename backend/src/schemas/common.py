"""
Shared Pydantic building blocks for request and response schemas.

Request models reject unknown fields. Money values are quantized to two
fractional digits and serialized as strings; datetimes are always rendered
in UTC.
"""

from datetime import datetime, timezone
from decimal import Decimal
from math import ceil
from typing import Annotated, Any, Generic, Optional, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
)

T = TypeVar("T")

MONEY_QUANTUM = Decimal("0.01")


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _money_to_str(value: Decimal) -> str:
    return str(value.quantize(MONEY_QUANTUM))


UTCDateTime = Annotated[datetime, AfterValidator(_ensure_utc)]

Money = Annotated[
    Decimal,
    PlainSerializer(_money_to_str, return_type=str, when_used="json"),
]

# Request-side money: finite, non-negative, at most two fractional digits
MoneyInput = Annotated[
    Decimal,
    Field(ge=0, max_digits=10, decimal_places=2, allow_inf_nan=False),
]


def validate_email_address(value: str) -> str:
    """Validate email format and normalize to lower case."""
    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email format: {e}") from e
    return result.normalized.lower()


class RequestModel(BaseModel):
    """Base for request bodies: strict keys, stripped strings."""

    model_config = ConfigDict(
        extra="forbid",
        str_strip_whitespace=True,
    )


class ResponseModel(BaseModel):
    """Base for response payloads built from ORM objects or dictionaries."""

    model_config = ConfigDict(from_attributes=True)


class PaginationMeta(BaseModel):
    """Pagination block of list responses."""

    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> "PaginationMeta":
        total_pages = ceil(total_count / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


class DataResponse(BaseModel, Generic[T]):
    """Success envelope ``{"data": ...}``."""

    data: T


class PaginatedResponse(BaseModel, Generic[T]):
    """Success envelope for lists ``{"data": [...], "pagination": {...}}``."""

    data: list[T]
    pagination: PaginationMeta


class ErrorDetail(BaseModel):
    message: str
    code: str
    details: Optional[list[dict[str, Any]]] = None


class ErrorResponse(BaseModel):
    """Error envelope ``{"error": {...}}`` documented on routes."""

    error: ErrorDetail
