"""
Catalog Pydantic schemas for public browsing and staff management.
"""

from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from src.database.models.catalog import ConditionTier, DeviceModel
from src.schemas.common import Money, MoneyInput, RequestModel, ResponseModel, UTCDateTime


def _normalize_storage_label(value: str) -> str:
    label = value.strip().replace(" ", "")
    if not label:
        raise ValueError("Storage label must not be empty")
    return label


# ============================================================================
# Categories and brands
# ============================================================================


class CategoryCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    is_active: bool = True
    display_order: int = Field(0, ge=0)


class CategoryUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class CategoryResponse(ResponseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool
    display_order: int


class BrandCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=500)
    is_active: bool = True
    display_order: int = Field(0, ge=0)


class BrandUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class BrandResponse(ResponseModel):
    id: UUID
    name: str
    logo_url: Optional[str] = None
    is_active: bool
    display_order: int


# ============================================================================
# Conditions
# ============================================================================


class ConditionCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    tier: ConditionTier
    is_active: bool = True
    display_order: int = Field(0, ge=0)


class ConditionUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)


class ConditionResponse(ResponseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    tier: ConditionTier
    is_active: bool
    display_order: int


# ============================================================================
# Device models and storage options
# ============================================================================


class StorageOptionInput(RequestModel):
    """Storage option with its price schedule; a missing price means not configured."""

    storage: str = Field(..., min_length=1, max_length=20, description="Storage label, e.g. 256GB")
    excellent_price: Optional[MoneyInput] = None
    good_price: Optional[MoneyInput] = None
    fair_price: Optional[MoneyInput] = None
    poor_price: Optional[MoneyInput] = None
    is_active: bool = True
    display_order: int = Field(0, ge=0)

    @field_validator("storage")
    @classmethod
    def normalize_storage(cls, v: str) -> str:
        return _normalize_storage_label(v)


def _unique_labels(options: Optional[list[StorageOptionInput]]) -> Optional[list[StorageOptionInput]]:
    if options is None:
        return options
    labels = [option.storage.upper() for option in options]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise ValueError(f"Duplicate storage labels: {', '.join(duplicates)}")
    return options


class DeviceModelCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    category_id: UUID
    brand_id: UUID
    model_number: Optional[str] = Field(None, max_length=100)
    release_year: Optional[int] = Field(None, ge=1990, le=2100)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: bool = True
    display_order: int = Field(0, ge=0)
    storage_options: list[StorageOptionInput] = Field(default_factory=list)

    @field_validator("storage_options")
    @classmethod
    def validate_unique_labels(cls, v: list[StorageOptionInput]) -> list[StorageOptionInput]:
        return _unique_labels(v)


class DeviceModelUpdate(RequestModel):
    """
    Partial device model update.

    When ``storage_options`` is given it replaces the schedule by label:
    known labels are updated in place, new labels are created and labels
    left out are deactivated.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category_id: Optional[UUID] = None
    brand_id: Optional[UUID] = None
    model_number: Optional[str] = Field(None, max_length=100)
    release_year: Optional[int] = Field(None, ge=1990, le=2100)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)
    storage_options: Optional[list[StorageOptionInput]] = None

    @field_validator("storage_options")
    @classmethod
    def validate_unique_labels(
        cls, v: Optional[list[StorageOptionInput]]
    ) -> Optional[list[StorageOptionInput]]:
        return _unique_labels(v)


class StorageOptionResponse(ResponseModel):
    id: UUID
    storage: str
    excellent_price: Optional[Money] = None
    good_price: Optional[Money] = None
    fair_price: Optional[Money] = None
    poor_price: Optional[Money] = None
    is_active: bool
    display_order: int


class CatalogReference(ResponseModel):
    id: UUID
    name: str


class DeviceModelResponse(ResponseModel):
    id: UUID
    name: str
    display_name: str
    category: CatalogReference
    brand: CatalogReference
    model_number: Optional[str] = None
    release_year: Optional[int] = None
    image_url: Optional[str] = None
    is_active: bool
    display_order: int
    storage_options: list[StorageOptionResponse]
    created_at: UTCDateTime
    updated_at: UTCDateTime

    @classmethod
    def from_device_model(
        cls, model: DeviceModel, active_options_only: bool = False
    ) -> "DeviceModelResponse":
        """Build the response, optionally hiding deactivated storage options."""
        response = cls.model_validate(model)
        if active_options_only:
            response.storage_options = [o for o in response.storage_options if o.is_active]
        return response


class CatalogResponse(ResponseModel):
    """Public catalog snapshot."""

    categories: list[CategoryResponse]
    brands: list[BrandResponse]
    conditions: list[ConditionResponse]
    models: list[DeviceModelResponse]


class DeviceModelDeleteResponse(ResponseModel):
    id: UUID
    deleted: bool
    deactivated: bool
