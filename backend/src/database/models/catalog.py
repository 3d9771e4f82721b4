"""
Device catalog models.

Categories, brands and condition levels are small lookup tables. Device
models belong to one category and one brand and carry their storage options;
each storage option holds four absolute prices, one per condition tier.
A missing tier price means "not configured" and is never read as zero.
"""

import uuid
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import AuditedModel, BaseModel, create_table_args

if TYPE_CHECKING:
    from src.database.models.trade_in import TradeInOrder


class ConditionTier(str, Enum):
    """
    Condition tier of a traded-in device.

    The tier selects which of a storage option's four prices applies.
    """

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"

    @classmethod
    def from_string(cls, value: str) -> "ConditionTier":
        """
        Resolve a tier from a case-insensitive label such as ``excellent``.

        Raises:
            ValueError: If value is not a known tier
        """
        try:
            return cls(value.strip().upper())
        except ValueError:
            valid_values = ", ".join(tier.value.lower() for tier in cls)
            raise ValueError(
                f"Invalid condition: {value}. Valid values are: {valid_values}"
            )

    @property
    def display_name(self) -> str:
        return self.value.title()


class Category(BaseModel):
    """Device category such as Smartphone or Laptop."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Category display name",
    )
    description: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Category description",
    )
    icon: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Icon identifier used by clients",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Whether the category is offered",
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Sort position in listings",
    )

    device_models: Mapped[list["DeviceModel"]] = relationship(
        "DeviceModel",
        back_populates="category",
    )

    __table_args__ = create_table_args(comment="Device categories")


class Brand(BaseModel):
    """Device manufacturer."""

    __tablename__ = "brands"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Brand display name",
    )
    logo_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Brand logo URL",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Whether the brand is offered",
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Sort position in listings",
    )

    device_models: Mapped[list["DeviceModel"]] = relationship(
        "DeviceModel",
        back_populates="brand",
    )

    __table_args__ = create_table_args(comment="Device brands")


class DeviceCondition(BaseModel):
    """Condition level offered to customers, bound to one pricing tier."""

    __tablename__ = "device_conditions"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Condition display name",
    )
    description: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="What the condition means for the customer",
    )
    tier: Mapped[ConditionTier] = mapped_column(
        SQLEnum(ConditionTier, name="condition_tier", create_constraint=True),
        nullable=False,
        index=True,
        comment="Pricing tier selected by this condition",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Whether the condition is offered",
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Sort position in listings",
    )

    __table_args__ = create_table_args(comment="Device condition levels")


class DeviceModel(AuditedModel):
    """
    A purchasable device model.

    Models referenced by orders are never physically deleted; they are
    deactivated so order history keeps its references.
    """

    __tablename__ = "device_models"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Model display name, e.g. iPhone 15 Pro",
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Owning category",
    )
    brand_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("brands.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Owning brand",
    )
    model_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Manufacturer model number",
    )
    release_year: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Year the model was released",
    )
    image_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Product image URL",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        index=True,
        comment="Whether the model is offered for trade-in",
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Sort position in listings",
    )

    category: Mapped["Category"] = relationship(
        "Category",
        back_populates="device_models",
        lazy="selectin",
    )
    brand: Mapped["Brand"] = relationship(
        "Brand",
        back_populates="device_models",
        lazy="selectin",
    )
    storage_options: Mapped[list["StorageOption"]] = relationship(
        "StorageOption",
        back_populates="device_model",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="StorageOption.display_order",
    )
    orders: Mapped[list["TradeInOrder"]] = relationship(
        "TradeInOrder",
        back_populates="device_model",
        lazy="noload",
    )

    __table_args__ = create_table_args(
        UniqueConstraint("brand_id", "name", name="uq_device_models_brand_name"),
        CheckConstraint(
            "release_year IS NULL OR release_year BETWEEN 1990 AND 2100",
            name="ck_device_models_release_year",
        ),
        comment="Device models available for trade-in",
    )

    @property
    def display_name(self) -> str:
        """Brand-qualified name, e.g. ``Apple iPhone 15 Pro``."""
        return f"{self.brand.name} {self.name}"


class StorageOption(BaseModel):
    """
    Storage capacity variant of a device model with its price schedule.

    At most one active option exists per (model, storage label), compared
    case-insensitively.
    """

    __tablename__ = "storage_options"

    device_model_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("device_models.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning device model",
    )
    storage: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Storage label, e.g. 256GB",
    )
    excellent_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Price for EXCELLENT condition",
    )
    good_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Price for GOOD condition",
    )
    fair_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Price for FAIR condition",
    )
    poor_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Price for POOR condition",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Inactive options are kept for order history only",
    )
    display_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Sort position within the model",
    )

    device_model: Mapped["DeviceModel"] = relationship(
        "DeviceModel",
        back_populates="storage_options",
    )

    __table_args__ = create_table_args(
        Index(
            "uq_storage_options_active_label",
            "device_model_id",
            text("upper(storage)"),
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
        CheckConstraint(
            "excellent_price IS NULL OR excellent_price >= 0",
            name="ck_storage_options_excellent_price",
        ),
        CheckConstraint(
            "good_price IS NULL OR good_price >= 0",
            name="ck_storage_options_good_price",
        ),
        CheckConstraint(
            "fair_price IS NULL OR fair_price >= 0",
            name="ck_storage_options_fair_price",
        ),
        CheckConstraint(
            "poor_price IS NULL OR poor_price >= 0",
            name="ck_storage_options_poor_price",
        ),
        comment="Per-storage price schedules",
    )

    def price_for(self, tier: ConditionTier) -> Optional[Decimal]:
        """Stored price for a condition tier, or None when not configured."""
        return {
            ConditionTier.EXCELLENT: self.excellent_price,
            ConditionTier.GOOD: self.good_price,
            ConditionTier.FAIR: self.fair_price,
            ConditionTier.POOR: self.poor_price,
        }[tier]
