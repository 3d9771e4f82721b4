"""
Trade-in order and status history models.

An order references one customer, one device model, one condition and one
storage option. ``quoted_amount`` is fixed at submission; ``final_amount`` is
the settlement value set by staff after inspection. The status history is
append-only: rows are only ever inserted, and removed together with their
order.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import AuditedModel, Base, UUIDMixin, create_table_args, utcnow
from src.database.models.catalog import DeviceCondition, DeviceModel, StorageOption
from src.database.models.customer import Customer
from src.services.orders.enums import OrderStatus, PaymentMethod

order_status_type = SQLEnum(OrderStatus, name="trade_in_order_status", create_constraint=True)


class TradeInOrder(AuditedModel):
    """
    Customer trade-in order.

    Attributes:
        order_number: Human-readable unique number, ``TI-{year}-{millis}-{suffix}``
        status: Current lifecycle status
        quoted_amount: Catalog price at submission, never changed afterwards
        final_amount: Authoritative settlement value when present
        submitted_at: Submission timestamp
        processed_at: First time the order entered PROCESSING
        completed_at: First time the order entered COMPLETED
    """

    __tablename__ = "trade_in_orders"

    order_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Human-readable order number",
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Customer who submitted the order",
    )
    device_model_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("device_models.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Traded-in device model",
    )
    condition_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("device_conditions.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Declared device condition",
    )
    storage_option_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("storage_options.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Storage option priced at submission",
    )
    status: Mapped[OrderStatus] = mapped_column(
        order_status_type,
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
        comment="Current order status",
    )
    quoted_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        comment="Quote computed at submission",
    )
    final_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
        comment="Settlement value after inspection",
    )
    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method", create_constraint=True),
        nullable=True,
        comment="Payout method",
    )
    tracking_number: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Inbound shipment tracking number",
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free-form notes",
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
        comment="Submission timestamp",
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="First entry into PROCESSING",
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="First entry into COMPLETED",
    )

    customer: Mapped["Customer"] = relationship(
        "Customer",
        back_populates="orders",
        lazy="selectin",
    )
    device_model: Mapped["DeviceModel"] = relationship(
        "DeviceModel",
        back_populates="orders",
        lazy="selectin",
    )
    condition: Mapped["DeviceCondition"] = relationship(
        "DeviceCondition",
        lazy="selectin",
    )
    storage_option: Mapped["StorageOption"] = relationship(
        "StorageOption",
        lazy="selectin",
    )
    status_history: Mapped[list["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory",
        back_populates="order",
        lazy="selectin",
        passive_deletes="all",
        order_by="OrderStatusHistory.sequence",
    )

    __table_args__ = create_table_args(
        Index("ix_trade_in_orders_status_submitted", "status", "submitted_at"),
        CheckConstraint("quoted_amount >= 0", name="ck_trade_in_orders_quoted_amount"),
        CheckConstraint(
            "final_amount IS NULL OR final_amount >= 0",
            name="ck_trade_in_orders_final_amount",
        ),
        comment="Customer trade-in orders",
    )


class OrderStatusHistory(Base, UUIDMixin):
    """
    Append-only log entry for an order status change.

    ``status`` is the status after the change. ``sequence`` numbers the
    entries of one order from 1 in the order they were written.
    """

    __tablename__ = "order_status_history"

    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("trade_in_orders.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Order this entry belongs to",
    )
    sequence: Mapped[int] = mapped_column(
        nullable=False,
        comment="Position of the entry within the order history",
    )
    status: Mapped[OrderStatus] = mapped_column(
        order_status_type,
        nullable=False,
        comment="Status after the change",
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Reason or note attached to the change",
    )
    changed_by: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="system",
        comment="Staff email, customer marker or system",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the change was recorded",
    )

    order: Mapped["TradeInOrder"] = relationship(
        "TradeInOrder",
        back_populates="status_history",
    )

    __table_args__ = create_table_args(
        Index(
            "uq_order_status_history_sequence",
            "order_id",
            "sequence",
            unique=True,
        ),
        comment="Append-only order status log",
    )
