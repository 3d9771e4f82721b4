"""
Customer model.

Customers are identified by their email address. They are created or
refreshed when a trade-in order is submitted; there is no customer login.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import BaseModel, create_table_args

if TYPE_CHECKING:
    from src.database.models.trade_in import TradeInOrder


class Customer(BaseModel):
    """Trade-in customer keyed by unique, lower-cased email."""

    __tablename__ = "customers"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Lower-cased email address",
    )
    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Given name",
    )
    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
        comment="Family name",
    )
    phone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="Contact phone number",
    )
    address_line1: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Street address",
    )
    city: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    province: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    postal_code: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
    )

    orders: Mapped[list["TradeInOrder"]] = relationship(
        "TradeInOrder",
        back_populates="customer",
        order_by="TradeInOrder.submitted_at.desc()",
    )

    __table_args__ = create_table_args(comment="Trade-in customers")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
