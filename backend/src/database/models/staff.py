"""
Staff allow-list model.

Staff authenticate with the hosted identity provider; this table decides
which of those identities may use the staff API and with which role.
"""

from enum import Enum

from sqlalchemy import Boolean, Enum as SQLEnum, String, text
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import BaseModel, create_table_args


class StaffRole(str, Enum):
    """Staff roles. ADMIN may additionally delete orders and catalog entries."""

    STAFF = "STAFF"
    ADMIN = "ADMIN"


class StaffMember(BaseModel):
    """An identity allowed to use the staff API."""

    __tablename__ = "staff_members"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Lower-cased email matching the identity provider account",
    )
    full_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
        comment="Display name for audit entries",
    )
    role: Mapped[StaffRole] = mapped_column(
        SQLEnum(StaffRole, name="staff_role", create_constraint=True),
        nullable=False,
        default=StaffRole.STAFF,
        comment="Authorization role",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
        comment="Inactive members are refused",
    )

    __table_args__ = create_table_args(comment="Staff authorization allow-list")
