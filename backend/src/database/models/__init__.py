"""
Database models package initialization.

This module exports all database models so that importing the package
registers every table with the Base metadata, for Alembic and for test
schema creation.
"""

from src.database.base import (
    Base,
    BaseModel,
    AuditedModel,
    TimestampMixin,
    UUIDMixin,
    AuditMixin,
    create_table_args,
)
from src.database.models.catalog import (
    Brand,
    Category,
    ConditionTier,
    DeviceCondition,
    DeviceModel,
    StorageOption,
)
from src.database.models.customer import Customer
from src.database.models.staff import StaffMember, StaffRole
from src.database.models.trade_in import OrderStatusHistory, TradeInOrder

__all__ = [
    "Base",
    "BaseModel",
    "AuditedModel",
    "TimestampMixin",
    "UUIDMixin",
    "AuditMixin",
    "create_table_args",
    "Brand",
    "Category",
    "ConditionTier",
    "DeviceCondition",
    "DeviceModel",
    "StorageOption",
    "Customer",
    "StaffMember",
    "StaffRole",
    "OrderStatusHistory",
    "TradeInOrder",
]
