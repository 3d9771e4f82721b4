"""
Catalog data access repository.

This module implements the CatalogRepository class providing async access
to categories, brands, condition levels, device models and storage options.
Database failures are logged and re-raised as CatalogRepositoryError; the
raw database error text stays in the logs.
"""

import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.exceptions import ConflictError, TradeInError
from src.core.logging import get_logger
from src.database.models.catalog import (
    Brand,
    Category,
    ConditionTier,
    DeviceCondition,
    DeviceModel,
    StorageOption,
)
from src.database.models.trade_in import TradeInOrder

logger = get_logger(__name__)


class CatalogRepositoryError(TradeInError):
    """Raised when a catalog query or write fails."""

    pass


class CatalogIntegrityError(ConflictError):
    """Raised when a catalog write violates a uniqueness or reference constraint."""

    pass


class CatalogRepository:
    """
    Repository for catalog data access operations.

    Writes only flush; committing is left to the request-scoped session.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _flush(self, action: str, **context: Any) -> None:
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                "Catalog write violated a constraint",
                action=action,
                error=str(e.orig),
                **context,
            )
            raise CatalogIntegrityError(
                f"Catalog {action} conflicts with existing data",
                action=action,
                **context,
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Catalog write failed",
                action=action,
                error=str(e),
                **context,
            )
            raise CatalogRepositoryError(
                f"Catalog {action} failed",
                action=action,
                **context,
            ) from e

    async def _all(self, stmt: Any, entity: str) -> Sequence[Any]:
        try:
            result = await self.session.execute(stmt)
            return result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Catalog query failed", entity=entity, error=str(e))
            raise CatalogRepositoryError(f"Failed to fetch {entity}", entity=entity) from e

    async def _one_or_none(self, stmt: Any, entity: str) -> Optional[Any]:
        try:
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Catalog query failed", entity=entity, error=str(e))
            raise CatalogRepositoryError(f"Failed to fetch {entity}", entity=entity) from e

    # ------------------------------------------------------------------
    # Categories and brands
    # ------------------------------------------------------------------

    async def list_categories(self, active_only: bool = False) -> Sequence[Category]:
        stmt = select(Category).order_by(Category.display_order, Category.name)
        if active_only:
            stmt = stmt.where(Category.is_active.is_(True))
        return await self._all(stmt, "categories")

    async def get_category(self, category_id: uuid.UUID) -> Optional[Category]:
        return await self.session.get(Category, category_id)

    async def list_brands(self, active_only: bool = False) -> Sequence[Brand]:
        stmt = select(Brand).order_by(Brand.display_order, Brand.name)
        if active_only:
            stmt = stmt.where(Brand.is_active.is_(True))
        return await self._all(stmt, "brands")

    async def get_brand(self, brand_id: uuid.UUID) -> Optional[Brand]:
        return await self.session.get(Brand, brand_id)

    async def add(self, instance: Any) -> Any:
        """Persist a new catalog row and return it with defaults populated."""
        self.session.add(instance)
        await self._flush("create", entity=type(instance).__name__)
        return instance

    async def save(self, instance: Any) -> Any:
        """Flush pending changes of an existing catalog row."""
        await self._flush("update", entity=type(instance).__name__, id=str(instance.id))
        return instance

    async def remove(self, instance: Any) -> None:
        await self.session.delete(instance)
        await self._flush("delete", entity=type(instance).__name__, id=str(instance.id))

    async def count_models(
        self,
        category_id: Optional[uuid.UUID] = None,
        brand_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Count device models, active or not, in a category or brand."""
        stmt = select(func.count()).select_from(DeviceModel)
        if category_id is not None:
            stmt = stmt.where(DeviceModel.category_id == category_id)
        if brand_id is not None:
            stmt = stmt.where(DeviceModel.brand_id == brand_id)
        try:
            result = await self.session.execute(stmt)
            return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error("Failed to count device models", error=str(e))
            raise CatalogRepositoryError("Failed to count device models") from e

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    async def list_conditions(self, active_only: bool = False) -> Sequence[DeviceCondition]:
        stmt = select(DeviceCondition).order_by(
            DeviceCondition.display_order, DeviceCondition.name
        )
        if active_only:
            stmt = stmt.where(DeviceCondition.is_active.is_(True))
        return await self._all(stmt, "conditions")

    async def get_condition(self, condition_id: uuid.UUID) -> Optional[DeviceCondition]:
        return await self.session.get(DeviceCondition, condition_id)

    async def get_condition_by_tier(self, tier: ConditionTier) -> Optional[DeviceCondition]:
        """First active condition mapped to ``tier`` in listing order."""
        stmt = (
            select(DeviceCondition)
            .where(DeviceCondition.tier == tier, DeviceCondition.is_active.is_(True))
            .order_by(DeviceCondition.display_order, DeviceCondition.name)
            .limit(1)
        )
        return await self._one_or_none(stmt, "condition")

    async def get_condition_by_name(self, name: str) -> Optional[DeviceCondition]:
        stmt = select(DeviceCondition).where(
            func.lower(DeviceCondition.name) == name.strip().lower()
        )
        return await self._one_or_none(stmt, "condition")

    # ------------------------------------------------------------------
    # Device models and storage options
    # ------------------------------------------------------------------

    async def list_device_models(
        self,
        active_only: bool = False,
        category_id: Optional[uuid.UUID] = None,
        brand_id: Optional[uuid.UUID] = None,
    ) -> Sequence[DeviceModel]:
        stmt = select(DeviceModel).order_by(DeviceModel.display_order, DeviceModel.name)
        if active_only:
            stmt = stmt.where(DeviceModel.is_active.is_(True))
        if category_id is not None:
            stmt = stmt.where(DeviceModel.category_id == category_id)
        if brand_id is not None:
            stmt = stmt.where(DeviceModel.brand_id == brand_id)
        return await self._all(stmt, "device models")

    async def get_device_model(self, model_id: uuid.UUID) -> Optional[DeviceModel]:
        stmt = (
            select(DeviceModel)
            .where(DeviceModel.id == model_id)
            .options(selectinload(DeviceModel.storage_options))
            .execution_options(populate_existing=True)
        )
        return await self._one_or_none(stmt, "device model")

    async def get_active_storage_option(
        self, model_id: uuid.UUID, storage: str
    ) -> Optional[StorageOption]:
        """Active storage option for (model, label); labels compare case-insensitively."""
        stmt = select(StorageOption).where(
            StorageOption.device_model_id == model_id,
            func.upper(StorageOption.storage) == storage.strip().upper(),
            StorageOption.is_active.is_(True),
        )
        return await self._one_or_none(stmt, "storage option")

    async def get_storage_option(self, option_id: uuid.UUID) -> Optional[StorageOption]:
        return await self.session.get(StorageOption, option_id)

    async def model_has_orders(self, model_id: uuid.UUID) -> bool:
        stmt = select(func.count()).select_from(TradeInOrder).where(
            TradeInOrder.device_model_id == model_id
        )
        try:
            result = await self.session.execute(stmt)
            return result.scalar_one() > 0
        except SQLAlchemyError as e:
            logger.error("Failed to count model orders", model_id=str(model_id), error=str(e))
            raise CatalogRepositoryError("Failed to check model orders") from e

    async def delete_device_model(self, model: DeviceModel) -> None:
        """Physically delete an unreferenced model together with its storage options."""
        try:
            await self.session.execute(
                delete(StorageOption).where(StorageOption.device_model_id == model.id)
            )
            await self.session.execute(delete(DeviceModel).where(DeviceModel.id == model.id))
            self.session.expunge(model)
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("Device model delete blocked", model_id=str(model.id))
            raise CatalogIntegrityError(
                "Device model is still referenced",
                model_id=str(model.id),
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Device model delete failed", model_id=str(model.id), error=str(e))
            raise CatalogRepositoryError(
                "Failed to delete device model",
                model_id=str(model.id),
            ) from e
