"""
Catalog service for public browsing and staff catalog management.

This module implements the CatalogService class. Categories and brands that
still hold device models cannot be deleted; device models referenced by an
order are deactivated instead of deleted. Storage option schedules are
replaced by label so that option rows referenced by orders survive.
"""

import uuid
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, NotFoundError
from src.core.logging import get_logger
from src.database.models.catalog import (
    Brand,
    Category,
    DeviceCondition,
    DeviceModel,
    StorageOption,
)
from src.schemas.catalog import (
    BrandCreate,
    BrandUpdate,
    CategoryCreate,
    CategoryUpdate,
    ConditionCreate,
    ConditionUpdate,
    DeviceModelCreate,
    DeviceModelUpdate,
    StorageOptionInput,
)
from src.services.catalog.repository import CatalogRepository

logger = get_logger(__name__)

# Columns that an explicit null in a partial update leaves unchanged
REQUIRED_FIELDS = frozenset({"name", "category_id", "brand_id", "is_active", "display_order"})


class CatalogInUseError(ConflictError):
    """Raised when deleting a category or brand that still has device models."""

    pass


class CatalogService:
    """
    Catalog service.

    Attributes:
        repository: Catalog repository for data access
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = CatalogRepository(session)

    # ------------------------------------------------------------------
    # Public catalog
    # ------------------------------------------------------------------

    async def get_public_catalog(self) -> dict[str, Any]:
        """Active categories, brands, conditions and device models."""
        categories = await self.repository.list_categories(active_only=True)
        brands = await self.repository.list_brands(active_only=True)
        conditions = await self.repository.list_conditions(active_only=True)
        models = await self.repository.list_device_models(active_only=True)

        active_category_ids = {c.id for c in categories}
        active_brand_ids = {b.id for b in brands}
        visible_models = [
            m
            for m in models
            if m.category_id in active_category_ids and m.brand_id in active_brand_ids
        ]

        logger.debug(
            "Public catalog loaded",
            categories=len(categories),
            brands=len(brands),
            models=len(visible_models),
        )
        return {
            "categories": categories,
            "brands": brands,
            "conditions": conditions,
            "models": visible_models,
        }

    async def list_public_conditions(self) -> Sequence[DeviceCondition]:
        return await self.repository.list_conditions(active_only=True)

    async def get_public_model(self, model_id: uuid.UUID) -> DeviceModel:
        model = await self.repository.get_device_model(model_id)
        if model is None or not model.is_active:
            raise NotFoundError("Device model not found", device_model_id=str(model_id))
        return model

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> Sequence[Category]:
        return await self.repository.list_categories()

    async def create_category(self, payload: CategoryCreate) -> Category:
        category = await self.repository.add(Category(**payload.model_dump()))
        logger.info("Category created", category_id=str(category.id), name=category.name)
        return category

    async def update_category(self, category_id: uuid.UUID, payload: CategoryUpdate) -> Category:
        category = await self._get_category_or_404(category_id)
        self._apply(category, payload.model_dump(exclude_unset=True))
        return await self.repository.save(category)

    async def delete_category(self, category_id: uuid.UUID) -> None:
        category = await self._get_category_or_404(category_id)
        model_count = await self.repository.count_models(category_id=category.id)
        if model_count:
            raise CatalogInUseError(
                f"Category has {model_count} device model(s); deactivate it instead",
                category_id=str(category.id),
            )
        await self.repository.remove(category)
        logger.info("Category deleted", category_id=str(category_id))

    # ------------------------------------------------------------------
    # Brands
    # ------------------------------------------------------------------

    async def list_brands(self) -> Sequence[Brand]:
        return await self.repository.list_brands()

    async def create_brand(self, payload: BrandCreate) -> Brand:
        brand = await self.repository.add(Brand(**payload.model_dump()))
        logger.info("Brand created", brand_id=str(brand.id), name=brand.name)
        return brand

    async def update_brand(self, brand_id: uuid.UUID, payload: BrandUpdate) -> Brand:
        brand = await self._get_brand_or_404(brand_id)
        self._apply(brand, payload.model_dump(exclude_unset=True))
        return await self.repository.save(brand)

    async def delete_brand(self, brand_id: uuid.UUID) -> None:
        brand = await self._get_brand_or_404(brand_id)
        model_count = await self.repository.count_models(brand_id=brand.id)
        if model_count:
            raise CatalogInUseError(
                f"Brand has {model_count} device model(s); deactivate it instead",
                brand_id=str(brand.id),
            )
        await self.repository.remove(brand)
        logger.info("Brand deleted", brand_id=str(brand_id))

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    async def list_conditions(self) -> Sequence[DeviceCondition]:
        return await self.repository.list_conditions()

    async def create_condition(self, payload: ConditionCreate) -> DeviceCondition:
        condition = await self.repository.add(DeviceCondition(**payload.model_dump()))
        logger.info("Condition created", condition_id=str(condition.id), tier=condition.tier.value)
        return condition

    async def update_condition(
        self, condition_id: uuid.UUID, payload: ConditionUpdate
    ) -> DeviceCondition:
        condition = await self.repository.get_condition(condition_id)
        if condition is None:
            raise NotFoundError("Condition not found", condition_id=str(condition_id))
        self._apply(condition, payload.model_dump(exclude_unset=True))
        return await self.repository.save(condition)

    # ------------------------------------------------------------------
    # Device models
    # ------------------------------------------------------------------

    async def list_models(
        self,
        category_id: Optional[uuid.UUID] = None,
        brand_id: Optional[uuid.UUID] = None,
    ) -> Sequence[DeviceModel]:
        """All device models, inactive included."""
        return await self.repository.list_device_models(category_id=category_id, brand_id=brand_id)

    async def get_model(self, model_id: uuid.UUID) -> DeviceModel:
        return await self._get_model_or_404(model_id)

    async def create_model(self, payload: DeviceModelCreate, staff_email: str) -> DeviceModel:
        """
        Create a device model with its storage options.

        Raises:
            NotFoundError: Unknown category or brand
            CatalogIntegrityError: Duplicate (brand, name)
        """
        await self._get_category_or_404(payload.category_id)
        await self._get_brand_or_404(payload.brand_id)

        values = payload.model_dump(exclude={"storage_options"})
        model = DeviceModel(**values, created_by=staff_email, updated_by=staff_email)
        model.storage_options = [
            self._new_storage_option(option) for option in payload.storage_options
        ]
        model = await self.repository.add(model)

        logger.info(
            "Device model created",
            device_model_id=str(model.id),
            name=model.name,
            storage_options=len(payload.storage_options),
        )
        return await self._get_model_or_404(model.id)

    async def update_model(
        self,
        model_id: uuid.UUID,
        payload: DeviceModelUpdate,
        staff_email: str,
    ) -> DeviceModel:
        """
        Update a device model, replacing its storage schedule by label.

        Raises:
            NotFoundError: Unknown model, category or brand
            CatalogIntegrityError: Duplicate (brand, name)
        """
        model = await self._get_model_or_404(model_id)
        changes = payload.model_dump(exclude_unset=True, exclude={"storage_options"})

        if changes.get("category_id") is not None:
            await self._get_category_or_404(changes["category_id"])
        if changes.get("brand_id") is not None:
            await self._get_brand_or_404(changes["brand_id"])

        self._apply(model, changes)
        model.updated_by = staff_email

        if payload.storage_options is not None:
            self._replace_storage_options(model, payload.storage_options)

        await self.repository.save(model)
        logger.info("Device model updated", device_model_id=str(model.id), fields=sorted(changes))
        return await self._get_model_or_404(model.id)

    async def delete_model(self, model_id: uuid.UUID, staff_email: str) -> dict[str, Any]:
        """
        Delete an unreferenced model, or deactivate one referenced by orders.

        Returns:
            Dictionary with ``deleted`` and ``deactivated`` flags
        """
        model = await self._get_model_or_404(model_id)

        if await self.repository.model_has_orders(model.id):
            model.is_active = False
            model.updated_by = staff_email
            await self.repository.save(model)
            logger.info("Referenced device model deactivated", device_model_id=str(model_id))
            return {"id": model_id, "deleted": False, "deactivated": True}

        await self.repository.delete_device_model(model)
        logger.info("Device model deleted", device_model_id=str(model_id))
        return {"id": model_id, "deleted": True, "deactivated": False}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _replace_storage_options(
        self, model: DeviceModel, options: list[StorageOptionInput]
    ) -> None:
        """
        Replace a model's storage schedule by label.

        Labels present in both are updated in place (the active row first,
        else a deactivated one), new labels get a new row and
        active labels missing from ``options`` are deactivated.
        """
        incoming = {option.storage.upper(): option for option in options}
        by_label: dict[str, StorageOption] = {}
        for existing in model.storage_options:
            label = existing.storage.upper()
            current = by_label.get(label)
            if current is None or (existing.is_active and not current.is_active):
                by_label[label] = existing

        for label, option in incoming.items():
            row = by_label.get(label)
            if row is None:
                model.storage_options.append(self._new_storage_option(option))
                continue
            row.storage = option.storage
            row.excellent_price = option.excellent_price
            row.good_price = option.good_price
            row.fair_price = option.fair_price
            row.poor_price = option.poor_price
            row.is_active = option.is_active
            row.display_order = option.display_order

        deactivated = 0
        for existing in model.storage_options:
            if existing.storage.upper() not in incoming and existing.is_active:
                existing.is_active = False
                deactivated += 1

        logger.debug(
            "Storage options replaced",
            device_model_id=str(model.id),
            labels=sorted(incoming),
            deactivated=deactivated,
        )

    @staticmethod
    def _new_storage_option(option: StorageOptionInput) -> StorageOption:
        return StorageOption(**option.model_dump())

    @staticmethod
    def _apply(instance: Any, changes: dict[str, Any]) -> None:
        for field, value in changes.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            setattr(instance, field, value)

    async def _get_category_or_404(self, category_id: uuid.UUID) -> Category:
        category = await self.repository.get_category(category_id)
        if category is None:
            raise NotFoundError("Category not found", category_id=str(category_id))
        return category

    async def _get_brand_or_404(self, brand_id: uuid.UUID) -> Brand:
        brand = await self.repository.get_brand(brand_id)
        if brand is None:
            raise NotFoundError("Brand not found", brand_id=str(brand_id))
        return brand

    async def _get_model_or_404(self, model_id: uuid.UUID) -> DeviceModel:
        model = await self.repository.get_device_model(model_id)
        if model is None:
            raise NotFoundError("Device model not found", device_model_id=str(model_id))
        return model
