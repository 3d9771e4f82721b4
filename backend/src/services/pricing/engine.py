"""
Trade-in quote engine.

This module implements the QuoteEngine class. A quote is the absolute price
stored on a device model's storage option for the requested condition tier;
there is no multiplier arithmetic. A tier without a configured price is an
error, never a zero quote.
"""

import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError, TradeInError, ValidationError
from src.core.logging import get_logger
from src.database.models.catalog import (
    ConditionTier,
    DeviceCondition,
    DeviceModel,
    StorageOption,
)
from src.services.catalog.repository import CatalogRepository

logger = get_logger(__name__)


class PricingError(TradeInError):
    """Base exception for quote calculation errors."""

    pass


class PricingValidationError(PricingError, ValidationError):
    """Raised when a stored or submitted amount is not a valid price."""

    pass


class PricingNotConfiguredError(PricingError, NotFoundError):
    """Raised when the storage option has no price for the requested tier."""

    code = "PRICING_NOT_CONFIGURED"


@dataclass(frozen=True)
class Quote:
    """Result of a quote calculation."""

    device_model_id: uuid.UUID
    device_model: str
    storage_option_id: uuid.UUID
    storage: str
    condition_id: uuid.UUID
    condition: str
    tier: ConditionTier
    amount: Decimal


class QuoteEngine:
    """
    Quote calculation against the device catalog.

    Only active models, storage options and conditions can be quoted.
    """

    MIN_PRICE = Decimal("0.00")
    MAX_PRICE = Decimal("99999999.99")
    PRICE_QUANTUM = Decimal("0.01")

    def __init__(self, session: AsyncSession):
        self.session = session
        self.catalog = CatalogRepository(session)

    @classmethod
    def normalize_amount(cls, value: Any, field: str = "amount") -> Decimal:
        """
        Validate a money value and quantize it to two fractional digits.

        Args:
            value: Decimal, int, float or numeric string
            field: Field name used in the error details

        Returns:
            Quantized non-negative Decimal

        Raises:
            PricingValidationError: If the value is not numeric, not finite,
                negative or above MAX_PRICE
        """
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as e:
            raise PricingValidationError(
                f"{field} must be a number",
                details=[{"field": field, "message": "must be a number"}],
            ) from e

        if not amount.is_finite():
            raise PricingValidationError(
                f"{field} must be a finite number",
                details=[{"field": field, "message": "must be finite"}],
            )
        if amount < cls.MIN_PRICE:
            raise PricingValidationError(
                f"{field} must not be negative",
                details=[{"field": field, "message": "must not be negative"}],
            )
        if amount > cls.MAX_PRICE:
            raise PricingValidationError(
                f"{field} exceeds the maximum allowed price",
                details=[{"field": field, "message": f"must not exceed {cls.MAX_PRICE}"}],
            )

        return amount.quantize(cls.PRICE_QUANTUM, rounding=ROUND_HALF_UP)

    def price_for(self, option: StorageOption, tier: ConditionTier) -> Decimal:
        """
        Stored price of a storage option for a condition tier.

        Raises:
            PricingNotConfiguredError: If no price is stored for the tier
            PricingValidationError: If the stored price is invalid
        """
        price = option.price_for(tier)
        if price is None:
            logger.warning(
                "Price not configured for condition tier",
                storage_option_id=str(option.id),
                storage=option.storage,
                tier=tier.value,
            )
            raise PricingNotConfiguredError(
                f"No price configured for {option.storage} in {tier.display_name} condition",
                storage_option_id=str(option.id),
                tier=tier.value,
            )
        return self.normalize_amount(price, field=f"{tier.value.lower()}_price")

    async def resolve_condition(self, label: str) -> DeviceCondition:
        """
        Find an active condition by display name or tier name.

        Raises:
            NotFoundError: If no active condition matches
        """
        condition = await self.catalog.get_condition_by_name(label)
        if condition is None:
            try:
                tier = ConditionTier.from_string(label)
            except ValueError:
                tier = None
            if tier is not None:
                condition = await self.catalog.get_condition_by_tier(tier)

        if condition is None or not condition.is_active:
            raise NotFoundError(f"Condition not found: {label}", condition=label)
        return condition

    async def _get_active_model(self, device_model_id: uuid.UUID) -> DeviceModel:
        model = await self.catalog.get_device_model(device_model_id)
        if model is None or not model.is_active:
            raise NotFoundError(
                "Device model not found",
                device_model_id=str(device_model_id),
            )
        return model

    async def calculate_quote(
        self,
        device_model_id: uuid.UUID,
        storage: str,
        condition: str,
    ) -> Quote:
        """
        Quote a (device model, storage label, condition label) triple.

        Args:
            device_model_id: Device model identifier
            storage: Storage label such as ``256GB``
            condition: Condition name or tier such as ``Excellent``

        Returns:
            Quote with the stored tier price

        Raises:
            NotFoundError: Unknown or inactive model, storage option or condition
            PricingNotConfiguredError: Tier price missing
        """
        model = await self._get_active_model(device_model_id)

        option = await self.catalog.get_active_storage_option(model.id, storage)
        if option is None:
            raise NotFoundError(
                f"Storage option {storage} not found for this device",
                device_model_id=str(model.id),
                storage=storage,
            )

        device_condition = await self.resolve_condition(condition)
        amount = self.price_for(option, device_condition.tier)

        logger.info(
            "Quote calculated",
            device_model_id=str(model.id),
            storage=option.storage,
            tier=device_condition.tier.value,
            amount=str(amount),
        )

        return Quote(
            device_model_id=model.id,
            device_model=model.display_name,
            storage_option_id=option.id,
            storage=option.storage,
            condition_id=device_condition.id,
            condition=device_condition.name,
            tier=device_condition.tier,
            amount=amount,
        )

    async def quote_for_submission(
        self,
        device_model_id: uuid.UUID,
        storage_option_id: uuid.UUID,
        condition_id: uuid.UUID,
    ) -> Quote:
        """
        Recompute the quote for identifiers posted with an order.

        The storage option must be active and belong to the model.

        Raises:
            NotFoundError: Unknown or inactive references, or a storage
                option of another model
            PricingNotConfiguredError: Tier price missing
        """
        model = await self._get_active_model(device_model_id)

        option: Optional[StorageOption] = await self.catalog.get_storage_option(
            storage_option_id
        )
        if option is None or not option.is_active or option.device_model_id != model.id:
            raise NotFoundError(
                "Storage option not found for this device",
                device_model_id=str(model.id),
                storage_option_id=str(storage_option_id),
            )

        device_condition = await self.catalog.get_condition(condition_id)
        if device_condition is None or not device_condition.is_active:
            raise NotFoundError("Condition not found", condition_id=str(condition_id))

        amount = self.price_for(option, device_condition.tier)
        return Quote(
            device_model_id=model.id,
            device_model=model.display_name,
            storage_option_id=option.id,
            storage=option.storage,
            condition_id=device_condition.id,
            condition=device_condition.name,
            tier=device_condition.tier,
            amount=amount,
        )
