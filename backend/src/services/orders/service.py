"""
Trade-in order service orchestrating intake, tracking and lifecycle changes.

This module implements the TradeInOrderService class. Submission recomputes
the quote from the catalog, upserts the customer, allocates an order number
and records the initial history entry in one unit of work, retrying the
whole unit when the generated order number is already taken. Status changes
from customers and staff go through the order state machine.
"""

import random
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.exceptions import ConflictError
from src.core.logging import get_logger
from src.database.base import utcnow
from src.database.models.trade_in import TradeInOrder
from src.schemas.staff import StaffOrderUpdate
from src.schemas.trade_in import OfferDecision, TradeInSubmitRequest
from src.services.customers.repository import CONTACT_FIELDS, CustomerConflictError
from src.services.customers.service import CustomerService
from src.services.orders.enums import ActorType, OrderStatus
from src.services.orders.repository import (
    OrderNotFoundError,
    OrderNumberConflictError,
    OrderRepository,
)
from src.services.orders.state_machine import OrderStateMachine, StateTransitionError
from src.services.pricing.engine import QuoteEngine

logger = get_logger(__name__)


class OrderNumberExhaustedError(ConflictError):
    """Raised when no free order number was found within the retry budget."""

    pass


class OrderLockedError(ConflictError):
    """Raised when a field change is requested on an order in a terminal state."""

    pass


def customer_marker(email: str) -> str:
    """History ``changed_by`` value for customer actions."""
    return f"customer:{email}"


class TradeInOrderService:
    """
    Trade-in order service.

    Attributes:
        repository: Order repository for data access
        state_machine: Lifecycle rules for status changes
        quote_engine: Catalog pricing used to recompute submitted quotes
        customer_service: Customer upserts on submission
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = OrderRepository(session)
        self.state_machine = OrderStateMachine()
        self.quote_engine = QuoteEngine(session)
        self.customer_service = CustomerService(session)

    # ------------------------------------------------------------------
    # Customer operations
    # ------------------------------------------------------------------

    async def submit_order(self, payload: TradeInSubmitRequest) -> dict[str, Any]:
        """
        Submit a trade-in order.

        Args:
            payload: Validated submission

        Returns:
            Order summary dictionary

        Raises:
            NotFoundError: Unknown or inactive catalog references
            PricingNotConfiguredError: No price for the chosen condition
            OrderNumberExhaustedError: Every generated order number collided
        """
        max_attempts = get_settings().order_number_max_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, max_attempts + 1):
            try:
                order = await self._submit_once(payload)
            except (OrderNumberConflictError, CustomerConflictError) as e:
                last_error = e
                # rollback expired every loaded row; reload catalog and customer fresh
                self.session.expunge_all()
                logger.warning(
                    "Order submission collided, retrying",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    reason=e.code,
                )
                continue

            logger.info(
                "Trade-in order submitted",
                order_id=str(order.id),
                order_number=order.order_number,
                quoted_amount=str(order.quoted_amount),
                attempts=attempt,
            )
            return self._format_order_summary(order)

        raise OrderNumberExhaustedError(
            "Could not allocate an order number, please retry",
            attempts=max_attempts,
        ) from last_error

    async def _submit_once(self, payload: TradeInSubmitRequest) -> TradeInOrder:
        quote = await self.quote_engine.quote_for_submission(
            device_model_id=payload.device_model_id,
            storage_option_id=payload.storage_option_id,
            condition_id=payload.condition_id,
        )

        if payload.quoted_amount is not None and payload.quoted_amount != quote.amount:
            logger.warning(
                "Submitted quote differs from catalog price, using catalog price",
                client_amount=str(payload.quoted_amount),
                server_amount=str(quote.amount),
                storage_option_id=str(quote.storage_option_id),
            )

        contact = payload.model_dump(include=set(CONTACT_FIELDS))
        customer = await self.customer_service.upsert_customer(payload.email, contact)
        actor = customer_marker(customer.email)

        order = TradeInOrder(
            order_number=self._generate_order_number(),
            customer_id=customer.id,
            device_model_id=quote.device_model_id,
            condition_id=quote.condition_id,
            storage_option_id=quote.storage_option_id,
            status=OrderStatus.PENDING,
            quoted_amount=quote.amount,
            payment_method=payload.payment_method,
            notes=payload.notes,
            submitted_at=utcnow(),
            created_by=actor,
            updated_by=actor,
        )
        self.state_machine.record_history(order, changed_by=actor, notes="Order submitted")

        order = await self.repository.create_order(order)
        return await self._get_order_or_404(order.id)

    async def track_order(self, email: str, order_number: str) -> dict[str, Any]:
        """
        Order summary for a customer.

        Raises:
            OrderNotFoundError: Unknown number or email of another customer
        """
        order = await self.repository.get_order_by_number(order_number)
        if order is None or order.customer.email != email.lower():
            raise OrderNotFoundError(order_number=order_number)
        return self._format_order_summary(order)

    async def respond_to_offer(
        self,
        order_id: uuid.UUID,
        email: str,
        decision: OfferDecision,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Accept or decline a revised offer awaiting the customer's approval.

        Raises:
            OrderNotFoundError: Unknown order or email of another customer
            StateTransitionError: Order is not awaiting approval
        """
        order = await self._get_customer_order(order_id, email)
        target = (
            OrderStatus.PROCESSING if decision == OfferDecision.ACCEPT else OrderStatus.REJECTED
        )
        actor = customer_marker(order.customer.email)

        if order.status != OrderStatus.AWAITING_APPROVAL:
            raise StateTransitionError(
                f"Order is {order.status.value} and has no offer awaiting an answer",
                current_state=order.status,
                target_state=target,
                order_id=str(order.id),
            )

        self.state_machine.apply_transition(
            order,
            target,
            ActorType.CUSTOMER,
            changed_by=actor,
            notes=notes or (
                "Customer accepted the revised offer"
                if decision == OfferDecision.ACCEPT
                else "Customer declined the revised offer"
            ),
        )
        order.updated_by = actor
        await self.repository.save(order)

        logger.info(
            "Customer answered revised offer",
            order_id=str(order.id),
            decision=decision.value,
        )
        return self._format_order_summary(await self._get_order_or_404(order.id))

    async def cancel_by_customer(
        self,
        order_id: uuid.UUID,
        email: str,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        order = await self._get_customer_order(order_id, email)
        actor = customer_marker(order.customer.email)

        self.state_machine.apply_transition(
            order,
            OrderStatus.CANCELLED,
            ActorType.CUSTOMER,
            changed_by=actor,
            notes=notes or "Cancelled by customer",
        )
        order.updated_by = actor
        await self.repository.save(order)
        return self._format_order_summary(await self._get_order_or_404(order.id))

    # ------------------------------------------------------------------
    # Staff operations
    # ------------------------------------------------------------------

    async def list_orders(
        self,
        status: Optional[OrderStatus] = None,
        submitted_from: Optional[datetime] = None,
        submitted_to: Optional[datetime] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[Sequence[TradeInOrder], int]:
        return await self.repository.list_orders(
            status=status,
            submitted_from=self._to_utc(submitted_from),
            submitted_to=self._to_utc(submitted_to),
            skip=(page - 1) * limit,
            limit=limit,
        )

    async def get_order(self, order_id: uuid.UUID) -> TradeInOrder:
        return await self._get_order_or_404(order_id)

    async def update_order(
        self,
        order_id: uuid.UUID,
        payload: StaffOrderUpdate,
        staff_email: str,
    ) -> TradeInOrder:
        """
        Apply a staff update and append exactly one history entry.

        Field changes are applied before the status change so that a revised
        ``final_amount`` sent together with AWAITING_APPROVAL satisfies the
        transition guard.

        Raises:
            OrderNotFoundError: Unknown order
            OrderLockedError: Amount change on a terminal order
            StateTransitionError: Invalid status change
            TransitionNotPermittedError: Status change reserved to the customer
        """
        order = await self._get_order_or_404(order_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        target_status = changes.pop("status", None)
        notes = changes.pop("notes", None)

        if "final_amount" in changes and order.status.is_terminal():
            raise OrderLockedError(
                f"Order is {order.status.value} and its amount can no longer change",
                order_id=str(order.id),
            )

        for field, value in changes.items():
            setattr(order, field, value)
        order.updated_by = staff_email

        if target_status is not None and target_status != order.status:
            self.state_machine.apply_transition(
                order,
                target_status,
                ActorType.STAFF,
                changed_by=staff_email,
                notes=notes,
            )
        else:
            self.state_machine.record_history(
                order,
                changed_by=staff_email,
                notes=notes or "Order details updated",
            )

        await self.repository.save(order)

        logger.info(
            "Order updated by staff",
            order_id=str(order.id),
            fields=sorted(changes),
            status=order.status.value,
        )
        return await self._get_order_or_404(order.id)

    async def delete_order(self, order_id: uuid.UUID, staff_email: str) -> dict[str, Any]:
        order = await self._get_order_or_404(order_id)
        order_number = order.order_number

        await self.repository.delete_order(order)

        logger.warning(
            "Order deleted by staff",
            order_id=str(order_id),
            order_number=order_number,
            staff=staff_email,
        )
        return {"id": order_id, "order_number": order_number, "deleted": True}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_order_or_404(self, order_id: uuid.UUID) -> TradeInOrder:
        order = await self.repository.get_order_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id=str(order_id))
        return order

    async def _get_customer_order(self, order_id: uuid.UUID, email: str) -> TradeInOrder:
        order = await self.repository.get_order_by_id(order_id)
        if order is None or order.customer.email != email.lower():
            raise OrderNotFoundError(order_id=str(order_id))
        return order

    @staticmethod
    def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def _generate_order_number(self) -> str:
        """
        Generate order number ``TI-{year}-{epoch millis}-{3-digit suffix}``.

        Returns:
            Order number string
        """
        now = utcnow()
        millis = int(now.timestamp() * 1000)
        suffix = random.randint(0, 999)
        return f"TI-{now.year}-{millis}-{suffix:03d}"

    def _format_order_summary(self, order: TradeInOrder) -> dict[str, Any]:
        """
        Format order for customer-facing responses.

        Args:
            order: Order with customer and catalog references loaded

        Returns:
            Dictionary matching OrderSummaryResponse
        """
        return {
            "id": order.id,
            "order_number": order.order_number,
            "status": order.status,
            "quoted_amount": order.quoted_amount,
            "final_amount": order.final_amount,
            "payment_method": order.payment_method,
            "submitted_at": order.submitted_at,
            "processed_at": order.processed_at,
            "completed_at": order.completed_at,
            "customer_name": order.customer.full_name,
            "device_model": order.device_model.display_name,
            "storage": order.storage_option.storage,
            "condition": order.condition.name,
            "notes": order.notes,
        }
