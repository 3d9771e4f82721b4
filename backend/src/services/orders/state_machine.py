"""Order state machine implementation with transition validation.

This module implements the OrderStateMachine class for managing trade-in
order lifecycle transitions: transition table and actor checks, guards,
set-once timestamp side effects and the append-only status history.
"""

from typing import Any, Callable, Dict, Optional, Set

from src.core.exceptions import ConflictError, PermissionDeniedError, ValidationError
from src.core.logging import get_logger
from src.database.base import utcnow
from src.database.models.trade_in import OrderStatusHistory, TradeInOrder
from src.services.orders.enums import (
    ActorType,
    OrderStatus,
    get_allowed_order_transitions,
    is_actor_allowed,
    validate_order_status_transition,
)

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"


class StateTransitionError(ConflictError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(
        self,
        message: str,
        current_state: OrderStatus,
        target_state: OrderStatus,
        **context: Any,
    ):
        super().__init__(message, **context)
        self.current_state = current_state
        self.target_state = target_state


class TransitionNotPermittedError(PermissionDeniedError):
    """Raised when a valid transition is requested by the wrong actor."""

    pass


class TransitionGuardError(ValidationError):
    """Raised when the order does not satisfy a transition precondition."""

    pass


class OrderStateMachine:
    """State machine for managing trade-in order lifecycle transitions.

    The machine never touches the session: status history entries are
    appended through the order relationship and persisted with it.
    """

    def __init__(self) -> None:
        self._transition_guards: Dict[
            tuple[OrderStatus, OrderStatus],
            Callable[[TradeInOrder], Optional[str]],
        ] = self._initialize_guards()
        self._side_effects: Dict[
            OrderStatus,
            Callable[[TradeInOrder], None],
        ] = self._initialize_side_effects()

    def _initialize_guards(
        self,
    ) -> Dict[tuple[OrderStatus, OrderStatus], Callable[[TradeInOrder], Optional[str]]]:
        """Guards return an error message when the transition must be refused."""
        return {
            (OrderStatus.PENDING, OrderStatus.AWAITING_APPROVAL): self._guard_revised_offer,
            (OrderStatus.PROCESSING, OrderStatus.AWAITING_APPROVAL): self._guard_revised_offer,
        }

    def _initialize_side_effects(self) -> Dict[OrderStatus, Callable[[TradeInOrder], None]]:
        return {
            OrderStatus.PROCESSING: self._effect_processing,
            OrderStatus.COMPLETED: self._effect_completed,
            OrderStatus.CANCELLED: self._effect_cancelled,
        }

    def validate_transition(
        self,
        order: TradeInOrder,
        target_status: OrderStatus,
        actor: ActorType,
    ) -> bool:
        """Validate that ``actor`` may move ``order`` to ``target_status``.

        Returns:
            True if transition is valid

        Raises:
            StateTransitionError: If the transition is not in the table
            TransitionNotPermittedError: If the actor may not trigger it
            TransitionGuardError: If the order fails the transition guard
        """
        current_status = order.status

        if not validate_order_status_transition(current_status, target_status):
            allowed = get_allowed_order_transitions(current_status, actor)
            raise StateTransitionError(
                f"Invalid transition from {current_status.value} to {target_status.value}",
                current_state=current_status,
                target_state=target_status,
                order_id=str(order.id),
                allowed_transitions=sorted(s.value for s in allowed),
            )

        if not is_actor_allowed(current_status, target_status, actor):
            logger.warning(
                "Transition refused for actor",
                order_id=str(order.id),
                transition=f"{current_status.value}->{target_status.value}",
                actor=actor.value,
            )
            raise TransitionNotPermittedError(
                f"Transition from {current_status.value} to {target_status.value} "
                f"is not permitted for {actor.value.lower()}",
                order_id=str(order.id),
                actor=actor.value,
            )

        guard = self._transition_guards.get((current_status, target_status))
        if guard is not None:
            failure = guard(order)
            if failure:
                raise TransitionGuardError(
                    failure,
                    details=[{"field": "final_amount", "message": failure}],
                    order_id=str(order.id),
                )

        return True

    def apply_transition(
        self,
        order: TradeInOrder,
        target_status: OrderStatus,
        actor: ActorType,
        changed_by: str = SYSTEM_ACTOR,
        notes: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Apply a status transition with its side effects and history entry.

        Args:
            order: Order to transition
            target_status: Status to move to
            actor: Kind of actor requesting the change
            changed_by: Staff email, customer marker or ``system``
            notes: Optional note stored with the history entry

        Returns:
            The appended history entry
        """
        self.validate_transition(order, target_status, actor)

        old_status = order.status
        order.status = target_status

        side_effect = self._side_effects.get(target_status)
        if side_effect is not None:
            side_effect(order)

        entry = self.record_history(order, changed_by=changed_by, notes=notes)

        logger.info(
            "State transition applied",
            order_id=str(order.id),
            order_number=order.order_number,
            transition=f"{old_status.value}->{target_status.value}",
            actor=actor.value,
        )
        return entry

    def record_history(
        self,
        order: TradeInOrder,
        changed_by: str = SYSTEM_ACTOR,
        notes: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Append a history entry carrying the order's current status."""
        entry = OrderStatusHistory(
            sequence=len(order.status_history) + 1,
            status=order.status,
            notes=notes,
            changed_by=changed_by,
            created_at=utcnow(),
        )
        order.status_history.append(entry)
        return entry

    def get_allowed_transitions(
        self, order: TradeInOrder, actor: Optional[ActorType] = None
    ) -> Set[OrderStatus]:
        return get_allowed_order_transitions(order.status, actor)

    def can_cancel(self, order: TradeInOrder, actor: ActorType) -> bool:
        return is_actor_allowed(order.status, OrderStatus.CANCELLED, actor)

    # Transition Guards

    def _guard_revised_offer(self, order: TradeInOrder) -> Optional[str]:
        if order.final_amount is None:
            return "A final amount is required before asking the customer for approval"
        return None

    # Side Effects

    def _effect_processing(self, order: TradeInOrder) -> None:
        if order.processed_at is None:
            order.processed_at = utcnow()

    def _effect_completed(self, order: TradeInOrder) -> None:
        if order.completed_at is None:
            order.completed_at = utcnow()

    def _effect_cancelled(self, order: TradeInOrder) -> None:
        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
        )


def get_order_state_machine() -> OrderStateMachine:
    """Get order state machine instance."""
    return OrderStateMachine()
