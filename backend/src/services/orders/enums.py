"""Trade-in order status, payment method and actor enums.

This module defines the order lifecycle enums and the transition table the
state machine enforces. Each allowed transition names the actors that may
trigger it.
"""

from enum import Enum
from typing import Dict, FrozenSet, Set


class OrderStatus(str, Enum):
    """Trade-in order lifecycle status.

    Valid transitions:
    - PENDING -> PROCESSING, AWAITING_APPROVAL, CANCELLED
    - PROCESSING -> COMPLETED, AWAITING_APPROVAL, CANCELLED
    - AWAITING_APPROVAL -> PROCESSING (customer accepts), REJECTED
      (customer declines), CANCELLED
    - COMPLETED, REJECTED, CANCELLED -> (terminal states)
    """

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"

    @classmethod
    def from_string(cls, value: str) -> "OrderStatus":
        """Convert string to OrderStatus enum.

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(value.strip().upper())
        except ValueError:
            valid_values = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Invalid order status: {value}. Valid values are: {valid_values}"
            )

    def is_terminal(self) -> bool:
        """Check if status is a terminal state."""
        return self in {
            OrderStatus.COMPLETED,
            OrderStatus.REJECTED,
            OrderStatus.CANCELLED,
        }

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class PaymentMethod(str, Enum):
    """How the customer is paid out for the device."""

    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    CREDIT_CARD = "CREDIT_CARD"
    E_TRANSFER = "E_TRANSFER"
    PAYPAL = "PAYPAL"
    OTHER = "OTHER"


class ActorType(str, Enum):
    """Who is requesting a status change."""

    STAFF = "STAFF"
    CUSTOMER = "CUSTOMER"
    SYSTEM = "SYSTEM"


STAFF_ONLY: FrozenSet[ActorType] = frozenset({ActorType.STAFF})
CUSTOMER_ONLY: FrozenSet[ActorType] = frozenset({ActorType.CUSTOMER})
STAFF_OR_CUSTOMER: FrozenSet[ActorType] = frozenset({ActorType.STAFF, ActorType.CUSTOMER})

# State transition rules: target status -> actors allowed to move there
ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, Dict[OrderStatus, FrozenSet[ActorType]]] = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING: STAFF_ONLY,
        OrderStatus.AWAITING_APPROVAL: STAFF_ONLY,
        OrderStatus.CANCELLED: STAFF_OR_CUSTOMER,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.COMPLETED: STAFF_ONLY,
        OrderStatus.AWAITING_APPROVAL: STAFF_ONLY,
        OrderStatus.CANCELLED: STAFF_OR_CUSTOMER,
    },
    OrderStatus.AWAITING_APPROVAL: {
        OrderStatus.PROCESSING: CUSTOMER_ONLY,
        OrderStatus.REJECTED: CUSTOMER_ONLY,
        OrderStatus.CANCELLED: STAFF_OR_CUSTOMER,
    },
    OrderStatus.COMPLETED: {},  # Terminal
    OrderStatus.REJECTED: {},  # Terminal
    OrderStatus.CANCELLED: {},  # Terminal
}


def validate_order_status_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Validate if order status transition is allowed for some actor."""
    return new in ORDER_STATUS_TRANSITIONS.get(current, {})


def is_actor_allowed(current: OrderStatus, new: OrderStatus, actor: ActorType) -> bool:
    """Check whether ``actor`` may perform the transition ``current -> new``."""
    return actor in ORDER_STATUS_TRANSITIONS.get(current, {}).get(new, frozenset())


def get_allowed_order_transitions(
    current: OrderStatus, actor: ActorType | None = None
) -> Set[OrderStatus]:
    """Get all allowed transitions from current status, optionally for one actor."""
    targets = ORDER_STATUS_TRANSITIONS.get(current, {})
    return {
        status
        for status, actors in targets.items()
        if actor is None or actor in actors
    }
