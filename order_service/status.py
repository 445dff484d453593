from enum import IntEnum
from typing import Dict, FrozenSet

from .errors import InvalidStatus, InvalidTransition


class OrderStatus(IntEnum):
    """Order lifecycle status. The integer value is what gets stored."""

    RECEIVED = 0
    PAYMENT_PENDING = 1
    PAYED = 2
    PREPARING = 3
    COMPLETED = 4
    CANCELLED = 5

    @classmethod
    def from_name(cls, name: str) -> "OrderStatus":
        try:
            return cls[name]
        except KeyError:
            raise InvalidStatus(f"Unknown order status: {name!r}") from None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})

# Forward moves only; CANCELLED is added for every non-terminal status below
_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.RECEIVED: frozenset({OrderStatus.PAYMENT_PENDING}),
    OrderStatus.PAYMENT_PENDING: frozenset({OrderStatus.PAYED}),
    OrderStatus.PAYED: frozenset({OrderStatus.PREPARING}),
    OrderStatus.PREPARING: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def allowed_transitions(current: OrderStatus) -> FrozenSet[OrderStatus]:
    allowed = _TRANSITIONS[current]
    if current.is_terminal:
        return allowed
    return allowed | {OrderStatus.CANCELLED}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in allowed_transitions(current)


def validate_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise InvalidTransition if ``current -> target`` is not allowed."""
    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot move order from {current.name} to {target.name}"
        )
