"""
Order state machine.

    Placed -> Processing -> Shipped -> Delivered
    Placed | Processing -> Cancelled

Shipped orders can no longer be cancelled; Delivered and Cancelled are
terminal. Payment status moves on its own (Pending -> Completed | Failed,
Failed -> Completed) except at cancellation, where it is derived from its
current value: Completed becomes Refunded, anything else becomes Cancelled.

This module only decides. Persisting a transition is the order service's job.
"""
import enum

from shared.errors import InvalidTransitionError
from services.payment_service.models import PaymentStatus


class OrderStatus(str, enum.Enum):
    PLACED = "Placed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset] = {
    OrderStatus.PLACED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.COMPLETED}),
    PaymentStatus.COMPLETED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


def validate_transition(current, target) -> OrderStatus:
    """Return the target as an OrderStatus, or raise InvalidTransitionError."""
    current, target = OrderStatus(current), OrderStatus(target)
    if not can_transition(current, target):
        reason = None
        if target is OrderStatus.CANCELLED:
            reason = f"orders that are {current.value} cannot be cancelled"
        elif not ORDER_TRANSITIONS[current]:
            reason = f"{current.value} is a final status"
        raise InvalidTransitionError(current.value, target.value, reason)
    return target


def validate_payment_transition(current, target) -> PaymentStatus:
    current, target = PaymentStatus(current), PaymentStatus(target)
    if target not in PAYMENT_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)
    return target


def payment_status_on_cancel(current) -> PaymentStatus:
    if PaymentStatus(current) is PaymentStatus.COMPLETED:
        return PaymentStatus.REFUNDED
    return PaymentStatus.CANCELLED
