"""
Order status state machine.

Staff actions move an order along the fulfilment table below. The payment
result handler has extra edges staff cannot take: success confirms a PENDING
order, failure moves a PENDING or CONFIRMED order to PAYMENT_FAILED.
"""
from datetime import datetime, timezone

from pharmastore.models.order import OrderStatus
from pharmastore.exceptions import InvalidStatusTransitionError


TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.PAYMENT_FAILED: frozenset(),
}

# outcome -> (statuses the edge leaves from, target)
PAYMENT_TRANSITIONS = {
    True: (frozenset({OrderStatus.PENDING}), OrderStatus.CONFIRMED),
    False: (frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED}), OrderStatus.PAYMENT_FAILED),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

# Phase timestamp stamped when an order enters the status
PHASE_TIMESTAMPS = {
    OrderStatus.CONFIRMED: 'confirmed_at',
    OrderStatus.PREPARING: 'preparing_at',
    OrderStatus.SHIPPED: 'shipped_at',
    OrderStatus.DELIVERED: 'delivered_at',
}

if CANCELLABLE_STATUSES != frozenset(s for s, targets in TRANSITIONS.items() if OrderStatus.CANCELLED in targets):
    raise RuntimeError('CANCELLABLE_STATUSES does not match the transition table')


def _utcnow():
    return datetime.now(timezone.utc)


def allowed_transitions(current):
    """Targets reachable from current through staff actions."""
    return TRANSITIONS.get(current, frozenset())


def can_transition(current, target):
    return target in allowed_transitions(current)


def validate_transition(current, target):
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current, target)


def is_cancellable(status):
    return status in CANCELLABLE_STATUSES


def is_terminal(status):
    return status in TERMINAL_STATUSES


def _enter(order, target, now):
    order.status = target
    field = PHASE_TIMESTAMPS.get(target)
    if field:
        setattr(order, field, now or _utcnow())


def apply_transition(order, target, now=None):
    """Validate and apply a staff transition, stamping the phase timestamp."""
    validate_transition(order.status, target)
    _enter(order, target, now)
    return order


def can_apply_payment(status, succeeded):
    sources, _ = PAYMENT_TRANSITIONS[bool(succeeded)]
    return status in sources


def apply_payment_transition(order, succeeded, now=None):
    """
    Apply the payment result to an order.

    Success confirms a PENDING order (confirmed_at stamped). Failure moves a
    PENDING or CONFIRMED order to PAYMENT_FAILED. Any other source status is
    rejected.
    """
    sources, target = PAYMENT_TRANSITIONS[bool(succeeded)]
    if order.status not in sources:
        raise InvalidStatusTransitionError(order.status, target)
    _enter(order, target, now)
    return order
