"""Transition guards for the order lifecycle.

``Order.transition`` records whatever it is told. Every command handler
that moves an order checks the move here first.
"""

from protean.exceptions import ValidationError

from ordering.order.order import TERMINAL_STATES, OrderState

_FORWARD = {
    OrderState.PENDING: OrderState.CONFIRMED,
    OrderState.CONFIRMED: OrderState.PROCESSING,
    OrderState.PROCESSING: OrderState.SHIPPED,
    OrderState.SHIPPED: OrderState.DELIVERED,
}

_SIDE_BRANCHES = frozenset({OrderState.CANCELLED, OrderState.RETURNED})


def allowed_transitions(state: OrderState) -> frozenset:
    """Return the states reachable from ``state`` in one move."""
    state = OrderState(state)
    if state in TERMINAL_STATES:
        return frozenset()
    allowed = set(_SIDE_BRANCHES)
    if state in _FORWARD:
        allowed.add(_FORWARD[state])
    return frozenset(allowed)


def assert_can_transition(order, target) -> None:
    target = OrderState(target)
    if target == OrderState.CANCELLED:
        assert_can_cancel(order)
        return

    current = OrderState(order.status)
    if target not in allowed_transitions(current):
        raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})


def assert_can_cancel(order) -> None:
    current = OrderState(order.status)
    if current == OrderState.DELIVERED:
        raise ValidationError({"status": ["Delivered orders cannot be cancelled"]})
    if current == OrderState.CANCELLED:
        raise ValidationError({"status": ["Order is already cancelled"]})
    if current in TERMINAL_STATES:
        raise ValidationError({"status": [f"Cannot cancel an order that is {current.value}"]})
