"""Order status transition table."""

from __future__ import annotations

from rental_engine.domain.models import OrderAction, OrderStatus
from rental_engine.services.errors import InvalidTransition

TRANSITIONS: dict[OrderStatus, dict[OrderAction, OrderStatus]] = {
    OrderStatus.QUOTATION: {
        OrderAction.SUBMIT: OrderStatus.RENTAL_ORDER,
        OrderAction.CANCEL: OrderStatus.CANCELLED,
    },
    OrderStatus.RENTAL_ORDER: {
        OrderAction.CONFIRM: OrderStatus.CONFIRMED,
        OrderAction.CANCEL: OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderAction.PICK_UP: OrderStatus.PICKED_UP,
        OrderAction.CANCEL: OrderStatus.CANCELLED,
    },
    OrderStatus.PICKED_UP: {
        OrderAction.RETURN: OrderStatus.RETURNED,
    },
    OrderStatus.RETURNED: {},
    OrderStatus.CANCELLED: {},
}

ACTION_TARGETS: dict[OrderAction, OrderStatus] = {
    OrderAction.SUBMIT: OrderStatus.RENTAL_ORDER,
    OrderAction.CONFIRM: OrderStatus.CONFIRMED,
    OrderAction.PICK_UP: OrderStatus.PICKED_UP,
    OrderAction.RETURN: OrderStatus.RETURNED,
    OrderAction.CANCEL: OrderStatus.CANCELLED,
}

TERMINAL_STATUSES = frozenset(
    status for status, moves in TRANSITIONS.items() if not moves
)


def next_status(current: OrderStatus, action: OrderAction) -> OrderStatus:
    """Return the status ``action`` leads to, or raise ``InvalidTransition``."""
    target = TRANSITIONS[current].get(action)
    if target is None:
        raise InvalidTransition(current, ACTION_TARGETS[action])
    return target


def action_for(current: OrderStatus, target: OrderStatus) -> OrderAction:
    for action, status in TRANSITIONS[current].items():
        if status is target:
            return action
    raise InvalidTransition(current, target)


def allowed_actions(current: OrderStatus) -> list[OrderAction]:
    return list(TRANSITIONS[current])


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES
