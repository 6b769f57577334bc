from app.core.exceptions import InvalidArgument
from app.db.enums import OrderStatus

# Statuses an order can never leave once reached
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED})


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """
    The only rule: a terminal order keeps its status. Any other move,
    backwards or skipping steps, is allowed.
    """
    if current in TERMINAL_STATUSES:
        return new == current
    return True


def ensure_transition(current: OrderStatus, new: OrderStatus) -> None:
    if not can_transition(current, new):
        raise InvalidArgument(
            f"Cannot change the status of a {current.value} order to {new.value}."
        )
