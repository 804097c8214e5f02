"""Stock transition policy.

Maps a ``(previous, new)`` status pair to the inventory effect it implies.
Rules are evaluated in order; the first match wins:

1. ``pending`` -> anything but ``pending``/``cancel``: reduce.
2. anything but ``pending``/``cancel`` -> ``pending``: restore.
3. anything but ``pending``/``cancel`` -> ``cancel``: restore.
4. ``cancel`` -> anything but ``pending``/``cancel``: reduce.
5. Everything else (same status, ``pending`` <-> ``cancel``): none.
"""

from __future__ import annotations

from modules.orders.constants import (
    STATUS_ALIASES,
    UNCOMMITTED_STATES,
    OrderStatus,
    StockAction,
)
from modules.orders.exceptions import InvalidStatus


def parse_status(value: object) -> OrderStatus:
    """Convert a raw request value into an ``OrderStatus``.

    Raises:
        InvalidStatus: the value is not part of the status domain.
    """
    if isinstance(value, OrderStatus):
        return value
    if not isinstance(value, str):
        raise InvalidStatus(f"Unknown status {value!r}.")
    normalized = value.strip().lower()
    normalized = STATUS_ALIASES.get(normalized, normalized)
    try:
        return OrderStatus(normalized)
    except ValueError:
        raise InvalidStatus(f"Unknown status {value!r}.") from None


def decide_stock_action(previous: OrderStatus, new: OrderStatus) -> StockAction:
    if previous == OrderStatus.PENDING and new not in UNCOMMITTED_STATES:
        return StockAction.REDUCE
    if new == OrderStatus.PENDING and previous not in UNCOMMITTED_STATES:
        return StockAction.RESTORE
    if new == OrderStatus.CANCEL and previous not in UNCOMMITTED_STATES:
        return StockAction.RESTORE
    if previous == OrderStatus.CANCEL and new not in UNCOMMITTED_STATES:
        return StockAction.REDUCE
    return StockAction.NONE
