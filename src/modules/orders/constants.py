"""Order domain constants.

Defines the closed status domain, the stock actions a status change can
imply, and the subset of statuses that trigger customer notifications.
"""

from django.db import models

from modules.inventory.constants import StockAction  # noqa: F401


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PACKED = "packed", "Packed"
    DISPATCHED = "dispatched", "Dispatched"
    OUT_FOR_DELIVERY = "out for delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    CANCEL = "cancel", "Cancelled"


# Statuses in which the order holds no stock.
UNCOMMITTED_STATES: frozenset[str] = frozenset(
    {OrderStatus.PENDING, OrderStatus.CANCEL}
)

NOTIFIABLE_STATUSES: frozenset[str] = frozenset(
    {
        OrderStatus.CONFIRMED,
        OrderStatus.DISPATCHED,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    }
)

# Alternate spellings accepted at the API boundary.
STATUS_ALIASES: dict[str, str] = {
    "out_for_delivery": OrderStatus.OUT_FOR_DELIVERY,
    "cancelled": OrderStatus.CANCEL,
}

INVALID_STATUS_MESSAGE = "Invalid status. Valid statuses: " + ", ".join(
    OrderStatus.values
)

ORDER_NUMBER_MAX_RETRIES = 5
