"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers),
the Service layer and the notification task.  DTOs are immutable
(``frozen=True``).

- ``StatusChangeDTO``: input for a status transition.
- ``TrackingUpdateDTO``: input for a tracking update.
- ``NotificationPayload``: JSON-safe message handed to the notifier task.
- ``OrderStatsDTO``: dashboard counters.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.orders.models import Order


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class StatusChangeDTO(BaseModel):
    """Immutable DTO for a status change request.

    ``status`` is kept as the raw string; the engine parses it so that an
    unknown value surfaces as ``InvalidStatus``.  Blank tracking values
    are normalised to ``None`` (they never erase stored values).
    """

    model_config = ConfigDict(frozen=True)

    order_id: int
    status: str
    tracking_url: Optional[str] = None
    tracking_id: Optional[str] = None

    @field_validator("tracking_url", "tracking_id")
    @classmethod
    def blank_tracking_is_absent(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class TrackingUpdateDTO(BaseModel):
    """Immutable DTO for a tracking update request.

    The engine rejects a request where both tracking values are blank.
    """

    model_config = ConfigDict(frozen=True)

    order_id: int
    tracking_url: Optional[str] = None
    tracking_id: Optional[str] = None
    send_notification: bool = False

    @field_validator("tracking_url", "tracking_id")
    @classmethod
    def blank_tracking_is_absent(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class NotificationPayload(BaseModel):
    """Immutable, JSON-serialisable notification message."""

    model_config = ConfigDict(frozen=True)

    kind: str
    order_id: int
    order_number: str
    status: str
    customer_email: str
    customer_name: str = ""
    tracking_url: Optional[str] = None
    tracking_id: Optional[str] = None
    total_amount: Decimal = Decimal("0.00")
    currency: str = ""
    delivery_address: str = ""
    correlation_id: str = ""

    @classmethod
    def from_order(
        cls, order: Order, kind: str, correlation_id: str = ""
    ) -> NotificationPayload:
        return cls(
            kind=str(kind),
            order_id=order.id,
            order_number=order.order_number,
            status=str(order.status),
            customer_email=order.customer_email,
            customer_name=order.customer_name,
            tracking_url=order.tracking_url or None,
            tracking_id=order.tracking_id or None,
            total_amount=order.total_amount,
            currency=order.currency,
            delivery_address=order.delivery_address,
            correlation_id=correlation_id,
        )


class OrderStatsDTO(BaseModel):
    """Immutable DTO for the order dashboard counters."""

    model_config = ConfigDict(frozen=True)

    status_counts: Dict[str, int]
    total_orders: int
    today_orders: int
    week_orders: int
    month_orders: int
