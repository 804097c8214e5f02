"""Customer notifications for order status and tracking changes.

``NotificationDispatcher`` decides whether a change deserves an email and
which shape it takes, then hands a JSON payload to a Celery task.  The
task renders the message through the configured ``INotifier``.

Rules:
- Only ``confirmed``, ``dispatched``, ``out for delivery`` and
  ``delivered`` are notifiable; the order must carry a customer email.
- A genuine status change sends the ``status`` variant.
- Tracking attached for the first time sends the ``status`` variant too,
  carrying the new tracking details (once per order).
- Tracking changed after it already existed sends ``tracking_updated``.
- Dispatch is best-effort: failures are logged, never raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Protocol

import structlog
from django.conf import settings
from django.core.mail import send_mail
from django.db import models
from django.utils.module_loading import import_string

from modules.core.middleware import get_correlation_id
from modules.orders.constants import NOTIFIABLE_STATUSES, OrderStatus
from modules.orders.dtos import NotificationPayload
from modules.orders.exceptions import NotificationFailure

if TYPE_CHECKING:
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)


class NotificationKind(models.TextChoices):
    STATUS = "status", "Status changed"
    TRACKING_UPDATED = "tracking_updated", "Tracking updated"


STATUS_MESSAGES: Dict[str, Dict[str, str]] = {
    OrderStatus.CONFIRMED: {
        "title": "Order Confirmed!",
        "message": "Your order has been confirmed and is being prepared.",
    },
    OrderStatus.DISPATCHED: {
        "title": "Order Shipped!",
        "message": "Your order has been shipped and is on its way to you.",
    },
    OrderStatus.OUT_FOR_DELIVERY: {
        "title": "Your Order is Out for Delivery!",
        "message": "Great news! Your order is now on its way to you.",
    },
    OrderStatus.DELIVERED: {
        "title": "Order Delivered Successfully!",
        "message": "Your order has been delivered. Thank you for shopping with us!",
    },
}


def select_notification_kind(
    previous_status: str,
    new_status: str,
    customer_email: str,
    tracking_supplied: bool,
    had_tracking: bool,
) -> Optional[NotificationKind]:
    """Pure decision: which notification (if any) a change warrants."""
    if new_status not in NOTIFIABLE_STATUSES or not customer_email:
        return None
    if new_status != previous_status:
        return NotificationKind.STATUS
    if tracking_supplied and not had_tracking:
        return NotificationKind.STATUS
    if tracking_supplied:
        return NotificationKind.TRACKING_UPDATED
    return None


# ---------------------------------------------------------------------------
# Notifier collaborator
# ---------------------------------------------------------------------------


class INotifier(Protocol):
    """Delivers a rendered notification to the customer."""

    def send(self, payload: NotificationPayload) -> None: ...


class EmailNotifier:
    """Sends plain-text emails through Django's configured mail backend."""

    def send(self, payload: NotificationPayload) -> None:
        """Raises ``NotificationFailure`` when the mail backend rejects it."""
        subject, body = self.render(payload)
        try:
            send_mail(
                subject=subject,
                message=body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[payload.customer_email],
                fail_silently=False,
            )
        except OSError as exc:
            raise NotificationFailure(
                f"Email to order {payload.order_id} customer failed: {exc}"
            ) from exc
        logger.info(
            "notification.email_sent",
            order_id=payload.order_id,
            kind=payload.kind,
            status=payload.status,
        )

    @staticmethod
    def render(payload: NotificationPayload) -> tuple[str, str]:
        store = settings.STORE_NAME
        if payload.kind == NotificationKind.TRACKING_UPDATED:
            subject = (
                f"Your Order {payload.order_number} is On Its Way - "
                "Tracking Information"
            )
            headline = "We've updated your tracking information!"
        else:
            info = STATUS_MESSAGES[payload.status]
            subject = f"Order {payload.order_number} - {info['title']}"
            headline = info["message"]

        lines = [f"Hi {payload.customer_name or 'there'},", "", headline, ""]
        if payload.tracking_id:
            lines.append(f"Tracking ID: {payload.tracking_id}")
        if payload.tracking_url:
            lines.append(f"Track your order: {payload.tracking_url}")
        lines += [
            "",
            f"Order Number: {payload.order_number}",
            f"Total Amount: {payload.currency} {payload.total_amount:.2f}",
            f"Status: {payload.status.upper()}",
        ]
        if payload.delivery_address:
            lines.append(f"Delivery Address: {payload.delivery_address}")
        lines += ["", f"Thank you for choosing {store}!"]
        if settings.STORE_SUPPORT_PHONE:
            lines.append(f"Questions? Call us at {settings.STORE_SUPPORT_PHONE}.")
        return subject, "\n".join(lines)


def get_notifier() -> INotifier:
    """Instantiate the notifier named by ``settings.ORDER_NOTIFIER``."""
    return import_string(settings.ORDER_NOTIFIER)()


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


def _enqueue_with_celery(payload: Dict[str, Any]) -> Any:
    from modules.orders.tasks import send_order_notification

    return send_order_notification.delay(payload)


class NotificationDispatcher:
    """Decides and enqueues customer notifications (read-only on the order)."""

    def __init__(
        self, enqueue: Optional[Callable[[Dict[str, Any]], Any]] = None
    ) -> None:
        self._enqueue = enqueue or _enqueue_with_celery

    def plan(
        self,
        order: Order,
        previous_status: str,
        new_status: str,
        tracking_url: Optional[str] = None,
        tracking_id: Optional[str] = None,
        had_tracking: bool = False,
    ) -> Optional[NotificationKind]:
        """The kind ``maybe_notify`` would enqueue for this change, if any."""
        if not settings.ORDER_NOTIFICATIONS_ENABLED:
            return None
        return select_notification_kind(
            previous_status=str(previous_status),
            new_status=str(new_status),
            customer_email=order.customer_email,
            tracking_supplied=bool(tracking_url or tracking_id),
            had_tracking=had_tracking,
        )

    def maybe_notify(
        self,
        order: Order,
        previous_status: str,
        new_status: str,
        tracking_url: Optional[str] = None,
        tracking_id: Optional[str] = None,
        had_tracking: bool = False,
    ) -> Optional[NotificationKind]:
        """Enqueue the notification warranted by a change, if any.

        Returns the kind enqueued, or ``None`` when nothing was sent.
        Never raises.
        """
        log = logger.bind(
            order_id=order.id,
            previous_status=str(previous_status),
            new_status=str(new_status),
        )
        if not settings.ORDER_NOTIFICATIONS_ENABLED:
            log.info("notification.disabled")
            return None

        kind = self.plan(
            order,
            previous_status,
            new_status,
            tracking_url=tracking_url,
            tracking_id=tracking_id,
            had_tracking=had_tracking,
        )
        if kind is None:
            log.info("notification.skipped")
            return None

        try:
            payload = NotificationPayload.from_order(
                order, kind, correlation_id=get_correlation_id()
            )
            self._enqueue(payload.model_dump(mode="json"))
        except Exception:
            log.exception("notification.dispatch_failed", kind=str(kind))
            return None

        log.info("notification.dispatched", kind=str(kind))
        return kind
