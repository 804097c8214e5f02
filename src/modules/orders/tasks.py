"""Async tasks for the orders module."""

import structlog
from celery import shared_task

from modules.orders.dtos import NotificationPayload
from modules.orders.exceptions import NotificationFailure
from modules.orders.notifications import get_notifier

logger = structlog.get_logger(__name__)


@shared_task(name="orders.send_order_notification", ignore_result=True)
def send_order_notification(payload: dict) -> bool:
    """Deliver one customer notification; failures are logged, not retried."""
    notification = NotificationPayload.model_validate(payload)
    log = logger.bind(
        order_id=notification.order_id,
        kind=notification.kind,
        correlation_id=notification.correlation_id,
    )
    try:
        get_notifier().send(notification)
    except NotificationFailure:
        log.exception("notification.send_failed")
        return False
    log.info("notification.delivered")
    return True
