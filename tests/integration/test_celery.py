"""Integration tests for the Celery configuration."""

import pytest

from django.core import mail

pytestmark = pytest.mark.integration


class TestCeleryConfig:
    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "fulfilment"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "fulfilment"

    def test_notification_task_registered(self):
        from config import celery_app
        from modules.orders import tasks  # noqa: F401

        assert "orders.send_order_notification" in celery_app.tasks

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE


class TestNotificationTask:
    """Runs the notification task eagerly, as configured for tests."""

    def test_delay_sends_email(self):
        from modules.orders.tasks import send_order_notification

        result = send_order_notification.delay(
            {
                "kind": "status",
                "order_id": 1,
                "order_number": "ORD-20261019-ABC123",
                "status": "confirmed",
                "customer_email": "asha@example.com",
                "total_amount": "1047.00",
                "currency": "INR",
            }
        )

        assert result.successful()
        assert len(mail.outbox) == 1
        assert mail.outbox[0].subject == "Order ORD-20261019-ABC123 - Order Confirmed!"
