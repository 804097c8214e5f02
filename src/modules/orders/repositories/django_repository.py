"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.

Concurrency control on status changes uses ``select_for_update()``:
two transitions of the same order serialize on the order row for the
whole read-decide-adjust-persist sequence.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db.models import Count, QuerySet

from modules.orders.constants import OrderStatus, StockAction
from modules.orders.models import Order, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with eager-loaded items and status history.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, TypeError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """List orders with optional Django ORM look-ups.

        Examples of valid filters::

            {"status": "dispatched"}
            {"created_at__gte": some_datetime}
        """
        queryset = Order.objects.prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items so the caller can adjust their stock while the
        row is locked.  Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, TypeError, ValidationError):
            return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save_fields(self, order: Order, fields: list[str]) -> Order:
        order.save(update_fields=fields)
        logger.info("order.saved", order_id=order.id, fields=fields)
        return order

    def add_history(
        self,
        order_id: Any,
        old_status: OrderStatus,
        new_status: OrderStatus,
        stock_action: StockAction,
        tracking_url: str = "",
        tracking_id: str = "",
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            stock_action=stock_action,
            tracking_url=tracking_url or "",
            tracking_id=tracking_id or "",
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=order_id,
            old_status=str(old_status),
            new_status=str(new_status),
            stock_action=str(stock_action),
        )
        return history

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def count_by_status(self) -> Dict[str, int]:
        rows = Order.objects.order_by().values("status").annotate(count=Count("id"))
        return {row["status"]: row["count"] for row in rows}

    def count_created_since(self, since: datetime) -> int:
        return Order.objects.filter(created_at__gte=since).count()
