"""Order repository interface.

What the status engine needs from persistence: plain and row-locked
reads of an order with its items, targeted writes of the mutable fields,
status history, and aggregate counts for the dashboard.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.constants import OrderStatus, StockAction
    from modules.orders.models import Order, OrderStatusHistory


class IOrderRepository(ABC):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.
    """

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @abstractmethod
    def get_by_id(self, id: Any) -> Optional[Order]:
        """Retrieve an order with items and history, or ``None``."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """Lazy queryset of orders matching ORM look-ups in *filters*."""

    @abstractmethod
    def get_for_update(self, id: Any) -> Optional[Order]:
        """Retrieve an order with a row-level lock and its items loaded."""

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @abstractmethod
    def save_fields(self, order: Order, fields: list[str]) -> Order:
        """Persist only *fields* of *order* (plus ``updated_at``)."""

    @abstractmethod
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
        """Record an applied status change in the order's audit trail."""

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    @abstractmethod
    def count_by_status(self) -> Dict[str, int]:
        """Return ``{status: count}`` over all orders."""

    @abstractmethod
    def count_created_since(self, since: datetime) -> int:
        """Count orders created at or after *since*."""
