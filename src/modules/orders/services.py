"""Order service layer (Use Cases).

``OrderStatusEngine`` is the only writer of order status and tracking.
Every status change runs one unit of work:

1. Parse the requested status (``InvalidStatus`` before any I/O).
2. Lock the order row (``SELECT FOR UPDATE``) with its items.
3. Ask the stock policy what the change implies.
4. Adjust inventory **before** persisting the new status.
5. Persist status + merged tracking and record history.
6. After commit, hand the change to ``NotificationDispatcher``.

Steps 2-5 share one transaction, so two concurrent changes to the same
order serialize, and a failure anywhere rolls back stock and status
together.  ``Order.stock_committed`` pairs each reduce with one restore,
so replaying a change never moves stock twice.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import DatabaseError, transaction
from django.utils import timezone

from modules.orders.constants import OrderStatus, StockAction
from modules.orders.dtos import OrderStatsDTO
from modules.orders.exceptions import (
    MissingTrackingInfo,
    OrderNotFound,
    PersistenceFailure,
)
from modules.orders.policy import decide_stock_action, parse_status

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.inventory.services import InventoryAdjuster
    from modules.orders.models import Order
    from modules.orders.notifications import NotificationDispatcher, NotificationKind
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TrackingUpdateResult:
    order: Order
    notification_sent: bool


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class OrderStatusEngine:
    """Application service for order status and tracking changes.

    Receives its collaborators via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        inventory_adjuster: InventoryAdjuster,
        notification_dispatcher: NotificationDispatcher,
    ) -> None:
        self._order_repo = order_repository
        self._adjuster = inventory_adjuster
        self._dispatcher = notification_dispatcher

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def transition(
        self,
        order_id: Any,
        new_status: Any,
        tracking_url: Optional[str] = None,
        tracking_id: Optional[str] = None,
    ) -> Order:
        """Move an order to *new_status*, reconciling stock on the way.

        Blank tracking values are ignored; they never erase stored ones.

        Raises:
            InvalidStatus: *new_status* is not a known status.
            OrderNotFound: the order does not exist.
            PersistenceFailure: the database rejected the unit of work.
        """
        target = parse_status(new_status)
        tracking_url, tracking_id = _clean(tracking_url), _clean(tracking_id)
        log = logger.bind(order_id=order_id, new_status=str(target))
        log.info("order.transition_started")

        try:
            with transaction.atomic():
                order = self._order_repo.get_for_update(order_id)
                if order is None:
                    raise OrderNotFound(f"Order {order_id} not found.")

                previous = parse_status(order.status)
                had_tracking = order.has_tracking
                log = log.bind(previous_status=str(previous))

                stock_action = self._reconcile_stock(order, previous, target, log)
                new_url, new_id = self._merge_tracking(order, tracking_url, tracking_id)

                order.status = target
                self._order_repo.save_fields(
                    order, ["status", "tracking_url", "tracking_id", "stock_committed"]
                )
                applied = previous != target or stock_action != StockAction.NONE
                if applied or new_url or new_id:
                    self._order_repo.add_history(
                        order_id=order.id,
                        old_status=previous,
                        new_status=target,
                        stock_action=stock_action,
                        tracking_url=order.tracking_url,
                        tracking_id=order.tracking_id,
                    )

                transaction.on_commit(
                    lambda: self._notify(
                        order, previous, target, new_url, new_id, had_tracking
                    )
                )
        except DatabaseError as exc:
            log.exception("order.transition_failed")
            raise PersistenceFailure(str(exc)) from exc

        log.info("order.transition_completed", stock_action=str(stock_action))
        return self._order_repo.get_by_id(order.id) or order

    def update_tracking(
        self,
        order_id: Any,
        tracking_url: Optional[str] = None,
        tracking_id: Optional[str] = None,
        send_notification: bool = False,
    ) -> TrackingUpdateResult:
        """Attach or change tracking details without touching status or stock.

        Raises:
            MissingTrackingInfo: both tracking values are blank.
            OrderNotFound: the order does not exist.
            PersistenceFailure: the database rejected the update.
        """
        tracking_url, tracking_id = _clean(tracking_url), _clean(tracking_id)
        if not tracking_url and not tracking_id:
            raise MissingTrackingInfo(
                "At least one tracking field (URL or ID) is required"
            )

        log = logger.bind(order_id=order_id)
        outermost = not transaction.get_connection().in_atomic_block
        planned = None
        dispatched: Dict[str, Any] = {}
        try:
            with transaction.atomic():
                order = self._order_repo.get_for_update(order_id)
                if order is None:
                    raise OrderNotFound(f"Order {order_id} not found.")

                had_tracking = order.has_tracking
                self._merge_tracking(order, tracking_url, tracking_id)
                self._order_repo.save_fields(order, ["tracking_url", "tracking_id"])
                self._order_repo.add_history(
                    order_id=order.id,
                    old_status=order.status,
                    new_status=order.status,
                    stock_action=StockAction.NONE,
                    tracking_url=order.tracking_url,
                    tracking_id=order.tracking_id,
                    notes="Tracking updated",
                )

                if send_notification:
                    planned = self._dispatcher.plan(
                        order,
                        order.status,
                        order.status,
                        tracking_url=tracking_url,
                        tracking_id=tracking_id,
                        had_tracking=had_tracking,
                    )
                if planned is not None:
                    transaction.on_commit(
                        lambda: dispatched.update(
                            kind=self._notify(
                                order,
                                order.status,
                                order.status,
                                tracking_url,
                                tracking_id,
                                had_tracking,
                            )
                        )
                    )
                else:
                    log.info(
                        "order.tracking_notification_skipped",
                        requested=send_notification,
                        status=order.status,
                    )
        except DatabaseError as exc:
            log.exception("order.tracking_update_failed")
            raise PersistenceFailure(str(exc)) from exc

        # Outside an enclosing transaction the on-commit dispatch has already run.
        if outermost:
            sent = dispatched.get("kind") is not None
        else:
            sent = planned is not None
        log.info("order.tracking_updated", had_tracking=had_tracking, notified=sent)
        refreshed = self._order_repo.get_by_id(order.id) or order
        return TrackingUpdateResult(order=refreshed, notification_sent=sent)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: Any) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """Return orders, optionally filtered (lazy queryset)."""
        return self._order_repo.list(filters)

    def get_stats(self) -> OrderStatsDTO:
        """Per-status counts plus today / last 7 days / this month totals."""
        now = timezone.localtime()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        counts = self._order_repo.count_by_status()
        return OrderStatsDTO(
            status_counts={
                status: counts.get(status, 0) for status in OrderStatus.values
            },
            total_orders=sum(counts.values()),
            today_orders=self._order_repo.count_created_since(start_of_day),
            week_orders=self._order_repo.count_created_since(
                start_of_day - timedelta(days=7)
            ),
            month_orders=self._order_repo.count_created_since(
                start_of_day.replace(day=1)
            ),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reconcile_stock(
        self,
        order: Order,
        previous: OrderStatus,
        target: OrderStatus,
        log: structlog.stdlib.BoundLogger,
    ) -> StockAction:
        action = decide_stock_action(previous, target)
        if action == StockAction.NONE:
            return action

        # A restore needs committed stock and a reduce needs released stock.
        if order.stock_committed != (action == StockAction.RESTORE):
            log.warning(
                "order.stock_action_skipped",
                stock_action=str(action),
                stock_committed=order.stock_committed,
            )
            return StockAction.NONE

        report = self._adjuster.apply(action, order.items.all(), order_id=order.id)
        order.stock_committed = action == StockAction.REDUCE
        if report.has_failures:
            log.warning(
                "order.stock_partially_adjusted",
                stock_action=str(action),
                failed_items=[f.item_id for f in report.failed],
            )
        return action

    @staticmethod
    def _merge_tracking(
        order: Order, tracking_url: str, tracking_id: str
    ) -> tuple[str, str]:
        """Apply non-blank tracking values; return those that changed."""
        new_url = new_id = ""
        if tracking_url and tracking_url != order.tracking_url:
            order.tracking_url = new_url = tracking_url
        if tracking_id and tracking_id != order.tracking_id:
            order.tracking_id = new_id = tracking_id
        return new_url, new_id

    def _notify(
        self,
        order: Order,
        previous_status: str,
        new_status: str,
        tracking_url: str,
        tracking_id: str,
        had_tracking: bool,
    ) -> Optional[NotificationKind]:
        try:
            return self._dispatcher.maybe_notify(
                order,
                previous_status,
                new_status,
                tracking_url=tracking_url or None,
                tracking_id=tracking_id or None,
                had_tracking=had_tracking,
            )
        except Exception:
            logger.exception("notification.dispatch_failed", order_id=order.id)
            return None
