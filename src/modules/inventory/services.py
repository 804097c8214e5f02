"""Inventory service layer.

``InventoryAdjuster`` applies the stock effect of an order status change
to every line item of the order.

Rules enforced:
- Variant stock is adjusted when the item has a variant, product stock
  otherwise (see ``resolve_stock_target``).
- Quantities are clamped at zero; stock never goes negative.
- A failure on one line item is logged and skipped; the remaining items
  are still adjusted.  Each item runs in its own savepoint so a database
  error on one row does not break the caller's transaction.
- Stock rows are locked in a stable order (kind, id) to avoid deadlocks
  between concurrent transitions sharing variants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

import structlog
from django.db import DatabaseError, transaction

from modules.inventory.constants import StockAction
from modules.inventory.exceptions import StockAdjustmentFailure, StockRecordNotFound
from modules.inventory.stock import StockLine, StockTarget, resolve_stock_target

if TYPE_CHECKING:
    from modules.inventory.repositories.interfaces import IStockRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StockAdjustment:
    """One applied stock change."""

    item_id: object
    target: StockTarget
    delta: int
    previous_quantity: int
    new_quantity: int


@dataclass(frozen=True)
class FailedAdjustment:
    """One line item whose stock could not be adjusted."""

    item_id: object
    target: Optional[StockTarget]
    reason: str


@dataclass
class AdjustmentReport:
    action: StockAction
    applied: List[StockAdjustment] = field(default_factory=list)
    failed: List[FailedAdjustment] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)


class InventoryAdjuster:
    """Applies ``reduce`` / ``restore`` stock actions to order line items.

    Receives an ``IStockRepository`` via constructor injection (DIP).
    """

    def __init__(self, stock_repository: IStockRepository) -> None:
        self._stock_repo = stock_repository

    def apply(
        self,
        action: StockAction,
        items: Iterable[StockLine],
        order_id: object = None,
    ) -> AdjustmentReport:
        """Apply *action* to each item's stock record.

        Callers skip the call entirely for ``StockAction.NONE``.

        Raises:
            ValueError: *action* is not ``reduce`` or ``restore``.
        """
        if action not in (StockAction.REDUCE, StockAction.RESTORE):
            raise ValueError(f"Cannot apply stock action {action!r}.")

        sign = -1 if action == StockAction.REDUCE else 1
        report = AdjustmentReport(action=StockAction(action))
        log = logger.bind(order_id=order_id, action=str(action))

        for item, target in self._resolve_targets(items, report, log):
            delta = item.quantity * sign
            try:
                with transaction.atomic():
                    adjustment = self._adjust(item, target, delta)
            except StockAdjustmentFailure as exc:
                log.warning(
                    "inventory.stock_adjustment_skipped",
                    item_id=item.id,
                    target=str(target),
                    reason=str(exc),
                )
                report.failed.append(FailedAdjustment(item.id, target, str(exc)))
            except DatabaseError as exc:
                log.exception(
                    "inventory.stock_adjustment_failed",
                    item_id=item.id,
                    target=str(target),
                )
                report.failed.append(FailedAdjustment(item.id, target, str(exc)))
            else:
                report.applied.append(adjustment)
                log.info(
                    "inventory.stock_adjusted",
                    item_id=item.id,
                    target=str(target),
                    delta=delta,
                    previous=adjustment.previous_quantity,
                    remaining=adjustment.new_quantity,
                )

        log.info(
            "inventory.adjustment_completed",
            applied=len(report.applied),
            failed=len(report.failed),
        )
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve_targets(
        items: Iterable[StockLine],
        report: AdjustmentReport,
        log: structlog.stdlib.BoundLogger,
    ) -> List[Tuple[StockLine, StockTarget]]:
        resolved: List[Tuple[StockLine, StockTarget]] = []
        for item in items:
            try:
                resolved.append((item, resolve_stock_target(item)))
            except StockAdjustmentFailure as exc:
                log.warning(
                    "inventory.stock_adjustment_skipped",
                    item_id=getattr(item, "id", None),
                    reason=str(exc),
                )
                report.failed.append(
                    FailedAdjustment(getattr(item, "id", None), None, str(exc))
                )
        resolved.sort(key=lambda pair: pair[1].sort_key)
        return resolved

    def _adjust(
        self, item: StockLine, target: StockTarget, delta: int
    ) -> StockAdjustment:
        record = self._stock_repo.get_for_update(target)
        if record is None:
            raise StockRecordNotFound(f"Stock record {target} not found.")

        previous = record.stock_quantity
        new_quantity = max(0, previous + delta)
        self._stock_repo.save_quantity(record, new_quantity)
        return StockAdjustment(
            item_id=item.id,
            target=target,
            delta=delta,
            previous_quantity=previous,
            new_quantity=new_quantity,
        )
