"""Django ORM implementation of the stock repository.

Satisfies ``IStockRepository`` using Django's QuerySet API.  Rows are
locked with ``select_for_update()`` so concurrent transitions touching
the same variant serialize on it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from modules.inventory.repositories.interfaces import IStockRepository, StockRecord

if TYPE_CHECKING:
    from modules.inventory.stock import StockTarget

logger = structlog.get_logger(__name__)


class StockDjangoRepository(IStockRepository):
    """Concrete stock repository backed by Django ORM."""

    def get_for_update(self, target: StockTarget) -> Optional[StockRecord]:
        return target.model.objects.select_for_update().filter(id=target.id).first()

    def save_quantity(self, record: StockRecord, quantity: int) -> StockRecord:
        record.stock_quantity = quantity
        record.save(update_fields=["stock_quantity", "updated_at"])
        logger.debug(
            "inventory.stock_saved",
            record=f"{type(record).__name__}:{record.id}",
            stock_quantity=quantity,
        )
        return record
