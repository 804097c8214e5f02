"""Stock repository interface.

``InventoryAdjuster`` depends exclusively on this contract (DIP); the
concrete Django ORM implementation lives in ``django_repository``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from modules.inventory.stock import StockTarget


class StockRecord(Protocol):
    """A row carrying a ``stock_quantity`` (variant or product)."""

    id: int
    stock_quantity: int


class IStockRepository(ABC):
    """Repository contract for variant- and product-level stock records."""

    @abstractmethod
    def get_for_update(self, target: StockTarget) -> Optional[StockRecord]:
        """Retrieve the stock record behind *target* with a row-level lock.

        Returns ``None`` if the record does not exist.
        """

    @abstractmethod
    def save_quantity(self, record: StockRecord, quantity: int) -> StockRecord:
        """Persist a new ``stock_quantity`` on *record*."""
