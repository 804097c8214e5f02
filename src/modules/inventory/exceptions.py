"""Inventory domain exceptions.

Raised while adjusting a single stock record.  ``InventoryAdjuster``
catches them per line item, logs them and carries on with the rest of
the order; they never reach the API layer.
"""

from __future__ import annotations


class StockAdjustmentFailure(Exception):
    """A single line item's stock could not be adjusted."""


class StockRecordNotFound(StockAdjustmentFailure):
    """The variant or product referenced by a line item does not exist."""
