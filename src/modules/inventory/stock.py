"""Stock targets.

A line item points at exactly one stock record: its variant when it has
one, otherwise its product.  ``resolve_stock_target`` makes that choice
once per item so callers never branch on the two lookup paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Protocol, Tuple, Type

from django.db import models

from modules.inventory.exceptions import StockAdjustmentFailure
from modules.inventory.models import Product, ProductVariant


class StockLine(Protocol):
    """What the adjuster needs from an order line item."""

    id: Any
    quantity: int
    variant_id: Optional[int]
    product_id: Optional[int]


@dataclass(frozen=True)
class StockTarget:
    """Base stock target; subclasses bind the model holding the quantity."""

    id: int

    kind: ClassVar[str] = ""
    model: ClassVar[Type[models.Model]]

    @property
    def sort_key(self) -> Tuple[str, int]:
        return (self.kind, self.id)

    def __str__(self) -> str:
        return f"{self.kind}:{self.id}"


@dataclass(frozen=True)
class VariantStockTarget(StockTarget):
    kind: ClassVar[str] = "variant"
    model: ClassVar[Type[models.Model]] = ProductVariant


@dataclass(frozen=True)
class ProductStockTarget(StockTarget):
    kind: ClassVar[str] = "product"
    model: ClassVar[Type[models.Model]] = Product


def resolve_stock_target(item: StockLine) -> StockTarget:
    """Pick the stock record a line item draws from (variant first).

    Raises:
        StockAdjustmentFailure: the item references neither a variant
            nor a product.
    """
    variant_id = getattr(item, "variant_id", None)
    if variant_id:
        return VariantStockTarget(id=variant_id)
    product_id = getattr(item, "product_id", None)
    if product_id:
        return ProductStockTarget(id=product_id)
    raise StockAdjustmentFailure(
        f"Order item {getattr(item, 'id', None)} references no variant or product."
    )
