"""Unit tests for InventoryAdjuster.

Covers:
- Reduce / restore against variant and product stock.
- Variant stock takes precedence over product stock.
- Floor at zero: stock never goes negative.
- Missing stock records are skipped; the other items still adjust.
- Only ``reduce`` and ``restore`` can be applied.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from modules.inventory.constants import StockAction
from modules.inventory.repositories import StockDjangoRepository
from modules.inventory.services import InventoryAdjuster
from modules.inventory.stock import (
    ProductStockTarget,
    VariantStockTarget,
    resolve_stock_target,
)

pytestmark = pytest.mark.unit


def line(item_id, quantity, variant_id=None, product_id=None):
    return SimpleNamespace(
        id=item_id, quantity=quantity, variant_id=variant_id, product_id=product_id
    )


@pytest.fixture()
def adjuster():
    return InventoryAdjuster(StockDjangoRepository())


class TestResolveStockTarget:
    def test_variant_first(self):
        target = resolve_stock_target(line(1, 1, variant_id=7, product_id=3))
        assert target == VariantStockTarget(id=7)
        assert str(target) == "variant:7"

    def test_falls_back_to_product(self):
        target = resolve_stock_target(line(1, 1, product_id=3))
        assert target == ProductStockTarget(id=3)


class TestApply:
    def test_reduce_variant(self, adjuster, variant):
        report = adjuster.apply(StockAction.REDUCE, [line(1, 2, variant_id=variant.id)])

        variant.refresh_from_db()
        assert variant.stock_quantity == 8
        assert not report.has_failures
        assert report.applied[0].previous_quantity == 10
        assert report.applied[0].new_quantity == 8

    def test_reduce_then_restore_round_trips(self, adjuster, product):
        items = [line(1, 3, product_id=product.id)]

        adjuster.apply(StockAction.REDUCE, items)
        adjuster.apply(StockAction.RESTORE, items)

        product.refresh_from_db()
        assert product.stock_quantity == 100

    def test_variant_stock_used_instead_of_product(self, adjuster, variant):
        parent = variant.product
        adjuster.apply(
            StockAction.REDUCE,
            [line(1, 1, variant_id=variant.id, product_id=parent.id)],
        )

        variant.refresh_from_db()
        parent.refresh_from_db()
        assert variant.stock_quantity == 9
        assert parent.stock_quantity == 0

    def test_reduce_clamps_at_zero(self, adjuster, variant):
        report = adjuster.apply(
            StockAction.REDUCE, [line(1, 25, variant_id=variant.id)]
        )

        variant.refresh_from_db()
        assert variant.stock_quantity == 0
        assert report.applied[0].delta == -25

    def test_missing_record_is_skipped(self, adjuster, product, variant):
        items = [
            line(1, 2, variant_id=999_999),
            line(2, 1, variant_id=variant.id),
            line(3, 5, product_id=product.id),
        ]

        report = adjuster.apply(StockAction.REDUCE, items)

        variant.refresh_from_db()
        product.refresh_from_db()
        assert variant.stock_quantity == 9
        assert product.stock_quantity == 95
        assert [f.item_id for f in report.failed] == [1]
        assert len(report.applied) == 2

    def test_deleted_variant_is_not_credited_to_parent(
        self, adjuster, make_order, variant
    ):
        parent = variant.product
        parent.stock_quantity = 5
        parent.save()
        item = make_order(lines=[(variant, 2)]).items.get()
        variant.delete()

        report = adjuster.apply(StockAction.RESTORE, [item])

        parent.refresh_from_db()
        assert parent.stock_quantity == 5
        assert report.applied == []
        assert [f.item_id for f in report.failed] == [item.id]
        assert report.failed[0].target == VariantStockTarget(id=item.variant_id)

    def test_item_without_reference_is_skipped(self, adjuster, product):
        report = adjuster.apply(
            StockAction.RESTORE,
            [line(1, 1), line(2, 4, product_id=product.id)],
        )

        product.refresh_from_db()
        assert product.stock_quantity == 104
        assert report.failed[0].target is None

    def test_repository_error_does_not_stop_other_items(self, product, variant):
        from django.db import DatabaseError

        repo = StockDjangoRepository()
        real_save = repo.save_quantity

        def save_quantity(record, quantity):
            if record.id == variant.id and type(record).__name__ == "ProductVariant":
                raise DatabaseError("row is gone")
            return real_save(record, quantity)

        repo.save_quantity = save_quantity
        report = InventoryAdjuster(repo).apply(
            StockAction.REDUCE,
            [line(1, 1, variant_id=variant.id), line(2, 1, product_id=product.id)],
        )

        product.refresh_from_db()
        variant.refresh_from_db()
        assert product.stock_quantity == 99
        assert variant.stock_quantity == 10
        assert report.failed[0].item_id == 1

    def test_none_action_rejected(self):
        adjuster = InventoryAdjuster(MagicMock())
        with pytest.raises(ValueError):
            adjuster.apply(StockAction.NONE, [line(1, 1, product_id=1)])
