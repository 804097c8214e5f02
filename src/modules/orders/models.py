"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- ``status`` is restricted to the ``OrderStatus`` choices.
- Monetary fields are written once by checkout; this core only mutates
  ``status``, the tracking fields and ``stock_committed``.
- ``stock_committed`` records whether the order's stock is currently out
  of inventory.  It pairs every reduce with exactly one restore, so a
  retried transition never adjusts stock twice.
- Each applied status change generates a history record.
- OrderItem draws stock from its variant when set, otherwise its product.
- OrderItem ``total_price`` is always ``quantity * unit_price``.
- Orders are never deleted by this core.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    UNCOMMITTED_STATES,
    OrderStatus,
    StockAction,
)

_MONEY = {"max_digits": 10, "decimal_places": 2, "default": Decimal("0.00")}


class Order(BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``ORD-YYYYMMDD-XXXXXX``).  The numeric ``id`` is used for
    all internal references and API lookups.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    tracking_url: models.URLField = models.URLField(
        max_length=500, blank=True, default=""
    )
    tracking_id: models.CharField = models.CharField(
        max_length=120, blank=True, default=""
    )
    stock_committed: models.BooleanField = models.BooleanField(default=False)

    subtotal: models.DecimalField = models.DecimalField(**_MONEY)
    delivery_fee: models.DecimalField = models.DecimalField(**_MONEY)
    discount_amount: models.DecimalField = models.DecimalField(**_MONEY)
    total_amount: models.DecimalField = models.DecimalField(**_MONEY)
    currency: models.CharField = models.CharField(max_length=3, default="INR")

    customer_name: models.CharField = models.CharField(max_length=255)
    customer_email: models.EmailField = models.EmailField(blank=True, default="")
    customer_phone: models.CharField = models.CharField(
        max_length=30, blank=True, default=""
    )
    delivery_address: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @property
    def has_tracking(self) -> bool:
        return bool(self.tracking_url or self.tracking_id)

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self._state.adding:
            # Checkout decides the initial status; stock is out of
            # inventory for every status except pending/cancel.
            self.stock_committed = self.status not in UNCOMMITTED_STATES
        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an Order.

    ``unit_price`` and ``product_name`` are **snapshots** taken at checkout.
    ``variant`` takes precedence over ``product`` for stock bookkeeping;
    at least one of them is always set.  The references outlive the stock
    rows: an item whose variant was deleted keeps pointing at it, and its
    stock adjustments fail instead of moving to the parent product.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "inventory.Product",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="order_items",
    )
    variant: models.ForeignKey = models.ForeignKey(
        "inventory.ProductVariant",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="order_items",
    )
    product_name: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price: models.DecimalField = models.DecimalField(**_MONEY)
    total_price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        editable=False,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(variant__isnull=False)
                | models.Q(product__isnull=False),
                name="order_items_stock_ref_present",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})
        if not self.variant_id and not self.product_id:
            raise ValidationError("Order item must reference a variant or a product.")

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.total_price = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name or self.product_id} x{self.quantity}"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for applied status changes.

    Records the stock action actually applied, so the latest row is the
    order's "last applied transition" marker.  Audit records are
    **immutable**: they are never edited or deleted.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    stock_action: models.CharField = models.CharField(
        max_length=10,
        choices=StockAction.choices,
        default=StockAction.NONE,
    )
    tracking_url: models.URLField = models.URLField(
        max_length=500, blank=True, default=""
    )
    tracking_id: models.CharField = models.CharField(
        max_length=120, blank=True, default=""
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} : {self.old_status} -> {self.new_status}"
