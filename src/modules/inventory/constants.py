"""Inventory constants."""

from django.db import models


class StockAction(models.TextChoices):
    """Inventory effect of an order status change."""

    REDUCE = "reduce", "Reduce"
    RESTORE = "restore", "Restore"
    NONE = "none", "None"
