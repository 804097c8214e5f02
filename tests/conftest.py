from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model

from rest_framework.test import APIClient

from modules.inventory.models import Product, ProductVariant
from modules.inventory.repositories import StockDjangoRepository
from modules.inventory.services import InventoryAdjuster
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem
from modules.orders.notifications import NotificationDispatcher
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderStatusEngine


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def auth_client(api_client):
    user = get_user_model().objects.create_user(
        username="ops", password="testpass123"
    )
    api_client.force_authenticate(user=user)
    return api_client


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def product():
    return Product.objects.create(
        sku="MUG-001",
        name="Ceramic Mug",
        price=Decimal("299.00"),
        stock_quantity=100,
    )


@pytest.fixture()
def variant():
    tee = Product.objects.create(
        sku="TEE-001",
        name="Cotton T-Shirt",
        price=Decimal("499.00"),
        stock_quantity=0,
    )
    return ProductVariant.objects.create(
        product=tee,
        sku="TEE-001-M",
        name="Cotton T-Shirt (M)",
        stock_quantity=10,
    )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_order():
    """Factory: ``make_order(status, lines=[(product_or_variant, qty)], ...)``.

    Orders are created the way checkout leaves them: stock for committed
    statuses is assumed to be already out of the stock rows.
    """

    def _make(
        status=OrderStatus.PENDING,
        lines=(),
        customer_email="asha@example.com",
        tracking_url="",
        tracking_id="",
    ):
        order = Order.objects.create(
            status=status,
            customer_name="Asha Rao",
            customer_email=customer_email,
            customer_phone="+91 98765 43210",
            delivery_address="12 MG Road, Bengaluru",
            subtotal=Decimal("998.00"),
            delivery_fee=Decimal("49.00"),
            total_amount=Decimal("1047.00"),
            tracking_url=tracking_url,
            tracking_id=tracking_id,
        )
        for row, quantity in lines:
            is_variant = isinstance(row, ProductVariant)
            OrderItem.objects.create(
                order=order,
                product=row.product if is_variant else row,
                variant=row if is_variant else None,
                product_name=row.name,
                quantity=quantity,
                unit_price=Decimal("499.00"),
            )
        return order

    return _make


@pytest.fixture()
def enqueued():
    """Payloads handed to the notification queue."""
    return []


@pytest.fixture()
def engine(enqueued):
    return OrderStatusEngine(
        order_repository=OrderDjangoRepository(),
        inventory_adjuster=InventoryAdjuster(StockDjangoRepository()),
        notification_dispatcher=NotificationDispatcher(enqueue=enqueued.append),
    )
