"""Integration tests for order read endpoints.

Covers:
- GET /api/v1/orders/ : pagination, filters (status, customer email,
  date range), newest first.
- GET /api/v1/orders/{id} : detail with items and history, 404.
- GET /api/v1/orders/stats : dashboard counters.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.integration


class TestListOrders:
    def test_paginated(self, auth_client, make_order):
        for _ in range(25):
            make_order()

        response = auth_client.get("/api/v1/orders/")

        assert response.status_code == 200
        assert response.data["count"] == 25
        assert len(response.data["results"]) == 20
        assert response.data["next"] is not None

    def test_page_size_param(self, auth_client, make_order):
        for _ in range(5):
            make_order()

        response = auth_client.get("/api/v1/orders", {"page_size": 2})

        assert len(response.data["results"]) == 2

    def test_newest_first(self, auth_client, make_order):
        first = make_order()
        second = make_order()

        response = auth_client.get("/api/v1/orders/")

        ids = [row["id"] for row in response.data["results"]]
        assert ids == [second.id, first.id]

    def test_filter_by_status(self, auth_client, make_order):
        make_order(status=OrderStatus.OUT_FOR_DELIVERY)
        make_order()

        response = auth_client.get(
            "/api/v1/orders/", {"status": "out for delivery"}
        )

        assert response.data["count"] == 1
        assert response.data["results"][0]["status"] == "out for delivery"

    def test_filter_by_customer_email(self, auth_client, make_order):
        make_order(customer_email="ravi@example.com")
        make_order()

        response = auth_client.get(
            "/api/v1/orders/", {"customer_email": "RAVI@example.com"}
        )

        assert response.data["count"] == 1

    def test_filter_by_date_range(self, auth_client, make_order):
        recent = make_order()
        old = make_order()
        Order.objects.filter(id=old.id).update(
            created_at=timezone.now() - timedelta(days=30)
        )
        today = timezone.localdate()

        response = auth_client.get(
            "/api/v1/orders/",
            {
                "start_date": (today - timedelta(days=1)).isoformat(),
                "end_date": today.isoformat(),
            },
        )

        assert [row["id"] for row in response.data["results"]] == [recent.id]

    def test_requires_authentication(self, api_client):
        assert api_client.get("/api/v1/orders/").status_code == 401


class TestRetrieveOrder:
    def test_detail(self, auth_client, make_order, product):
        order = make_order(lines=[(product, 2)])
        auth_client.put(
            f"/api/v1/orders/{order.id}", {"status": "confirmed"}, format="json"
        )

        response = auth_client.get(f"/api/v1/orders/{order.id}")

        assert response.status_code == 200
        data = response.data
        assert data["order_number"] == order.order_number
        assert data["customer_name"] == "Asha Rao"
        assert data["items"][0]["product_id"] == product.id
        assert data["items"][0]["quantity"] == 2
        assert data["status_history"][0]["new_status"] == "confirmed"

    def test_not_found(self, auth_client):
        response = auth_client.get("/api/v1/orders/999999")

        assert response.status_code == 404
        assert response.json() == {"error": "Order not found"}

    def test_non_numeric_id_not_routed(self, auth_client):
        assert auth_client.get("/api/v1/orders/abc").status_code == 404


class TestStats:
    def test_counts(self, auth_client, make_order):
        make_order()
        make_order(status=OrderStatus.DELIVERED)
        make_order(status=OrderStatus.DELIVERED)

        response = auth_client.get("/api/v1/orders/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["total_orders"] == 3
        assert data["today_orders"] == 3
        assert data["status_counts"]["delivered"] == 2
        assert data["status_counts"]["pending"] == 1
        assert data["status_counts"]["cancel"] == 0

    def test_trailing_slash(self, auth_client):
        response = auth_client.get("/api/v1/orders/stats/")
        assert response.status_code == 200
        assert response.json()["total_orders"] == 0
