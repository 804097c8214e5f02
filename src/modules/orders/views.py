"""Order API views.

Exposes the ``OrderStatusEngine`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into ``{"error": ...}``
bodies with the matching HTTP status code.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.inventory.repositories import StockDjangoRepository
from modules.inventory.services import InventoryAdjuster
from modules.orders.constants import INVALID_STATUS_MESSAGE
from modules.orders.dtos import StatusChangeDTO, TrackingUpdateDTO
from modules.orders.exceptions import (
    InvalidStatus,
    MissingTrackingInfo,
    OrderNotFound,
    PersistenceFailure,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.notifications import NotificationDispatcher
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.serializers import (
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
    UpdateTrackingSerializer,
)
from modules.orders.services import OrderStatusEngine


def _error(message: str, code: int, **extra) -> Response:
    return Response({"error": message, **extra}, status=code)


def _not_found() -> Response:
    return _error("Order not found", status.HTTP_404_NOT_FOUND)


class OrderViewSet(GenericViewSet):
    """ViewSet for order status, tracking and read operations.

    Uses ``OrderStatusEngine`` with injected collaborators (DIP).
    Does **not** extend ``ModelViewSet``: every write goes through the
    engine so stock and status move together.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer_name", "customer_email"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    lookup_value_regex = r"\d+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._engine = OrderStatusEngine(
            order_repository=OrderDjangoRepository(),
            inventory_adjuster=InventoryAdjuster(StockDjangoRepository()),
            notification_dispatcher=NotificationDispatcher(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Writes share the ``order_updates`` scope; reads use the defaults."""
        self.throttle_scope = (
            "order_updates" if self.action in {"update", "tracking"} else None
        )
        return super().get_throttles()

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._engine.list_orders()

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, customer email, date range, total range) is
        handled by ``OrderFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}"""
        try:
            order = self._engine.get_order(pk)
        except OrderNotFound:
            return _not_found()
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status change
    # ------------------------------------------------------------------

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}

        Body: ``{"status": ..., "tracking_url"?: ..., "tracking_id"?: ...}``.
        Adjusts inventory according to the transition and returns the
        updated order.
        """
        serializer = UpdateOrderStatusSerializer(data=request.data)
        if not serializer.is_valid():
            return _error(
                "Invalid request body",
                status.HTTP_400_BAD_REQUEST,
                details=serializer.errors,
            )
        dto = StatusChangeDTO(order_id=pk, **serializer.validated_data)

        try:
            order = self._engine.transition(
                dto.order_id,
                dto.status,
                tracking_url=dto.tracking_url,
                tracking_id=dto.tracking_id,
            )
        except InvalidStatus:
            return _error(INVALID_STATUS_MESSAGE, status.HTTP_400_BAD_REQUEST)
        except OrderNotFound:
            return _not_found()
        except PersistenceFailure as exc:
            return _error(
                "Failed to update order",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                details=str(exc),
            )
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"], url_path="tracking")
    def tracking(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/tracking

        Attaches tracking details without touching status or stock and
        optionally emails the customer.
        """
        serializer = UpdateTrackingSerializer(data=request.data)
        if not serializer.is_valid():
            return _error(
                "Invalid request body",
                status.HTTP_400_BAD_REQUEST,
                details=serializer.errors,
            )
        dto = TrackingUpdateDTO(order_id=pk, **serializer.validated_data)

        try:
            result = self._engine.update_tracking(
                dto.order_id,
                tracking_url=dto.tracking_url,
                tracking_id=dto.tracking_id,
                send_notification=dto.send_notification,
            )
        except MissingTrackingInfo as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except OrderNotFound:
            return _not_found()
        except PersistenceFailure as exc:
            return _error(
                "Failed to update tracking information",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                details=str(exc),
            )

        return Response(
            {
                "success": True,
                "message": "Tracking information updated successfully",
                "tracking_url": result.order.tracking_url,
                "tracking_id": result.order.tracking_id,
                "notification_sent": result.notification_sent,
            }
        )

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/orders/stats"""
        return Response(self._engine.get_stats().model_dump())
