"""Order API views.

Exposes ``OrderService`` over HTTP.  Checkout is open to anonymous
customers; reading orders and changing their status is for staff.
Domain exceptions are caught and translated into HTTP status codes; the
view never swallows generic exceptions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Optional
from uuid import UUID

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny, BasePermission, IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from storefront.catalog.repositories import CatalogDjangoRepository
from storefront.core.pagination import StandardResultsSetPagination
from storefront.customers.repositories import CustomerDjangoRepository
from storefront.orders.exceptions import (
    CustomerNotFound,
    DeliveryZoneNotFound,
    InactiveCustomer,
    InvalidOrderInput,
    InvalidOrderStatus,
    NotAuthorized,
    OrderNotFound,
    OrderPersistenceError,
    ProductInactive,
    ProductNotFound,
    TotalMismatch,
)
from storefront.orders.filters import OrderFilter
from storefront.orders.models import Order
from storefront.orders.repositories import OrderDjangoRepository
from storefront.orders.serializers import (
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
)
from storefront.orders.services import OrderService


def _actor_id(request: Request) -> Optional[str]:
    user = request.user
    if user is None or not user.is_authenticated:
        return None
    return str(user.pk)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all writes go through the
    service layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer_email", "payment_reference"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            customer_repository=CustomerDjangoRepository(),
            catalog_repository=CatalogDjangoRepository(),
        )

    def get_permissions(self) -> list[BasePermission]:
        if self.action == "create":
            return [AllowAny()]
        return [IsAdminUser()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttle scopes."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        if not isinstance(request.data, Mapping):
            return Response(
                {"detail": "Request body must be a JSON object."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.place_order(request.data, actor_id=_actor_id(request))
        except InvalidOrderInput as exc:
            return Response(
                {"detail": str(exc), "errors": exc.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except TotalMismatch as exc:
            return Response(
                {
                    "detail": str(exc),
                    "server_total": str(exc.server_total),
                    "client_total": str(exc.client_total),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        except (CustomerNotFound, ProductNotFound, DeliveryZoneNotFound) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except (InactiveCustomer, ProductInactive) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except OrderPersistenceError:
            return Response(
                {"detail": "Order could not be processed. Please try again."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return Order.objects.prefetch_related("items", "status_changes")

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/"""
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(str(pk))
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/"""
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order_id = UUID(str(pk))
        except ValueError:
            return Response(
                {"detail": "Invalid order ID format."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.update_status(
                order_id=order_id,
                new_status=serializer.validated_data["status"],
                actor_id=_actor_id(request),
                reason=serializer.validated_data["reason"],
            )
        except NotAuthorized as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
        except OrderNotFound:
            return Response(
                {"detail": "Order not found."},
                status=status.HTTP_404_NOT_FOUND,
            )
        except InvalidOrderStatus as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrderSerializer(order).data)
