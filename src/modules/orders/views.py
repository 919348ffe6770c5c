"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  The storefront
places and looks up orders by their public ``order_id``; the back office
works on the internal UUID.  Domain exceptions are caught and translated
into HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django.conf import settings
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.constants import DEFAULT_ANALYTICS_PERIOD
from modules.orders.dtos import CartLineDTO, CreateOrderDTO, CustomerDTO, PaymentResultDTO
from modules.orders.exceptions import (
    CurrencyMismatch,
    InactiveProduct,
    InsufficientStock,
    InvalidAnalyticsPeriod,
    InvalidOrderStatus,
    InvalidPaymentMethod,
    InvalidPaymentStatus,
    OrderNotFound,
    OrderPersistenceError,
    PaymentAmountMismatch,
    PaymentProviderError,
    ProductNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.serializers import (
    AdminOrderSerializer,
    ConfirmPaymentSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdatePaymentStatusSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import build_order_service
from modules.payments.exceptions import PaymentGatewayError, PaymentIntentMismatch
from modules.payments.services import build_payment_service
from modules.shipping.exceptions import InvalidPieceCount, NoDeliveryRule, UnsupportedCountry
from modules.shipping.views import pricing_error_response


def _order_not_found() -> Response:
    return error_response("Order not found.", "order_not_found", status.HTTP_404_NOT_FOUND)


def _payment_error_response(exc: Exception) -> Response:
    if isinstance(exc, OrderNotFound):
        return _order_not_found()
    if isinstance(exc, InvalidPaymentMethod):
        return error_response(str(exc), "invalid_payment_method", status.HTTP_409_CONFLICT)
    if isinstance(exc, PaymentAmountMismatch):
        return error_response(
            str(exc), "payment_amount_mismatch", status.HTTP_422_UNPROCESSABLE_ENTITY
        )
    if isinstance(exc, PaymentProviderError):
        return error_response(
            str(exc), "unknown_provider_status", status.HTTP_422_UNPROCESSABLE_ENTITY
        )
    if isinstance(exc, PaymentIntentMismatch):
        return error_response(str(exc), "payment_intent_mismatch", status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, PaymentGatewayError):
        return error_response(str(exc), "payment_gateway_error", status.HTTP_502_BAD_GATEWAY)
    raise exc


# ---------------------------------------------------------------------------
# Storefront (public)
# ---------------------------------------------------------------------------


class OrderViewSet(GenericViewSet):
    """Checkout and order lookup for customers.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    permission_classes = [AllowAny]
    serializer_class = OrderSerializer
    queryset = Order.objects.none()
    lookup_field = "order_id"
    lookup_value_regex = r"[A-Z]+-\d+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttle scopes."""
        throttle_scope: str | None
        if self.action in {"create", "confirm_payment"}:
            throttle_scope = "order_creation"
        elif self.action == "retrieve":
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        try:
            dto = CreateOrderDTO(
                customer=CustomerDTO(**data["customer"]),
                items=[
                    CartLineDTO(product_id=item["product_id"], quantity=item["quantity"])
                    for item in data["items"]
                ],
                payment_method=data["payment_method"],
                notes=data.get("notes", ""),
                idempotency_key=request.headers.get("Idempotency-Key") or None,
            )
        except PydanticValidationError as exc:
            return error_response(str(exc), "invalid", status.HTTP_400_BAD_REQUEST)

        try:
            order, created = self._service.create_order(dto)
        except (UnsupportedCountry, NoDeliveryRule, InvalidPieceCount) as exc:
            return pricing_error_response(exc)
        except ProductNotFound as exc:
            return error_response(str(exc), "product_not_found", status.HTTP_404_NOT_FOUND)
        except InactiveProduct as exc:
            return error_response(str(exc), "inactive_product", status.HTTP_400_BAD_REQUEST)
        except CurrencyMismatch as exc:
            return error_response(str(exc), "currency_mismatch", status.HTTP_400_BAD_REQUEST)
        except InsufficientStock as exc:
            return error_response(str(exc), "insufficient_stock", status.HTTP_409_CONFLICT)
        except OrderPersistenceError as exc:
            return error_response(
                str(exc), "order_not_saved", status.HTTP_503_SERVICE_UNAVAILABLE
            )

        return Response(
            OrderSerializer(order).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, order_id: str | None = None) -> Response:
        """GET /api/v1/orders/{order_id}/"""
        try:
            order = self._service.get_order(order_id)
        except OrderNotFound:
            return _order_not_found()
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Payment confirmation
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="confirm-payment")
    def confirm_payment(self, request: Request, order_id: str | None = None) -> Response:
        """POST /api/v1/orders/{order_id}/confirm-payment/

        With ``paymentIntentId`` the intent is fetched from Stripe and its
        real status and amount are applied.  A bare ``providerStatus`` is
        only trusted when ``PAYMENTS_ACCEPT_CLIENT_STATUS`` is enabled.
        """
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            if data.get("paymentIntentId"):
                order = build_payment_service().confirm_from_intent(
                    order_id, data["paymentIntentId"]
                )
            elif settings.PAYMENTS_ACCEPT_CLIENT_STATUS:
                order = self._service.confirm_payment(
                    order_id,
                    PaymentResultDTO(
                        provider_status=data["providerStatus"],
                        payment_details=data.get("paymentDetails") or {},
                    ),
                )
            else:
                return error_response(
                    "Client-reported payment status is not accepted.",
                    "client_status_disabled",
                    status.HTTP_403_FORBIDDEN,
                )
        except (
            OrderNotFound,
            InvalidPaymentMethod,
            PaymentProviderError,
            PaymentIntentMismatch,
            PaymentGatewayError,
        ) as exc:
            return _payment_error_response(exc)

        return Response(OrderSerializer(order).data)


# ---------------------------------------------------------------------------
# Back office (admin)
# ---------------------------------------------------------------------------


class AdminOrderViewSet(GenericViewSet):
    """Order management for operators."""

    permission_classes = [IsAdminUser]
    serializer_class = AdminOrderSerializer
    queryset = Order.objects.none()
    filterset_class = OrderFilter
    search_fields = ["order_id", "payment_reference", "customer_email", "customer_last_name"]
    ordering_fields = ["created_at", "total", "status", "payment_status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_queryset(self):
        return self._service.list_orders()

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/

        Filtering is handled by ``OrderFilter``; ordering by
        ``OrderingFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        try:
            order = self._service.get_order_by_pk(pk)
        except OrderNotFound:
            return _order_not_found()
        return Response(AdminOrderSerializer(order).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/status/"""
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.update_status(
                pk,
                data["status"],
                notes=data["notes"],
                user=request.user,
                tracking_number=data["tracking_number"] or None,
            )
        except OrderNotFound:
            return _order_not_found()
        except InvalidOrderStatus as exc:
            return error_response(str(exc), "invalid_status_transition", status.HTTP_400_BAD_REQUEST)

        return Response(AdminOrderSerializer(order).data)

    @action(detail=True, methods=["patch"], url_path="payment-status")
    def update_payment_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/payment-status/

        Operator-side payment changes: cash collected on delivery, refunds.
        """
        serializer = UpdatePaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            self._service.update_payment_status(
                pk, data["payment_status"], notes=data["notes"], user=request.user
            )
        except OrderNotFound:
            return _order_not_found()
        except InvalidPaymentStatus as exc:
            return error_response(
                str(exc), "invalid_payment_transition", status.HTTP_400_BAD_REQUEST
            )

        return Response(AdminOrderSerializer(self._service.get_order_by_pk(pk)).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/admin/orders/{pk}/cancel/

        Stock already taken for the order is given back after commit.
        """
        try:
            order = self._service.cancel_order(
                pk, notes=request.data.get("notes", ""), user=request.user
            )
        except OrderNotFound:
            return _order_not_found()
        except InvalidOrderStatus as exc:
            return error_response(str(exc), "invalid_status_transition", status.HTTP_400_BAD_REQUEST)

        return Response(AdminOrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/stats/"""
        stats = self._service.dashboard_stats(settings.LOW_STOCK_THRESHOLD)
        return Response(stats.model_dump(mode="json"))

    @action(detail=False, methods=["get"])
    def analytics(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/analytics/?period=30d&currency=USD

        ``period`` is one of ``7d``, ``30d``, ``90d``, ``1y`` (default
        ``30d``); ``currency`` defaults to ``STOREFRONT_CURRENCY``.
        """
        period = request.query_params.get("period") or DEFAULT_ANALYTICS_PERIOD
        currency = (
            request.query_params.get("currency") or settings.STOREFRONT_CURRENCY
        ).upper()
        try:
            analytics = self._service.analytics(period, currency)
        except InvalidAnalyticsPeriod as exc:
            return error_response(str(exc), "invalid_period", status.HTTP_400_BAD_REQUEST)
        return Response(analytics.model_dump(mode="json"))
