"""Payment API views.

``intents/`` starts a card payment for an order; ``webhook/`` receives
Stripe's signed PaymentIntent events.  The webhook is not authenticated by
DRF: the Stripe signature is the authentication.
"""

from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.exceptions import error_response
from modules.orders.exceptions import OrderNotFound
from modules.payments.exceptions import (
    InvalidWebhookSignature,
    PaymentGatewayError,
    PaymentNotAllowed,
)
from modules.payments.services import build_payment_service

logger = structlog.get_logger(__name__)


class PaymentIntentView(APIView):
    """POST /api/v1/payments/intents/  ``{"orderId": "ORD-..."}``"""

    permission_classes = [AllowAny]
    throttle_scope = "order_creation"

    def post(self, request: Request) -> Response:
        order_id = request.data.get("orderId") or request.data.get("order_id")
        if not order_id:
            return error_response(
                "Field 'orderId' is required.", "invalid", status.HTTP_400_BAD_REQUEST
            )

        try:
            intent = build_payment_service().create_intent(str(order_id))
        except OrderNotFound:
            return error_response("Order not found.", "order_not_found", status.HTTP_404_NOT_FOUND)
        except PaymentNotAllowed as exc:
            return error_response(str(exc), "payment_not_allowed", status.HTTP_409_CONFLICT)
        except PaymentGatewayError as exc:
            return error_response(str(exc), "payment_gateway_error", status.HTTP_502_BAD_GATEWAY)

        return Response(intent, status=status.HTTP_201_CREATED)


class StripeWebhookView(APIView):
    """POST /api/v1/payments/webhook/"""

    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request: Request) -> Response:
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        try:
            outcome = build_payment_service().handle_webhook(request.body, signature)
        except InvalidWebhookSignature:
            return error_response(
                "Invalid webhook signature.", "invalid_signature", status.HTTP_400_BAD_REQUEST
            )
        except PaymentGatewayError as exc:
            logger.error("payment.webhook_unavailable", error=str(exc))
            return error_response(
                str(exc), "payment_gateway_error", status.HTTP_503_SERVICE_UNAVAILABLE
            )
        return Response({"received": True, "outcome": outcome})
