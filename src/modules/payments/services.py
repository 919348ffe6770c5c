"""Payment service layer (Use Cases).

Bridges Stripe PaymentIntents and the order payment state machine.  The
provider is always asked for the intent's real status and amount; the
order service decides what that means for the order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

import structlog

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.dtos import PaymentResultDTO
from modules.orders.exceptions import (
    InvalidPaymentMethod,
    OrderNotFound,
    PaymentProviderError,
)
from modules.payments.exceptions import PaymentIntentMismatch, PaymentNotAllowed
from shared.domain.money import to_minor_units

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.services import OrderService
    from modules.payments.gateway import StripeGateway

logger = structlog.get_logger(__name__)

WEBHOOK_EVENTS = frozenset(
    {
        "payment_intent.succeeded",
        "payment_intent.processing",
        "payment_intent.payment_failed",
        "payment_intent.canceled",
    }
)

# Intents in these states cannot be confirmed again; a new one is created.
_FINISHED_INTENT_STATES = frozenset({"succeeded", "canceled"})


class PaymentService:
    def __init__(self, order_service: OrderService, gateway: StripeGateway) -> None:
        self._orders = order_service
        self._gateway = gateway

    def create_intent(self, order_id: str) -> Dict[str, Any]:
        """Create (or reuse) the PaymentIntent for a card order.

        Raises:
            OrderNotFound: unknown order id.
            PaymentNotAllowed: COD order, or payment already settled.
            PaymentGatewayError: Stripe call failed.
        """
        order = self._orders.get_order(order_id)
        self._check_payable(order)

        amount_minor = to_minor_units(order.total, order.currency)
        intent = None
        if order.payment_intent_id:
            existing = self._gateway.retrieve_payment_intent(order.payment_intent_id)
            if existing["status"] not in _FINISHED_INTENT_STATES and existing["amount"] == amount_minor:
                intent = existing

        if intent is None:
            intent = self._gateway.create_payment_intent(
                amount_minor=amount_minor,
                currency=order.currency,
                metadata={
                    "order_id": order.order_id,
                    "payment_reference": order.payment_reference,
                },
                idempotency_key=f"{order.order_id}-{order.payment_intent_id or 'first'}",
            )
            self._orders.attach_payment_intent(order.order_id, intent["id"])

        return {
            "clientSecret": intent["client_secret"],
            "paymentIntentId": intent["id"],
            "amount": amount_minor,
            "currency": order.currency,
        }

    def confirm_from_intent(self, order_id: str, intent_id: str) -> Order:
        """Apply the current state of a PaymentIntent to its order.

        Raises:
            PaymentIntentMismatch: the intent was created for another order.
            PaymentGatewayError: Stripe call failed.
            plus everything ``OrderService.confirm_payment`` raises.
        """
        intent = self._gateway.retrieve_payment_intent(intent_id)
        metadata = intent.get("metadata") or {}
        if metadata.get("order_id") != order_id:
            logger.warning(
                "payment.intent_order_mismatch",
                order_id=order_id,
                payment_intent_id=intent_id,
                intent_order_id=metadata.get("order_id"),
            )
            raise PaymentIntentMismatch(
                f"PaymentIntent {intent_id} does not belong to order {order_id}."
            )
        return self._orders.confirm_payment(order_id, self._result_from_intent(intent))

    def handle_webhook(self, payload: bytes, signature: str) -> str:
        """Process a signed Stripe event.  Returns the outcome for the log.

        Events for unknown orders, COD orders or unhandled types are
        acknowledged and ignored so Stripe does not keep redelivering them.

        Raises:
            InvalidWebhookSignature: the payload is not from Stripe.
        """
        event = self._gateway.construct_webhook_event(payload, signature)
        log = logger.bind(stripe_event_id=event.get("id"), stripe_event_type=event["type"])

        if event["type"] not in WEBHOOK_EVENTS:
            log.info("payment.webhook_ignored", reason="unhandled_type")
            return "ignored"

        intent = event["data"]["object"]
        order_id = (intent.get("metadata") or {}).get("order_id")
        if not order_id:
            log.warning("payment.webhook_ignored", reason="missing_order_id")
            return "ignored"

        log = log.bind(order_id=order_id, payment_intent_id=intent.get("id"))
        try:
            self._orders.confirm_payment(order_id, self._result_from_intent(intent))
        except (OrderNotFound, InvalidPaymentMethod) as exc:
            log.warning("payment.webhook_ignored", reason=type(exc).__name__)
            return "ignored"
        except PaymentProviderError as exc:
            log.error("payment.webhook_rejected", error=str(exc))
            return "rejected"

        log.info("payment.webhook_applied")
        return "applied"

    @staticmethod
    def _check_payable(order: Order) -> None:
        if order.is_cash_on_delivery:
            raise PaymentNotAllowed("Cash on delivery orders are not paid by card.")
        if order.status == OrderStatus.CANCELLED:
            raise PaymentNotAllowed("Cancelled orders cannot be paid.")
        if order.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
            raise PaymentNotAllowed(f"Order is already {order.payment_status}.")

    @staticmethod
    def _result_from_intent(intent: Dict[str, Any]) -> PaymentResultDTO:
        return PaymentResultDTO(
            provider_status=intent["status"],
            payment_details={
                "provider": "stripe",
                "payment_intent_id": intent["id"],
                "payment_method_types": list(intent.get("payment_method_types") or []),
            },
            amount_minor=intent.get("amount_received") or intent.get("amount"),
            currency=(intent.get("currency") or "").upper() or None,
        )


def build_payment_service() -> PaymentService:
    from modules.orders.services import build_order_service
    from modules.payments.gateway import StripeGateway

    return PaymentService(order_service=build_order_service(), gateway=StripeGateway())
