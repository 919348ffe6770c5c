"""Stripe client for card payments.

Thin wrapper over the ``stripe`` SDK: PaymentIntent creation and lookup,
and webhook signature verification.  SDK errors are re-raised as
``PaymentGatewayError`` so callers never depend on Stripe's exception tree.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import stripe
import structlog
from django.conf import settings

from modules.payments.exceptions import InvalidWebhookSignature, PaymentGatewayError

logger = structlog.get_logger(__name__)


class StripeGateway:
    """Client for the Stripe PaymentIntents API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ) -> None:
        """
        Args:
            api_key: Stripe secret key.  Defaults to ``STRIPE_SECRET_KEY``.
            webhook_secret: endpoint signing secret.  Defaults to
                ``STRIPE_WEBHOOK_SECRET``.
        """
        self._api_key = api_key or settings.STRIPE_SECRET_KEY
        self._webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

    def _require_key(self) -> str:
        if not self._api_key:
            raise PaymentGatewayError("STRIPE_SECRET_KEY is not configured.")
        return self._api_key

    def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Dict[str, str],
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a PaymentIntent for ``amount_minor`` units of ``currency``.

        Returns:
            The PaymentIntent, including ``id`` and ``client_secret``.

        Raises:
            PaymentGatewayError: Stripe rejected the request or is unreachable.
        """
        log = logger.bind(
            amount_minor=amount_minor,
            currency=currency,
            order_id=metadata.get("order_id"),
        )
        log.info("stripe.payment_intent_creating")
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_minor,
                currency=currency.lower(),
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                api_key=self._require_key(),
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            log.error("stripe.payment_intent_create_failed", error=str(exc))
            raise PaymentGatewayError(str(exc)) from exc

        log.info("stripe.payment_intent_created", payment_intent_id=intent["id"])
        return intent

    def retrieve_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        """
        Raises:
            PaymentGatewayError: unknown intent or Stripe unreachable.
        """
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self._require_key())
        except stripe.StripeError as exc:
            logger.error(
                "stripe.payment_intent_retrieve_failed",
                payment_intent_id=intent_id,
                error=str(exc),
            )
            raise PaymentGatewayError(str(exc)) from exc

        logger.info(
            "stripe.payment_intent_retrieved",
            payment_intent_id=intent_id,
            status=intent["status"],
        )
        return intent

    def construct_webhook_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify the ``Stripe-Signature`` header and parse the event.

        Raises:
            InvalidWebhookSignature: missing or invalid signature, or a
                malformed payload.
            PaymentGatewayError: no webhook secret configured.
        """
        if not self._webhook_secret:
            raise PaymentGatewayError("STRIPE_WEBHOOK_SECRET is not configured.")
        try:
            body = payload.decode("utf-8")
            stripe.WebhookSignature.verify_header(
                body, signature, self._webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
            return json.loads(body)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            logger.warning("stripe.webhook_signature_invalid", error=str(exc))
            raise InvalidWebhookSignature(str(exc)) from exc
