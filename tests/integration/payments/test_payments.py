"""Card payments through Stripe PaymentIntents (Stripe API mocked)."""

from __future__ import annotations

import pytest
import stripe

from modules.core.models import OutboxEvent
from modules.orders.models import Order
from modules.orders.services import build_order_service

pytestmark = pytest.mark.integration

INTENTS_URL = "/api/v1/payments/intents/"
WEBHOOK_URL = "/api/v1/payments/webhook/"


def make_intent(order, status="requires_payment_method", intent_id="pi_123", **extra):
    intent = {
        "id": intent_id,
        "object": "payment_intent",
        "amount": 11300,
        "amount_received": 11300 if status == "succeeded" else 0,
        "currency": "usd",
        "status": status,
        "client_secret": f"{intent_id}_secret_abc",
        "metadata": {"order_id": order.order_id, "payment_reference": order.payment_reference},
        "payment_method_types": ["card"],
    }
    intent.update(extra)
    return intent


def _event(intent, event_type="payment_intent.succeeded"):
    return {"id": "evt_1", "type": event_type, "data": {"object": intent}}


class TestCreateIntent:
    def test_creates_intent_for_order_total(self, api_client, card_order, stripe_api):
        create, _ = stripe_api
        create.return_value = make_intent(card_order)

        response = api_client.post(INTENTS_URL, {"orderId": card_order.order_id}, format="json")

        assert response.status_code == 201
        assert response.json() == {
            "clientSecret": "pi_123_secret_abc",
            "paymentIntentId": "pi_123",
            "amount": 11300,
            "currency": "USD",
        }
        kwargs = create.call_args.kwargs
        assert kwargs["amount"] == 11300
        assert kwargs["currency"] == "usd"
        assert kwargs["metadata"]["order_id"] == card_order.order_id
        card_order.refresh_from_db()
        assert card_order.payment_intent_id == "pi_123"

    def test_reuses_open_intent(self, api_client, card_order, stripe_api):
        create, retrieve = stripe_api
        Order.objects.filter(id=card_order.id).update(payment_intent_id="pi_123")
        retrieve.return_value = make_intent(card_order)

        response = api_client.post(INTENTS_URL, {"orderId": card_order.order_id}, format="json")

        assert response.status_code == 201
        create.assert_not_called()

    def test_cash_on_delivery_not_payable(self, api_client, cod_order, stripe_api):
        response = api_client.post(INTENTS_URL, {"orderId": cod_order.order_id}, format="json")

        assert response.status_code == 409
        assert response.json()["code"] == "payment_not_allowed"

    def test_cancelled_order_not_payable(self, api_client, card_order, stripe_api):
        create, _ = stripe_api
        build_order_service().cancel_order(str(card_order.id))

        response = api_client.post(INTENTS_URL, {"orderId": card_order.order_id}, format="json")

        assert response.status_code == 409
        assert response.json()["code"] == "payment_not_allowed"
        create.assert_not_called()

    def test_unknown_order(self, api_client, stripe_api):
        response = api_client.post(INTENTS_URL, {"orderId": "ORD-000000000"}, format="json")
        assert response.status_code == 404

    def test_missing_order_id(self, api_client):
        assert api_client.post(INTENTS_URL, {}, format="json").status_code == 400

    def test_stripe_failure(self, api_client, card_order, stripe_api):
        create, _ = stripe_api
        create.side_effect = stripe.APIConnectionError("network down")

        response = api_client.post(INTENTS_URL, {"orderId": card_order.order_id}, format="json")

        assert response.status_code == 502
        assert response.json()["code"] == "payment_gateway_error"

    def test_missing_secret_key(self, api_client, card_order, stripe_api, settings):
        settings.STRIPE_SECRET_KEY = ""

        response = api_client.post(INTENTS_URL, {"orderId": card_order.order_id}, format="json")

        assert response.status_code == 502


class TestConfirmWithIntent:
    def test_succeeded_intent_marks_order_paid(self, api_client, card_order, stripe_api):
        _, retrieve = stripe_api
        retrieve.return_value = make_intent(card_order, status="succeeded")

        response = api_client.post(
            f"/api/v1/orders/{card_order.order_id}/confirm-payment/",
            {"paymentIntentId": "pi_123"},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["payment_status"] == "paid"
        card_order.refresh_from_db()
        assert card_order.payment_details["payment_intent_id"] == "pi_123"

    def test_intent_for_another_order(self, api_client, card_order, stripe_api):
        _, retrieve = stripe_api
        intent = make_intent(card_order, status="succeeded")
        intent["metadata"]["order_id"] = "ORD-999999999"
        retrieve.return_value = intent

        response = api_client.post(
            f"/api/v1/orders/{card_order.order_id}/confirm-payment/",
            {"paymentIntentId": "pi_123"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["code"] == "payment_intent_mismatch"

    def test_amount_mismatch(self, api_client, card_order, stripe_api):
        _, retrieve = stripe_api
        retrieve.return_value = make_intent(card_order, status="succeeded", amount_received=100)

        response = api_client.post(
            f"/api/v1/orders/{card_order.order_id}/confirm-payment/",
            {"paymentIntentId": "pi_123"},
            format="json",
        )

        assert response.status_code == 422
        assert response.json()["code"] == "payment_amount_mismatch"
        card_order.refresh_from_db()
        assert card_order.payment_status == "pending"


class TestWebhook:
    def test_succeeded_event_applies_payment(self, api_client, card_order, signed_webhook):
        body, headers = signed_webhook(_event(make_intent(card_order, status="succeeded")))

        response = api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        assert response.status_code == 200
        assert response.json() == {"received": True, "outcome": "applied"}
        card_order.refresh_from_db()
        assert card_order.payment_status == "paid"
        assert OutboxEvent.objects.filter(event_type="OrderPaid").count() == 1

    def test_redelivered_event_is_idempotent(self, api_client, card_order, signed_webhook):
        body, headers = signed_webhook(_event(make_intent(card_order, status="succeeded")))

        api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)
        api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        assert OutboxEvent.objects.filter(event_type="OrderPaid").count() == 1

    def test_payment_failed_event(self, api_client, card_order, signed_webhook):
        intent = make_intent(card_order, status="requires_payment_method")
        body, headers = signed_webhook(_event(intent, "payment_intent.payment_failed"))

        api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        card_order.refresh_from_db()
        assert card_order.payment_status == "failed"

    def test_bad_signature(self, api_client, card_order, signed_webhook):
        body, headers = signed_webhook(
            _event(make_intent(card_order, status="succeeded")), secret="whsec_forged"
        )

        response = api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_signature"
        card_order.refresh_from_db()
        assert card_order.payment_status == "pending"

    def test_unhandled_event_type_is_acknowledged(self, api_client, card_order, signed_webhook):
        body, headers = signed_webhook(
            _event(make_intent(card_order), "payment_intent.created")
        )

        response = api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        assert response.json()["outcome"] == "ignored"

    def test_unknown_order_is_acknowledged(self, api_client, card_order, signed_webhook):
        intent = make_intent(card_order, status="succeeded")
        intent["metadata"]["order_id"] = "ORD-999999999"
        body, headers = signed_webhook(_event(intent))

        response = api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        assert response.status_code == 200
        assert response.json()["outcome"] == "ignored"

    def test_cash_on_delivery_is_ignored(self, api_client, cod_order, signed_webhook):
        body, headers = signed_webhook(_event(make_intent(cod_order, status="succeeded")))

        response = api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        assert response.json()["outcome"] == "ignored"

    def test_amount_mismatch_is_rejected(self, api_client, card_order, signed_webhook):
        intent = make_intent(card_order, status="succeeded", amount_received=500)
        body, headers = signed_webhook(_event(intent))

        response = api_client.post(WEBHOOK_URL, body, content_type="application/json", **headers)

        assert response.json()["outcome"] == "rejected"
