from __future__ import annotations

import hashlib
import hmac
import json
import time
from unittest.mock import patch

import pytest

from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CartLineDTO, CreateOrderDTO, CustomerDTO
from modules.orders.services import build_order_service


@pytest.fixture()
def card_order(customer_payload, product, us, standard_rules):
    """Card order for 2 x 50.00 USD: total 113.00."""
    order, _ = build_order_service().create_order(
        CreateOrderDTO(
            customer=CustomerDTO(**customer_payload),
            items=[CartLineDTO(product_id=product.id, quantity=2)],
            payment_method=PaymentMethod.CARD,
        )
    )
    return order


@pytest.fixture()
def cod_order(customer_payload, product, us, standard_rules):
    order, _ = build_order_service().create_order(
        CreateOrderDTO(
            customer=CustomerDTO(**customer_payload),
            items=[CartLineDTO(product_id=product.id, quantity=1)],
            payment_method=PaymentMethod.CASH_ON_DELIVERY,
        )
    )
    return order


@pytest.fixture()
def stripe_api():
    """Patch the Stripe PaymentIntent API calls."""
    with patch("stripe.PaymentIntent.create") as create, patch(
        "stripe.PaymentIntent.retrieve"
    ) as retrieve:
        yield create, retrieve


@pytest.fixture()
def signed_webhook(settings):
    """Build ``(body, headers)`` for a Stripe event signed with the test secret."""

    def _sign(event: dict, secret: str | None = None):
        body = json.dumps(event)
        timestamp = int(time.time())
        digest = hmac.new(
            (secret or settings.STRIPE_WEBHOOK_SECRET).encode(),
            f"{timestamp}.{body}".encode(),
            hashlib.sha256,
        ).hexdigest()
        return body, {"HTTP_STRIPE_SIGNATURE": f"t={timestamp},v1={digest}"}

    return _sign
