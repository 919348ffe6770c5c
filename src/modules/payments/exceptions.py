"""Payment domain exceptions.

Raised by the gateway and the payment service; views translate them into
HTTP responses.
"""

from __future__ import annotations


class PaymentGatewayError(Exception):
    """The payment provider could not be reached or rejected the call."""


class PaymentNotAllowed(Exception):
    """The order cannot be paid by card right now (COD, already paid, ...)."""


class PaymentIntentMismatch(Exception):
    """The PaymentIntent belongs to a different order."""


class InvalidWebhookSignature(Exception):
    """The webhook payload is not signed by the provider."""
