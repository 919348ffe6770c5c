"""Order domain constants.

Two independent state machines live on an order: the fulfilment ``status``
(driven by the back office) and the ``payment_status`` (driven by the
payment provider or, for cash on delivery, by an operator).
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PaymentMethod(models.TextChoices):
    CARD = "card", "Card"
    CASH_ON_DELIVERY = "cash_on_delivery", "Cash on delivery"


class HistoryField(models.TextChoices):
    STATUS = "status", "Status"
    PAYMENT_STATUS = "payment_status", "Payment status"


STATUS_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES: set[str] = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING: {
        PaymentStatus.PROCESSING,
        PaymentStatus.PAID,
        PaymentStatus.FAILED,
    },
    PaymentStatus.PROCESSING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    # A declined customer may retry with another card.
    PaymentStatus.FAILED: {PaymentStatus.PROCESSING, PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}

TERMINAL_PAYMENT_STATUSES: set[str] = {PaymentStatus.REFUNDED}

# Raw provider result codes (Adyen-style result codes and Stripe
# PaymentIntent statuses), matched case-insensitively.
PROVIDER_STATUS_MAP: dict[str, str] = {
    "authorised": PaymentStatus.PAID,
    "succeeded": PaymentStatus.PAID,
    "pending": PaymentStatus.PROCESSING,
    "received": PaymentStatus.PROCESSING,
    "processing": PaymentStatus.PROCESSING,
    "requires_action": PaymentStatus.PROCESSING,
    "requires_capture": PaymentStatus.PROCESSING,
    "requires_confirmation": PaymentStatus.PROCESSING,
    "refused": PaymentStatus.FAILED,
    "error": PaymentStatus.FAILED,
    "cancelled": PaymentStatus.FAILED,
    "canceled": PaymentStatus.FAILED,
    "requires_payment_method": PaymentStatus.FAILED,
}

ORDER_ID_PREFIX = "ORD"
PAYMENT_REFERENCE_PREFIX = "REF"
ORDER_ID_MAX_RETRIES = 5

# Back-office analytics windows, in days ending today.
ANALYTICS_PERIODS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_ANALYTICS_PERIOD = "30d"


def can_transition_status(current: str, new: str) -> bool:
    return new in STATUS_TRANSITIONS.get(current, set())


def can_transition_payment(current: str, new: str) -> bool:
    return new in PAYMENT_TRANSITIONS.get(current, set())


def map_provider_status(raw: str) -> str:
    """Translate a provider result code into a ``PaymentStatus``.

    Raises:
        PaymentProviderError: the code is not recognised.
    """
    from modules.orders.exceptions import PaymentProviderError

    mapped = PROVIDER_STATUS_MAP.get(str(raw or "").strip().lower())
    if mapped is None:
        raise PaymentProviderError(f"Unknown payment provider status {raw!r}.")
    return mapped
