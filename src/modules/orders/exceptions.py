"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist."""


class InvalidOrderStatus(Exception):
    """The fulfilment status transition is not allowed."""


class InvalidPaymentStatus(Exception):
    """The payment status transition is not allowed."""


class InvalidPaymentMethod(Exception):
    """The operation does not apply to the order's payment method."""


class PaymentProviderError(Exception):
    """The provider's answer could not be interpreted or trusted."""


class PaymentAmountMismatch(PaymentProviderError):
    """The provider charged a different amount or currency than the order total."""


class OrderPersistenceError(Exception):
    """The order could not be written; nothing was persisted."""


class ProductNotFound(Exception):
    """A cart line references a product that does not exist."""


class InactiveProduct(Exception):
    """A cart line references a product that is not for sale."""


class InsufficientStock(Exception):
    """Not enough stock for a cart line."""


class CurrencyMismatch(Exception):
    """Cart lines are priced in more than one currency."""


class InvalidAnalyticsPeriod(Exception):
    """The analytics window is not one of the supported periods."""
