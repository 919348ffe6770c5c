"""Shipping domain exceptions.

Pricing errors are terminal for a checkout attempt: the caller shows the
message and the customer changes the cart or the destination.
"""

from __future__ import annotations


class UnsupportedCountry(Exception):
    """No active tax entry exists for the destination country."""

    def __init__(self, country_code: str) -> None:
        self.country_code = country_code
        super().__init__("We do not ship to this country")


class NoDeliveryRule(Exception):
    """No active delivery rule covers the piece count for the destination."""

    def __init__(self, pieces: int, country_code: str) -> None:
        self.pieces = pieces
        self.country_code = country_code
        super().__init__("No delivery rule found for this order")


class InvalidPieceCount(ValueError):
    """Piece counts start at one."""


class OverlappingDeliveryRule(Exception):
    """The piece range intersects another active rule for the same country."""


class DeliveryRuleNotFound(Exception):
    pass


class CountryNotFound(Exception):
    pass


class CountryAlreadyExists(Exception):
    pass
