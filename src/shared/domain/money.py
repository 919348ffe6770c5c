"""Money value type.

Prices travel through the system as ``Decimal`` amounts with an explicit
ISO-4217 currency.  Legacy display strings such as ``"$42.00 USD"`` are
parsed exactly once, at the catalog ingestion boundary, via
:meth:`Money.parse`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

CENT = Decimal("0.01")

_CURRENCY_SYMBOLS = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "₹": "INR",
    "¥": "JPY",
}

_PRICE_PATTERN = re.compile(
    r"^\s*(?P<symbol>[^\d\s.,-]+)?\s*"
    r"(?P<amount>-?[\d,]*\.?\d+)\s*"
    r"(?P<currency>[A-Za-z]{3})?\s*$"
)


def quantize(value: Union[Decimal, int, str]) -> Decimal:
    """Round to cents using commercial rounding (half up)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", quantize(self.amount))
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def parse(cls, raw: Union[str, int, float, Decimal], default_currency: str = "USD") -> Money:
        """Parse ``"$42.00 USD"``, ``"42"`` or ``"€19.99"`` into Money.

        Thousands separators (``,``) are stripped.  An explicit currency code
        wins over a symbol; a symbol wins over ``default_currency``.

        Raises:
            ValueError: if no amount can be extracted.
        """
        if isinstance(raw, (int, Decimal)):
            return cls(Decimal(raw), default_currency)
        if isinstance(raw, float):
            return cls(Decimal(str(raw)), default_currency)

        match = _PRICE_PATTERN.match(raw or "")
        if not match:
            raise ValueError(f"Unparseable price: {raw!r}")

        try:
            amount = Decimal(match.group("amount").replace(",", ""))
        except InvalidOperation as exc:
            raise ValueError(f"Unparseable price: {raw!r}") from exc

        currency = match.group("currency")
        if not currency:
            currency = _CURRENCY_SYMBOLS.get(match.group("symbol") or "", default_currency)
        return cls(amount, currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


# Currencies without a fractional unit at the payment provider.
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY"})


def to_minor_units(amount: Decimal, currency: str) -> int:
    if currency.upper() in ZERO_DECIMAL_CURRENCIES:
        return int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return int(quantize(amount) * 100)
