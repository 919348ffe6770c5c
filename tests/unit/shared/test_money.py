from decimal import Decimal

import pytest

from shared.domain.money import Money, quantize, to_minor_units

pytestmark = pytest.mark.unit


class TestMoneyParse:
    @pytest.mark.parametrize(
        ("raw", "amount", "currency"),
        [
            ("$42.00 USD", Decimal("42.00"), "USD"),
            ("42", Decimal("42.00"), "USD"),
            ("€19.99", Decimal("19.99"), "EUR"),
            ("£5", Decimal("5.00"), "GBP"),
            ("1,299.50 inr", Decimal("1299.50"), "INR"),
            ("$10 CAD", Decimal("10.00"), "CAD"),
        ],
    )
    def test_display_strings(self, raw, amount, currency):
        money = Money.parse(raw)
        assert money.amount == amount
        assert money.currency == currency

    def test_numbers_use_default_currency(self):
        assert Money.parse(Decimal("3.5"), default_currency="eur") == Money(Decimal("3.50"), "EUR")
        assert Money.parse(7).amount == Decimal("7.00")
        assert Money.parse(0.1).amount == Decimal("0.10")

    @pytest.mark.parametrize("raw", ["", "free", "$", "12.34.56 USD"])
    def test_unparseable_raises(self, raw):
        with pytest.raises(ValueError):
            Money.parse(raw)

    def test_str(self):
        assert str(Money(Decimal("42"), "usd")) == "42.00 USD"


class TestRounding:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("0.005", "0.01"), ("0.004", "0.00"), ("2.675", "2.68"), ("-1.005", "-1.01")],
    )
    def test_quantize_half_up(self, value, expected):
        assert quantize(Decimal(value)) == Decimal(expected)


class TestMinorUnits:
    def test_two_decimal_currency(self):
        assert to_minor_units(Decimal("113.00"), "USD") == 11300
        assert to_minor_units(Decimal("0.99"), "EUR") == 99

    def test_zero_decimal_currency(self):
        assert to_minor_units(Decimal("1500"), "jpy") == 1500
