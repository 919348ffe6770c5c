from decimal import Decimal

# Wildcard destination: a rule with this country applies everywhere unless a
# country-specific rule covers the same piece count.
ALL_COUNTRIES = "ALL"

DEFAULT_TAX_PERCENTAGE = Decimal("8")


def normalize_country_code(raw) -> str:
    return str(raw or "").strip().upper()
