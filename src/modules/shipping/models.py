"""Shipping models: per-country tax entries and piece-count delivery rules.

Business rules implemented:
- Country codes are ISO-2, stored uppercase, unique.
- A country without an active row is not shipped to; there is no default
  tax rate.
- Delivery rules cover an inclusive ``[min_pieces, max_pieces]`` band for
  one country or for ``ALL``; ``max_pieces >= min_pieces >= 1`` is enforced
  both in ``clean()`` and by database check constraints.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.shipping.constants import (
    ALL_COUNTRIES,
    DEFAULT_TAX_PERCENTAGE,
    normalize_country_code,
)


class Country(BaseModel):
    country_code = models.CharField(max_length=2, unique=True)
    country_name = models.CharField(max_length=120)
    # Informational flat cost shown in the back office; checkout shipping
    # always comes from the delivery rules.
    base_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    tax_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=DEFAULT_TAX_PERCENTAGE,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "countries"
        ordering = ["country_name"]
        verbose_name_plural = "countries"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(tax_percentage__gte=0, tax_percentage__lte=100),
                name="countries_tax_percentage_range",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        self.country_code = normalize_country_code(self.country_code)
        self.country_name = (self.country_name or "").strip()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.country_name} ({self.country_code})"


class DeliveryRule(BaseModel):
    min_pieces = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    max_pieces = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    country = models.CharField(max_length=3, default=ALL_COUNTRIES)
    delivery_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    description = models.CharField(max_length=255, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "delivery_rules"
        ordering = ["country", "min_pieces", "max_pieces"]
        indexes = [
            models.Index(
                fields=["country", "is_active", "min_pieces"],
                name="delivery_rules_lookup_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["min_pieces", "max_pieces", "country"],
                name="delivery_rules_unique_band",
            ),
            models.CheckConstraint(
                condition=models.Q(min_pieces__gte=1),
                name="delivery_rules_min_pieces_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(max_pieces__gte=models.F("min_pieces")),
                name="delivery_rules_max_gte_min",
            ),
            models.CheckConstraint(
                condition=models.Q(delivery_cost__gte=0),
                name="delivery_rules_cost_non_negative",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if (
            self.min_pieces is not None
            and self.max_pieces is not None
            and self.max_pieces < self.min_pieces
        ):
            raise ValidationError(
                {"max_pieces": "max_pieces must be greater than or equal to min_pieces."}
            )

    def save(self, *args, **kwargs) -> None:
        self.country = normalize_country_code(self.country) or ALL_COUNTRIES
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.country} {self.min_pieces}-{self.max_pieces}: {self.delivery_cost}"
