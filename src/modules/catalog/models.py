"""Catalog models: Product and Category.

Business rules implemented:
- Price is a positive ``Decimal`` with an explicit ``currency``; string
  prices are parsed before they reach the model (see ``dtos.py``).
- ``in_stock`` is derived from ``stock_quantity`` on every save.
- Stock never goes negative: decrements are clamped at zero and logged.
- A hot deal keeps the pre-discount price in ``deal_original_price`` so it
  can be restored; re-applying a deal always discounts from that original.
- Products are soft-deleted; order snapshots never reference them by FK.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import BaseModel, SoftDeleteModel
from shared.domain.money import quantize

logger = structlog.get_logger(__name__)


class Currency(models.TextChoices):
    USD = "USD", "US Dollar"
    EUR = "EUR", "Euro"
    GBP = "GBP", "Pound Sterling"
    INR = "INR", "Indian Rupee"
    PKR = "PKR", "Pakistani Rupee"
    AED = "AED", "UAE Dirham"
    SAR = "SAR", "Saudi Riyal"
    CAD = "CAD", "Canadian Dollar"
    AUD = "AUD", "Australian Dollar"
    JPY = "JPY", "Yen"


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"


class Category(BaseModel):
    name = models.CharField(max_length=120, unique=True)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)
    image_url = models.URLField(blank=True, default="")

    class Meta:
        db_table = "categories"
        ordering = ["sort_order", "name"]
        verbose_name_plural = "categories"

    def save(self, *args, **kwargs) -> None:
        if self.name:
            self.name = self.name.strip()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.name


class Product(SoftDeleteModel):
    """Sellable catalog item."""

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(
        max_length=3,
        choices=Currency.choices,
        default=Currency.USD,
    )
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )
    images = models.JSONField(default=list, blank=True)
    stock_quantity = models.PositiveIntegerField(default=0)
    in_stock = models.BooleanField(default=False, editable=False)
    featured = models.BooleanField(default=False)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )

    hot_deal = models.BooleanField(default=False)
    hot_deal_end = models.DateTimeField(null=True, blank=True)
    deal_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    deal_original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"], name="products_status_idx"),
            models.Index(fields=["hot_deal"], name="products_hot_deal_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": "Price must be greater than zero."})

    @property
    def is_sellable(self) -> bool:
        return self.status == ProductStatus.ACTIVE and not self.is_deleted

    @property
    def main_image(self) -> str:
        return self.images[0] if self.images else ""

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def decrement_stock(self, quantity: int) -> int:
        """Remove ``quantity`` units, clamping at zero.  Returns the shortfall."""
        shortfall = max(0, quantity - self.stock_quantity)
        if shortfall:
            logger.warning(
                "product.stock_shortfall",
                product_id=str(self.id),
                requested=quantity,
                available=self.stock_quantity,
            )
        self.stock_quantity = max(0, self.stock_quantity - quantity)
        return shortfall

    def increment_stock(self, quantity: int) -> None:
        self.stock_quantity += quantity

    # ------------------------------------------------------------------
    # Hot deals
    # ------------------------------------------------------------------

    def apply_hot_deal(self, percentage: Decimal, ends_at) -> None:
        original = self.deal_original_price if self.hot_deal else self.price
        self.deal_original_price = original
        self.deal_percentage = percentage
        self.hot_deal_end = ends_at
        self.hot_deal = True
        self.price = quantize(original * (Decimal("100") - percentage) / Decimal("100"))

    def clear_hot_deal(self) -> None:
        if self.deal_original_price is not None:
            self.price = self.deal_original_price
        self.hot_deal = False
        self.deal_percentage = None
        self.hot_deal_end = None
        self.deal_original_price = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args, **kwargs) -> None:
        self.in_stock = self.stock_quantity > 0
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "stock_quantity" in update_fields:
            kwargs["update_fields"] = list(set(update_fields) | {"in_stock"})
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} ({self.price} {self.currency})"
