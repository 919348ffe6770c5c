"""Order, OrderItem, and OrderStatusHistory models.

Business rules implemented:
- ``order_id`` (``ORD-…``) and ``payment_reference`` (``REF-…``) are
  generated on first save, retried on collision, and never change.
- The customer and every line are snapshots taken at checkout; items keep
  the product id as a plain UUID so catalog deletes never touch orders.
- Pricing fields (subtotal, shipping, tax, total) are computed once at
  creation and never recomputed.
- Fulfilment ``status`` and ``payment_status`` are separate state machines;
  every change to either is recorded in ``OrderStatusHistory``.
- Notification and stock flags make outbox handlers idempotent.
"""

from __future__ import annotations

import secrets
import time
from decimal import Decimal
from typing import Any, List, Tuple

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import IntegrityError, models

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_ID_MAX_RETRIES,
    ORDER_ID_PREFIX,
    PAYMENT_REFERENCE_PREFIX,
    TERMINAL_STATUSES,
    HistoryField,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    can_transition_payment,
    can_transition_status,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

_MONEY = {"max_digits": 12, "decimal_places": 2}


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_id`` is the public identifier shown to customers and used by
    the storefront API; the UUIDv7 ``id`` is used by the back office.

    ``idempotency_key`` is nullable: only API clients that send an
    ``Idempotency-Key`` header carry one.
    """

    order_id = models.CharField(max_length=20, unique=True, editable=False)
    payment_reference = models.CharField(max_length=20, unique=True, editable=False)

    # Customer snapshot
    customer_email = models.EmailField()
    customer_first_name = models.CharField(max_length=100)
    customer_last_name = models.CharField(max_length=100)
    customer_phone = models.CharField(max_length=40, blank=True, default="")
    customer_address = models.CharField(max_length=255)
    customer_city = models.CharField(max_length=100)
    customer_zip_code = models.CharField(max_length=20, blank=True, default="")
    customer_country = models.CharField(max_length=120)
    country_code = models.CharField(max_length=2)

    # Pricing snapshot
    currency = models.CharField(max_length=3)
    subtotal = models.DecimalField(**_MONEY)
    shipping_cost = models.DecimalField(**_MONEY)
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    tax_amount = models.DecimalField(**_MONEY)
    total = models.DecimalField(**_MONEY)
    delivery_description = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    payment_details = models.JSONField(default=dict, blank=True)
    payment_intent_id = models.CharField(max_length=255, blank=True, default="", db_index=True)
    tracking_number = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    # Side-effect bookkeeping
    payment_email_sent = models.BooleanField(default=False)
    payment_email_sent_at = models.DateTimeField(null=True, blank=True)
    shipping_email_sent = models.BooleanField(default=False)
    shipping_email_sent_at = models.DateTimeField(null=True, blank=True)
    stock_updated = models.BooleanField(default=False)
    stock_updated_at = models.DateTimeField(null=True, blank=True)
    stock_released = models.BooleanField(default=False)
    stock_released_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total__gte=0),
                name="orders_total_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_cash_on_delivery(self) -> bool:
        return self.payment_method == PaymentMethod.CASH_ON_DELIVERY

    def can_transition_to(self, new_status: str) -> bool:
        return can_transition_status(self.status, new_status)

    def can_transition_payment_to(self, new_status: str) -> bool:
        return can_transition_payment(self.payment_status, new_status)

    @property
    def customer_name(self) -> str:
        return f"{self.customer_first_name} {self.customer_last_name}".strip()

    def stock_lines(self) -> List[Tuple[str, int]]:
        """``(product_id, quantity)`` pairs for stock moves."""
        return [(str(item.product_id), item.quantity) for item in self.items.all()]

    # ------------------------------------------------------------------
    # Identifier generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_public_id(prefix: str) -> str:
        """``<prefix>-`` + last 6 digits of the ms clock + 3 random digits."""
        millis = str(int(time.time() * 1000))[-6:]
        return f"{prefix}-{millis}{secrets.randbelow(1000):03d}"

    def _unique_id(self, field: str, prefix: str) -> str:
        for _ in range(ORDER_ID_MAX_RETRIES):
            candidate = self.generate_public_id(prefix)
            if not Order.objects.filter(**{field: candidate}).exists():
                return candidate
            logger.warning("order.identifier_collision", field=field, candidate=candidate)
        raise IntegrityError(
            f"Failed to generate unique {field} after {ORDER_ID_MAX_RETRIES} attempts"
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_id:
            self.order_id = self._unique_id("order_id", ORDER_ID_PREFIX)
        if not self.payment_reference:
            self.payment_reference = self._unique_id(
                "payment_reference", PAYMENT_REFERENCE_PREFIX
            )
        if self.country_code:
            self.country_code = self.country_code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_id} ({self.status}/{self.payment_status})"


class OrderItem(BaseModel):
    """Snapshot of one cart line at checkout.

    ``subtotal`` is always ``quantity * unit_price``, recalculated on save.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=255)
    image = models.URLField(max_length=500, blank=True, default="")
    unit_price = models.DecimalField(**_MONEY)
    currency = models.CharField(max_length=3)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    subtotal = models.DecimalField(editable=False, **_MONEY)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = Decimal(self.quantity) * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity} ({self.subtotal} {self.currency})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for both order state machines.

    ``field`` says which dimension changed.  ``user`` is ``None`` for changes
    made by the customer flow, the payment provider or the system.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    field = models.CharField(max_length=20, choices=HistoryField.choices)
    old_value = models.CharField(max_length=20, null=True, blank=True)  # noqa: DJ01
    new_value = models.CharField(max_length=20)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["order", "created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} {self.field}: {self.old_value} -> {self.new_value}"
