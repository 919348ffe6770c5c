"""Django ORM implementation of the Order repository.

All write operations run inside ``transaction.atomic()`` so an order, its
items, its history and its outbox rows land together or not at all.

Concurrency control on status and payment updates uses
``select_for_update()``: one writer per order at a time.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Max, Sum
from django.db.models.functions import TruncDate

from modules.core.outbox import record_events
from modules.orders.constants import PaymentStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        data = dict(data)
        items = data.pop("items")
        order = Order(**data)
        order.save()

        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=item["product_id"],
                    name=item["name"],
                    image=item.get("image", ""),
                    unit_price=item["unit_price"],
                    currency=item["currency"],
                    quantity=item["quantity"],
                    subtotal=Decimal(item["quantity"]) * item["unit_price"],
                )
                for item in items
            ]
        )

        logger.info(
            "order.persisted",
            order_id=order.order_id,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _base_queryset(self):
        return Order.objects.prefetch_related("items", "status_history")

    def get_by_id(self, id: str) -> Optional[Order]:
        """``None`` for non-existent or malformed IDs."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_order_id(self, order_id: str) -> Optional[Order]:
        return self._base_queryset().filter(order_id=order_id).first()

    def get_for_update(self, id: str) -> Optional[Order]:
        """Lock the order row; items are prefetched for the caller."""
        try:
            return (
                Order.objects.select_for_update()
                .prefetch_related("items")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update_by_order_id(self, order_id: str) -> Optional[Order]:
        return (
            Order.objects.select_for_update()
            .prefetch_related("items")
            .filter(order_id=order_id)
            .first()
        )

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._base_queryset().filter(idempotency_key=key).first()

    def list(self, filters: Optional[Dict[str, Any]] = None):
        """QuerySet so DRF filter backends and pagination can chain on it."""
        queryset = Order.objects.prefetch_related("items")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Save / Delete (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist the order and move its pending domain events to the outbox."""
        entity.save()
        rows = record_events(entity, topic=OUTBOX_TOPIC)
        logger.info("order.saved", order_id=entity.order_id, event_count=len(rows))
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.deleted", order_id=order.order_id)
        return True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order: Order,
        field: str,
        new_value: str,
        old_value: Optional[str] = None,
        notes: str = "",
        user: Any = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order=order,
            field=field,
            old_value=old_value,
            new_value=new_value,
            notes=notes,
            user=user if getattr(user, "pk", None) else None,
        )
        logger.info(
            "order.history_added",
            order_id=order.order_id,
            field=field,
            old_value=old_value,
            new_value=new_value,
        )
        return history

    # ------------------------------------------------------------------
    # Dashboard aggregates
    # ------------------------------------------------------------------

    def count_by_status(self) -> Dict[str, int]:
        rows = Order.objects.order_by().values("status").annotate(count=Count("id"))
        return {row["status"]: row["count"] for row in rows}

    def revenue_by_currency(self) -> Dict[str, Decimal]:
        rows = (
            Order.objects.filter(payment_status=PaymentStatus.PAID)
            .order_by()
            .values("currency")
            .annotate(revenue=Sum("total"))
        )
        return {row["currency"]: row["revenue"] or Decimal("0.00") for row in rows}

    def recent(self, limit: int = 10) -> List[Order]:
        return list(Order.objects.order_by("-created_at")[:limit])

    # ------------------------------------------------------------------
    # Period analytics
    # ------------------------------------------------------------------

    def _window(self, since: datetime, currency: str):
        return Order.objects.filter(created_at__gte=since, currency=currency).order_by()

    def period_summary(self, since: datetime, currency: str) -> Dict[str, Any]:
        orders = self._window(since, currency)
        paid = orders.filter(payment_status=PaymentStatus.PAID).aggregate(
            count=Count("id"),
            revenue=Sum("total"),
            customers=Count("customer_email", distinct=True),
        )
        return {
            "total_orders": orders.count(),
            "paid_orders": paid["count"],
            "revenue": paid["revenue"] or Decimal("0.00"),
            "unique_customers": paid["customers"],
            "status_distribution": {
                row["status"]: row["count"]
                for row in orders.values("status").annotate(count=Count("id"))
            },
            "payment_status_distribution": {
                row["payment_status"]: row["count"]
                for row in orders.values("payment_status").annotate(count=Count("id"))
            },
        }

    def daily_paid_revenue(self, since: datetime, currency: str) -> Dict[date, Dict[str, Any]]:
        rows = (
            self._window(since, currency)
            .filter(payment_status=PaymentStatus.PAID)
            .annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(revenue=Sum("total"), orders=Count("id"))
        )
        return {row["day"]: {"revenue": row["revenue"], "orders": row["orders"]} for row in rows}

    def top_products(self, since: datetime, currency: str, limit: int = 10) -> List[Dict[str, Any]]:
        rows = (
            OrderItem.objects.filter(
                order__created_at__gte=since,
                order__currency=currency,
                order__payment_status=PaymentStatus.PAID,
            )
            .order_by()
            .values("product_id")
            .annotate(
                name=Max("name"),
                quantity=Sum("quantity"),
                revenue=Sum("subtotal"),
            )
            .order_by("-revenue", "-quantity", "name")[:limit]
        )
        return list(rows)
