"""Event handlers for Orders domain events.

Handlers run from the outbox worker, after the order transaction has
committed, and may be retried.  Each one locks the order row and checks its
bookkeeping flag first, so a redelivered event never sends a second email or
moves stock twice.
"""

from __future__ import annotations

from typing import Optional

import structlog
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.template.loader import render_to_string
from django.utils import timezone

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaid,
    OrderShipped,
    OrderStatusChanged,
)
from modules.orders.models import Order
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


def _lock_order(order_id) -> Optional[Order]:
    order = (
        Order.objects.select_for_update()
        .prefetch_related("items")
        .filter(id=order_id)
        .first()
    )
    if order is None:
        logger.warning("order.handler_order_missing", order_pk=str(order_id))
    return order


def _product_service():
    from modules.catalog.repositories.django_repository import (
        CategoryDjangoRepository,
        ProductDjangoRepository,
    )
    from modules.catalog.services import ProductService

    return ProductService(
        repository=ProductDjangoRepository(),
        category_repository=CategoryDjangoRepository(),
    )


def _send_order_email(order: Order, template: str, subject: str) -> None:
    body = render_to_string(
        f"orders/emails/{template}.txt",
        {"order": order, "items": list(order.items.all())},
    )
    send_mail(
        subject=subject,
        message=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[order.customer_email],
        fail_silently=False,
    )


def _take_stock(order: Order) -> None:
    shortfalls = _product_service().remove_stock(order.stock_lines())
    order.stock_updated = True
    order.stock_updated_at = timezone.now()
    order.save(update_fields=["stock_updated", "stock_updated_at"])
    logger.info(
        "order.stock_taken",
        order_id=order.order_id,
        shortfalls=shortfalls or None,
    )


class PaymentConfirmationEmailHandler(IEventHandler[OrderPaid]):
    def handle(self, event: OrderPaid) -> None:
        with transaction.atomic():
            order = _lock_order(event.aggregate_id)
            if order is None or order.payment_email_sent:
                return
            _send_order_email(
                order,
                "payment_confirmation",
                f"Payment received for order {order.order_id}",
            )
            order.payment_email_sent = True
            order.payment_email_sent_at = timezone.now()
            order.save(
                update_fields=["payment_email_sent", "payment_email_sent_at"]
            )
        logger.info("order.payment_email_sent", order_id=order.order_id)


class PaidOrderStockHandler(IEventHandler[OrderPaid]):
    """Card orders take stock once the payment is confirmed."""

    def handle(self, event: OrderPaid) -> None:
        with transaction.atomic():
            order = _lock_order(event.aggregate_id)
            if order is None or order.stock_updated:
                return
            if order.status == OrderStatus.CANCELLED:
                logger.warning(
                    "order.stock_skipped", order_id=order.order_id, reason="cancelled"
                )
                return
            _take_stock(order)


class CashOnDeliveryStockHandler(IEventHandler[OrderCreated]):
    """Cash-on-delivery orders take stock as soon as they are placed."""

    def handle(self, event: OrderCreated) -> None:
        if event.payment_method != PaymentMethod.CASH_ON_DELIVERY:
            return
        with transaction.atomic():
            order = _lock_order(event.aggregate_id)
            if order is None or order.stock_updated:
                return
            _take_stock(order)


class ShippingNotificationHandler(IEventHandler[OrderShipped]):
    def handle(self, event: OrderShipped) -> None:
        with transaction.atomic():
            order = _lock_order(event.aggregate_id)
            if order is None or order.shipping_email_sent:
                return
            _send_order_email(
                order,
                "shipping_notification",
                f"Your order {order.order_id} is on its way",
            )
            order.shipping_email_sent = True
            order.shipping_email_sent_at = timezone.now()
            order.save(
                update_fields=[
                    "shipping_email_sent",
                    "shipping_email_sent_at",
                ]
            )
        logger.info("order.shipping_email_sent", order_id=order.order_id)


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    """Give back stock taken for a cancelled order, once."""

    def handle(self, event: OrderCancelled) -> None:
        with transaction.atomic():
            order = _lock_order(event.aggregate_id)
            if order is None or not order.stock_updated or order.stock_released:
                return
            _product_service().restore_stock(order.stock_lines())
            order.stock_released = True
            order.stock_released_at = timezone.now()
            order.save(update_fields=["stock_released", "stock_released_at"])
        logger.info("order.stock_released", order_id=order.order_id)


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.status_change_processed",
            order_pk=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


payment_confirmation_email_handler = PaymentConfirmationEmailHandler()
paid_order_stock_handler = PaidOrderStockHandler()
cash_on_delivery_stock_handler = CashOnDeliveryStockHandler()
shipping_notification_handler = ShippingNotificationHandler()
order_cancelled_handler = OrderCancelledHandler()
order_status_changed_handler = OrderStatusChangedHandler()
