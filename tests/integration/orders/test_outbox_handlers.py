"""Post-commit side effects: outbox delivery, emails and stock moves."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import PaymentResultDTO

pytestmark = pytest.mark.integration


def _pay(service, order):
    return service.confirm_payment(order.order_id, PaymentResultDTO(provider_status="Authorised"))


def _ship(service, order, tracking="1Z999"):
    service.update_status(str(order.id), "confirmed")
    service.update_status(str(order.id), "processing")
    return service.update_status(str(order.id), "shipped", tracking_number=tracking)


class TestPaidOrder:
    def test_payment_sends_one_email_and_takes_stock(
        self, service, place_order, product, run_outbox, mailoutbox
    ):
        order = place_order((product, 2))
        _pay(service, order)

        result = run_outbox()

        assert result["failed"] == 0
        assert len(mailoutbox) == 1
        message = mailoutbox[0]
        assert message.to == ["jane@example.com"]
        assert order.order_id in message.subject
        assert "113.00 USD" in message.body
        product.refresh_from_db()
        assert product.stock_quantity == 18
        order.refresh_from_db()
        assert order.payment_email_sent is True
        assert order.stock_updated is True

    def test_redelivered_event_has_no_second_effect(
        self, service, place_order, product, run_outbox, mailoutbox
    ):
        order = place_order((product, 2))
        _pay(service, order)
        run_outbox()

        OutboxEvent.objects.filter(event_type="OrderPaid").update(status=EventStatus.PENDING)
        run_outbox()

        assert len(mailoutbox) == 1
        product.refresh_from_db()
        assert product.stock_quantity == 18

    def test_email_failure_is_retried_without_moving_stock_twice(
        self, service, place_order, product, run_outbox, mailoutbox
    ):
        order = place_order((product, 2))
        _pay(service, order)

        with patch("modules.orders.handlers.send_mail", side_effect=ConnectionError("smtp down")):
            result = run_outbox()

        assert result["failed"] == 1
        event = OutboxEvent.objects.get(event_type="OrderPaid")
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 1
        assert "smtp down" in event.error_message

        run_outbox()

        event.refresh_from_db()
        assert event.status == EventStatus.PUBLISHED
        assert len(mailoutbox) == 1
        product.refresh_from_db()
        assert product.stock_quantity == 18

    def test_gives_up_after_max_retries(self, service, place_order, product, run_outbox, settings):
        settings.OUTBOX_MAX_RETRIES = 2
        order = place_order((product, 1))
        _pay(service, order)

        with patch("modules.orders.handlers.send_mail", side_effect=ConnectionError("smtp down")):
            for _ in range(4):
                run_outbox()

        event = OutboxEvent.objects.get(event_type="OrderPaid")
        assert event.retry_count == 2
        assert event.status == EventStatus.FAILED


class TestCashOnDelivery:
    def test_stock_taken_at_creation(self, place_order, product, run_outbox, mailoutbox):
        place_order((product, 3), payment_method=PaymentMethod.CASH_ON_DELIVERY)

        run_outbox()

        product.refresh_from_db()
        assert product.stock_quantity == 17
        assert mailoutbox == []

    def test_cash_collected_does_not_take_stock_again(
        self, service, place_order, product, run_outbox, mailoutbox
    ):
        order = place_order((product, 3), payment_method=PaymentMethod.CASH_ON_DELIVERY)
        run_outbox()

        service.update_payment_status(str(order.id), "paid")
        run_outbox()

        product.refresh_from_db()
        assert product.stock_quantity == 17
        assert len(mailoutbox) == 1


class TestShipping:
    def test_shipping_email_sent_once(self, service, place_order, product, run_outbox, mailoutbox):
        order = place_order((product, 1))
        _ship(service, order)

        run_outbox()
        run_outbox()

        assert len(mailoutbox) == 1
        assert "1Z999" in mailoutbox[0].body
        order.refresh_from_db()
        assert order.shipping_email_sent is True


class TestCancellation:
    def test_cancel_returns_taken_stock_once(self, service, place_order, product, run_outbox):
        order = place_order((product, 2))
        _pay(service, order)
        run_outbox()

        service.cancel_order(str(order.id))
        run_outbox()
        OutboxEvent.objects.filter(event_type="OrderCancelled").update(status=EventStatus.PENDING)
        run_outbox()

        product.refresh_from_db()
        assert product.stock_quantity == 20
        order.refresh_from_db()
        assert order.stock_released is True

    def test_cancel_unpaid_card_order_leaves_stock(self, service, place_order, product, run_outbox):
        order = place_order((product, 2))
        service.cancel_order(str(order.id))

        run_outbox()

        product.refresh_from_db()
        assert product.stock_quantity == 20
        order.refresh_from_db()
        assert order.stock_released is False

    def test_payment_after_cancellation_leaves_stock(
        self, service, place_order, product, run_outbox
    ):
        order = place_order((product, 2))
        service.cancel_order(str(order.id))
        run_outbox()

        _pay(service, order)
        run_outbox()

        product.refresh_from_db()
        assert product.stock_quantity == 20
        order.refresh_from_db()
        assert order.status == "cancelled"
        assert order.payment_status == "paid"
        assert order.stock_updated is False
