"""Integration tests for the Celery wiring."""

from decimal import Decimal

import pytest

from modules.core.models import EventStatus, OutboxEvent

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Run tasks synchronously in the test process."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class TestCeleryConfig:
    """Celery is loaded from the Django settings."""

    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "storefront"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "storefront"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE

    def test_outbox_is_polled_by_beat(self, settings):
        entry = settings.CELERY_BEAT_SCHEDULE["process-outbox"]
        assert entry["task"] == "core.process_outbox"
        assert entry["schedule"] > 0


class TestDebugTask:
    def test_debug_task_returns_success(self):
        from modules.core.tasks import debug_task

        result = debug_task.delay()

        assert result.successful()
        assert result.result["status"] == "ok"

    def test_debug_task_direct_call(self):
        from modules.core.tasks import debug_task

        assert debug_task() == {"status": "ok", "message": "Celery is working"}


class TestProcessOutboxTask:
    def test_empty_outbox(self):
        from modules.core.tasks import process_outbox

        result = process_outbox.delay()

        assert result.successful()
        assert result.result == {"published": 0, "failed": 0}

    def test_delivers_order_events(self, us, standard_rules, product, customer_payload):
        from modules.core.tasks import process_outbox
        from modules.orders.dtos import CartLineDTO, CreateOrderDTO, CustomerDTO
        from modules.orders.services import build_order_service

        build_order_service().create_order(
            CreateOrderDTO(
                customer=CustomerDTO(**customer_payload),
                items=[CartLineDTO(product_id=product.id, quantity=1)],
                payment_method="card",
            )
        )

        result = process_outbox.delay(batch_size=10)

        assert result.result["published"] == 1
        assert not OutboxEvent.objects.exclude(status=EventStatus.PUBLISHED).exists()
        product.refresh_from_db()
        assert product.stock_quantity == 20
        assert product.price == Decimal("50.00")
