from __future__ import annotations

import pytest

from modules.core.outbox import OutboxProcessor
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CartLineDTO, CreateOrderDTO, CustomerDTO
from modules.orders.services import build_order_service
from shared.infrastructure.bus import event_bus


@pytest.fixture()
def service():
    return build_order_service()


@pytest.fixture()
def checkout(customer_payload):
    """Factory for ``CreateOrderDTO`` from ``(product, quantity)`` pairs."""

    def _build(*lines, payment_method=PaymentMethod.CARD, idempotency_key=None, **customer):
        return CreateOrderDTO(
            customer=CustomerDTO(**{**customer_payload, **customer}),
            items=[CartLineDTO(product_id=p.id, quantity=q) for p, q in lines],
            payment_method=payment_method,
            idempotency_key=idempotency_key,
        )

    return _build


@pytest.fixture()
def place_order(service, checkout, us, standard_rules):
    """Create an order through the service and return it."""

    def _place(*lines, **kwargs):
        order, _ = service.create_order(checkout(*lines, **kwargs))
        return order

    return _place


@pytest.fixture()
def run_outbox(settings):
    """Drain the outbox synchronously (post-commit hooks never fire in tests)."""

    def _run(batch_size=100):
        return OutboxProcessor(bus=event_bus, max_retries=settings.OUTBOX_MAX_RETRIES).run(
            batch_size
        )

    return _run
