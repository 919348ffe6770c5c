"""Domain events for the Orders bounded context.

Events travel through the transactional outbox as JSON, so extra fields are
plain strings.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    payment_method: str = ""


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    """Payment reached ``paid`` for the first time."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderShipped(DomainEvent):
    tracking_number: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    pass
