"""Domain events primitives for the modular monolith."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4

_BASE_FIELDS = frozenset({"aggregate_id", "event_id", "occurred_on", "event_name"})


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event (immutable)."""

    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_name: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", self.__class__.__name__)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> DomainEvent:
        """Rebuild an event from its JSON outbox payload."""
        occurred_on = payload.get("occurred_on")
        kwargs: Dict[str, Any] = {"aggregate_id": UUID(str(payload["aggregate_id"]))}
        if payload.get("event_id"):
            kwargs["event_id"] = UUID(str(payload["event_id"]))
        if occurred_on:
            kwargs["occurred_on"] = datetime.fromisoformat(occurred_on)
        for f in fields(cls):
            if f.init and f.name not in _BASE_FIELDS and f.name in payload:
                kwargs[f.name] = payload[f.name]
        return cls(**kwargs)


class DomainEventMixin:
    """Mixin for aggregate roots that collect domain events in memory."""

    _domain_events: list[DomainEvent]

    def add_domain_event(self, event: DomainEvent) -> None:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        self._domain_events.append(event)

    def clear_domain_events(self) -> None:
        if hasattr(self, "_domain_events"):
            self._domain_events.clear()

    @property
    def domain_events(self) -> list[DomainEvent]:
        if not hasattr(self, "_domain_events"):
            self._domain_events = []
        return list(self._domain_events)
