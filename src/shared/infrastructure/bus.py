"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Any, Dict, List, Type

import structlog

from shared.domain.bus import (
    EventDispatchError,
    IEventBus,
    IEventHandler,
    UnknownEventType,
)
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    Every subscribed handler is invoked even if an earlier one raises.
    Failures are collected and re-raised together as ``EventDispatchError``
    once all handlers have run.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}
        self._event_classes: Dict[str, Type[DomainEvent]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        self._event_classes[event_class.__name__] = event_class
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        failures: Dict[str, str] = {}
        for handler in self._handlers.get(type(event), []):
            handler_name = type(handler).__name__
            try:
                handler.handle(event)
            except Exception as exc:
                logger.exception(
                    "event_bus.handler_failed",
                    event_name=event.event_name,
                    handler=handler_name,
                    aggregate_id=str(event.aggregate_id),
                )
                failures[handler_name] = str(exc)
        if failures:
            raise EventDispatchError(event.event_name, failures)

    def publish_payload(self, event_name: str, payload: Dict[str, Any]) -> None:
        """Rebuild a serialized event (e.g. from the outbox) and publish it."""
        event_class = self._event_classes.get(event_name)
        if event_class is None:
            raise UnknownEventType(f"No event registered as {event_name!r}.")
        self.publish(event_class.from_payload(payload))


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
