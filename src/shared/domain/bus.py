"""Domain bus interfaces for in-process event handling."""

from __future__ import annotations

from typing import Any, Dict, Generic, Protocol, Type, TypeVar

from shared.domain.events import DomainEvent

E = TypeVar("E", bound=DomainEvent, contravariant=True)


class IEventHandler(Protocol, Generic[E]):
    """Handler interface for domain events."""

    def handle(self, event: E) -> None: ...


class IEventBus(Protocol):
    """Event bus interface."""

    def publish(self, event: DomainEvent) -> None: ...

    def publish_payload(self, event_name: str, payload: Dict[str, Any]) -> None: ...

    def subscribe(self, event_class: Type[E], handler: IEventHandler[E]) -> None: ...


class EventDispatchError(Exception):
    """One or more handlers failed while processing an event.

    ``failures`` maps the handler class name to the error message.  Handlers
    that succeeded are not rolled back.
    """

    def __init__(self, event_name: str, failures: Dict[str, str]) -> None:
        self.event_name = event_name
        self.failures = failures
        summary = "; ".join(f"{name}: {error}" for name, error in failures.items())
        super().__init__(f"{event_name} handler failures: {summary}")


class UnknownEventType(Exception):
    """No event class is registered under the given name."""
