"""Transactional outbox: recording domain events and delivering them.

``record_events`` is called by repositories inside the unit of work that
changed the aggregate.  ``OutboxProcessor`` runs out of the request path
(Celery task ``core.process_outbox``) and publishes due events on the
in-process bus, one event per transaction so a failing event never blocks
the rest of the batch.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

import structlog
from django.db import transaction

from modules.core.models import EventStatus, OutboxEvent
from shared.domain.bus import EventDispatchError, IEventBus, UnknownEventType
from shared.domain.events import DomainEvent, DomainEventMixin

logger = structlog.get_logger(__name__)


def record_events(entity: DomainEventMixin, topic: str) -> List[OutboxEvent]:
    """Persist the entity's pending domain events and clear them.

    Schedules a post-commit outbox run when at least one event was written.
    """
    rows = [
        OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=serialize_event_payload(event),
            topic=topic,
        )
        for event in entity.domain_events
    ]
    entity.clear_domain_events()
    if rows:
        schedule_processing()
    return rows


def schedule_processing() -> None:
    """Enqueue ``core.process_outbox`` once the current transaction commits."""
    from modules.core.tasks import process_outbox

    transaction.on_commit(lambda: process_outbox.delay())


class OutboxProcessor:
    """Deliver due outbox events to the event bus."""

    def __init__(self, bus: IEventBus, max_retries: int) -> None:
        self._bus = bus
        self._max_retries = max_retries

    def run(self, batch_size: int) -> Dict[str, int]:
        event_ids = list(
            OutboxEvent.objects.due(self._max_retries).values_list("id", flat=True)[
                :batch_size
            ]
        )
        published = failed = 0
        for event_id in event_ids:
            outcome = self._process_one(event_id)
            if outcome == EventStatus.PUBLISHED:
                published += 1
            elif outcome == EventStatus.FAILED:
                failed += 1

        logger.info(
            "outbox.batch_processed",
            batch_size=len(event_ids),
            published=published,
            failed=failed,
        )
        return {"published": published, "failed": failed}

    @transaction.atomic
    def _process_one(self, event_id: UUID) -> str | None:
        event = (
            OutboxEvent.objects.select_for_update(skip_locked=True)
            .due(self._max_retries)
            .filter(id=event_id)
            .first()
        )
        if event is None:
            # Taken by another worker or already delivered.
            return None

        log = logger.bind(
            outbox_event_id=str(event.id),
            event_type=event.event_type,
            aggregate_id=event.aggregate_id,
            attempt=event.retry_count + 1,
        )
        try:
            self._bus.publish_payload(event.event_type, event.payload)
        except (EventDispatchError, UnknownEventType, KeyError, ValueError) as exc:
            event.mark_as_failed(str(exc))
            log.warning("outbox.event_failed", error=str(exc))
            return EventStatus.FAILED

        event.mark_as_published()
        log.info("outbox.event_published")
        return EventStatus.PUBLISHED


def serialize_event_payload(event: DomainEvent) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
