"""Async tasks for the core module."""

import structlog
from celery import shared_task
from django.conf import settings

from modules.core.outbox import OutboxProcessor
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.debug_task")
def debug_task():
    """Diagnostic task used to check that the worker is reachable."""
    logger.info("debug_task.executed", status="ok")
    return {"status": "ok", "message": "Celery is working"}


@shared_task(name="core.process_outbox")
def process_outbox(batch_size: int | None = None):
    """Deliver pending/failed outbox events (emails, stock moves)."""
    processor = OutboxProcessor(bus=event_bus, max_retries=settings.OUTBOX_MAX_RETRIES)
    return processor.run(batch_size or settings.OUTBOX_BATCH_SIZE)
