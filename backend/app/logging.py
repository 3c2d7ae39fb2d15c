"""Logging configuration for the pharmacy sync service.

Every record carries the inbound ``request_id`` and, while a sync is running,
the internal ``patient_id`` it is working on. Both come from contextvars so
they survive ``await`` boundaries and ``asyncio.to_thread`` hops.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from app.config import settings

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id",
    default=None,
)
sync_patient_var: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "sync_patient_id",
    default=None,
)

LOG_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "request_id=%(request_id)s patient_id=%(sync_patient_id)s"
)


def _apply_context(record: logging.LogRecord) -> None:
    if not getattr(record, "request_id", None):
        record.request_id = request_id_var.get() or "-"
    if getattr(record, "sync_patient_id", None) is None:
        patient_id = sync_patient_var.get()
        record.sync_patient_id = patient_id if patient_id is not None else "-"


class SyncContextFilter(logging.Filter):
    """Attach request and sync context from contextvars to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        _apply_context(record)
        return True


@contextmanager
def bind_sync_patient(patient_id: int) -> Iterator[None]:
    """Tag log records emitted inside the block with ``patient_id``."""
    token = sync_patient_var.set(patient_id)
    try:
        yield
    finally:
        sync_patient_var.reset(token)


def configure_logging() -> None:
    """Configure structured logging for the service."""
    factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = factory(*args, **kwargs)
        _apply_context(record)
        return record

    logging.setLogRecordFactory(record_factory)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    root_logger = logging.getLogger()
    root_logger.addFilter(SyncContextFilter())
    for handler in root_logger.handlers:
        handler.addFilter(SyncContextFilter())

    # requests' connection pool logs every retry at DEBUG; keep it out of INFO runs.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
