"""
app/services/progress.py

Progress sinks notified after every chunk of an ingestion run.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.orm import Session

from app.domain.catalog_ingestion import ProgressEvent
from app.logging_utils import log_event
from db.repositories.ingestion_job_repository import IngestionJobRepository

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    def emit(self, event: ProgressEvent) -> None:
        ...


class NullProgressReporter:
    def emit(self, event: ProgressEvent) -> None:
        return None


class LoggingProgressReporter:
    """
    Emits one structured log line per chunk.
    """

    def __init__(self, *, run_label: str, level: int = logging.INFO) -> None:
        self._run_label = run_label
        self._level = level

    def emit(self, event: ProgressEvent) -> None:
        log_event(
            logger,
            self._level,
            "catalog_ingestion_progress",
            run=self._run_label,
            **event.to_dict(),
        )


class JobProgressReporter:
    """
    Persists chunk counters on an ingestion job row so status polling sees them.

    Uses its own short session per event; the job row is never held open
    across chunk transactions.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        job_id: uuid.UUID,
    ) -> None:
        self._session_factory = session_factory
        self._job_id = job_id

    def emit(self, event: ProgressEvent) -> None:
        with self._session_factory() as db:
            repository = IngestionJobRepository(db)
            repository.record_progress(job_id=self._job_id, progress=event.to_dict())
            db.commit()


class CompositeProgressReporter:
    def __init__(self, *reporters: ProgressReporter) -> None:
        self._reporters = reporters

    def emit(self, event: ProgressEvent) -> None:
        for reporter in self._reporters:
            reporter.emit(event)
