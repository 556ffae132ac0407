"""
db/repositories/ingestion_job_repository.py

Persistence for background catalog ingestion jobs: lifecycle transitions,
chunk progress snapshots and status lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.ingestion_job import IngestionJob, IngestionJobStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        job_type: str,
        request_payload: dict[str, Any] | None = None,
    ) -> IngestionJob:
        job = IngestionJob(
            job_type=job_type,
            status=IngestionJobStatus.PENDING,
            request_payload=request_payload,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> IngestionJob | None:
        return self._session.get(IngestionJob, job_id)

    def list_jobs(
        self,
        *,
        limit: int = 100,
        job_type: str | None = None,
        status: str | None = None,
    ) -> list[IngestionJob]:
        stmt: Select[tuple[IngestionJob]] = select(IngestionJob).order_by(IngestionJob.created_at.desc())
        if job_type:
            stmt = stmt.where(IngestionJob.job_type == job_type)
        if status:
            stmt = stmt.where(IngestionJob.status == status)
        return list(self._session.scalars(stmt.limit(max(1, limit))).all())

    def mark_running(self, *, job_id: uuid.UUID) -> IngestionJob | None:
        return self._transition(
            job_id,
            status=IngestionJobStatus.RUNNING,
            started_at=_utcnow(),
            completed_at=None,
            error_message=None,
        )

    def record_progress(
        self,
        *,
        job_id: uuid.UUID,
        progress: dict[str, Any],
    ) -> IngestionJob | None:
        """
        Store the latest chunk counters while the job is running.

        Progress never overwrites a job that already reached a final status.
        """

        job = self.get_job(job_id)
        if job is None or job.status != IngestionJobStatus.RUNNING:
            return job
        job.result_payload = {"progress": dict(progress)}
        return job

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        result_payload: dict[str, Any] | None = None,
    ) -> IngestionJob | None:
        return self._transition(
            job_id,
            status=IngestionJobStatus.COMPLETED,
            completed_at=_utcnow(),
            result_payload=result_payload,
            error_message=None,
        )

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        result_payload: dict[str, Any] | None = None,
    ) -> IngestionJob | None:
        changes: dict[str, Any] = {
            "status": IngestionJobStatus.FAILED,
            "completed_at": _utcnow(),
            "error_message": error_message,
        }
        if result_payload is not None:
            changes["result_payload"] = result_payload
        return self._transition(job_id, **changes)

    def _transition(self, job_id: uuid.UUID, **changes: Any) -> IngestionJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        for name, value in changes.items():
            setattr(job, name, value)
        return job
