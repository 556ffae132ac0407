"""
app/services/ingestion_orchestrator_service.py

Background dispatch of inventory uploads with job lifecycle tracking.
"""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from collections.abc import Callable
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks, UploadFile
from sqlalchemy.orm import Session

from app.services.catalog_ingestion_service import (
    CatalogIngestionService,
    build_inventory_upload_service,
)
from app.services.csv_reader import read_csv_rows
from app.services.progress import CompositeProgressReporter, JobProgressReporter, LoggingProgressReporter
from db.models.ingestion_job import IngestionJob, IngestionJobType
from db.repositories.ingestion_job_repository import IngestionJobRepository

logger = logging.getLogger(__name__)


class IngestionTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class IngestionOrchestratorService:
    """
    Persists an upload, records a job row and runs the ingestion in the background.

    The HTTP request returns as soon as the job is created; progress and the
    final summary are written to the job row for status polling.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session] | None = None,
        inventory_upload_service: CatalogIngestionService | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self._inventory_upload_service = inventory_upload_service or build_inventory_upload_service()

    def trigger_inventory_upload(
        self,
        *,
        db: Session,
        executor: IngestionTaskExecutor,
        upload_file: UploadFile,
        batch_name: str,
        batch_size: int | None = None,
    ) -> IngestionJob:
        temp_file_path, file_size = self._persist_temp_upload(upload_file)
        request_payload = {
            "file_name": upload_file.filename or "upload.csv",
            "content_type": upload_file.content_type,
            "file_size_bytes": file_size,
            "batch_name": batch_name,
            "batch_size": batch_size,
        }

        repository = IngestionJobRepository(db)
        with db.begin():
            job = repository.create_job(
                job_type=IngestionJobType.INVENTORY_UPLOAD,
                request_payload=request_payload,
            )

        try:
            executor.submit(
                self._run_inventory_upload_job,
                job.id,
                temp_file_path,
                batch_name,
                batch_size,
            )
        except Exception:
            self._delete_file_quietly(temp_file_path)
            with db.begin():
                repository.mark_failed(
                    job_id=job.id,
                    error_message="Failed to schedule inventory upload job.",
                )
            raise

        return job

    def get_job_status(self, *, db: Session, job_id: uuid.UUID) -> IngestionJob | None:
        return IngestionJobRepository(db).get_job(job_id)

    def list_job_statuses(
        self,
        *,
        db: Session,
        limit: int = 100,
        job_type: str | None = None,
        status: str | None = None,
    ) -> list[IngestionJob]:
        return IngestionJobRepository(db).list_jobs(
            limit=limit,
            job_type=job_type,
            status=status,
        )

    def _run_inventory_upload_job(
        self,
        job_id: uuid.UUID,
        temp_file_path: str,
        batch_name: str,
        batch_size: int | None,
    ) -> None:
        with self._session_factory() as db:
            repository = IngestionJobRepository(db)
            try:
                running_job = repository.mark_running(job_id=job_id)
                if running_job is None:
                    raise RuntimeError(f"Ingestion job not found: {job_id}")
                db.commit()

                with open(temp_file_path, "rb") as file_handle:
                    rows = read_csv_rows(file_handle)

                reporter = CompositeProgressReporter(
                    LoggingProgressReporter(run_label=f"job:{job_id}"),
                    JobProgressReporter(session_factory=self._session_factory, job_id=job_id),
                )
                summary = self._inventory_upload_service.ingest(
                    rows,
                    batch_size=batch_size,
                    batch_name=batch_name,
                    reporter=reporter,
                )

                # Progress writes went through other sessions.
                db.expire_all()
                completed_job = repository.mark_completed(job_id=job_id, result_payload=summary.to_dict())
                if completed_job is None:
                    raise RuntimeError(f"Ingestion job not found: {job_id}")
                db.commit()
            except Exception as exc:
                self._mark_job_failed(db=db, job_id=job_id, exc=exc)
            finally:
                self._delete_file_quietly(temp_file_path)

    def _mark_job_failed(self, *, db: Session, job_id: uuid.UUID, exc: Exception) -> None:
        repository = IngestionJobRepository(db)
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Ingestion job failed id=%s error=%s", job_id, error_message)
        try:
            db.rollback()
            if repository.mark_failed(job_id=job_id, error_message=error_message[:2000]) is None:
                logger.error("Unable to mark ingestion job as failed because it was not found id=%s", job_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed ingestion job state id=%s", job_id)

    def _persist_temp_upload(self, upload_file: UploadFile) -> tuple[str, int]:
        _, ext = os.path.splitext(upload_file.filename or "upload.csv")
        upload_file.file.seek(0)

        with tempfile.NamedTemporaryFile(
            delete=False,
            prefix="inventory_upload_",
            suffix=ext or ".csv",
        ) as temp_file:
            for block in iter(lambda: upload_file.file.read(1024 * 1024), b""):
                temp_file.write(block)
            temp_path = temp_file.name
            file_size = temp_file.tell()

        upload_file.file.seek(0)
        return temp_path, file_size

    def _delete_file_quietly(self, file_path: str) -> None:
        try:
            os.remove(file_path)
        except OSError:
            return


@lru_cache(maxsize=1)
def get_ingestion_orchestrator_service() -> IngestionOrchestratorService:
    return IngestionOrchestratorService()
