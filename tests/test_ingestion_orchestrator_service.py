"""
tests/test_ingestion_orchestrator_service.py

Background inventory upload flow with the job repository replaced by an
in-memory recorder.
"""

from __future__ import annotations

import io
import os
import uuid
from contextlib import contextmanager
from typing import Any

import pytest
from fastapi import UploadFile

from app.config import CatalogIngestionSettings
from app.services import ingestion_orchestrator_service as orchestrator_module
from app.services import progress as progress_module
from app.services.catalog_ingestion_service import CatalogIngestionService
from app.services.ingestion_orchestrator_service import IngestionOrchestratorService
from app.services.reconciliation import AdditivePolicy
from app.services.upsert_executor import TransactionalUpsertExecutor
from tests.fakes import InMemoryCatalogStore, RecordingSleep


class FakeJob:
    def __init__(self, job_type: str, request_payload: dict[str, Any] | None) -> None:
        self.id = uuid.uuid4()
        self.job_type = job_type
        self.status = "pending"
        self.request_payload = request_payload
        self.result_payload: dict[str, Any] | None = None
        self.error_message: str | None = None
        self.progress_updates: list[dict[str, Any]] = []


class FakeJobRepository:
    jobs: dict[uuid.UUID, FakeJob] = {}

    def __init__(self, session: Any) -> None:
        self._session = session

    def create_job(self, *, job_type: str, request_payload: dict[str, Any] | None = None) -> FakeJob:
        job = FakeJob(job_type, request_payload)
        self.jobs[job.id] = job
        return job

    def mark_running(self, *, job_id: uuid.UUID) -> FakeJob | None:
        job = self.jobs.get(job_id)
        if job is not None:
            job.status = "running"
        return job

    def record_progress(self, *, job_id: uuid.UUID, progress: dict[str, Any]) -> FakeJob | None:
        job = self.jobs.get(job_id)
        if job is not None:
            job.progress_updates.append(progress)
        return job

    def mark_completed(self, *, job_id: uuid.UUID, result_payload: dict[str, Any] | None = None) -> FakeJob | None:
        job = self.jobs.get(job_id)
        if job is not None:
            job.status = "completed"
            job.result_payload = result_payload
        return job

    def mark_failed(self, *, job_id: uuid.UUID, error_message: str, result_payload: Any = None) -> FakeJob | None:
        job = self.jobs.get(job_id)
        if job is not None:
            job.status = "failed"
            job.error_message = error_message
        return job


class FakeSession:
    def __enter__(self) -> FakeSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    @contextmanager
    def begin(self):  # noqa: ANN201
        yield self

    def commit(self) -> None:
        return None

    def rollback(self) -> None:
        return None

    def expire_all(self) -> None:
        return None


class ImmediateExecutor:
    def submit(self, task, *args: Any, **kwargs: Any) -> None:  # noqa: ANN001
        task(*args, **kwargs)


@pytest.fixture(autouse=True)
def fake_repository(monkeypatch: pytest.MonkeyPatch) -> type[FakeJobRepository]:
    FakeJobRepository.jobs = {}
    monkeypatch.setattr(orchestrator_module, "IngestionJobRepository", FakeJobRepository)
    monkeypatch.setattr(progress_module, "IngestionJobRepository", FakeJobRepository)
    return FakeJobRepository


def _orchestrator(store: InMemoryCatalogStore) -> IngestionOrchestratorService:
    service = CatalogIngestionService(
        name="inventory_upload",
        executor=TransactionalUpsertExecutor(
            store=store,
            policy=AdditivePolicy(keep_existing_prices_when_zero=True),
        ),
        settings=CatalogIngestionSettings(batch_size=2, delay_seconds=0.0, log_record_errors=False),
        sleep=RecordingSleep(),
    )
    return IngestionOrchestratorService(session_factory=FakeSession, inventory_upload_service=service)


def _upload(content: bytes) -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename="estoque.csv")


class TestInventoryUploadJob:
    def test_job_completes_with_summary_and_progress(self, fake_repository: type[FakeJobRepository]) -> None:
        store = InMemoryCatalogStore()
        csv_bytes = "Código FLE,Título,quantidade\n1,A,2\n2,B,1\n3,C,5\n".encode("utf-8")

        job = _orchestrator(store).trigger_inventory_upload(
            db=FakeSession(),
            executor=ImmediateExecutor(),
            upload_file=_upload(csv_bytes),
            batch_name="Feira",
        )

        assert job.status == "completed"
        assert job.request_payload["batch_name"] == "Feira"
        assert job.result_payload["created"] == 3
        assert job.result_payload["success"] == ["1", "2", "3"]
        assert [update["chunk_index"] for update in job.progress_updates] == [1, 2]
        assert store.entries["3"]["batch_name"] == "Feira"

    def test_unreadable_file_marks_job_failed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        removed: list[str] = []
        original_remove = os.remove

        def _tracking_remove(path: str) -> None:
            removed.append(path)
            original_remove(path)

        monkeypatch.setattr(orchestrator_module.os, "remove", _tracking_remove)

        job = _orchestrator(InMemoryCatalogStore()).trigger_inventory_upload(
            db=FakeSession(),
            executor=ImmediateExecutor(),
            upload_file=_upload(b""),
            batch_name="Feira",
        )

        assert job.status == "failed"
        assert "IngestionPayloadError" in (job.error_message or "")
        assert len(removed) == 1
