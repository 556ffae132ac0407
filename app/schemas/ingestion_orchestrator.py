"""
app/schemas/ingestion_orchestrator.py

Schemas for background inventory upload jobs and their status.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class IngestionJobAcceptedResponse(BaseModel):
    job_id: UUID
    job_type: str
    status: str
    created_at: datetime
    status_url: str


class IngestionJobStatusResponse(BaseModel):
    """
    Job row as seen by status polling.

    ``progress`` holds the latest chunk counters while the job runs;
    ``result_payload`` holds the ingestion summary once it completes.
    """

    job_id: UUID
    job_type: str
    status: str
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    request_payload: dict[str, Any] | None = None
    progress: dict[str, Any] | None = None
    result_payload: dict[str, Any] | None = None
    error_message: str | None = None


class IngestionStatusListResponse(BaseModel):
    jobs: list[IngestionJobStatusResponse] = Field(default_factory=list)
