"""
app/services/result_aggregator.py

Folds per-chunk outcomes into a single ingestion summary.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from app.domain.catalog_ingestion import (
    BatchOutcome,
    EngineState,
    IngestSummary,
    ProgressEvent,
    RecordError,
)


def empty_summary(*, total: int = 0, chunks_total: int = 0) -> IngestSummary:
    return IngestSummary(total=total, chunks_total=chunks_total)


def start(
    summary: IngestSummary,
    *,
    validation_errors: Iterable[RecordError] = (),
) -> IngestSummary:
    """Move a summary to RUNNING, seeding it with rows rejected before chunking."""
    if summary.state != EngineState.NOT_STARTED:
        raise RuntimeError(f"Cannot start an ingestion run in state {summary.state!r}.")
    return replace(
        summary,
        errors=summary.errors + tuple(validation_errors),
        state=EngineState.RUNNING,
    )


def merge(summary: IngestSummary, outcome: BatchOutcome) -> IngestSummary:
    if summary.state != EngineState.RUNNING:
        raise RuntimeError(f"Cannot merge a chunk outcome in state {summary.state!r}.")
    return replace(
        summary,
        created_keys=summary.created_keys + outcome.created,
        updated_keys=summary.updated_keys + outcome.updated,
        errors=summary.errors + outcome.errors,
        chunks_processed=summary.chunks_processed + 1,
        chunks_failed=summary.chunks_failed + (1 if outcome.chunk_failed else 0),
    )


def complete(summary: IngestSummary) -> IngestSummary:
    """
    Close a run. Errors are ordered by input row; errors without a row go last.
    """

    if summary.state == EngineState.COMPLETED:
        return summary

    ordered_errors = tuple(
        sorted(
            summary.errors,
            key=lambda error: (error.row_number is None, error.row_number or 0),
        )
    )
    return replace(summary, errors=ordered_errors, state=EngineState.COMPLETED)


def progress_event(summary: IngestSummary, outcome: BatchOutcome) -> ProgressEvent:
    return ProgressEvent(
        chunk_index=outcome.chunk_index,
        chunks_total=summary.chunks_total,
        processed=summary.processed,
        total=summary.total,
        created=summary.created,
        updated=summary.updated,
        failed=summary.failed,
        chunk_failed=outcome.chunk_failed,
    )
