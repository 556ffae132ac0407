"""
app/services/catalog_ingestion_service.py

Chunked, paced upsert of catalog rows into a single catalog table.

One service instance is configured per call site (bulk book creation,
inventory batch upload, catalog import); the difference between them is the
target table and the reconciliation policy handed to the executor.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from functools import lru_cache
from typing import Any

from app.config import CatalogIngestionSettings, get_catalog_ingestion_settings
from app.domain.catalog_ingestion import (
    IngestRecord,
    IngestSummary,
    ProgressEvent,
    RecordError,
)
from app.domain.errors import IngestionPayloadError
from app.logging_utils import log_event
from app.mappers.column_mapper import ColumnMapper
from app.repositories.catalog_repository import SQLAlchemyCatalogStore
from app.services import result_aggregator
from app.services.chunker import chunk_records
from app.services.pacer import Pacer
from app.services.progress import NullProgressReporter, ProgressReporter
from app.services.reconciliation import AdditivePolicy, ReplaceIfPositivePolicy
from app.services.upsert_executor import TransactionalUpsertExecutor
from app.validators.record_normalizer import RecordNormalizer
from db.models.catalog_entry import Book, InventoryBook

logger = logging.getLogger(__name__)


class CatalogIngestionService:
    """
    Drives one ingestion run from raw rows to an IngestSummary.

    Only a malformed payload raises (``IngestionPayloadError``); every
    record-level and chunk-level failure is reported in the summary.
    """

    def __init__(
        self,
        *,
        name: str,
        executor: TransactionalUpsertExecutor,
        settings: CatalogIngestionSettings | None = None,
        normalizer: RecordNormalizer | None = None,
        column_mapper: ColumnMapper | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._name = name
        self._executor = executor
        self._settings = settings or get_catalog_ingestion_settings()
        self._normalizer = normalizer or RecordNormalizer()
        self._column_mapper = column_mapper or ColumnMapper()
        self._sleep = sleep

    @property
    def name(self) -> str:
        return self._name

    def ingest(
        self,
        rows: Any,
        *,
        batch_size: int | None = None,
        batch_name: str | None = None,
        column_overrides: Mapping[str, str] | None = None,
        reporter: ProgressReporter | None = None,
    ) -> IngestSummary:
        if not isinstance(rows, list):
            raise IngestionPayloadError("Payload must be a list of rows.")

        started = time.monotonic()
        records, rejected = self._prepare_records(
            rows,
            batch_name=batch_name,
            column_overrides=column_overrides,
        )
        chunks = chunk_records(records, batch_size=batch_size or self._settings.batch_size)

        summary = result_aggregator.empty_summary(total=len(rows), chunks_total=len(chunks))
        summary = result_aggregator.start(summary, validation_errors=rejected)
        log_event(
            logger,
            logging.INFO,
            "catalog_ingestion_started",
            run=self._name,
            policy=self._executor.policy.name,
            total=len(rows),
            rejected=len(rejected),
            chunks=len(chunks),
            batch_name=batch_name,
        )

        pacer = Pacer(
            delay_seconds=self._settings.delay_seconds,
            backoff_multiplier=self._settings.backoff_multiplier,
            sleep=self._sleep,
        )
        active_reporter = reporter or NullProgressReporter()

        for chunk in chunks:
            pacer.wait()
            outcome = self._executor.execute(chunk)
            if outcome.chunk_failed:
                pacer.record_failure()
            else:
                pacer.record_success()

            summary = result_aggregator.merge(summary, outcome)
            self._emit_progress(active_reporter, result_aggregator.progress_event(summary, outcome))

        summary = result_aggregator.complete(summary)
        log_event(
            logger,
            logging.INFO,
            "catalog_ingestion_completed",
            run=self._name,
            total=summary.total,
            created=summary.created,
            updated=summary.updated,
            failed=summary.failed,
            chunks_failed=summary.chunks_failed,
            paced_seconds=round(pacer.total_waited_seconds, 3),
            elapsed_seconds=round(time.monotonic() - started, 3),
        )
        return summary

    def _prepare_records(
        self,
        rows: Sequence[Any],
        *,
        batch_name: str | None,
        column_overrides: Mapping[str, str] | None,
    ) -> tuple[list[IngestRecord], list[RecordError]]:
        keyed_headers: dict[str, None] = {}
        for row in rows:
            if isinstance(row, Mapping):
                keyed_headers.update((str(key), None) for key in row.keys())

        mapping = None
        if keyed_headers:
            mapping = self._column_mapper.resolve_mapping(
                list(keyed_headers),
                manual_overrides=column_overrides,
            )

        records: list[IngestRecord] = []
        rejected: list[RecordError] = []
        for row_number, row in enumerate(rows, start=1):
            candidate = row
            if mapping is not None and isinstance(row, Mapping):
                candidate = self._column_mapper.map_row(
                    raw_row={str(key): value for key, value in row.items()},
                    mapping=mapping,
                )

            record, error = self._normalizer.normalize(
                candidate,
                row_number=row_number,
                batch_name=batch_name,
            )
            if error is not None:
                rejected.append(error)
                if self._settings.log_record_errors:
                    logger.warning(
                        "Row rejected run=%s row=%s key=%s error=%s",
                        self._name,
                        row_number,
                        error.natural_key,
                        error.message,
                    )
                continue
            records.append(record)

        return records, rejected

    def _emit_progress(self, reporter: ProgressReporter, event: ProgressEvent) -> None:
        try:
            reporter.emit(event)
        except Exception:
            logger.exception(
                "Progress reporter failed run=%s chunk=%s/%s",
                self._name,
                event.chunk_index,
                event.chunks_total,
            )


def _build_service(
    *,
    name: str,
    model: type[Book] | type[InventoryBook],
    policy: AdditivePolicy | ReplaceIfPositivePolicy,
) -> CatalogIngestionService:
    from db.session import SessionLocal

    settings = get_catalog_ingestion_settings()
    executor = TransactionalUpsertExecutor(
        store=SQLAlchemyCatalogStore(session_factory=SessionLocal, model=model),
        policy=policy,
        timeout_seconds=settings.transaction_timeout_seconds,
        max_wait_seconds=settings.transaction_max_wait_seconds,
        log_record_errors=settings.log_record_errors,
    )
    return CatalogIngestionService(name=name, executor=executor, settings=settings)


@lru_cache(maxsize=1)
def build_book_batch_service() -> CatalogIngestionService:
    return _build_service(name="books_batch", model=Book, policy=AdditivePolicy())


@lru_cache(maxsize=1)
def build_inventory_upload_service() -> CatalogIngestionService:
    return _build_service(
        name="inventory_upload",
        model=InventoryBook,
        policy=AdditivePolicy(keep_existing_prices_when_zero=True),
    )


@lru_cache(maxsize=1)
def build_catalog_import_service() -> CatalogIngestionService:
    return _build_service(
        name="catalog_import",
        model=InventoryBook,
        policy=ReplaceIfPositivePolicy(),
    )
