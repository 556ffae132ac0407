"""
app/services/upsert_executor.py

Applies one chunk of normalized records to a catalog store inside a single
bounded transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import DBAPIError

from app.domain.catalog_ingestion import (
    BatchOutcome,
    Chunk,
    IngestRecord,
    RecordError,
    RecordErrorKind,
)
from app.domain.errors import ChunkTransactionError
from app.repositories.catalog_repository import CatalogStore, CatalogUnitOfWork
from app.services.reconciliation import ReconciliationPolicy

logger = logging.getLogger(__name__)

_MAX_ERROR_MESSAGE_LENGTH = 500


class TransactionalUpsertExecutor:
    """
    Upsert every record of a chunk, isolating each one in a savepoint.

    A failing record rolls back only its own savepoint and is reported as a
    write error; the rest of the chunk still commits. The transaction budget
    is checked before every record, so a chunk that outlives it stops at once
    and, like any other failure of the enclosing transaction, marks every
    record of the chunk as errored.
    """

    def __init__(
        self,
        *,
        store: CatalogStore,
        policy: ReconciliationPolicy,
        timeout_seconds: float = 15.0,
        max_wait_seconds: float = 20.0,
        log_record_errors: bool = True,
    ) -> None:
        self._store = store
        self._policy = policy
        self._timeout_seconds = timeout_seconds
        self._max_wait_seconds = max_wait_seconds
        self._log_record_errors = log_record_errors

    @property
    def policy(self) -> ReconciliationPolicy:
        return self._policy

    def execute(self, chunk: Chunk) -> BatchOutcome:
        created: list[str] = []
        updated: list[str] = []
        errors: list[RecordError] = []

        try:
            with self._store.transaction(
                timeout_seconds=self._timeout_seconds,
                max_wait_seconds=self._max_wait_seconds,
            ) as unit:
                for record in chunk.records:
                    unit.check_deadline()
                    try:
                        with unit.savepoint():
                            was_created = self._upsert(unit, record)
                    except ChunkTransactionError:
                        raise
                    except Exception as exc:  # noqa: BLE001
                        error = RecordError(
                            natural_key=record.natural_key,
                            message=_error_message(exc),
                            kind=RecordErrorKind.WRITE,
                            row_number=record.row_number,
                        )
                        errors.append(error)
                        if self._log_record_errors:
                            logger.warning(
                                "Record upsert failed chunk=%s key=%s row=%s error=%s",
                                chunk.index,
                                record.natural_key,
                                record.row_number,
                                error.message,
                            )
                        continue

                    if was_created:
                        created.append(record.natural_key)
                    else:
                        updated.append(record.natural_key)
        except ChunkTransactionError as exc:
            logger.error(
                "Chunk %s/%s transaction failed policy=%s records=%s error=%s",
                chunk.index,
                chunk.total,
                self._policy.name,
                len(chunk),
                exc,
            )
            return BatchOutcome.failed_chunk(chunk, str(exc))
        except Exception as exc:
            logger.exception(
                "Chunk %s/%s failed unexpectedly policy=%s",
                chunk.index,
                chunk.total,
                self._policy.name,
            )
            return BatchOutcome.failed_chunk(chunk, _error_message(exc))

        return BatchOutcome(
            chunk_index=chunk.index,
            created=tuple(created),
            updated=tuple(updated),
            errors=tuple(errors),
        )

    def _upsert(self, unit: CatalogUnitOfWork, record: IngestRecord) -> bool:
        existing = unit.find_by_natural_key(record.natural_key, for_update=True)
        if existing is None:
            unit.create(self._policy.build_create(record))
            return True

        unit.update(existing.id, self._policy.build_update(record))
        return False


def _error_message(exc: BaseException) -> str:
    source: BaseException = exc
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        source = exc.orig
    message = str(source).strip()
    if not message:
        message = type(exc).__name__
    return message.splitlines()[0][:_MAX_ERROR_MESSAGE_LENGTH]
