"""
app/domain/catalog_ingestion.py

Domain models used by the catalog batch upsert flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

NOT_INFORMED = "Não informado"
DEFAULT_LOCATION = "ESTOQUE"

DESCRIPTIVE_FIELDS: tuple[str, ...] = (
    "bar_code",
    "location",
    "author",
    "medium",
    "publisher",
    "distributor",
    "subject",
)


class EngineState:
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


class RecordErrorKind:
    VALIDATION = "validation"
    WRITE = "write"
    TRANSACTION = "transaction"


@dataclass(frozen=True)
class IngestRecord:
    """
    One normalized input row, keyed by its catalog code.
    """

    natural_key: str
    title: str
    quantity: int = 0
    price: Decimal = Decimal("0")
    cover_price: Decimal = Decimal("0")
    bar_code: str | None = None
    location: str | None = None
    author: str | None = None
    medium: str | None = None
    publisher: str | None = None
    distributor: str | None = None
    subject: str | None = None
    batch_name: str | None = None
    row_number: int | None = None


@dataclass(frozen=True)
class RecordError:
    """
    One per-record failure detail.
    """

    natural_key: str | None
    message: str
    kind: str = RecordErrorKind.WRITE
    row_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record": self.natural_key,
            "row_number": self.row_number,
            "kind": self.kind,
            "error": self.message,
        }


@dataclass(frozen=True)
class Chunk:
    """
    Ordered slice of records submitted as one transactional unit.
    """

    index: int
    total: int
    records: tuple[IngestRecord, ...]

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class BatchOutcome:
    """
    Result of applying one chunk to the store.
    """

    chunk_index: int
    created: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    errors: tuple[RecordError, ...] = ()
    transaction_error: str | None = None

    @property
    def record_count(self) -> int:
        return len(self.created) + len(self.updated) + len(self.errors)

    @property
    def chunk_failed(self) -> bool:
        return self.transaction_error is not None

    @classmethod
    def failed_chunk(cls, chunk: Chunk, reason: str) -> BatchOutcome:
        """
        Build an outcome marking every record of ``chunk`` as errored.
        """

        return cls(
            chunk_index=chunk.index,
            errors=tuple(
                RecordError(
                    natural_key=record.natural_key,
                    message=reason,
                    kind=RecordErrorKind.TRANSACTION,
                    row_number=record.row_number,
                )
                for record in chunk.records
            ),
            transaction_error=reason,
        )


@dataclass(frozen=True)
class IngestSummary:
    """
    End-of-run reconciliation tally.
    """

    total: int
    created_keys: tuple[str, ...] = ()
    updated_keys: tuple[str, ...] = ()
    errors: tuple[RecordError, ...] = ()
    chunks_total: int = 0
    chunks_processed: int = 0
    chunks_failed: int = 0
    state: str = EngineState.NOT_STARTED

    @property
    def created(self) -> int:
        return len(self.created_keys)

    @property
    def updated(self) -> int:
        return len(self.updated_keys)

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def succeeded(self) -> int:
        return self.created + self.updated

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": [*self.created_keys, *self.updated_keys],
            "errors": [error.to_dict() for error in self.errors],
            "created": self.created,
            "updated": self.updated,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "total": self.total,
            "chunks_total": self.chunks_total,
            "chunks_failed": self.chunks_failed,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """
    Incremental counts emitted after every chunk.
    """

    chunk_index: int
    chunks_total: int
    processed: int
    total: int
    created: int
    updated: int
    failed: int
    chunk_failed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_index": self.chunk_index,
            "chunks_total": self.chunks_total,
            "processed": self.processed,
            "total": self.total,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "chunk_failed": self.chunk_failed,
        }


@dataclass(frozen=True)
class CatalogCreate:
    """
    Field values for a new catalog entry.
    """

    natural_key: str
    title: str
    quantity: int
    price: Decimal
    cover_price: Decimal
    bar_code: str | None
    location: str
    author: str
    medium: str
    publisher: str
    distributor: str
    subject: str
    batch_name: str | None = None


@dataclass(frozen=True)
class CatalogUpdate:
    """
    Changes to apply to an existing catalog entry.

    ``quantity_delta`` is applied relative to the stored value; ``quantity``
    replaces it. At most one of them is set.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    quantity_delta: int | None = None
    quantity: int | None = None
