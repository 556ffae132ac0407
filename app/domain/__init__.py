"""
app/domain package marker.
"""

from app.domain.catalog_ingestion import (
    BatchOutcome,
    CatalogCreate,
    CatalogUpdate,
    Chunk,
    EngineState,
    IngestRecord,
    IngestSummary,
    ProgressEvent,
    RecordError,
    RecordErrorKind,
)
from app.domain.errors import (
    CatalogIngestionError,
    ChunkTransactionError,
    IngestionPayloadError,
    TransactionAdmissionError,
    TransactionTimeoutError,
)

__all__ = [
    "BatchOutcome",
    "CatalogCreate",
    "CatalogIngestionError",
    "CatalogUpdate",
    "Chunk",
    "ChunkTransactionError",
    "EngineState",
    "IngestRecord",
    "IngestSummary",
    "IngestionPayloadError",
    "ProgressEvent",
    "RecordError",
    "RecordErrorKind",
    "TransactionAdmissionError",
    "TransactionTimeoutError",
]
