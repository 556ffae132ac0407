"""
Exceptions raised by the catalog ingestion flow.
"""

from __future__ import annotations


class CatalogIngestionError(Exception):
    """Base exception for catalog ingestion failures."""


class IngestionPayloadError(CatalogIngestionError, ValueError):
    """Raised when the submitted rows cannot be decoded before chunking starts."""


class ChunkTransactionError(CatalogIngestionError, RuntimeError):
    """Raised when a chunk's transaction cannot be admitted or committed."""


class TransactionTimeoutError(ChunkTransactionError):
    """Raised when a chunk's transaction exceeds its execution budget."""


class TransactionAdmissionError(ChunkTransactionError):
    """Raised when a chunk's transaction waits too long for a connection."""
