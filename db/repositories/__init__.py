"""
Repository layer exports.
"""

from db.repositories.ingestion_job_repository import IngestionJobRepository

__all__ = [
    "IngestionJobRepository",
]
