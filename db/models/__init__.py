"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.catalog_entry import Book, CatalogEntryMixin, InventoryBook
from db.models.ingestion_job import IngestionJob

__all__ = [
    "Book",
    "CatalogEntryMixin",
    "IngestionJob",
    "InventoryBook",
]
