"""
app/services package marker.
"""

from app.services.catalog_ingestion_service import (
    CatalogIngestionService,
    build_book_batch_service,
    build_catalog_import_service,
    build_inventory_upload_service,
)

__all__ = [
    "CatalogIngestionService",
    "build_book_batch_service",
    "build_catalog_import_service",
    "build_inventory_upload_service",
]
