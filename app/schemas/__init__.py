"""
app/schemas package marker.
"""

from app.schemas.catalog_ingestion import (
    CatalogIngestionResponse,
    CatalogIngestionResultsResponse,
    CatalogRowsRequest,
    RecordErrorResponse,
)
from app.schemas.ingestion_orchestrator import (
    IngestionJobAcceptedResponse,
    IngestionJobStatusResponse,
    IngestionStatusListResponse,
)

__all__ = [
    "CatalogIngestionResponse",
    "CatalogIngestionResultsResponse",
    "CatalogRowsRequest",
    "IngestionJobAcceptedResponse",
    "IngestionJobStatusResponse",
    "IngestionStatusListResponse",
    "RecordErrorResponse",
]
