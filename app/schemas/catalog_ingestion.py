"""
app/schemas/catalog_ingestion.py

Request and response schemas for catalog batch upsert endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from app.domain.catalog_ingestion import IngestSummary


class CatalogRowsRequest(BaseModel):
    """
    JSON body carrying catalog rows.

    Rows are either objects keyed by spreadsheet header or positional cell
    lists in book template order. Shape checks happen in the ingestion
    service so that a malformed payload is reported as a 400.
    """

    books: Any = None
    batch_size: int | None = Field(default=None, ge=1, le=1000)
    column_overrides: dict[str, str] | None = None


class RecordErrorResponse(BaseModel):
    record: str | None = None
    row_number: int | None = Field(default=None, ge=1)
    kind: str
    error: str


class CatalogIngestionResultsResponse(BaseModel):
    success: list[str] = Field(default_factory=list)
    errors: list[RecordErrorResponse] = Field(default_factory=list)
    created: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    chunks_total: int = Field(default=0, ge=0)
    chunks_failed: int = Field(default=0, ge=0)


class CatalogIngestionResponse(BaseModel):
    """
    API response model for one completed ingestion run.
    """

    success: bool
    message: str
    results: CatalogIngestionResultsResponse

    @classmethod
    def from_summary(cls, summary: IngestSummary) -> CatalogIngestionResponse:
        return cls(
            success=True,
            message=(
                f"{summary.succeeded} records processed successfully. "
                f"{summary.failed} errors found."
            ),
            results=CatalogIngestionResultsResponse.model_validate(summary.to_dict()),
        )
