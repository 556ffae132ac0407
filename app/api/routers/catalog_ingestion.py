"""
app/api/routers/catalog_ingestion.py

Synchronous catalog batch upsert endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status

from app.api.dependencies import get_batch_name, get_csv_upload
from app.domain.errors import IngestionPayloadError
from app.schemas.catalog_ingestion import CatalogIngestionResponse, CatalogRowsRequest
from app.services.catalog_ingestion_service import (
    CatalogIngestionService,
    build_book_batch_service,
    build_catalog_import_service,
    build_inventory_upload_service,
)
from app.services.csv_reader import read_csv_rows
from app.validators.mapping_validator import ColumnMappingError

router = APIRouter(tags=["catalog-ingestion"])


def _payload_error(exc: IngestionPayloadError) -> HTTPException:
    if isinstance(exc, ColumnMappingError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict())
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/books/batch", response_model=CatalogIngestionResponse)
def create_books_batch(
    payload: CatalogRowsRequest,
    ingestion_service: CatalogIngestionService = Depends(build_book_batch_service),
) -> CatalogIngestionResponse:
    """
    Add rows to the sales catalog; quantities of existing books are incremented.
    """

    try:
        summary = ingestion_service.ingest(
            payload.books,
            batch_size=payload.batch_size,
            column_overrides=payload.column_overrides,
        )
    except IngestionPayloadError as exc:
        raise _payload_error(exc) from exc

    return CatalogIngestionResponse.from_summary(summary)


@router.post("/inventory/import", response_model=CatalogIngestionResponse)
def import_inventory(
    payload: CatalogRowsRequest,
    ingestion_service: CatalogIngestionService = Depends(build_catalog_import_service),
) -> CatalogIngestionResponse:
    """
    Import rows into the inventory catalog; a positive quantity replaces the stored one.
    """

    if not isinstance(payload.books, list) or not payload.books:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No books provided for import.",
        )

    try:
        summary = ingestion_service.ingest(
            payload.books,
            batch_size=payload.batch_size,
            column_overrides=payload.column_overrides,
        )
    except IngestionPayloadError as exc:
        raise _payload_error(exc) from exc

    return CatalogIngestionResponse.from_summary(summary)


@router.post("/inventory/batch/upload", response_model=CatalogIngestionResponse)
def upload_inventory_batch(
    file: UploadFile = Depends(get_csv_upload),
    batch_name: str = Depends(get_batch_name),
    batch_size: int | None = Query(default=None, ge=1, le=1000, description="Optional records per chunk"),
    ingestion_service: CatalogIngestionService = Depends(build_inventory_upload_service),
) -> CatalogIngestionResponse:
    """
    Stock-take one CSV spreadsheet into a named inventory batch.
    """

    try:
        rows = read_csv_rows(file.file)
        summary = ingestion_service.ingest(
            rows,
            batch_size=batch_size,
            batch_name=batch_name,
        )
    except IngestionPayloadError as exc:
        raise _payload_error(exc) from exc
    finally:
        file.file.close()

    return CatalogIngestionResponse.from_summary(summary)
