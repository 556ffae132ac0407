"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import File, Form, HTTPException, UploadFile, status

from app.config import get_catalog_ingestion_settings

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "text/plain",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV within the configured size limit.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    max_bytes = get_catalog_ingestion_settings().max_upload_bytes
    if file.size is not None and file.size > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"CSV file exceeds the {max_bytes} byte limit.",
        )

    return file


def get_batch_name(batch_name: str = Form(default="")) -> str:
    """
    Require a non-blank batch label for inventory uploads.
    """

    cleaned = batch_name.strip()
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="batch_name is required.",
        )
    if len(cleaned) > 120:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="batch_name must be at most 120 characters.",
        )
    return cleaned
