"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class CatalogIngestionSettings:
    """
    Runtime settings for chunked catalog upserts.

    ``transaction_max_wait_seconds`` bounds how long a chunk may wait for a
    connection before it starts; ``transaction_timeout_seconds`` bounds how
    long it may run once started.
    """

    batch_size: int = 25
    delay_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    transaction_timeout_seconds: float = 15.0
    transaction_max_wait_seconds: float = 20.0
    log_record_errors: bool = True
    max_upload_bytes: int = 10 * 1024 * 1024


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@lru_cache(maxsize=1)
def get_catalog_ingestion_settings() -> CatalogIngestionSettings:
    """
    Return cached catalog ingestion settings from environment variables.
    """

    return CatalogIngestionSettings(
        batch_size=max(1, _get_int_env("CATALOG_INGEST_BATCH_SIZE", 25)),
        delay_seconds=max(0.0, _get_float_env("CATALOG_INGEST_DELAY_SECONDS", 1.0)),
        backoff_multiplier=max(1.0, _get_float_env("CATALOG_INGEST_BACKOFF_MULTIPLIER", 2.0)),
        transaction_timeout_seconds=max(
            0.1, _get_float_env("CATALOG_INGEST_TRANSACTION_TIMEOUT_SECONDS", 15.0)
        ),
        transaction_max_wait_seconds=max(
            0.1, _get_float_env("CATALOG_INGEST_TRANSACTION_MAX_WAIT_SECONDS", 20.0)
        ),
        log_record_errors=_get_bool_env("CATALOG_INGEST_LOG_RECORD_ERRORS", True),
        max_upload_bytes=max(1, _get_int_env("CATALOG_INGEST_MAX_UPLOAD_BYTES", 10 * 1024 * 1024)),
    )


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings(level=_get_str_env("LOG_LEVEL", "INFO").upper())
