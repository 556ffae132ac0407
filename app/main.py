from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A PostgreSQL database URL must be configured.
    - Catalog ingestion numeric settings, when set, must parse and be positive.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not (database_url or cloud_database_url or local_database_url):
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL or LOCAL_DATABASE_URL."
        )

    for name in (
        "CATALOG_INGEST_BATCH_SIZE",
        "CATALOG_INGEST_TRANSACTION_TIMEOUT_SECONDS",
        "CATALOG_INGEST_TRANSACTION_MAX_WAIT_SECONDS",
    ):
        raw_value = os.getenv(name)
        if raw_value is None:
            continue
        try:
            valid = float(raw_value) > 0
        except ValueError:
            valid = False
        if not valid:
            errors.append(f"{name}='{raw_value}' must be a positive number.")

    if errors:
        raise RuntimeError(
            "Startup validation failed. Missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    from app.config import get_logging_settings

    logging.basicConfig(
        level=getattr(logging, get_logging_settings().level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Abort startup when a catalog or job table is missing from the database.

    Does NOT auto-migrate; run 'alembic upgrade head' first.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401
    from db.base import Base
    from db.session import get_engine

    actual: set[str] = set(sa_inspect(get_engine()).get_table_names())
    missing = set(Base.metadata.tables.keys()) - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema on boot."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    yield


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Book Fair Catalog Ingestion API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import catalog_ingestion_router, ingestion_orchestrator_router

    application.include_router(catalog_ingestion_router)
    application.include_router(ingestion_orchestrator_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
