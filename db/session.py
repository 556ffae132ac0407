"""
db/session.py

SQLAlchemy engine and session factory.
"""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import DatabaseSettings, get_database_settings


def create_db_engine(settings: DatabaseSettings | None = None) -> Engine:
    """
    Create a PostgreSQL engine whose pool timeout doubles as the chunk admission wait.
    """

    resolved = settings or get_database_settings()
    if not resolved.url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")

    return create_engine(
        resolved.url,
        echo=resolved.echo,
        pool_pre_ping=True,
        pool_recycle=resolved.pool_recycle_seconds,
        pool_size=resolved.pool_size,
        max_overflow=resolved.max_overflow,
        pool_timeout=resolved.pool_timeout_seconds,
    )


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    """Lazy session factory. Drop-in replacement for a sessionmaker() call."""
    return get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
