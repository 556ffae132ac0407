"""
app/repositories/catalog_repository.py

Persistence layer for catalog entries reconciled by batch ingestion.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.domain.catalog_ingestion import CatalogCreate, CatalogUpdate
from app.domain.errors import (
    ChunkTransactionError,
    TransactionAdmissionError,
    TransactionTimeoutError,
)
from db.models.catalog_entry import CatalogEntryMixin

logger = logging.getLogger(__name__)


class CatalogEntryRef(Protocol):
    id: Any


class CatalogUnitOfWork(Protocol):
    """
    Store operations available inside one chunk transaction.
    """

    def find_by_natural_key(self, natural_key: str, *, for_update: bool = True) -> CatalogEntryRef | None:
        ...

    def create(self, values: CatalogCreate) -> CatalogEntryRef:
        ...

    def update(self, entry_id: Any, changes: CatalogUpdate) -> None:
        ...

    def savepoint(self) -> AbstractContextManager[Any]:
        ...

    def check_deadline(self) -> None:
        ...


class CatalogStore(Protocol):
    def transaction(
        self,
        *,
        timeout_seconds: float,
        max_wait_seconds: float,
    ) -> AbstractContextManager[CatalogUnitOfWork]:
        ...


class SQLAlchemyCatalogUnitOfWork:
    """
    Read-then-write operations for one catalog model bound to an open session.
    """

    def __init__(
        self,
        session: Session,
        model: type[CatalogEntryMixin],
        *,
        started_at: float | None = None,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._model = model
        self._columns = frozenset(model.__table__.columns.keys())
        self._started_at = clock() if started_at is None else started_at
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    def find_by_natural_key(
        self,
        natural_key: str,
        *,
        for_update: bool = True,
    ) -> CatalogEntryMixin | None:
        stmt = select(self._model).where(self._model.cod_fle == natural_key)
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.scalars(stmt).one_or_none()

    def create(self, values: CatalogCreate) -> CatalogEntryMixin:
        payload: dict[str, Any] = {
            "cod_fle": values.natural_key,
            "title": values.title,
            "quantity": values.quantity,
            "price": values.price,
            "cover_price": values.cover_price,
            "bar_code": values.bar_code,
            "location": values.location,
            "author": values.author,
            "medium": values.medium,
            "publisher": values.publisher,
            "distributor": values.distributor,
            "subject": values.subject,
        }
        if "batch_name" in self._columns:
            payload["batch_name"] = values.batch_name

        entry = self._model(**payload)
        self._session.add(entry)
        self._session.flush()
        return entry

    def update(self, entry_id: uuid.UUID, changes: CatalogUpdate) -> None:
        values: dict[str, Any] = {
            name: value
            for name, value in changes.fields.items()
            if name in self._columns and name not in {"id", "cod_fle"}
        }
        if changes.quantity_delta is not None:
            # Relative increment evaluated by the database, never a precomputed total.
            values["quantity"] = self._model.quantity + changes.quantity_delta
        elif changes.quantity is not None:
            values["quantity"] = changes.quantity

        if not values:
            return

        stmt = (
            update(self._model)
            .where(self._model.id == entry_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self._session.execute(stmt)

    def savepoint(self) -> AbstractContextManager[Any]:
        return self._session.begin_nested()

    def check_deadline(self) -> None:
        """
        Raise TransactionTimeoutError once the transaction has outlived its budget.
        """

        if self._timeout_seconds is None:
            return
        elapsed = self._clock() - self._started_at
        if elapsed > self._timeout_seconds:
            raise TransactionTimeoutError(
                f"Transaction exceeded {self._timeout_seconds:.1f}s budget ({elapsed:.1f}s elapsed)."
            )


class SQLAlchemyCatalogStore:
    """
    Opens one bounded transaction per chunk against a catalog table.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        model: type[CatalogEntryMixin],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_factory = session_factory
        self._model = model
        self._clock = clock

    @contextmanager
    def transaction(
        self,
        *,
        timeout_seconds: float,
        max_wait_seconds: float,
    ) -> Iterator[SQLAlchemyCatalogUnitOfWork]:
        """
        Yield a unit of work inside one transaction, committing on clean exit.

        Raises TransactionAdmissionError when a connection is not obtained
        within ``max_wait_seconds`` and TransactionTimeoutError when the work
        takes longer than ``timeout_seconds``, measured from admission. The
        budget is enforced before commit and whenever the caller invokes
        ``check_deadline()``; the transaction is rolled back in every case.
        """

        requested_at = self._clock()
        with self._session_factory() as session:
            try:
                connection = session.connection()
            except PoolTimeoutError as exc:
                raise TransactionAdmissionError(
                    f"Transaction not admitted within {max_wait_seconds:.1f}s: {exc}"
                ) from exc
            except SQLAlchemyError as exc:
                raise ChunkTransactionError(f"Unable to open transaction: {exc}") from exc

            admitted_at = self._clock()
            if admitted_at - requested_at > max_wait_seconds:
                session.rollback()
                raise TransactionAdmissionError(
                    f"Transaction waited {admitted_at - requested_at:.1f}s for admission "
                    f"(limit {max_wait_seconds:.1f}s)."
                )

            try:
                if connection.dialect.name == "postgresql":
                    session.execute(
                        select(func.set_config("statement_timeout", f"{int(timeout_seconds * 1000)}", True))
                    )

                unit = SQLAlchemyCatalogUnitOfWork(
                    session,
                    self._model,
                    started_at=admitted_at,
                    timeout_seconds=timeout_seconds,
                    clock=self._clock,
                )
                yield unit

                unit.check_deadline()
                session.commit()
            except ChunkTransactionError:
                session.rollback()
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                logger.warning(
                    "Catalog transaction rolled back table=%s error=%s",
                    self._model.__tablename__,
                    exc,
                )
                raise ChunkTransactionError(f"Transaction failed: {_describe(exc)}") from exc
            except BaseException:
                session.rollback()
                raise


def _describe(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original if original is not None else exc).strip().splitlines()[0][:500]
