"""
tests/fakes.py

In-memory catalog store honouring the transaction and savepoint contract of
the SQLAlchemy store, with hooks to inject record and chunk failures.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from types import SimpleNamespace
from typing import Any

from app.domain.catalog_ingestion import CatalogCreate, CatalogUpdate
from app.domain.errors import TransactionAdmissionError, TransactionTimeoutError


class UniqueViolation(RuntimeError):
    pass


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryCatalogStore, working: dict[str, dict[str, Any]]) -> None:
        self._store = store
        self.working = working
        self.deadline_checks = 0

    def find_by_natural_key(self, natural_key: str, *, for_update: bool = True) -> SimpleNamespace | None:
        self._store.lookups.append((natural_key, for_update))
        entry = self.working.get(natural_key)
        if entry is None:
            return None
        return SimpleNamespace(id=natural_key, **entry)

    def create(self, values: CatalogCreate) -> SimpleNamespace:
        self._raise_if_failing(values.natural_key)
        if values.natural_key in self.working:
            raise UniqueViolation(f'duplicate key value violates unique constraint "cod_fle" ({values.natural_key})')
        entry = asdict(values)
        entry.pop("natural_key")
        self.working[values.natural_key] = entry
        return SimpleNamespace(id=values.natural_key, **entry)

    def update(self, entry_id: str, changes: CatalogUpdate) -> None:
        self._raise_if_failing(entry_id)
        entry = self.working[entry_id]
        entry.update(changes.fields)
        if changes.quantity_delta is not None:
            entry["quantity"] = entry["quantity"] + changes.quantity_delta
        elif changes.quantity is not None:
            entry["quantity"] = changes.quantity

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        snapshot = copy.deepcopy(self.working)
        try:
            yield
        except BaseException:
            self.working.clear()
            self.working.update(snapshot)
            raise

    def check_deadline(self) -> None:
        self.deadline_checks += 1
        budget = self._store.records_within_budget
        if budget is not None and self.deadline_checks > budget:
            raise TransactionTimeoutError(f"Transaction exceeded budget after {budget} records")

    def _raise_if_failing(self, natural_key: str) -> None:
        if natural_key in self._store.fail_keys:
            raise UniqueViolation(f'duplicate key value violates unique constraint "cod_fle" ({natural_key})')


class InMemoryCatalogStore:
    """
    Commits a chunk's writes only when its transaction exits cleanly.

    ``fail_transactions`` holds 1-based transaction numbers that fail before
    admission; ``timeout_transactions`` holds numbers that fail at commit
    after all records were written. ``records_within_budget`` makes every
    transaction time out when the record after that many is about to start.
    """

    def __init__(
        self,
        *,
        fail_keys: set[str] | None = None,
        fail_transactions: set[int] | None = None,
        timeout_transactions: set[int] | None = None,
        records_within_budget: int | None = None,
    ) -> None:
        self.entries: dict[str, dict[str, Any]] = {}
        self.fail_keys = set(fail_keys or ())
        self.fail_transactions = set(fail_transactions or ())
        self.timeout_transactions = set(timeout_transactions or ())
        self.records_within_budget = records_within_budget
        self.transactions: list[dict[str, float]] = []
        self.lookups: list[tuple[str, bool]] = []

    @contextmanager
    def transaction(self, *, timeout_seconds: float, max_wait_seconds: float) -> Iterator[InMemoryUnitOfWork]:
        self.transactions.append(
            {"timeout_seconds": timeout_seconds, "max_wait_seconds": max_wait_seconds}
        )
        number = len(self.transactions)
        if number in self.fail_transactions:
            raise TransactionAdmissionError(f"Transaction not admitted within {max_wait_seconds:.1f}s")

        unit = InMemoryUnitOfWork(self, copy.deepcopy(self.entries))
        yield unit
        if number in self.timeout_transactions:
            raise TransactionTimeoutError(f"Transaction exceeded {timeout_seconds:.1f}s budget")
        self.entries = unit.working

    def seed(self, natural_key: str, **values: Any) -> None:
        entry = {
            "title": "Seeded",
            "quantity": 0,
            "price": 0,
            "cover_price": 0,
            "bar_code": None,
            "location": "ESTOQUE",
            "author": "Não informado",
            "medium": "Não informado",
            "publisher": "Não informado",
            "distributor": "Não informado",
            "subject": "Não informado",
            "batch_name": None,
        }
        entry.update(values)
        self.entries[natural_key] = entry


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def book_row(index: int, **overrides: Any) -> dict[str, Any]:
    row: dict[str, Any] = {
        "codFle": f"FLE-{index:04d}",
        "title": f"Livro {index}",
        "quantity": 1,
        "price": "R$ 30,00",
        "coverPrice": "25,50",
        "author": "Autor",
        "publisher": "Editora",
    }
    row.update(overrides)
    return row
