"""
tests/test_catalog_ingestion_service.py

Pytest tests for CatalogIngestionService end to end against the in-memory store.

All tests are pure Python: no database and no real sleeping (the pacer's
sleep is recorded instead).

Coverage
--------
- Every input row ends in exactly one of created / updated / errored
- Re-running the same payload creates no duplicates
- One failing record among 25 leaves the other 24 committed
- Additive vs replace-if-positive under replay
- 57 rows run as 25/25/7 with at least 2x the delay of pacing
- Backoff doubles after a failed chunk and restores after a success
- Progress events, reporter failures, payload errors, batch stamping
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.config import CatalogIngestionSettings
from app.domain.catalog_ingestion import EngineState, ProgressEvent, RecordErrorKind
from app.domain.errors import IngestionPayloadError
from app.services.catalog_ingestion_service import CatalogIngestionService
from app.services.reconciliation import AdditivePolicy, ReconciliationPolicy, ReplaceIfPositivePolicy
from app.services.upsert_executor import TransactionalUpsertExecutor
from app.validators.mapping_validator import ColumnMappingError
from tests.fakes import InMemoryCatalogStore, RecordingSleep, book_row


SETTINGS = CatalogIngestionSettings(
    batch_size=25,
    delay_seconds=1.0,
    backoff_multiplier=2.0,
    transaction_timeout_seconds=15.0,
    transaction_max_wait_seconds=20.0,
    log_record_errors=False,
)


class CollectingReporter:
    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def emit(self, event: ProgressEvent) -> None:
        self.events.append(event)


class ExplodingReporter:
    def emit(self, event: ProgressEvent) -> None:
        raise RuntimeError("progress sink unavailable")


def _service(
    store: InMemoryCatalogStore,
    *,
    policy: ReconciliationPolicy | None = None,
    sleep: RecordingSleep | None = None,
) -> CatalogIngestionService:
    executor = TransactionalUpsertExecutor(
        store=store,
        policy=policy or AdditivePolicy(),
        timeout_seconds=SETTINGS.transaction_timeout_seconds,
        max_wait_seconds=SETTINGS.transaction_max_wait_seconds,
        log_record_errors=False,
    )
    return CatalogIngestionService(
        name="test",
        executor=executor,
        settings=SETTINGS,
        sleep=sleep or RecordingSleep(),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> InMemoryCatalogStore:
    return InMemoryCatalogStore()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


# ---------------------------------------------------------------------------
# Completeness and idempotence
# ---------------------------------------------------------------------------


class TestCompleteness:
    def test_every_row_is_accounted_for_once(self, store: InMemoryCatalogStore) -> None:
        store.seed("FLE-0002", quantity=1)
        rows = [
            book_row(1),
            book_row(2),
            {"codFle": "", "title": ""},
            book_row(4, title=None),
            book_row(5),
        ]

        summary = _service(store).ingest(rows)

        assert summary.state == EngineState.COMPLETED
        assert summary.total == 5
        assert summary.created == 2
        assert summary.updated == 1
        assert summary.failed == 2
        assert summary.created + summary.updated + summary.failed == summary.total

        keys = list(summary.created_keys) + list(summary.updated_keys)
        keys += [error.natural_key for error in summary.errors if error.natural_key]
        assert len(keys) == len(set(keys))

    def test_rerun_creates_no_duplicates(self, store: InMemoryCatalogStore) -> None:
        rows = [book_row(index) for index in range(10)]
        service = _service(store)

        first = service.ingest(rows)
        second = service.ingest(rows)

        assert first.created == 10
        assert second.created == 0
        assert second.updated == 10
        assert len(store.entries) == 10

    def test_empty_payload_completes_with_zero_counts(self, store: InMemoryCatalogStore) -> None:
        summary = _service(store).ingest([])

        assert summary.state == EngineState.COMPLETED
        assert summary.to_dict()["success"] == []
        assert summary.total == 0
        assert store.transactions == []


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


class TestFailureIsolation:
    def test_one_bad_record_among_25(self) -> None:
        store = InMemoryCatalogStore(fail_keys={"FLE-0013"})
        rows = [book_row(index) for index in range(25)]

        summary = _service(store).ingest(rows)

        assert summary.created == 24
        assert summary.failed == 1
        assert summary.errors[0].natural_key == "FLE-0013"
        assert summary.errors[0].kind == RecordErrorKind.WRITE
        assert summary.errors[0].row_number == 14
        assert len(store.entries) == 24
        assert "FLE-0013" not in store.entries

    def test_failed_chunk_does_not_leak_into_others(self, sleep: RecordingSleep) -> None:
        store = InMemoryCatalogStore(fail_transactions={2})
        rows = [book_row(index) for index in range(60)]

        summary = _service(store, sleep=sleep).ingest(rows)

        assert summary.chunks_total == 3
        assert summary.chunks_failed == 1
        assert summary.created == 35
        assert summary.failed == 25
        assert all(error.kind == RecordErrorKind.TRANSACTION for error in summary.errors)
        assert len(store.entries) == 35

    def test_every_chunk_failing_still_completes(self) -> None:
        store = InMemoryCatalogStore(fail_transactions={1, 2})
        rows = [book_row(index) for index in range(30)]

        summary = _service(store).ingest(rows)

        assert summary.state == EngineState.COMPLETED
        assert summary.failed == 30
        assert summary.succeeded == 0


# ---------------------------------------------------------------------------
# Reconciliation policies
# ---------------------------------------------------------------------------


class TestPolicies:
    def test_additive_replay_doubles_quantity(self, store: InMemoryCatalogStore) -> None:
        service = _service(store, policy=AdditivePolicy())

        service.ingest([book_row(1, quantity=10)])
        service.ingest([book_row(1, quantity=10)])

        assert store.entries["FLE-0001"]["quantity"] == 20

    def test_replace_if_positive_replay_keeps_quantity(self, store: InMemoryCatalogStore) -> None:
        service = _service(store, policy=ReplaceIfPositivePolicy())

        service.ingest([book_row(1, quantity=10)])
        service.ingest([book_row(1, quantity=10)])
        service.ingest([book_row(1, quantity="esgotado")])

        assert store.entries["FLE-0001"]["quantity"] == 10

    def test_inventory_upload_keeps_prices_and_stamps_batch(self, store: InMemoryCatalogStore) -> None:
        store.seed("FLE-0001", quantity=2, price=Decimal("50"), cover_price=Decimal("45"), batch_name="Antigo")
        service = _service(store, policy=AdditivePolicy(keep_existing_prices_when_zero=True))

        summary = service.ingest(
            [book_row(1, quantity=3, price="", coverPrice=""), book_row(2)],
            batch_name="Feira 2024",
        )

        assert summary.updated == 1
        existing = store.entries["FLE-0001"]
        assert existing["quantity"] == 5
        assert existing["price"] == Decimal("50")
        assert existing["cover_price"] == Decimal("45")
        assert existing["batch_name"] == "Feira 2024"
        assert store.entries["FLE-0002"]["batch_name"] == "Feira 2024"

    def test_inventory_upload_prices_fall_back_to_fair_price(self, store: InMemoryCatalogStore) -> None:
        store.seed("FLE-0001", quantity=2, price=Decimal("50"), cover_price=Decimal("45"))
        service = _service(store, policy=AdditivePolicy(keep_existing_prices_when_zero=True))

        service.ingest(
            [
                book_row(1, price="", coverPrice="R$ 40,00"),
                book_row(2, price="", coverPrice="18,90"),
            ],
            batch_name="Feira 2024",
        )

        assert store.entries["FLE-0001"]["price"] == Decimal("40.00")
        assert store.entries["FLE-0001"]["cover_price"] == Decimal("40.00")
        assert store.entries["FLE-0002"]["price"] == Decimal("18.90")


# ---------------------------------------------------------------------------
# Chunking and pacing
# ---------------------------------------------------------------------------


class TestChunkingAndPacing:
    def test_57_rows_run_as_three_paced_chunks(self, store: InMemoryCatalogStore, sleep: RecordingSleep) -> None:
        reporter = CollectingReporter()
        rows = [book_row(index) for index in range(57)]

        summary = _service(store, sleep=sleep).ingest(rows, reporter=reporter)

        assert summary.chunks_total == 3
        assert [event.processed for event in reporter.events] == [25, 50, 57]
        assert len(store.transactions) == 3
        assert sleep.calls == [1.0, 1.0]
        assert sum(sleep.calls) >= 2 * SETTINGS.delay_seconds

    def test_backoff_doubles_after_failure_then_restores(self, sleep: RecordingSleep) -> None:
        store = InMemoryCatalogStore(timeout_transactions={1})
        rows = [book_row(index) for index in range(75)]

        _service(store, sleep=sleep).ingest(rows)

        assert sleep.calls == [2.0, 1.0]

    def test_middle_chunk_failure_delays_next_chunk_then_restores(self, sleep: RecordingSleep) -> None:
        store = InMemoryCatalogStore(fail_transactions={2})
        rows = [book_row(index) for index in range(100)]

        summary = _service(store, sleep=sleep).ingest(rows)

        assert summary.chunks_total == 4
        assert summary.chunks_failed == 1
        assert sleep.calls == [1.0, 2.0, 1.0]

    def test_batch_size_override(self, store: InMemoryCatalogStore) -> None:
        summary = _service(store).ingest([book_row(index) for index in range(10)], batch_size=4)

        assert summary.chunks_total == 3


# ---------------------------------------------------------------------------
# Reporting and payload errors
# ---------------------------------------------------------------------------


class TestReportingAndPayload:
    def test_progress_reports_chunk_failure(self) -> None:
        store = InMemoryCatalogStore(fail_transactions={1})
        reporter = CollectingReporter()

        _service(store).ingest([book_row(1)], reporter=reporter)

        assert len(reporter.events) == 1
        assert reporter.events[0].chunk_failed
        assert reporter.events[0].failed == 1

    def test_reporter_failure_does_not_abort_run(self, store: InMemoryCatalogStore) -> None:
        rows = [book_row(index) for index in range(30)]

        summary = _service(store).ingest(rows, reporter=ExplodingReporter())

        assert summary.created == 30

    @pytest.mark.parametrize("payload", [None, {"books": []}, "FLE-1"])
    def test_non_list_payload_raises(self, store: InMemoryCatalogStore, payload: object) -> None:
        with pytest.raises(IngestionPayloadError):
            _service(store).ingest(payload)

    def test_unmappable_rows_raise_column_mapping_error(self, store: InMemoryCatalogStore) -> None:
        with pytest.raises(ColumnMappingError):
            _service(store).ingest([{"Título": "Sem código"}])

    def test_positional_rows_are_accepted(self, store: InMemoryCatalogStore) -> None:
        summary = _service(store).ingest([["FLE-9", "", "", "2", "10", "8", "Renúncia"]])

        assert summary.created == 1
        assert store.entries["FLE-9"]["location"] == "ESTOQUE"
        assert store.entries["FLE-9"]["quantity"] == 2

    def test_errors_are_ordered_by_row(self) -> None:
        store = InMemoryCatalogStore(fail_keys={"FLE-0001"})
        rows = [book_row(0), book_row(1), {"codFle": "FLE-X"}, book_row(3)]

        summary = _service(store).ingest(rows, batch_size=2)

        assert [error.row_number for error in summary.errors] == [2, 3]
