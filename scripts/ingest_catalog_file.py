"""
Ingest a JSON or CSV catalog file from the command line.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from app.domain.errors import IngestionPayloadError
from app.services.catalog_ingestion_service import (
    CatalogIngestionService,
    build_book_batch_service,
    build_catalog_import_service,
    build_inventory_upload_service,
)
from app.services.csv_reader import read_csv_rows
from app.services.progress import LoggingProgressReporter

_TARGETS = {
    "books": build_book_batch_service,
    "inventory-upload": build_inventory_upload_service,
    "catalog-import": build_catalog_import_service,
}


def _load_rows(path: Path) -> Any:
    if path.suffix.lower() == ".csv":
        with path.open("rb") as file_handle:
            return read_csv_rows(file_handle)

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        return payload.get("books")
    return payload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Upsert catalog rows from a JSON or CSV file.")
    parser.add_argument(
        "--target",
        choices=sorted(_TARGETS),
        required=True,
        help="Catalog flow to run the file through.",
    )
    parser.add_argument("path", type=Path, help="JSON list/object with 'books', or a UTF-8 CSV file.")
    parser.add_argument("--batch-size", dest="batch_size", type=int, default=None)
    parser.add_argument(
        "--batch-name",
        dest="batch_name",
        default=None,
        help="Batch label stamped on inventory entries (required for inventory-upload).",
    )
    args = parser.parse_args(argv)

    if args.target == "inventory-upload" and not (args.batch_name or "").strip():
        parser.error("--batch-name is required for inventory-upload")

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    service: CatalogIngestionService = _TARGETS[args.target]()
    try:
        summary = service.ingest(
            _load_rows(args.path),
            batch_size=args.batch_size,
            batch_name=args.batch_name,
            reporter=LoggingProgressReporter(run_label=f"cli:{args.path.name}"),
        )
    except (IngestionPayloadError, json.JSONDecodeError) as exc:
        print(json.dumps({"success": False, "message": str(exc)}, indent=2))
        return 2

    print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
