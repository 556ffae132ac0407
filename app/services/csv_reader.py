"""
app/services/csv_reader.py

Decodes an uploaded spreadsheet export into keyed rows for the ingestion engine.
"""

from __future__ import annotations

import csv
import io
from typing import BinaryIO

from app.domain.errors import IngestionPayloadError

_SNIFF_SAMPLE_BYTES = 64 * 1024
_DELIMITERS = ",;\t"


def read_csv_rows(raw_file: BinaryIO) -> list[dict[str, str | None]]:
    """
    Read a UTF-8 (optionally BOM-prefixed) CSV file into header-keyed rows.

    Comma, semicolon and tab separated exports are accepted. Raises
    IngestionPayloadError when the file cannot be decoded or has no header.
    """

    raw_file.seek(0)
    text_stream = io.TextIOWrapper(raw_file, encoding="utf-8-sig", newline="")
    try:
        sample = text_stream.read(_SNIFF_SAMPLE_BYTES)
        if not sample.strip():
            raise IngestionPayloadError("CSV file is empty.")
        text_stream.seek(0)

        try:
            dialect: type[csv.Dialect] | csv.Dialect = csv.Sniffer().sniff(sample, delimiters=_DELIMITERS)
        except csv.Error:
            dialect = csv.excel

        reader = csv.DictReader(text_stream, dialect=dialect)
        headers = [header.strip() for header in (reader.fieldnames or []) if header and header.strip()]
        if not headers:
            raise IngestionPayloadError("CSV header row is missing.")

        rows: list[dict[str, str | None]] = []
        for raw_row in reader:
            rows.append(
                {
                    key.strip(): value
                    for key, value in raw_row.items()
                    if isinstance(key, str) and key.strip()
                }
            )
        return rows
    except UnicodeDecodeError as exc:
        raise IngestionPayloadError("CSV file must be UTF-8 encoded.") from exc
    except csv.Error as exc:
        raise IngestionPayloadError(f"CSV file could not be parsed: {exc}") from exc
    finally:
        text_stream.detach()
