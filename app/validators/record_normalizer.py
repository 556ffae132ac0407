"""
app/validators/record_normalizer.py

Row-level validation and numeric coercion for catalog ingestion.

Malformed numeric cells never reject a row: they fall back to zero, the way
the fair's spreadsheets have always been read. Callers that treat zero stock
or a zero price as invalid must check for it themselves.
"""

from __future__ import annotations

import re
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from app.domain.catalog_ingestion import IngestRecord, RecordError, RecordErrorKind

# Column order of the book spreadsheet template.
POSITIONAL_COLUMNS: tuple[str, ...] = (
    "natural_key",
    "bar_code",
    "location",
    "quantity",
    "price",
    "cover_price",
    "title",
    "author",
    "medium",
    "publisher",
    "subject",
    "distributor",
)

OPTIONAL_STRING_FIELDS: tuple[str, ...] = (
    "bar_code",
    "location",
    "author",
    "medium",
    "publisher",
    "distributor",
    "subject",
)

ZERO_QUANTITY_MARKERS = frozenset({"E", "ESGOTADO", "N", "NÃO", "NAO", "N/A", "NA", "-", ""})
ZERO_PRICE_MARKERS = frozenset({"-", "N/A", ""})

_CURRENCY_AND_SPACE = re.compile(r"[R$\s]")
_NON_NUMERIC = re.compile(r"[^\d.]")

_ZERO = Decimal("0")


def parse_decimal(value: Any) -> Decimal:
    """
    Coerce a loosely formatted currency cell into a non-negative Decimal.

    ``"R$ 12,50"`` becomes ``Decimal("12.50")``; anything unparsable becomes 0.
    """

    if value is None or isinstance(value, bool):
        return _ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() and value > 0 else _ZERO
    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return _ZERO
        return parsed if parsed.is_finite() and parsed > 0 else _ZERO

    raw = str(value).strip()
    if raw.upper() in ZERO_PRICE_MARKERS:
        return _ZERO

    cleaned = _CURRENCY_AND_SPACE.sub("", raw).replace(",", ".", 1)
    cleaned = _NON_NUMERIC.sub("", cleaned)
    if not cleaned:
        return _ZERO
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return _ZERO
    return parsed if parsed.is_finite() else _ZERO


def parse_quantity(value: Any) -> int:
    """
    Coerce a stock cell into a non-negative integer, flooring fractions.
    """

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)

    raw = str(value).strip().upper()
    if raw in ZERO_QUANTITY_MARKERS:
        return 0
    try:
        parsed = Decimal(raw.replace(",", ".", 1))
    except InvalidOperation:
        return 0
    if not parsed.is_finite():
        return 0
    return max(0, int(parsed.to_integral_value(rounding=ROUND_FLOOR)))


class RecordNormalizer:
    """
    Validates one raw row and converts it into an IngestRecord.
    """

    def is_completely_empty_row(self, row: Mapping[str, Any] | Sequence[Any]) -> bool:
        """
        Return True when all values in the row are empty or whitespace.
        """

        values = row.values() if isinstance(row, Mapping) else row
        return all(self._is_blank(value) for value in values)

    def normalize(
        self,
        row: Mapping[str, Any] | Sequence[Any],
        *,
        row_number: int,
        batch_name: str | None = None,
    ) -> tuple[IngestRecord | None, RecordError | None]:
        """
        Normalize a mapped row (catalog field names) or a positional row.
        """

        mapped = self._as_mapping(row)
        if mapped is None:
            return None, RecordError(
                natural_key=None,
                message="Row must be an object or a list of cells.",
                kind=RecordErrorKind.VALIDATION,
                row_number=row_number,
            )
        if self.is_completely_empty_row(mapped):
            return None, RecordError(
                natural_key=None,
                message="Completely empty rows are not allowed.",
                kind=RecordErrorKind.VALIDATION,
                row_number=row_number,
            )

        natural_key = self._parse_optional_string(mapped.get("natural_key"))
        title = self._parse_optional_string(mapped.get("title"))

        missing = [
            column
            for column, value in (("natural_key", natural_key), ("title", title))
            if value is None
        ]
        if missing:
            return None, RecordError(
                natural_key=natural_key,
                message=f"Required value is missing: {', '.join(missing)}.",
                kind=RecordErrorKind.VALIDATION,
                row_number=row_number,
            )

        optional = {
            name: self._parse_optional_string(mapped.get(name))
            for name in OPTIONAL_STRING_FIELDS
        }
        return (
            IngestRecord(
                natural_key=natural_key,
                title=title,
                quantity=parse_quantity(mapped.get("quantity")),
                price=parse_decimal(mapped.get("price")),
                cover_price=parse_decimal(mapped.get("cover_price")),
                batch_name=self._parse_optional_string(batch_name),
                row_number=row_number,
                **optional,
            ),
            None,
        )

    @staticmethod
    def _as_mapping(row: Any) -> Mapping[str, Any] | None:
        if isinstance(row, Mapping):
            return row
        if isinstance(row, (list, tuple)):
            return {
                column: row[position]
                for position, column in enumerate(POSITIONAL_COLUMNS)
                if position < len(row)
            }
        return None

    def _parse_optional_string(self, value: Any) -> str | None:
        if self._is_blank(value):
            return None
        if isinstance(value, float) and value.is_integer():
            # Spreadsheet readers hand numeric codes back as floats.
            return str(int(value))
        return str(value).strip()

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""
