"""
app/validators/mapping_validator.py

Checks a resolved column mapping before any row is normalized.

A payload is only usable when some column carries the FLE code; every other
field is optional at the mapping level and checked per row by the normalizer.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Sequence

from app.domain.errors import IngestionPayloadError

NATURAL_KEY_FIELD = "natural_key"


@dataclass(frozen=True)
class MappingErrorDetail:
    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None


class ColumnMappingError(IngestionPayloadError):
    """
    Raised when the submitted columns cannot be reconciled against the catalog.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "errors": [asdict(error) for error in self.errors]}


def ensure_natural_key_mapped(
    *,
    mapping: Mapping[str, str],
    source_headers: Sequence[str],
    override_errors: Sequence[MappingErrorDetail] = (),
) -> None:
    """
    Raise ColumnMappingError when no column resolves to the FLE code or when a
    manual override could not be applied.
    """

    errors = list(override_errors)
    key_missing = NATURAL_KEY_FIELD not in mapping
    if key_missing:
        errors.append(
            MappingErrorDetail(
                code="natural_key_unmapped",
                message="No column holds the FLE code (codFle / Código FLE).",
                canonical_field=NATURAL_KEY_FIELD,
                context={"source_headers": list(source_headers)},
            )
        )

    if not errors:
        return

    if key_missing:
        message = "Rows have no FLE code column; no record can be reconciled."
    else:
        message = "Column overrides could not be applied to the submitted rows."
    raise ColumnMappingError(message=message, errors=errors)
