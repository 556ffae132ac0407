"""
app/mappers/column_mapper.py

Resolves spreadsheet headers and JSON keys onto catalog record fields.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, Mapping, Sequence

from app.validators.mapping_validator import (
    ColumnMappingError,
    MappingErrorDetail,
    ensure_natural_key_mapped,
)

CATALOG_FIELDS: tuple[str, ...] = (
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

DEFAULT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "natural_key": (
        "cod_fle",
        "codFle",
        "Código FLE",
        "Cod FLE",
        "CodFLE",
        "Cod. FLE",
        "Codigo FLE",
    ),
    "bar_code": (
        "barCode",
        "Código de Barras",
        "Código Barras",
        "Cod Barras",
        "CodBarras",
        "EAN",
        "Barcode",
        "Bar Code",
    ),
    "location": ("Local", "Localização", "Localizacao"),
    "quantity": ("quantidade", "Qtd", "Qtde"),
    "price": (
        "Preco capa",
        "Preço Capa",
        "Preço de Capa",
        "Valor de Capa",
        "Valor Capa",
    ),
    "cover_price": (
        "coverPrice",
        "Preco Feira",
        "Preço Feira",
        "PrecoFeira",
        "Valor Feira",
    ),
    "title": ("Título", "Titulo", "Nome", "Nome do Livro"),
    "author": ("Autor", "Autoria"),
    "medium": ("Médium", "Médiun"),
    "publisher": ("Editora", "Editor", "Publicadora"),
    "distributor": ("Distribuidor", "Distribuidora", "Dist", "Fornecedor"),
    "subject": ("Assunto", "Tema", "Categoria", "Tipo"),
}


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    folded = unicodedata.normalize("NFKD", header.strip().lower())
    return "".join(ch for ch in folded if ch.isalnum() and not unicodedata.combining(ch))


@dataclass(frozen=True)
class ColumnMapping:
    """
    Final resolved mapping metadata.
    """

    canonical_to_source: dict[str, str]
    source_headers: tuple[str, ...]
    match_strategies: dict[str, str]


class ColumnMapper:
    """
    Resolves source row keys into catalog field mappings.
    """

    def __init__(
        self,
        *,
        aliases: Mapping[str, Sequence[str]] | None = None,
        fuzzy_threshold: float = 0.84,
    ) -> None:
        self._aliases: dict[str, tuple[str, ...]] = {
            canonical: tuple(values)
            for canonical, values in (aliases or DEFAULT_COLUMN_ALIASES).items()
        }
        self._fuzzy_threshold = max(0.0, min(1.0, fuzzy_threshold))

    def resolve_mapping(
        self,
        headers: Sequence[str],
        *,
        manual_overrides: Mapping[str, str] | None = None,
    ) -> ColumnMapping:
        """
        Resolve catalog-field-to-source mapping from headers and overrides.
        """

        source_headers = tuple(
            header for header in headers if isinstance(header, str) and header.strip()
        )
        if not source_headers:
            raise ColumnMappingError(
                message="Row keys are empty; cannot resolve column mapping.",
                errors=[
                    MappingErrorDetail(
                        code="empty_headers",
                        message="No column headers were provided.",
                    )
                ],
            )
        normalized_header_lookup: dict[str, str] = {}
        for header in source_headers:
            normalized = normalize_header(header)
            if normalized and normalized not in normalized_header_lookup:
                normalized_header_lookup[normalized] = header

        resolved: dict[str, str] = {}
        strategies: dict[str, str] = {}
        mapping_errors: list[MappingErrorDetail] = []

        for canonical_field, source_column in (manual_overrides or {}).items():
            normalized_canonical = canonical_field.strip()
            if normalized_canonical not in CATALOG_FIELDS:
                mapping_errors.append(
                    MappingErrorDetail(
                        code="invalid_override_field",
                        message="Manual override contains unknown catalog field.",
                        canonical_field=normalized_canonical,
                        source_column=source_column,
                    )
                )
                continue

            matched_source = normalized_header_lookup.get(normalize_header(source_column))
            if matched_source is None:
                mapping_errors.append(
                    MappingErrorDetail(
                        code="override_source_not_found",
                        message="Manual override points to a column not present in the rows.",
                        canonical_field=normalized_canonical,
                        source_column=source_column,
                        context={"source_headers": list(source_headers)},
                    )
                )
                continue

            resolved[normalized_canonical] = matched_source
            strategies[normalized_canonical] = "override"

        # Exact and alias matches claim their columns before any fuzzy guess.
        used_headers = set(resolved.values())
        for canonical_field in CATALOG_FIELDS:
            if canonical_field in resolved:
                continue
            exact = self._find_exact_or_alias_match(
                canonical_field=canonical_field,
                normalized_header_lookup=normalized_header_lookup,
            )
            if exact is not None and exact not in used_headers:
                resolved[canonical_field] = exact
                strategies[canonical_field] = "exact_or_alias"
                used_headers.add(exact)

        for canonical_field in CATALOG_FIELDS:
            if canonical_field in resolved:
                continue
            fuzzy_match = self._find_best_fuzzy_match(
                canonical_field=canonical_field,
                normalized_header_lookup=normalized_header_lookup,
                used_headers=used_headers,
            )
            if fuzzy_match is not None:
                resolved[canonical_field] = fuzzy_match
                strategies[canonical_field] = "fuzzy"
                used_headers.add(fuzzy_match)

        ensure_natural_key_mapped(
            mapping=resolved,
            source_headers=source_headers,
            override_errors=mapping_errors,
        )

        return ColumnMapping(
            canonical_to_source=resolved,
            source_headers=source_headers,
            match_strategies=strategies,
        )

    def map_row(
        self,
        *,
        raw_row: Mapping[str, Any],
        mapping: ColumnMapping,
    ) -> dict[str, Any]:
        """
        Project one source row onto catalog field names.
        """

        return {
            canonical_field: raw_row.get(source_column)
            for canonical_field, source_column in mapping.canonical_to_source.items()
        }

    def _find_exact_or_alias_match(
        self,
        *,
        canonical_field: str,
        normalized_header_lookup: Mapping[str, str],
    ) -> str | None:
        candidates = (
            canonical_field,
            *self._aliases.get(canonical_field, ()),
        )
        for candidate in candidates:
            match = normalized_header_lookup.get(normalize_header(candidate))
            if match:
                return match
        return None

    def _find_best_fuzzy_match(
        self,
        *,
        canonical_field: str,
        normalized_header_lookup: Mapping[str, str],
        used_headers: set[str],
    ) -> str | None:
        alias_candidates = [canonical_field, *self._aliases.get(canonical_field, ())]
        normalized_candidates = [
            normalize_header(item) for item in alias_candidates if normalize_header(item)
        ]

        best_header: str | None = None
        best_score = 0.0
        for header_norm, header_raw in normalized_header_lookup.items():
            if header_raw in used_headers:
                continue
            for candidate in normalized_candidates:
                score = SequenceMatcher(None, header_norm, candidate).ratio()
                if score > best_score:
                    best_score = score
                    best_header = header_raw

        if best_header is not None and best_score >= self._fuzzy_threshold:
            return best_header
        return None
