"""
app/mappers package marker.
"""

from app.mappers.column_mapper import (
    CATALOG_FIELDS,
    ColumnMapper,
    ColumnMapping,
)

__all__ = [
    "CATALOG_FIELDS",
    "ColumnMapper",
    "ColumnMapping",
]
