"""
app/validators package marker.
"""

from app.validators.mapping_validator import ColumnMappingError, MappingErrorDetail, ensure_natural_key_mapped
from app.validators.record_normalizer import RecordNormalizer, parse_decimal, parse_quantity

__all__ = [
    "ColumnMappingError",
    "MappingErrorDetail",
    "RecordNormalizer",
    "ensure_natural_key_mapped",
    "parse_decimal",
    "parse_quantity",
]
