"""
app/services/chunker.py

Splits normalized records into ordered, fixed-size chunks.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from app.domain.catalog_ingestion import Chunk, IngestRecord

DEFAULT_CHUNK_SIZE = 25


def chunk_records(
    records: Sequence[IngestRecord],
    *,
    batch_size: int = DEFAULT_CHUNK_SIZE,
) -> list[Chunk]:
    """
    Slice ``records`` into ``ceil(N / batch_size)`` chunks, keeping input order.

    Duplicate natural keys are left in place; each occurrence is reconciled
    against the store as it stands when its chunk runs.
    """

    size = max(1, batch_size)
    total = math.ceil(len(records) / size)
    return [
        Chunk(
            index=position + 1,
            total=total,
            records=tuple(records[start : start + size]),
        )
        for position, start in enumerate(range(0, len(records), size))
    ]
