"""
Cross-capture merge module.

Provides:
- Per-cell merge (present beats absent, higher confidence wins)
- Index-aligned row list merge
- Whole-table merge, applied in capture order
"""

import logging
from typing import List, Optional

from .tables import ALL_FIELDS, Cell, RecognizedTable, TableRow

logger = logging.getLogger(__name__)


def merge_cells(existing: Optional[Cell], new: Optional[Cell]) -> Optional[Cell]:
    """Keep the better of two readings of one field; ties keep existing."""
    if existing is None:
        return new
    if new is None:
        return existing
    return new if new.confidence > existing.confidence else existing


def merge_rows(existing: Optional[TableRow], new: Optional[TableRow]) -> Optional[TableRow]:
    if existing is None:
        return new
    if new is None:
        return existing

    merged = TableRow(bbox=new.bbox or existing.bbox)
    for name in ALL_FIELDS:
        setattr(merged, name, merge_cells(getattr(existing, name), getattr(new, name)))
    return merged


def merge_row_lists(existing: List[TableRow], new: List[TableRow]) -> List[TableRow]:
    """Merge by index; the result is as long as the longer list."""
    merged = []
    for i in range(max(len(existing), len(new))):
        row = merge_rows(
            existing[i] if i < len(existing) else None,
            new[i] if i < len(new) else None
        )
        if row is not None:
            merged.append(row)
    return merged


def merge_tables(existing: Optional[RecognizedTable], new: RecognizedTable) -> RecognizedTable:
    """
    Fold a newly parsed capture into the accumulated table.

    Workout type, date and total time prefer the new capture when it has a
    value; the fields derived from them are recomputed on the merged table
    so they never disagree. Cells are merged field by field. Aggregate
    confidence is the higher of the two inputs rather than a recomputation
    over the merged cells.
    """
    if existing is None:
        return new

    def pick(name: str):
        value = getattr(new, name)
        return value if value is not None else getattr(existing, name)

    merged = RecognizedTable(
        workout_type=pick("workout_type"),
        date=pick("date"),
        total_time=pick("total_time"),
        averages=merge_rows(existing.averages, new.averages),
        rows=merge_row_lists(existing.rows, new.rows),
        average_confidence=max(existing.average_confidence, new.average_confidence),
    )
    merged.derive_metadata()

    logger.debug(
        f"Merged capture: rows {len(existing.rows)} + {len(new.rows)} -> {len(merged.rows)}"
    )
    return merged
