"""
Completeness evaluation module.

Provides:
- The lock decision for an accumulated table
- Field-based progress for the capture loop
- A list of what is still missing, for logs and the CLI
"""

import logging
from typing import List, Optional

from .tables import CORE_FIELDS, RecognizedTable

logger = logging.getLogger(__name__)

# A final row shorter than this may legitimately show no stroke rate
SHORT_FINAL_ROW_METERS = 100

# Assumed table size before any data row has been seen
DEFAULT_EXPECTED_ROWS = 5

_ROW_ESSENTIALS = ("time", "meters", "split")


def missing_fields(
    table: Optional[RecognizedTable],
    short_final_row_meters: int = SHORT_FINAL_ROW_METERS
) -> List[str]:
    """
    Describe every gap that keeps the table from being complete.

    Returns:
        Paths such as "workout_type", "averages.split", "rows[2].stroke_rate";
        empty when complete
    """
    if table is None:
        return ["table"]

    missing = []
    if table.workout_type is None:
        missing.append("workout_type")

    if table.averages is None:
        missing.append("averages")
    else:
        missing.extend(f"averages.{name}" for name in CORE_FIELDS
                       if getattr(table.averages, name) is None)

    last = len(table.rows) - 1
    for i, row in enumerate(table.rows):
        missing.extend(f"rows[{i}].{name}" for name in _ROW_ESSENTIALS
                       if getattr(row, name) is None)
        if row.stroke_rate is not None:
            continue
        if i < last or (row.meters_value or 0) >= short_final_row_meters:
            missing.append(f"rows[{i}].stroke_rate")

    return missing


def is_complete(
    table: Optional[RecognizedTable],
    short_final_row_meters: int = SHORT_FINAL_ROW_METERS
) -> bool:
    """True once the table carries every essential field."""
    missing = missing_fields(table, short_final_row_meters)
    if missing:
        logger.debug(f"Not complete: missing {', '.join(missing)}")
        return False
    return True


def field_progress(
    table: Optional[RecognizedTable],
    default_expected_rows: int = DEFAULT_EXPECTED_ROWS
) -> float:
    """
    Fraction of expected fields currently populated, in [0.0, 1.0].

    The averages row counts four fields. Each data row counts time, meters
    and split, plus stroke rate except on the last row, where it only
    counts once present. With no data rows yet, a default table of
    ``default_expected_rows`` x 4 fields is assumed.
    """
    if table is None:
        return 0.0

    filled = 0
    total = len(CORE_FIELDS)
    if table.averages is not None:
        filled += table.averages.core_count

    if not table.rows:
        total += default_expected_rows * len(CORE_FIELDS)
        return filled / total

    last = len(table.rows) - 1
    for i, row in enumerate(table.rows):
        total += len(_ROW_ESSENTIALS)
        filled += sum(1 for name in _ROW_ESSENTIALS if getattr(row, name) is not None)
        if i < last or row.stroke_rate is not None:
            total += 1
            if row.stroke_rate is not None:
                filled += 1

    return filled / total
