"""
Tests for completeness evaluation module.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from utils.completeness import field_progress, is_complete, missing_fields
from utils.tables import Cell, RecognizedTable, TableRow


def full_row(time="4:00.0", meters="1179", split="1:41.2", rate="29"):
    def cell(text):
        return Cell(text, 0.9) if text is not None else None

    return TableRow(time=cell(time), meters=cell(meters), split=cell(split), stroke_rate=cell(rate))


class TestIsComplete:
    """Lock decision."""

    def test_none_is_incomplete(self):
        assert not is_complete(None)
        assert missing_fields(None) == ["table"]

    def test_averages_only(self):
        """A table with a full averages row and no intervals is complete."""
        table = RecognizedTable(workout_type="2000m", averages=full_row("7:12.4", "2000", "1:48.1", "31"))

        assert is_complete(table)
        assert missing_fields(table) == []

    def test_workout_type_required(self):
        table = RecognizedTable(averages=full_row())

        assert missing_fields(table) == ["workout_type"]

    def test_row_missing_split(self):
        """Every row needs time, meters and split."""
        table = RecognizedTable(
            workout_type="3x4:00/3:00r",
            averages=full_row(),
            rows=[full_row(), full_row(split=None), full_row()],
        )

        assert not is_complete(table)
        assert missing_fields(table) == ["rows[1].split"]

    def test_short_final_row_without_rate(self):
        """A final row under 100m may lack a stroke rate."""
        table = RecognizedTable(
            workout_type="3x4:00/3:00r",
            averages=full_row(),
            rows=[full_row(), full_row(meters="40", rate=None)],
        )

        assert is_complete(table)

    def test_long_final_row_needs_rate(self):
        table = RecognizedTable(
            workout_type="3x4:00/3:00r",
            averages=full_row(),
            rows=[full_row(), full_row(meters="120", rate=None)],
        )

        assert missing_fields(table) == ["rows[1].stroke_rate"]

    def test_earlier_rows_need_rate(self):
        """Only the final row may lack stroke rate."""
        table = RecognizedTable(
            workout_type="3x4:00/3:00r",
            averages=full_row(),
            rows=[full_row(meters="40", rate=None), full_row()],
        )

        assert missing_fields(table) == ["rows[0].stroke_rate"]

    def test_missing_averages_fields(self):
        table = RecognizedTable(workout_type="2000m", averages=full_row(split=None, rate=None))

        assert missing_fields(table) == ["averages.split", "averages.stroke_rate"]


class TestFieldProgress:
    """Progress fraction."""

    def test_empty(self):
        """Nothing parsed is zero progress."""
        assert field_progress(None) == 0.0
        assert field_progress(RecognizedTable()) == 0.0

    def test_averages_only_uses_default_rows(self):
        """Before any row is seen, five rows of four fields are assumed."""
        table = RecognizedTable(averages=full_row())

        assert field_progress(table) == pytest.approx(4 / 24)

    def test_complete_table(self):
        table = RecognizedTable(averages=full_row(), rows=[full_row(), full_row(), full_row()])

        assert field_progress(table) == pytest.approx(1.0)

    def test_partial_rows(self):
        """Missing cells lower the fraction."""
        table = RecognizedTable(
            averages=full_row(),
            rows=[full_row(split=None), full_row()],
        )

        # 4 averages + (3 + 1) + (4) expected, one split missing
        assert field_progress(table) == pytest.approx(11 / 12)

    def test_final_row_rate_optional(self):
        """A missing last-row rate is not counted against progress."""
        table = RecognizedTable(averages=full_row(), rows=[full_row(), full_row(rate=None)])

        assert field_progress(table) == pytest.approx(1.0)
