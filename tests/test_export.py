"""
Tests for export module.
"""

import pytest
import json
import sys
import tempfile
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def table():
    from utils.patterns import WorkoutCategory
    from utils.tables import Cell, RecognizedTable, TableRow

    def row(*texts):
        names = ("time", "meters", "split", "stroke_rate")
        return TableRow(**{n: Cell(t, 0.9) for n, t in zip(names, texts)})

    return RecognizedTable(
        workout_type="3x4:00/3:00r",
        category=WorkoutCategory.INTERVAL,
        date=date(2025, 12, 20),
        total_time="12:00.0",
        total_distance=3541,
        reps=3,
        work_per_rep="4:00",
        rest_per_rep="3:00",
        description="3 x 4:00 / 3:00 rest",
        averages=row("12:00.0", "3541", "1:41.6", "29"),
        rows=[row("4:00.0", "1179", "1:41.7", "29")],
        average_confidence=0.9,
    )


class TestJsonExporter:
    """JSON envelope export."""

    def test_envelope(self, table):
        from utils.export import JsonExporter

        envelope = JsonExporter("2.0").build_envelope(table, ["c1.json"])

        assert envelope["schema_version"] == "2.0"
        assert envelope["source_files"] == ["c1.json"]
        assert "created_at" in envelope
        assert envelope["table"]["total_distance"] == 3541

    def test_export_writes_file(self, table):
        from utils.export import JsonExporter

        with tempfile.TemporaryDirectory() as tmpdir:
            path = JsonExporter().export(table, Path(tmpdir) / "t.json")
            data = json.loads(path.read_text(encoding="utf-8"))

        assert data["schema_version"] == "1.0"
        assert data["table"]["rows"][0]["meters"]["value"] == 1179


class TestMarkdownExporter:
    """Markdown export."""

    def test_generate(self, table):
        """Title, metadata lines and the grid."""
        from utils.export import MarkdownExporter

        md = MarkdownExporter().generate(table)

        assert md.startswith("# 3 x 4:00 / 3:00 rest")
        assert "- **Date:** Dec 20 2025" in md
        assert "- **Total distance:** 3541m" in md
        assert "- **Confidence:** 90.0%" in md
        assert "| 1 | 4:00.0 | 1179 | 1:41.7 | 29 |" in md

    def test_without_confidence(self, table):
        from utils.export import MarkdownExporter

        assert "Confidence" not in MarkdownExporter(include_confidence=False).generate(table)

    def test_empty_table(self):
        """An empty table still renders."""
        from utils.export import MarkdownExporter
        from utils.tables import RecognizedTable

        md = MarkdownExporter().generate(RecognizedTable())

        assert md.startswith("# Workout")
        assert "_No rows recognized._" in md


class TestTableExporter:
    """Multi-format export."""

    def test_all_formats(self, table):
        """'all' writes every format plus the debug log."""
        from utils.export import TableExporter

        with tempfile.TemporaryDirectory() as tmpdir:
            exporter = TableExporter(Path(tmpdir) / "out", base_name="session")
            results = exporter.export(table, ["all"], debug_log="=== Rows ===")

            assert set(results) == {"json", "markdown", "csv", "debug_log"}
            assert results["csv"].name == "session.csv"
            assert results["debug_log"].read_text(encoding="utf-8") == "=== Rows ==="

    def test_default_formats(self, table):
        from utils.export import TableExporter

        with tempfile.TemporaryDirectory() as tmpdir:
            results = TableExporter(tmpdir).export(table)

            assert set(results) == {"json", "markdown"}
            assert (Path(tmpdir) / "table.md").exists()

    def test_unknown_format(self, table):
        from utils.export import TableExporter

        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ValueError):
                TableExporter(tmpdir).export(table, ["html"])
