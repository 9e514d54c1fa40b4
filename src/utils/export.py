"""
Export module for parsed workout tables.

Provides:
- JSON export (versioned envelope)
- Markdown export
- CSV export
- Multi-format convenience exporter
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .io import save_json
from .tables import RecognizedTable

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


# ============================================================================
# JSON Exporter
# ============================================================================

class JsonExporter:
    """Export a table inside a versioned JSON envelope."""

    def __init__(self, schema_version: str = SCHEMA_VERSION):
        self.schema_version = schema_version

    def build_envelope(
        self,
        table: RecognizedTable,
        source_files: Optional[List[str]] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        envelope = {
            "schema_version": self.schema_version,
            "created_at": datetime.now().isoformat(),
            "source_files": source_files or [],
            "table": table.to_dict(),
        }
        if extra:
            envelope.update(extra)
        return envelope

    def export(
        self,
        table: RecognizedTable,
        output_path: Union[str, Path],
        source_files: Optional[List[str]] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> Path:
        path = save_json(self.build_envelope(table, source_files, extra), output_path)
        logger.info(f"Exported JSON to: {path}")
        return path


# ============================================================================
# Markdown Exporter
# ============================================================================

class MarkdownExporter:
    """Export a table to Markdown with a metadata header."""

    def __init__(self, include_confidence: bool = True):
        self.include_confidence = include_confidence

    def export(
        self,
        table: RecognizedTable,
        output_path: Union[str, Path]
    ) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(self.generate(table))

        logger.info(f"Exported Markdown to: {output_path}")
        return output_path

    def generate(self, table: RecognizedTable) -> str:
        lines = [f"# {table.description or table.workout_type or 'Workout'}", ""]

        meta = [
            ("Workout type", table.workout_type),
            ("Category", table.category.value if table.category else None),
            ("Date", table.date.strftime("%b %d %Y") if table.date else None),
            ("Total time", table.total_time),
            ("Total distance", f"{table.total_distance}m" if table.total_distance is not None else None),
        ]
        if table.reps is not None:
            meta.append(("Intervals", f"{table.reps} x {table.work_per_rep} / {table.rest_per_rep} rest"))
        if self.include_confidence:
            meta.append(("Confidence", f"{table.average_confidence:.1%}"))

        for label, value in meta:
            if value is not None:
                lines.append(f"- **{label}:** {value}")
        lines.append("")

        grid = table.to_markdown()
        lines.append(grid if grid else "_No rows recognized._")
        lines.append("")
        return "\n".join(lines)


# ============================================================================
# CSV Exporter
# ============================================================================

class CsvExporter:
    """Export the averages and interval rows as CSV."""

    def export(
        self,
        table: RecognizedTable,
        output_path: Union[str, Path]
    ) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8', newline='') as f:
            f.write(table.to_csv())

        logger.info(f"Exported CSV to: {output_path}")
        return output_path


# ============================================================================
# Multi-format Exporter
# ============================================================================

class TableExporter:
    """Convenience class for exporting to multiple formats."""

    FORMATS = ("json", "markdown", "csv")

    def __init__(
        self,
        output_dir: Union[str, Path],
        base_name: str = "table",
        schema_version: str = SCHEMA_VERSION
    ):
        self.output_dir = Path(output_dir)
        self.base_name = base_name

        self.json_exporter = JsonExporter(schema_version)
        self.markdown_exporter = MarkdownExporter()
        self.csv_exporter = CsvExporter()

    def export(
        self,
        table: RecognizedTable,
        formats: Optional[List[str]] = None,
        debug_log: Optional[str] = None,
        source_files: Optional[List[str]] = None
    ) -> Dict[str, Path]:
        """
        Export a table to multiple formats.

        Args:
            table: Parsed (or merged) table
            formats: Any of 'json', 'markdown', 'csv', 'all'
            debug_log: Written to ``<base>_debug.log`` when given
            source_files: Recorded in the JSON envelope

        Returns:
            Dictionary mapping format to output path
        """
        if formats is None:
            formats = ["json", "markdown"]
        if "all" in formats:
            formats = list(self.FORMATS)

        unknown = [f for f in formats if f not in self.FORMATS]
        if unknown:
            raise ValueError(f"Unknown export format(s): {', '.join(unknown)}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        results = {}

        if "json" in formats:
            path = self.output_dir / f"{self.base_name}.json"
            results["json"] = self.json_exporter.export(table, path, source_files)

        if "markdown" in formats:
            path = self.output_dir / f"{self.base_name}.md"
            results["markdown"] = self.markdown_exporter.export(table, path)

        if "csv" in formats:
            path = self.output_dir / f"{self.base_name}.csv"
            results["csv"] = self.csv_exporter.export(table, path)

        if debug_log:
            path = self.output_dir / f"{self.base_name}_debug.log"
            with open(path, 'w', encoding='utf-8') as f:
                f.write(debug_log)
            results["debug_log"] = path

        return results
