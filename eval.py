#!/usr/bin/env python
"""
Evaluation script for the ergscan parser.

Compares parsed tables against hand-labelled ground truth, field by field.

Usage:
    python eval.py --input <table.json> --expected <truth.json>
    python eval.py --results-dir <dir> --expected-dir <dir> --report <report.json>

Ground truth files hold the same keys as a serialized table, with plain
values: {"workout_type": "3x4:00/3:00r", "total_time": "12:00.0",
"averages": {"time": "12:00.0", "meters": 3541, ...}, "rows": [...]}.
"""

import argparse
import json
import logging
from pathlib import Path
from dataclasses import dataclass, asdict, field
from typing import List, Optional, Dict, Any
import sys

sys.path.insert(0, str(Path(__file__).parent / "src"))

from utils.completeness import field_progress, is_complete
from utils.tables import ALL_FIELDS, RecognizedTable, TableRow

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

METADATA_FIELDS = ("workout_type", "total_time", "description", "total_distance")


@dataclass
class EvaluationMetrics:
    """Evaluation metrics for one parsed table."""
    average_confidence: float = 0.0
    field_progress: float = 0.0
    complete: bool = False

    rows_parsed: int = 0
    rows_expected: Optional[int] = None

    # Accuracy (if ground truth provided)
    fields_total: int = 0
    fields_matched: int = 0
    accuracy: Optional[float] = None
    mismatches: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_table(json_path: Path) -> RecognizedTable:
    """Load a table from an export envelope or a bare table dict."""
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if "table" in data:
        data = data["table"]
    return RecognizedTable.from_dict(data)


def load_truth(json_path: Path) -> Dict[str, Any]:
    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def evaluate_table(table: RecognizedTable) -> EvaluationMetrics:
    """Metrics that need no ground truth."""
    return EvaluationMetrics(
        average_confidence=table.average_confidence,
        field_progress=field_progress(table),
        complete=is_complete(table),
        rows_parsed=len(table.rows)
    )


def _compare(metrics: EvaluationMetrics, name: str, expected: Any, actual: Any):
    if expected is None:
        return
    metrics.fields_total += 1
    if actual is not None and str(actual) == str(expected):
        metrics.fields_matched += 1
    else:
        metrics.mismatches.append(f"{name}: expected {expected!r}, got {actual!r}")


def _compare_row(
    metrics: EvaluationMetrics,
    name: str,
    expected: Dict[str, Any],
    actual: Optional[TableRow]
):
    for field_name in ALL_FIELDS:
        cell = getattr(actual, field_name) if actual else None
        _compare(metrics, f"{name}.{field_name}", expected.get(field_name), cell.text if cell else None)


def evaluate_against_expected(
    table: RecognizedTable,
    expected: Dict[str, Any]
) -> EvaluationMetrics:
    """
    Field-level accuracy against ground truth.

    Every field present in the ground truth counts once; a row or cell the
    parser missed counts as a mismatch.
    """
    metrics = evaluate_table(table)

    for name in METADATA_FIELDS:
        _compare(metrics, name, expected.get(name), getattr(table, name))

    if expected.get("averages"):
        _compare_row(metrics, "averages", expected["averages"], table.averages)

    expected_rows = expected.get("rows") or []
    metrics.rows_expected = len(expected_rows)
    for i, row in enumerate(expected_rows):
        actual = table.rows[i] if i < len(table.rows) else None
        _compare_row(metrics, f"rows[{i}]", row, actual)

    if metrics.fields_total:
        metrics.accuracy = metrics.fields_matched / metrics.fields_total
    return metrics


def print_metrics(metrics: EvaluationMetrics, name: str = "Table"):
    """Print metrics in a formatted way."""
    print(f"\n{'='*60}")
    print(f"Evaluation Results: {name}")
    print('='*60)

    print("\n📊 Parse:")
    print(f"  Average Confidence: {metrics.average_confidence:.1%}")
    print(f"  Field Progress: {metrics.field_progress:.1%}")
    print(f"  Complete: {metrics.complete}")
    rows_expected = "?" if metrics.rows_expected is None else metrics.rows_expected
    print(f"  Rows: {metrics.rows_parsed} (expected {rows_expected})")

    if metrics.accuracy is not None:
        print("\n🎯 Accuracy (vs ground truth):")
        print(f"  Fields: {metrics.fields_matched}/{metrics.fields_total}")
        print(f"  Accuracy: {metrics.accuracy:.1%}")
        for line in metrics.mismatches:
            print(f"  ✗ {line}")

    print('='*60)


def evaluate_directory(
    results_dir: Path,
    expected_dir: Optional[Path] = None
) -> Dict[str, EvaluationMetrics]:
    """Evaluate all tables in a directory."""
    results = {}

    for json_file in sorted(results_dir.glob("*.json")):
        if json_file.name == "report.json":
            continue

        table = load_table(json_file)

        expected = None
        if expected_dir:
            expected_file = expected_dir / json_file.name
            if expected_file.exists():
                expected = load_truth(expected_file)

        if expected:
            metrics = evaluate_against_expected(table, expected)
        else:
            metrics = evaluate_table(table)

        results[json_file.stem] = metrics

    return results


def generate_report(
    results: Dict[str, EvaluationMetrics]
) -> Dict[str, Any]:
    """Generate a summary report from multiple evaluations."""
    if not results:
        return {"error": "No results to report"}

    total = len(results)
    avg_confidence = sum(m.average_confidence for m in results.values()) / total
    complete = sum(1 for m in results.values() if m.complete)

    fields_total = sum(m.fields_total for m in results.values())
    fields_matched = sum(m.fields_matched for m in results.values())

    return {
        "summary": {
            "tables_evaluated": total,
            "average_confidence": round(avg_confidence, 3),
            "complete_tables": complete,
            "fields_total": fields_total,
            "fields_matched": fields_matched,
            "field_accuracy": round(fields_matched / fields_total, 3) if fields_total > 0 else 0
        },
        "individual_results": {
            name: metrics.to_dict()
            for name, metrics in results.items()
        }
    }


def main():
    parser = argparse.ArgumentParser(
        description="Evaluate ergscan parse outputs against ground truth"
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="Path to a table JSON output file"
    )

    parser.add_argument(
        "--expected", "-e",
        type=Path,
        help="Path to ground truth JSON for comparison"
    )

    parser.add_argument(
        "--results-dir",
        type=Path,
        help="Directory containing multiple table JSON files"
    )

    parser.add_argument(
        "--expected-dir",
        type=Path,
        help="Directory containing ground truth files (same names)"
    )

    parser.add_argument(
        "--report", "-r",
        type=Path,
        help="Output path for evaluation report JSON"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress printed output"
    )

    args = parser.parse_args()

    results = {}

    # Evaluate single file
    if args.input:
        if not args.input.exists():
            logger.error(f"Input file not found: {args.input}")
            sys.exit(1)

        table = load_table(args.input)

        if args.expected and args.expected.exists():
            metrics = evaluate_against_expected(table, load_truth(args.expected))
        else:
            metrics = evaluate_table(table)

        results[args.input.stem] = metrics

        if not args.quiet:
            print_metrics(metrics, args.input.name)

    # Evaluate directory
    elif args.results_dir:
        if not args.results_dir.is_dir():
            logger.error(f"Results directory not found: {args.results_dir}")
            sys.exit(1)

        results = evaluate_directory(args.results_dir, args.expected_dir)

        if not args.quiet:
            for name, metrics in results.items():
                print_metrics(metrics, name)

    else:
        parser.print_help()
        sys.exit(1)

    # Generate and save report
    if args.report and results:
        report = generate_report(results)

        with open(args.report, 'w') as f:
            json.dump(report, f, indent=2)

        logger.info(f"Report saved to: {args.report}")

        if not args.quiet:
            print(f"\n📝 Report saved to: {args.report}")
            print("\nSummary:")
            for key, value in report["summary"].items():
                print(f"  {key}: {value}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
