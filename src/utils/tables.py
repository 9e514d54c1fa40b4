"""
Table data model for workout screen parsing.

Provides:
- Cell, TableRow and RecognizedTable value types
- Aggregate confidence over populated cells
- Multiple output formats (Markdown, CSV, JSON-ready dict)
"""

import logging
import csv
import io
from dataclasses import dataclass, field
import datetime
from typing import List, Optional, Tuple, Dict, Any
import numpy as np

from .layout import BoundingBox
from .patterns import WorkoutCategory, decompose_interval, describe_workout, detect_category

logger = logging.getLogger(__name__)

# Fields every data row is expected to carry
CORE_FIELDS = ("time", "meters", "split", "stroke_rate")
ALL_FIELDS = CORE_FIELDS + ("heart_rate",)

# Fields exposed as integers in serialized output
NUMERIC_FIELDS = frozenset({"meters", "stroke_rate", "heart_rate"})

COLUMN_TITLES = {
    "time": "Time",
    "meters": "Meters",
    "split": "/500m",
    "stroke_rate": "s/m",
    "heart_rate": "HR",
}


def _to_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    digits = text.replace(",", "").strip()
    return int(digits) if digits.isdigit() else None


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class Cell:
    """One recognized and validated field value."""
    text: str
    confidence: float
    bbox: Optional[BoundingBox] = None

    def to_dict(self, numeric: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "text": self.text,
            "confidence": round(float(self.confidence), 4),
        }
        if numeric:
            data["value"] = _to_int(self.text)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['Cell']:
        if not data:
            return None
        return cls(text=str(data["text"]), confidence=float(data.get("confidence", 0.0)))


@dataclass
class TableRow:
    """A single row in the workout table."""
    time: Optional[Cell] = None
    meters: Optional[Cell] = None
    split: Optional[Cell] = None
    stroke_rate: Optional[Cell] = None
    heart_rate: Optional[Cell] = None
    bbox: Optional[BoundingBox] = None

    def cells(self) -> List[Tuple[str, Cell]]:
        """Populated cells as (field name, cell) pairs."""
        return [(name, getattr(self, name)) for name in ALL_FIELDS
                if getattr(self, name) is not None]

    @property
    def core_count(self) -> int:
        return sum(1 for name in CORE_FIELDS if getattr(self, name) is not None)

    @property
    def meters_value(self) -> Optional[int]:
        return _to_int(self.meters.text) if self.meters else None

    @property
    def stroke_rate_value(self) -> Optional[int]:
        return _to_int(self.stroke_rate.text) if self.stroke_rate else None

    @property
    def heart_rate_value(self) -> Optional[int]:
        return _to_int(self.heart_rate.text) if self.heart_rate else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for name in ALL_FIELDS:
            cell = getattr(self, name)
            data[name] = cell.to_dict(numeric=name in NUMERIC_FIELDS) if cell else None
        data["bbox"] = self.bbox.to_tuple() if self.bbox else None
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['TableRow']:
        if data is None:
            return None
        bbox = data.get("bbox")
        return cls(
            bbox=BoundingBox(*bbox) if bbox else None,
            **{name: Cell.from_dict(data.get(name)) for name in ALL_FIELDS}
        )


@dataclass
class RecognizedTable:
    """Parsed workout summary screen."""
    workout_type: Optional[str] = None
    category: Optional[WorkoutCategory] = None
    date: Optional[datetime.date] = None
    total_time: Optional[str] = None
    total_distance: Optional[int] = None
    reps: Optional[int] = None
    work_per_rep: Optional[str] = None
    rest_per_rep: Optional[str] = None
    description: Optional[str] = None
    averages: Optional[TableRow] = None
    rows: List[TableRow] = field(default_factory=list)
    average_confidence: float = 0.0

    def all_rows(self) -> List[TableRow]:
        """Averages row (if any) followed by the data rows."""
        return ([self.averages] if self.averages else []) + list(self.rows)

    def populated_cells(self) -> List[Cell]:
        return [cell for row in self.all_rows() for _, cell in row.cells()]

    def compute_average_confidence(self) -> float:
        """Mean confidence over every populated cell; 0.0 when none."""
        confidences = [cell.confidence for cell in self.populated_cells()]
        return float(np.mean(confidences)) if confidences else 0.0

    @property
    def is_empty(self) -> bool:
        return self.workout_type is None and self.date is None and not self.all_rows()

    def derive_metadata(self):
        """Recompute category, interval parts, description and distance
        from the workout type and the averages row."""
        spec = decompose_interval(self.workout_type) if self.workout_type else None
        self.category = detect_category(self.workout_type) if self.workout_type else None
        self.reps = spec.reps if spec else None
        self.work_per_rep = spec.work if spec else None
        self.rest_per_rep = spec.rest if spec else None
        self.description = describe_workout(self.workout_type) if self.workout_type else None
        self.total_distance = self.averages.meters_value if self.averages else None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workout_type": self.workout_type,
            "category": self.category.value if self.category else None,
            "date": self.date.isoformat() if self.date else None,
            "total_time": self.total_time,
            "total_distance": self.total_distance,
            "reps": self.reps,
            "work_per_rep": self.work_per_rep,
            "rest_per_rep": self.rest_per_rep,
            "description": self.description,
            "averages": self.averages.to_dict() if self.averages else None,
            "rows": [r.to_dict() for r in self.rows],
            "average_confidence": round(float(self.average_confidence), 4),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecognizedTable':
        category = data.get("category")
        raw_date = data.get("date")
        return cls(
            workout_type=data.get("workout_type"),
            category=WorkoutCategory(category) if category else None,
            date=datetime.date.fromisoformat(raw_date) if raw_date else None,
            total_time=data.get("total_time"),
            total_distance=data.get("total_distance"),
            reps=data.get("reps"),
            work_per_rep=data.get("work_per_rep"),
            rest_per_rep=data.get("rest_per_rep"),
            description=data.get("description"),
            averages=TableRow.from_dict(data.get("averages")),
            rows=[TableRow.from_dict(r) for r in data.get("rows", [])],
            average_confidence=float(data.get("average_confidence", 0.0)),
        )

    # ------------------------------------------------------------------
    # Grid renderings
    # ------------------------------------------------------------------

    def _columns(self) -> List[str]:
        """Core columns, plus heart rate when any row carries it."""
        columns = list(CORE_FIELDS)
        if any(r.heart_rate for r in self.all_rows()):
            columns.append("heart_rate")
        return columns

    def _grid(self) -> List[List[str]]:
        columns = self._columns()
        grid = [[""] + [COLUMN_TITLES[c] for c in columns]]
        labelled = []
        if self.averages:
            labelled.append(("avg", self.averages))
        labelled.extend((str(i + 1), r) for i, r in enumerate(self.rows))

        for label, row in labelled:
            cells = [getattr(row, c) for c in columns]
            grid.append([label] + [cell.text if cell else "" for cell in cells])
        return grid

    def to_markdown(self) -> str:
        """Build Markdown table representation."""
        grid = self._grid()
        if len(grid) < 2:
            return ""

        lines = []
        lines.append("| " + " | ".join(grid[0]) + " |")
        lines.append("| " + " | ".join("---" for _ in grid[0]) + " |")
        for row in grid[1:]:
            lines.append("| " + " | ".join(row) + " |")

        return "\n".join(lines)

    def to_csv(self) -> str:
        """Build CSV representation."""
        grid = self._grid()
        if len(grid) < 2:
            return ""

        output = io.StringIO()
        writer = csv.writer(output)
        for row in grid:
            writer.writerow(row)
        return output.getvalue()

    def summary(self) -> str:
        """One line per field, for logs."""
        lines = [
            f"workoutType: {self.workout_type}",
            f"category: {self.category.value if self.category else None}",
            f"date: {self.date}",
            f"totalTime: {self.total_time}",
            f"totalDistance: {self.total_distance}",
        ]
        if self.reps is not None:
            lines.append(f"reps: {self.reps} work: {self.work_per_rep} rest: {self.rest_per_rep}")
        lines.append(f"averages: {_row_summary(self.averages)}")
        lines.append(f"rows: {len(self.rows)}")
        for i, row in enumerate(self.rows):
            lines.append(f"  [{i}] {_row_summary(row)}")
        lines.append(f"confidence: {self.average_confidence:.1%}")
        return "\n".join(lines)


def _row_summary(row: Optional[TableRow]) -> str:
    if row is None:
        return "None"
    return " ".join(
        f"{name}={getattr(row, name).text if getattr(row, name) else None}"
        for name in ALL_FIELDS
    )
