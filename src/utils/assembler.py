"""
Table assembler module for workout screen parsing.

Provides:
- Pipeline orchestration (map, group, classify, assemble)
- Landmark-anchored metadata extraction
- Phase-by-phase debug log
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from .classifier import (
    ClassifiedRow,
    ColumnAnchors,
    DetectedLandmark,
    RowClassifier,
    RowRole,
    find_landmarks,
)
from .layout import (
    BOUNDS_TOLERANCE,
    ROW_TOLERANCE,
    BoxMapper,
    Detection,
    GuideRelativeDetection,
    group_into_rows,
    map_detections,
    row_text,
)
from .ocr_text import normalize
from .patterns import Landmark, match_time, match_workout_type
from .tables import RecognizedTable, TableRow

logger = logging.getLogger(__name__)

# Window below "View Detail" where the workout descriptor is printed
VIEW_DETAIL_WINDOW = (0.03, 0.09)

# Where the total time sits relative to its label
TOTAL_TIME_SAME_ROW = 0.03
TOTAL_TIME_MIN_DX = 0.05
TOTAL_TIME_NEXT_ROW = (0.03, 0.06)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ParseResult:
    """Result of parsing one capture."""
    table: RecognizedTable
    debug_log: str = ""
    classified_rows: List[ClassifiedRow] = field(default_factory=list)
    anchors: Optional[ColumnAnchors] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table.to_dict(),
            "rows": [
                {"role": r.role.value, "text": r.text, "y": round(r.mid_y, 4)}
                for r in self.classified_rows
            ],
            "debug_log": self.debug_log,
        }


class _DebugLog:
    """Collects the human-readable phase log."""

    def __init__(self):
        self.lines: List[str] = []

    def section(self, title: str):
        self.lines.append(f"=== {title} ===")

    def add(self, line: str):
        self.lines.append(f"  {line}")

    def text(self) -> str:
        return "\n".join(self.lines)


def _fmt(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else "nil"


# ============================================================================
# Table Builder
# ============================================================================

class TableBuilder:
    """
    Turns one capture's detections into a RecognizedTable.

    Steps, in order:
    - Map detections into guide space and drop out-of-bounds noise
    - Group into rows
    - Classify every row
    - Take metadata (first sighting wins)
    - Split data rows into the averages row and interval rows
    - Drop under-populated rows
    - Derive category and interval metadata
    - Aggregate confidence
    """

    def __init__(
        self,
        row_tolerance: float = ROW_TOLERANCE,
        bounds_tolerance: float = BOUNDS_TOLERANCE,
        column_tolerance: float = 0.05,
        time_split_boundary: float = 0.42,
        header_gap: float = 0.02,
        min_row_fields: int = 2
    ):
        self.row_tolerance = row_tolerance
        self.bounds_tolerance = bounds_tolerance
        self.header_gap = header_gap
        self.min_row_fields = min_row_fields
        self.classifier = RowClassifier(
            column_tolerance=column_tolerance,
            time_split_boundary=time_split_boundary
        )

    @classmethod
    def from_config(cls, config) -> 'TableBuilder':
        """Build from a PipelineConfig."""
        return cls(
            row_tolerance=config.grouping.row_tolerance,
            bounds_tolerance=config.guide.bounds_tolerance,
            column_tolerance=config.parser.column_tolerance,
            time_split_boundary=config.parser.time_split_boundary,
            header_gap=config.parser.header_gap,
            min_row_fields=config.parser.min_row_fields
        )

    def parse(
        self,
        detections: Iterable[Union[Detection, GuideRelativeDetection]],
        mapper: Optional[BoxMapper] = None
    ) -> ParseResult:
        """
        Parse one capture.

        Args:
            detections: Raw detections (mapped through ``mapper``) or
                detections already in guide space
            mapper: Box mapping into guide space; identity when None

        Returns:
            ParseResult with the table and its debug log
        """
        log = _DebugLog()
        table = RecognizedTable()

        # a. Guide space
        guide = map_detections(detections, mapper, self.bounds_tolerance)
        if not guide:
            log.section("No detections")
            logger.info("No detections inside the guide")
            return ParseResult(table=table, debug_log=log.text())

        log.section("Normalized")
        for det in guide:
            normalized = normalize(det.text)
            changed = f' -> "{normalized}"' if normalized != det.text else ""
            log.add(f'"{det.text}"{changed}  X={det.bbox.mid_x:.2f} Y={det.bbox.mid_y:.2f}')

        landmarks = find_landmarks(guide, self.row_tolerance)
        log.section("Landmarks")
        for lm in landmarks:
            log.add(f"{lm.landmark.value}  X={lm.mid_x:.2f} Y={lm.mid_y:.2f}")

        anchors = ColumnAnchors.from_landmarks(landmarks)
        log.section("Column Anchors")
        if anchors:
            log.add(f"timeX={_fmt(anchors.time_x)} metersX={_fmt(anchors.meters_x)} "
                    f"splitX={_fmt(anchors.split_x)} rateX={_fmt(anchors.rate_x)} "
                    f"headerY={_fmt(anchors.header_y)}")
        else:
            log.add("none")

        # b. Rows
        rows = group_into_rows(guide, self.row_tolerance)
        log.section("Rows")
        for i, row in enumerate(rows):
            log.add(f"Row {i} (Y~{row[0].bbox.mid_y:.2f}): {row_text(row)}")

        # c. Classification
        classified = self.classifier.classify_rows(rows, anchors)
        log.section("Classification")
        for i, item in enumerate(classified):
            log.add(f"Row {i}: {item.role.value}")

        # d. Metadata
        table.workout_type = self._anchored_workout_type(guide, landmarks)
        for item in classified:
            if item.role == RowRole.WORKOUT_TYPE and table.workout_type is None:
                table.workout_type = item.value
            elif item.role == RowRole.DATE and table.date is None:
                table.date = item.value

        labelled_total = self._labelled_total_time(guide, landmarks)

        # e, f. Averages and interval rows
        data_rows = self._data_rows(classified, anchors, log)
        if data_rows:
            table.averages = data_rows[0]
            table.rows = data_rows[1:]

        if labelled_total is not None:
            table.total_time = labelled_total
        elif table.averages is not None and table.averages.time is not None:
            table.total_time = table.averages.time.text

        # g. Category, interval metadata and distance
        table.derive_metadata()

        # h. Confidence
        table.average_confidence = table.compute_average_confidence()

        log.section("Result")
        for line in table.summary().splitlines():
            log.add(line)

        logger.info(
            f"Parsed capture: type={table.workout_type} rows={len(table.rows)} "
            f"confidence={table.average_confidence:.1%}"
        )

        return ParseResult(
            table=table,
            debug_log=log.text(),
            classified_rows=classified,
            anchors=anchors
        )

    # ------------------------------------------------------------------
    # Metadata helpers
    # ------------------------------------------------------------------

    def _anchored_workout_type(
        self,
        guide: List[GuideRelativeDetection],
        landmarks: List[DetectedLandmark]
    ) -> Optional[str]:
        """Descriptor printed just below "View Detail", if any."""
        view_detail = next((lm for lm in landmarks if lm.landmark == Landmark.VIEW_DETAIL), None)
        if view_detail is None:
            return None

        labels = {(lm.mid_x, lm.mid_y) for lm in landmarks}
        lo, hi = VIEW_DETAIL_WINDOW
        for det in guide:
            if (det.bbox.mid_x, det.bbox.mid_y) in labels:
                continue
            if view_detail.mid_y + lo < det.bbox.mid_y < view_detail.mid_y + hi:
                descriptor = match_workout_type(det.text)
                if descriptor is not None:
                    return descriptor
        return None

    def _labelled_total_time(
        self,
        guide: List[GuideRelativeDetection],
        landmarks: List[DetectedLandmark]
    ) -> Optional[str]:
        """Time value beside or just below the "Total Time" label."""
        label = next((lm for lm in landmarks if lm.landmark == Landmark.TOTAL_TIME), None)
        if label is None:
            return None

        same_row = [
            d for d in guide
            if abs(d.bbox.mid_y - label.mid_y) < TOTAL_TIME_SAME_ROW
            and d.bbox.mid_x > label.mid_x + TOTAL_TIME_MIN_DX
        ]
        lo, hi = TOTAL_TIME_NEXT_ROW
        next_row = [d for d in guide if label.mid_y + lo < d.bbox.mid_y < label.mid_y + hi]

        for det in same_row + next_row:
            text = normalize(det.text.strip())
            if match_time(text):
                return text
        return None

    # ------------------------------------------------------------------
    # Data rows
    # ------------------------------------------------------------------

    def _data_rows(
        self,
        classified: List[ClassifiedRow],
        anchors: Optional[ColumnAnchors],
        log: _DebugLog
    ) -> List[TableRow]:
        """Data rows below the header, under-populated ones dropped."""
        has_header = any(item.role == RowRole.HEADER for item in classified)
        seen_header = False
        kept: List[TableRow] = []

        log.section("Data Rows")
        for i, item in enumerate(classified):
            if item.role == RowRole.HEADER:
                seen_header = True
                continue
            if item.role != RowRole.DATA_ROW or item.parsed is None:
                continue

            if has_header and not seen_header:
                log.add(f"Row {i}: above header, skipped")
                continue
            if (not has_header and anchors is not None and anchors.header_y is not None
                    and item.mid_y <= anchors.header_y + self.header_gap):
                log.add(f"Row {i}: above header labels, skipped")
                continue
            if item.parsed.core_count < self.min_row_fields:
                log.add(f"Row {i}: only {item.parsed.core_count} core field(s), dropped")
                continue

            kept.append(item.parsed)
            log.add(f"Row {i}: {'averages' if len(kept) == 1 else f'interval {len(kept) - 1}'}")

        return kept


def parse_table(
    detections: Iterable[Union[Detection, GuideRelativeDetection]],
    mapper: Optional[BoxMapper] = None,
    **kwargs
) -> RecognizedTable:
    """Convenience wrapper: parse one capture and return only the table."""
    return TableBuilder(**kwargs).parse(detections, mapper).table
