"""
Row classification module for workout screen parsing.

Provides:
- Landmark detection and column anchors from the header labels
- Pattern-first row role assignment
- Junk filtering and smooshed-token splitting
- Slotting of data-row tokens into time / meters / split / rate / heart rate
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .layout import ROW_TOLERANCE, BoundingBox, GuideRelativeDetection, row_bbox
from .ocr_text import normalize
from .patterns import (
    COLUMN_LANDMARKS,
    Landmark,
    is_junk,
    match_date,
    match_heart_rate,
    match_interval_type,
    match_landmark,
    match_meters,
    match_rate,
    match_split,
    match_time,
    match_workout_type,
    parse_combined_split_rate,
)
from .tables import Cell, TableRow

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes and Enums
# ============================================================================

class RowRole(Enum):
    """Semantic role of a row on the summary screen."""
    WORKOUT_TYPE = "workout_type"
    DATE = "date"
    HEADER = "header"
    DATA_ROW = "data_row"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DetectedLandmark:
    """A static label found on the screen."""
    landmark: Landmark
    mid_x: float
    mid_y: float
    text: str = ""


_LANDMARK_COLUMN = {
    Landmark.TIME: "time",
    Landmark.METER: "meters",
    Landmark.SPLIT_500M: "split",
    Landmark.STROKE_RATE: "stroke_rate",
}

BARE_SPLIT_LABEL = "500m"


@dataclass
class ColumnAnchors:
    """Column X positions derived from the header labels."""
    time_x: Optional[float] = None
    meters_x: Optional[float] = None
    split_x: Optional[float] = None
    rate_x: Optional[float] = None
    header_y: Optional[float] = None

    @classmethod
    def from_landmarks(cls, landmarks: Sequence[DetectedLandmark]) -> Optional['ColumnAnchors']:
        """Build anchors from header landmarks; None if there are none."""
        anchors = cls()
        header_ys = []

        for lm in landmarks:
            column = _LANDMARK_COLUMN.get(lm.landmark)
            if column is None:
                continue
            attr = "rate_x" if column == "stroke_rate" else f"{column}_x"
            setattr(anchors, attr, lm.mid_x)
            header_ys.append(lm.mid_y)

        if not header_ys:
            return None

        anchors.header_y = float(np.mean(header_ys))

        # No rate label seen: the rate column sits right of the others
        if anchors.rate_x is None:
            known = [x for x in (anchors.time_x, anchors.meters_x, anchors.split_x) if x is not None]
            anchors.rate_x = min(max(known) + 0.15, 0.90) if known else 0.75

        return anchors

    def positions(self) -> Dict[str, float]:
        columns = {
            "time": self.time_x,
            "meters": self.meters_x,
            "split": self.split_x,
            "stroke_rate": self.rate_x,
        }
        return {name: x for name, x in columns.items() if x is not None}

    def nearest(self, mid_x: float, tolerance: float) -> Optional[str]:
        """Column whose anchor is closest to mid_x, within tolerance."""
        best, best_distance = None, tolerance
        for name, x in self.positions().items():
            distance = abs(mid_x - x)
            if distance < best_distance:
                best, best_distance = name, distance
        return best


@dataclass
class ClassifiedRow:
    """Classification result for a single row."""
    role: RowRole
    detections: List[GuideRelativeDetection]
    parsed: Optional[TableRow] = None
    value: Any = None  # Workout descriptor string or date
    landmarks: List[Landmark] = field(default_factory=list)

    @property
    def mid_y(self) -> float:
        return self.detections[0].bbox.mid_y if self.detections else 0.0

    @property
    def text(self) -> str:
        return " ".join(d.text.strip() for d in self.detections)


@dataclass
class _Piece:
    """A token (or part of a split token) ready to be slotted."""
    text: str
    confidence: float
    mid_x: float
    bbox: BoundingBox
    forced: Optional[str] = None


# ============================================================================
# Landmarks
# ============================================================================

def landmark_for(text: str) -> Optional[Landmark]:
    """Landmark for the raw text, falling back to its normalized form."""
    found = match_landmark(text)
    if found is None:
        normalized = normalize(text)
        if normalized != text:
            found = match_landmark(normalized)
    return found


def is_bare_split_label(text: str) -> bool:
    """True for the "/500m" label read without its slash."""
    return normalize(text.strip()).lower() == BARE_SPLIT_LABEL


def find_landmarks(
    detections: Sequence[GuideRelativeDetection],
    row_tolerance: float = ROW_TOLERANCE
) -> List[DetectedLandmark]:
    landmarks = []
    bare = []
    for det in detections:
        found = landmark_for(det.text)
        if found is not None:
            landmarks.append(DetectedLandmark(found, det.bbox.mid_x, det.bbox.mid_y, det.text))
        elif is_bare_split_label(det.text):
            bare.append(det)

    # "500m" on the header line is the split column label
    for det in bare:
        if any(lm.landmark in COLUMN_LANDMARKS and abs(lm.mid_y - det.bbox.mid_y) <= row_tolerance
               for lm in landmarks):
            landmarks.append(DetectedLandmark(Landmark.SPLIT_500M, det.bbox.mid_x, det.bbox.mid_y, det.text))
    return landmarks


def row_landmarks(detections: Sequence[GuideRelativeDetection]) -> List[Optional[Landmark]]:
    """Landmark per detection of one row, reading a bare "500m" as the split label
    when the row holds another column label."""
    found = [landmark_for(d.text) for d in detections]
    if any(lm in COLUMN_LANDMARKS for lm in found):
        found = [
            Landmark.SPLIT_500M if lm is None and is_bare_split_label(d.text) else lm
            for d, lm in zip(detections, found)
        ]
    return found


# ============================================================================
# Row Classifier
# ============================================================================

def field_candidates(text: str) -> List[str]:
    """Every field whose grammar accepts the text."""
    candidates = []
    if match_time(text):
        candidates.append("time")
    if match_split(text):
        candidates.append("split")
    if match_meters(text):
        candidates.append("meters")
    if match_rate(text):
        candidates.append("stroke_rate")
    if match_heart_rate(text):
        candidates.append("heart_rate")
    return candidates


class RowClassifier:
    """
    Pattern-first classifier for grouped rows.

    Priority: workout descriptor, date, column header, data row. A
    misclassified metadata row corrupts the whole table, so metadata
    grammars are tried before data detection.
    """

    LEFT_ORDER = ("time", "meters", "split", "stroke_rate", "heart_rate")
    RIGHT_ORDER = ("split", "stroke_rate", "meters", "heart_rate", "time")
    # Heart rate is printed right of the stroke-rate column
    RATE_SIDE_ORDER = ("heart_rate", "stroke_rate", "split", "meters", "time")

    def __init__(
        self,
        column_tolerance: float = 0.05,
        time_split_boundary: float = 0.42
    ):
        self.column_tolerance = column_tolerance
        self.time_split_boundary = time_split_boundary

    def classify_rows(
        self,
        rows: Sequence[Sequence[GuideRelativeDetection]],
        anchors: Optional[ColumnAnchors] = None
    ) -> List[ClassifiedRow]:
        return [self.classify(row, anchors) for row in rows]

    def classify(
        self,
        row: Sequence[GuideRelativeDetection],
        anchors: Optional[ColumnAnchors] = None
    ) -> ClassifiedRow:
        detections = list(row)
        if not detections:
            return ClassifiedRow(RowRole.UNKNOWN, detections)

        per_detection = row_landmarks(detections)
        landmarks = [lm for lm in per_detection if lm is not None]

        # 1. Workout descriptor
        descriptor = self._match_descriptor(detections, per_detection)
        if descriptor is not None:
            return ClassifiedRow(RowRole.WORKOUT_TYPE, detections, value=descriptor, landmarks=landmarks)

        # 2. Date
        found_date = self._match_date(detections)
        if found_date is not None:
            return ClassifiedRow(RowRole.DATE, detections, value=found_date, landmarks=landmarks)

        # 3. Column header: two or more distinct column labels
        if len(set(landmarks) & COLUMN_LANDMARKS) >= 2:
            return ClassifiedRow(RowRole.HEADER, detections, landmarks=landmarks)

        # 4. Data row
        pieces = [p for det in detections for p in self._expand(det)]
        if len(pieces) >= 2:
            parsed = self._slot(pieces, anchors)
            parsed.bbox = row_bbox(detections)
            if len(parsed.cells()) >= 2:
                return ClassifiedRow(RowRole.DATA_ROW, detections, parsed=parsed, landmarks=landmarks)

        return ClassifiedRow(RowRole.UNKNOWN, detections, landmarks=landmarks)

    # ------------------------------------------------------------------
    # Metadata rows
    # ------------------------------------------------------------------

    def _match_descriptor(
        self,
        detections: List[GuideRelativeDetection],
        per_detection: List[Optional[Landmark]]
    ) -> Optional[str]:
        texts = [d.text for d in detections]
        candidates = texts + ["".join(texts)] if len(texts) > 1 else texts
        column_labels = [
            t for t, lm in zip(texts, per_detection) if lm in COLUMN_LANDMARKS
        ]

        for text in candidates:
            descriptor = match_workout_type(text)
            if descriptor is None:
                continue
            if match_interval_type(descriptor):
                return descriptor
            # "2000m" / "30:00" alone on its line; a bare "4:00" next to
            # other numbers is a damaged data value, a "500m" beside
            # column labels is the split header
            others = [t for t in texts if t != text and field_candidates(normalize(t.strip()))]
            labels = [t for t in column_labels if t != text]
            if not others and not labels:
                return descriptor
        return None

    def _match_date(self, detections: List[GuideRelativeDetection]):
        texts = [d.text for d in detections]
        if len(texts) > 1:
            texts.append(" ".join(t.strip() for t in texts))
        for text in texts:
            found = match_date(text)
            if found is not None:
                return found
        return None

    # ------------------------------------------------------------------
    # Token expansion
    # ------------------------------------------------------------------

    def _expand(self, det: GuideRelativeDetection) -> List[_Piece]:
        raw = det.text.strip()
        if is_junk(raw):
            return []

        text = normalize(raw)
        if is_junk(text) or landmark_for(raw) is not None:
            return []

        def piece(value: str, offset: int = 0, forced: Optional[str] = None) -> _Piece:
            return _Piece(value, det.confidence, self._piece_x(det, text, value, offset), det.bbox, forced)

        if field_candidates(text):
            return [piece(text)]

        # Whitespace split: every part must be a field value or a label
        parts = text.split()
        if len(parts) > 1 and all(
            field_candidates(p) or is_junk(p) or match_landmark(p) for p in parts
        ):
            pieces, cursor = [], 0
            for part in parts:
                offset = text.index(part, cursor)
                cursor = offset + len(part)
                if field_candidates(part):
                    pieces.append(piece(part, offset))
            return pieces

        combined = parse_combined_split_rate(text)
        if combined is not None:
            pace, rate = combined
            return [
                piece(pace, 0, forced="split"),
                piece(rate, len(text) - len(rate), forced="stroke_rate"),
            ]

        logger.debug(f"Opaque token ignored: {raw!r}")
        return []

    @staticmethod
    def _piece_x(det: GuideRelativeDetection, text: str, value: str, offset: int) -> float:
        """Approximate center X of a substring inside its detection box."""
        if value == text or not text:
            return det.bbox.mid_x
        center = (offset + len(value) / 2) / len(text)
        return det.bbox.x1 + det.bbox.width * center

    # ------------------------------------------------------------------
    # Column slotting
    # ------------------------------------------------------------------

    def _slot(self, pieces: List[_Piece], anchors: Optional[ColumnAnchors]) -> TableRow:
        row = TableRow()

        for p in sorted(pieces, key=lambda p: p.mid_x):
            if p.forced:
                candidates = [p.forced]
            else:
                candidates = field_candidates(p.text)
            target = self._choose_field(p, candidates, row, anchors)
            if target is None:
                continue
            setattr(row, target, Cell(text=p.text, confidence=p.confidence, bbox=p.bbox))

        return row

    def _choose_field(
        self,
        p: _Piece,
        candidates: List[str],
        row: TableRow,
        anchors: Optional[ColumnAnchors]
    ) -> Optional[str]:
        free = [c for c in candidates if getattr(row, c) is None]
        if not free:
            return None

        if anchors is not None and not p.forced:
            column = anchors.nearest(p.mid_x, self.column_tolerance)
            if column in free:
                return column
            # Time and split share a grammar; the column decides
            if column in ("time", "split") and getattr(row, column) is None and (
                    "time" in candidates or "split" in candidates):
                return column

        if p.mid_x < self.time_split_boundary:
            order = self.LEFT_ORDER
        elif self._right_of_rate(p, row, anchors):
            order = self.RATE_SIDE_ORDER
        else:
            order = self.RIGHT_ORDER
        for name in order:
            if name in free:
                return name
        return None

    @staticmethod
    def _right_of_rate(p: _Piece, row: TableRow, anchors: Optional[ColumnAnchors]) -> bool:
        """Past the rate anchor, or after a rate already slotted when there is none."""
        if anchors is not None and anchors.rate_x is not None:
            return p.mid_x > anchors.rate_x
        return row.stroke_rate is not None
