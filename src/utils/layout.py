"""
Layout module for workout screen parsing.

Provides:
- Normalized bounding boxes and recognizer detections
- Mapping of recognizer boxes into the display guide
- Out-of-bounds filtering
- Spatial grouping of detections into rows
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union
import numpy as np

logger = logging.getLogger(__name__)

# Detection centers may fall this far outside the unit square before being dropped
BOUNDS_TOLERANCE = 0.1

# Default vertical tolerance for row grouping, as a fraction of guide height
ROW_TOLERANCE = 0.03


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in normalized 0-1 coordinates."""
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def mid_x(self) -> float:
        return (self.x1 + self.x2) / 2

    @property
    def mid_y(self) -> float:
        return (self.y1 + self.y2) / 2

    @property
    def center(self) -> Tuple[float, float]:
        return (self.mid_x, self.mid_y)

    def to_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)

    def to_xywh(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.width, self.height)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> 'BoundingBox':
        return cls(x, y, x + w, y + h)

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        return BoundingBox(
            min(self.x1, other.x1),
            min(self.y1, other.y1),
            max(self.x2, other.x2),
            max(self.y2, other.y2)
        )

    def center_within(self, tolerance: float = BOUNDS_TOLERANCE) -> bool:
        """True if the center lies in the unit square expanded by tolerance."""
        lo, hi = -tolerance, 1.0 + tolerance
        return lo <= self.mid_x <= hi and lo <= self.mid_y <= hi


@dataclass(frozen=True)
class Detection:
    """One raw recognizer output."""
    text: str
    confidence: float
    bbox: BoundingBox


@dataclass(frozen=True)
class GuideRelativeDetection:
    """A detection re-expressed in top-left-origin guide coordinates."""
    original: Detection
    bbox: BoundingBox

    @property
    def text(self) -> str:
        return self.original.text

    @property
    def confidence(self) -> float:
        return self.original.confidence


@dataclass(frozen=True)
class GuideRegion:
    """The guide's rectangle in recognizer coordinates (bottom-left origin)."""
    bbox: BoundingBox


Row = List[GuideRelativeDetection]
BoxMapper = Callable[[BoundingBox], Optional[BoundingBox]]


# ============================================================================
# Coordinate Mapping
# ============================================================================

def to_guide_relative(
    bbox: BoundingBox,
    region: GuideRegion,
    tolerance: float = BOUNDS_TOLERANCE
) -> Optional[BoundingBox]:
    """
    Convert a recognizer box to guide-relative coordinates.

    The recognizer reports boxes with a bottom-left origin over the full
    frame; the result is local to the guide with a top-left origin.

    Returns:
        The mapped box, or None when its center falls outside the guide
    """
    gr = region.bbox
    if gr.width <= 0 or gr.height <= 0:
        return None

    rel_x1 = (bbox.x1 - gr.x1) / gr.width
    rel_x2 = (bbox.x2 - gr.x1) / gr.width
    rel_y1 = (bbox.y1 - gr.y1) / gr.height
    rel_y2 = (bbox.y2 - gr.y1) / gr.height

    # Flip Y to top-left origin
    mapped = BoundingBox(rel_x1, 1.0 - rel_y2, rel_x2, 1.0 - rel_y1)

    if not mapped.center_within(tolerance):
        return None
    return mapped


def flip_portrait(bbox: BoundingBox) -> BoundingBox:
    """Swap axes for a portrait capture already cropped to the guide."""
    return BoundingBox(bbox.y1, bbox.x1, bbox.y2, bbox.x2)


def region_mapper(region: GuideRegion, tolerance: float = BOUNDS_TOLERANCE) -> BoxMapper:
    """Build a mapper closure for map_detections."""
    def _mapper(bbox: BoundingBox) -> Optional[BoundingBox]:
        return to_guide_relative(bbox, region, tolerance)
    return _mapper


def map_detections(
    detections: Iterable[Union[Detection, GuideRelativeDetection]],
    mapper: Optional[BoxMapper] = None,
    tolerance: float = BOUNDS_TOLERANCE
) -> List[GuideRelativeDetection]:
    """
    Bring detections into guide space and drop out-of-bounds noise.

    Raw detections go through ``mapper`` (identity when None). Detections
    that are already guide-relative are kept as-is. The bounds filter is
    applied to everything.
    """
    mapped: List[GuideRelativeDetection] = []
    dropped = 0

    for det in detections:
        if isinstance(det, GuideRelativeDetection):
            candidate = det
        else:
            box = mapper(det.bbox) if mapper else det.bbox
            if box is None:
                dropped += 1
                continue
            candidate = GuideRelativeDetection(original=det, bbox=box)

        if not candidate.bbox.center_within(tolerance):
            dropped += 1
            continue
        mapped.append(candidate)

    if dropped:
        logger.debug(f"Dropped {dropped} detection(s) outside the guide")
    return mapped


# ============================================================================
# Row Grouping
# ============================================================================

def group_into_rows(
    detections: Sequence[GuideRelativeDetection],
    tolerance: float = ROW_TOLERANCE
) -> List[Row]:
    """
    Group detections into rows by vertical proximity.

    Each detection (in top-to-bottom order) joins the first row whose first
    member's vertical center is within ``tolerance``; otherwise it starts a
    new row. Assignments are never revisited. Rows come back top-to-bottom,
    each sorted left-to-right.
    """
    if not detections:
        return []

    rows: List[Row] = []
    ordered = sorted(detections, key=lambda d: d.bbox.mid_y)

    for det in ordered:
        for row in rows:
            if abs(row[0].bbox.mid_y - det.bbox.mid_y) < tolerance:
                row.append(det)
                break
        else:
            rows.append([det])

    return [sorted(row, key=lambda d: d.bbox.x1) for row in rows]


def row_bbox(row: Sequence[GuideRelativeDetection]) -> Optional[BoundingBox]:
    """Union of all member boxes."""
    if not row:
        return None
    box = row[0].bbox
    for det in row[1:]:
        box = box.union(det.bbox)
    return box


def row_text(row: Sequence[GuideRelativeDetection]) -> str:
    return " ".join(det.text.strip() for det in row)


def average_confidence(detections: Sequence[GuideRelativeDetection]) -> float:
    """Average confidence for a group of detections."""
    if not detections:
        return 0.0
    return float(np.mean([d.confidence for d in detections]))
