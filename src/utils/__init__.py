"""
Utility modules for the workout screen parsing pipeline.
"""

from .io import load_detections, load_capture, save_json, load_json, ensure_dir
from .layout import (
    BoundingBox, Detection, GuideRelativeDetection, GuideRegion,
    to_guide_relative, flip_portrait, map_detections, group_into_rows
)
from .ocr_text import normalize, normalize_descriptor
from .patterns import (
    Landmark, WorkoutCategory, match_date, match_workout_type,
    match_landmark, parse_combined_split_rate, time_to_seconds
)
from .tables import Cell, TableRow, RecognizedTable
from .classifier import RowClassifier, RowRole, ClassifiedRow, ColumnAnchors
from .assembler import TableBuilder, ParseResult, parse_table
from .merge import merge_tables
from .completeness import is_complete, field_progress, missing_fields
from .session import CaptureSession
from .export import TableExporter

__all__ = [
    # IO
    "load_detections", "load_capture", "save_json", "load_json", "ensure_dir",
    # Layout
    "BoundingBox", "Detection", "GuideRelativeDetection", "GuideRegion",
    "to_guide_relative", "flip_portrait", "map_detections", "group_into_rows",
    # Text and patterns
    "normalize", "normalize_descriptor",
    "Landmark", "WorkoutCategory", "match_date", "match_workout_type",
    "match_landmark", "parse_combined_split_rate", "time_to_seconds",
    # Tables
    "Cell", "TableRow", "RecognizedTable",
    # Parsing
    "RowClassifier", "RowRole", "ClassifiedRow", "ColumnAnchors",
    "TableBuilder", "ParseResult", "parse_table",
    # Captures
    "merge_tables", "is_complete", "field_progress", "missing_fields",
    "CaptureSession",
    # Export
    "TableExporter",
]
