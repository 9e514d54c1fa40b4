"""
I/O utilities for the workout screen parser.

Handles:
- Loading recognizer detections from JSON captures
- Capture file discovery
- JSON serialization
- Directory management
"""

import datetime
import json
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from .layout import BoundingBox, Detection, GuideRegion

logger = logging.getLogger(__name__)


# ============================================================================
# Detection Loading
# ============================================================================

def _parse_bbox(raw: Any) -> BoundingBox:
    """Accept [x1, y1, x2, y2] or {"x", "y", "width", "height"}."""
    if isinstance(raw, (list, tuple)) and len(raw) == 4:
        return BoundingBox(*(float(v) for v in raw))
    if isinstance(raw, dict):
        if {"x1", "y1", "x2", "y2"} <= raw.keys():
            return BoundingBox(float(raw["x1"]), float(raw["y1"]),
                               float(raw["x2"]), float(raw["y2"]))
        if {"x", "y", "width", "height"} <= raw.keys():
            return BoundingBox.from_xywh(float(raw["x"]), float(raw["y"]),
                                         float(raw["width"]), float(raw["height"]))
    raise ValueError(f"Unrecognized bounding box: {raw!r}")


def parse_detection(record: Dict[str, Any]) -> Detection:
    """
    Build a Detection from one JSON record.

    Raises:
        ValueError: If text, confidence or bbox is missing or malformed
    """
    if not isinstance(record, dict):
        raise ValueError(f"Detection must be an object, got {type(record).__name__}")
    try:
        text = str(record["text"])
        confidence = float(record.get("confidence", 1.0))
        bbox = _parse_bbox(record.get("bbox", record.get("box")))
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed detection {record!r}: {e}")

    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"Confidence out of range in {record!r}")
    return Detection(text=text, confidence=confidence, bbox=bbox)


def load_detections(path: Union[str, Path]) -> List[Detection]:
    """
    Load one capture's detections.

    The file holds either a list of detection records or an object with a
    "detections" list.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the content is not a detection capture
    """
    return _detections_from(load_json(path), path)


def _detections_from(data: Any, path: Union[str, Path]) -> List[Detection]:
    if isinstance(data, dict):
        data = data.get("detections")
    if not isinstance(data, list):
        raise ValueError(f"No detection list in {path}")

    detections = [parse_detection(record) for record in data]
    logger.debug(f"Loaded {len(detections)} detections from {path}")
    return detections


@dataclass
class CaptureFile:
    """One capture as stored on disk."""
    path: Path
    detections: List[Detection]
    guide: Optional[GuideRegion] = None
    portrait: bool = False


def load_capture(path: Union[str, Path]) -> CaptureFile:
    """
    Load a capture with its optional guide rectangle and orientation.

    Object-form files may carry ``"guide": [x1, y1, x2, y2]`` (recognizer
    coordinates) and ``"orientation": "portrait"``.
    """
    path = Path(path)
    data = load_json(path)
    guide = None
    portrait = False

    if isinstance(data, dict):
        if data.get("guide") is not None:
            guide = GuideRegion(_parse_bbox(data["guide"]))
        portrait = str(data.get("orientation", "")).lower() == "portrait"

    return CaptureFile(
        path=path,
        detections=_detections_from(data, path),
        guide=guide,
        portrait=portrait
    )


def collect_capture_files(paths: List[Union[str, Path]]) -> List[Path]:
    """
    Expand inputs into capture files, in order.

    Directories contribute their ``*.json`` files sorted by name.
    """
    files: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found = sorted(path.glob("*.json"))
            logger.info(f"Found {len(found)} captures in {path}")
            files.extend(found)
        elif path.exists():
            files.append(path)
        else:
            raise FileNotFoundError(f"Capture file not found: {path}")
    return files


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars, dataclasses and dates."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if hasattr(obj, 'to_dict'):
            return obj.to_dict()
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, (datetime.date, datetime.datetime)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """
    Load data from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid JSON
    """
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {json_path}: {e}")


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
