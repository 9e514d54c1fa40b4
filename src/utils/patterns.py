"""
Pattern matching module for workout screen parsing.

Provides:
- Validators for every field on the summary screen
- Date repair and parsing
- Workout descriptor grammar and interval decomposition
- Fuzzy landmark (static label) matching
- Combined split+rate decomposition

Every matcher returns None/False on mismatch. Callers treat a mismatch as
"try the next hypothesis", never as an error.
"""

import logging
import re
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple, NamedTuple

from rapidfuzz.distance import Levenshtein

from .ocr_text import normalize, normalize_descriptor

logger = logging.getLogger(__name__)


# ============================================================================
# Domain Constants
# ============================================================================

STROKE_RATE_RANGE = (10, 60)
HEART_RATE_RANGE = (40, 220)
DATE_DAY_RANGE = (1, 31)
DATE_YEAR_RANGE = (2020, 2030)


class WorkoutCategory(Enum):
    """Kinds of programmed workout."""
    SINGLE = "single"
    INTERVAL = "interval"


class Landmark(Enum):
    """Static labels printed on the summary screen."""
    VIEW_DETAIL = "view_detail"
    TOTAL_TIME = "total_time"
    SPLIT_500M = "split_500m"
    STROKE_RATE = "stroke_rate"
    METER = "meter"
    TIME = "time"


# Labels of the column header row
COLUMN_LANDMARKS = frozenset({
    Landmark.TIME, Landmark.METER, Landmark.SPLIT_500M, Landmark.STROKE_RATE
})


class IntervalSpec(NamedTuple):
    reps: int
    work: str
    rest: str


# ============================================================================
# Regex Patterns
# ============================================================================

TIME_RE = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?\.\d$")
SPLIT_RE = re.compile(r"^\d:\d{2}\.\d{1,2}$")
METERS_RE = re.compile(r"^\d{1,5}$")
RATE_RE = re.compile(r"^\d{1,2}$")
HEART_RATE_RE = re.compile(r"^\d{2,3}$")

INTERVAL_RE = re.compile(r"^(\d{1,2})x([\d:]+[rm]?)/([\d:]+r?)$")
SINGLE_RE = re.compile(r"^(\d+m|\d{1,2}:\d{2})$")

DATE_RE = re.compile(r"^([A-Za-z]{3})\s+(\d{1,2})\s+(\d{4})$")
_DATE_MONTH_COLON_RE = re.compile(r"^([A-Za-z]{3}):")
_DATE_DAY_PERIOD_RE = re.compile(r"(\d)\.+\s*")
_DATE_BLOCK_RE = re.compile(r"^([A-Za-z]{3})\s*(\d{5,7})$")

REST_METERS_RE = re.compile(r"^r\d+$", re.IGNORECASE)

# Tokens that never carry a data value
JUNK_LABELS = frozenset({
    "time", "meter", "meters", "/500m", "500m", "s/m", "spm",
    "split", "rate", "pace", "avg", "average", "total", "rest",
    "total time", "view detail", "view", "detail", "hr", "bpm",
})


# ============================================================================
# Numeric Field Validators
# ============================================================================

def match_time(text: str) -> bool:
    """Elapsed time: "4:00.0", "21:00.3", "1:23:45.6"."""
    return bool(TIME_RE.match(text))


def match_split(text: str) -> bool:
    """Pace per 500m: "1:41.2" or "1:41.25"."""
    return bool(SPLIT_RE.match(text))


def match_meters(text: str) -> bool:
    return bool(METERS_RE.match(text))


def match_rate(text: str) -> bool:
    if not RATE_RE.match(text):
        return False
    lo, hi = STROKE_RATE_RANGE
    return lo <= int(text) <= hi


def match_heart_rate(text: str) -> bool:
    if not HEART_RATE_RE.match(text):
        return False
    lo, hi = HEART_RATE_RANGE
    return lo <= int(text) <= hi


def time_to_seconds(text: str) -> Optional[float]:
    """
    Convert "M:SS[.s]" or "H:MM:SS[.s]" to seconds.

    Returns None if the text is not a colon-separated time.
    """
    parts = text.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        values = [float(p) for p in parts]
    except ValueError:
        return None

    seconds = 0.0
    for value in values:
        seconds = seconds * 60 + value
    return seconds


# ============================================================================
# Date Matching
# ============================================================================

def _split_day_year(block: str) -> Optional[Tuple[int, int]]:
    """Split "212025" into (21, 2025), trying a one-digit day first."""
    for day_len in (1, 2):
        day_part, year_part = block[:day_len], block[day_len:]
        if len(year_part) != 4:
            continue
        day, year = int(day_part), int(year_part)
        if (DATE_DAY_RANGE[0] <= day <= DATE_DAY_RANGE[1]
                and DATE_YEAR_RANGE[0] <= year <= DATE_YEAR_RANGE[1]):
            return day, year
    return None


def repair_date_text(text: str) -> str:
    """Undo the usual OCR damage to "Mon D YYYY"."""
    fixed = text.strip()
    fixed = _DATE_MONTH_COLON_RE.sub(r"\1", fixed)
    fixed = _DATE_DAY_PERIOD_RE.sub(r"\1 ", fixed)
    fixed = " ".join(fixed.split())

    block = _DATE_BLOCK_RE.match(fixed)
    if block:
        split = _split_day_year(block.group(2))
        if split:
            day, year = split
            fixed = f"{block.group(1)} {day} {year}"
    return fixed


def match_date(text: str) -> Optional[date]:
    """
    Match a display date such as "Dec 20 2025".

    Example: "Sep: 212025" -> date(2025, 9, 21)
    """
    candidates = [text]
    normalized = normalize(text)
    if normalized != text:
        candidates.append(normalized)

    for candidate in candidates:
        repaired = repair_date_text(candidate)
        match = DATE_RE.match(repaired)
        if not match:
            continue
        month, day, year = match.groups()
        try:
            return datetime.strptime(f"{month.title()} {int(day):02d} {year}", "%b %d %Y").date()
        except ValueError:
            continue
    return None


# ============================================================================
# Workout Descriptor
# ============================================================================

def match_interval_type(text: str) -> bool:
    return bool(INTERVAL_RE.match(text))


def match_single_type(text: str) -> bool:
    return bool(SINGLE_RE.match(text))


def match_workout_type(text: str) -> Optional[str]:
    """
    Match the workout descriptor, repairing it first.

    Returns:
        The validated descriptor ("3x4:00/3:00r", "2000m", "30:00") or None
    """
    if not text or not text.strip():
        return None

    for candidate in (text.strip(), normalize_descriptor(text)):
        if INTERVAL_RE.match(candidate) or SINGLE_RE.match(candidate):
            return candidate
    return None


def decompose_interval(text: str) -> Optional[IntervalSpec]:
    """
    Split an interval descriptor into reps, work and rest.

    "3x4:00/3:00r" -> IntervalSpec(3, "4:00", "3:00")
    "5x500m/2:00r" -> IntervalSpec(5, "500m", "2:00")
    """
    match = INTERVAL_RE.match(text)
    if not match:
        return None
    reps, work, rest = match.groups()
    return IntervalSpec(int(reps), work.rstrip("r"), rest.rstrip("r"))


def detect_category(workout_type: str) -> WorkoutCategory:
    if "/" in workout_type or workout_type.endswith("r"):
        return WorkoutCategory.INTERVAL
    return WorkoutCategory.SINGLE


def describe_workout(workout_type: str) -> str:
    """Readable rendering: "3 x 4:00 / 3:00 rest", "2000m"."""
    spec = decompose_interval(workout_type)
    if spec is None:
        return workout_type
    return f"{spec.reps} x {spec.work} / {spec.rest} rest"


# ============================================================================
# Landmark Matching
# ============================================================================

# (landmark, canonical label, substrings accepted verbatim, max edit distance)
# Order matters: "/500m" before "meter", generic "time" last.
_LANDMARK_RULES = (
    (Landmark.VIEW_DETAIL, "view detail", ("view detail",), 2),
    (Landmark.TOTAL_TIME, "total time", ("total time",), 2),
    (Landmark.SPLIT_500M, "/500m", ("/500m", "500m"), 1),
    (Landmark.STROKE_RATE, "s/m", ("s/m",), 1),
    (Landmark.METER, "meter", ("meter",), 2),
    (Landmark.TIME, "time", ("time",), 1),
)


def edit_distance(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def match_landmark(text: str) -> Optional[Landmark]:
    """Fuzzy-match a static display label."""
    lower = " ".join(text.lower().split())
    if not lower or not any(ch.isalpha() for ch in lower):
        return None
    # A descriptor such as "500m" is data, not the split header
    if match_workout_type(text):
        return None

    for landmark, label, substrings, threshold in _LANDMARK_RULES:
        if any(s in lower for s in substrings):
            return landmark
        if edit_distance(lower, label) <= threshold:
            return landmark
    return None


def is_junk(text: str) -> bool:
    """Tokens that never carry a value: stray characters, labels, "r360"."""
    stripped = text.strip()
    if len(stripped) <= 1:
        return True
    if stripped.lower() in JUNK_LABELS:
        return True
    return bool(REST_METERS_RE.match(stripped))


# ============================================================================
# Combined Tokens
# ============================================================================

def parse_combined_split_rate(text: str) -> Optional[Tuple[str, str]]:
    """
    Decompose a smeared token holding both pace and stroke rate.

    "1:41.2 29" -> ("1:41.2", "29")
    "1:41.229"  -> ("1:41.2", "29")
    """
    stripped = text.strip()
    parts = stripped.split()

    if len(parts) == 2:
        pace, rate = parts
        if match_split(pace) and match_rate(rate):
            return pace, rate
        return None

    if len(parts) != 1 or len(stripped) < 3:
        return None

    pace, rate = stripped[:-2], stripped[-2:]
    if rate.isdigit() and match_rate(rate) and match_split(pace):
        return pace, rate
    return None
