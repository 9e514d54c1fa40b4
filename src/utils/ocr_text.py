"""
Text normalization module for workout screen parsing.

Provides:
- General OCR repair applied before every pattern check
- Stricter repair for the workout descriptor field ("3x4:00/3:00r")

The display font confuses 0/O, 1/l/I, 5/S and 8/B, and the recognizer
sometimes returns Cyrillic or Greek look-alikes for Latin letters.
"""

import logging
import re
from typing import List

logger = logging.getLogger(__name__)

# The PM5 cannot program a rest of 10 minutes or more
MAX_REST_MINUTES = 9

# Non-Latin letters that only ever stand in for their Latin twins here
LOOKALIKE_MAP = {
    # Cyrillic
    "а": "a", "А": "A",
    "в": "B", "В": "B",
    "г": "r",
    "е": "e", "Е": "E",
    "к": "k", "К": "K",
    "м": "m", "М": "M",
    "н": "H", "Н": "H",
    "о": "o", "О": "O",
    "р": "p", "Р": "P",
    "с": "c", "С": "C",
    "т": "T", "Т": "T",
    "у": "y", "У": "Y",
    "х": "x", "Х": "X",
    "і": "i", "І": "I",
    # Greek
    "Α": "A", "Β": "B", "Ε": "E", "Η": "H",
    "Ι": "I", "Κ": "K", "Μ": "M", "Ν": "N",
    "Ο": "O", "ο": "o", "Ρ": "P", "Τ": "T",
    "Χ": "X", "χ": "x",
    # Typographic multiplication sign
    "×": "x",
}

# Glyphs that read as a leading "3" in front of the rep separator
_THREE_LOOKALIKES = "ЗзƷʒ"

_LEADING_THREE_RE = re.compile(rf"^[{_THREE_LOOKALIKES}]x")
_UPPER_X_RE = re.compile(r"^(\d{1,2})X")
_MISSING_SEPARATOR_RE = re.compile(r"^(\d{1,2}:\d{2})(\d)")
_REST_MINUTES_RE = re.compile(r"^(\d+):")


# ============================================================================
# General Normalization
# ============================================================================

def _is_numeric_context(ch: str) -> bool:
    return ch.isdigit() or ch in ":."


def _neighbors(chars: List[str], i: int):
    prev = chars[i - 1] if i > 0 else ""
    nxt = chars[i + 1] if i + 1 < len(chars) else ""
    return prev, nxt


def _normalize_pass(text: str) -> str:
    # Pass 1: semicolon is always a misread colon
    chars = list(text.replace(";", ":"))

    # Pass 2: comma becomes a decimal point only in numeric context
    for i, ch in enumerate(chars):
        if ch == ",":
            prev, nxt = _neighbors(chars, i)
            if any(_is_numeric_context(c) for c in (prev, nxt) if c):
                chars[i] = "."

    # Pass 3: letter-for-digit repairs, gated by neighbours
    for i, ch in enumerate(chars):
        prev, nxt = _neighbors(chars, i)
        if ch == "O":
            if any(_is_numeric_context(c) for c in (prev, nxt) if c):
                chars[i] = "0"
        elif ch in "lI":
            if prev.isdigit() or nxt.isdigit():
                chars[i] = "1"
        elif ch in "SB":
            if prev.isdigit() and nxt.isdigit():
                chars[i] = "5" if ch == "S" else "8"

    # Pass 4: look-alike letters
    return "".join(LOOKALIKE_MAP.get(ch, ch) for ch in chars)


def normalize(text: str) -> str:
    """
    Repair common OCR artifacts in a single token.

    Applies the passes until the text stops changing, so that a repair
    which exposes a new numeric neighbour is picked up and
    ``normalize(normalize(x)) == normalize(x)`` holds.

    Example: "O5:OO.O" -> "05:00.0", "TOTAL" -> "TOTAL"
    """
    if not text:
        return text

    current = text
    while True:
        repaired = _normalize_pass(current)
        if repaired == current:
            return repaired
        current = repaired


# ============================================================================
# Workout Descriptor Normalization
# ============================================================================

def _strip_misread_separator(text: str) -> str:
    """Drop a "1" after "/" that is really the separator itself."""
    slash = text.find("/")
    if slash < 0:
        return text

    head, rest = text[:slash + 1], text[slash + 1:]
    if not rest.startswith("1"):
        return text

    match = _REST_MINUTES_RE.match(rest)
    if match and int(match.group(1)) > MAX_REST_MINUTES:
        return head + rest[1:]
    return text


def _insert_missing_separator(text: str) -> str:
    """Insert "/" after the work time when the rest time runs straight on."""
    x_pos = text.find("x")
    if x_pos < 0 or "/" in text:
        return text

    after = text[x_pos + 1:]
    match = _MISSING_SEPARATOR_RE.match(after)
    if not match:
        return text

    cut = x_pos + 1 + len(match.group(1))
    return text[:cut] + "/" + text[cut:]


def normalize_descriptor(text: str) -> str:
    """
    Stricter repair for text suspected to be the workout descriptor.

    Examples:
        "3x4:0013:00r"   -> "3x4:00/3:00r"
        "2x20:00/11:15r" -> "2x20:00/1:15r"
        "3x4:00,3:00r"   -> "3x4:00/3:00r"
    """
    if not text:
        return text

    fixed = "".join(text.split())

    # A comma in this field is always a misread separator. This runs before
    # the general pass, which would otherwise turn it into a decimal point.
    fixed = fixed.replace(",", "/")

    fixed = normalize(fixed)
    fixed = _LEADING_THREE_RE.sub("3x", fixed)
    fixed = _UPPER_X_RE.sub(r"\1x", fixed)

    fixed = _insert_missing_separator(fixed)
    fixed = _strip_misread_separator(fixed)

    if fixed != text:
        logger.debug(f"Descriptor repaired: {text!r} -> {fixed!r}")
    return fixed
