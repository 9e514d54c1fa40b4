"""
Tests for text normalization module.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestNormalize:
    """Test general OCR repair."""

    def test_letter_o_in_time(self):
        """O next to digits, colon or period becomes zero."""
        from utils.ocr_text import normalize

        assert normalize("O5:OO.O") == "05:00.0"
        assert normalize("4:OO.O") == "4:00.0"

    def test_words_untouched(self):
        """Letters with no numeric neighbour stay letters."""
        from utils.ocr_text import normalize

        assert normalize("TOTAL") == "TOTAL"
        assert normalize("View Detail") == "View Detail"
        assert normalize("Time, Meter") == "Time, Meter"

    def test_semicolon_and_comma(self):
        """Semicolon is a colon; comma is a decimal point only between numbers."""
        from utils.ocr_text import normalize

        assert normalize("1;41,2") == "1:41.2"
        assert normalize("4;00.0") == "4:00.0"

    def test_l_and_i_become_one(self):
        """l and I next to a digit become 1."""
        from utils.ocr_text import normalize

        assert normalize("2l") == "21"
        assert normalize("1:4I.2") == "1:41.2"

    def test_s_and_b_need_both_neighbours(self):
        """S and B are only repaired between two digits."""
        from utils.ocr_text import normalize

        assert normalize("1S0") == "150"
        assert normalize("3B1") == "381"
        assert normalize("S0") == "S0"
        assert normalize("5B") == "5B"

    def test_lookalike_letters(self):
        """Cyrillic and Greek look-alikes map to Latin."""
        from utils.ocr_text import normalize

        # Cyrillic Т, і, м, е
        assert normalize("Тіме") == "Time"
        # Greek Μ, Ε, Τ
        assert normalize("ΜΕΤER") == "METER"

    def test_idempotent(self):
        """Normalizing twice changes nothing further."""
        from utils.ocr_text import normalize

        samples = [
            "O5:OO.O", "1;41,2", "lO0", "OOO", "1S0S0", "IlI1", "B8B8B",
            "4,O,O", "TOTAL 1O", "Тіме", "", "r360",
        ]
        for text in samples:
            once = normalize(text)
            assert normalize(once) == once, text

    def test_empty(self):
        """Empty input is returned as-is."""
        from utils.ocr_text import normalize

        assert normalize("") == ""


class TestNormalizeDescriptor:
    """Test workout descriptor repair."""

    def test_missing_separator(self):
        """A slash is inserted after the work time."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("3x4:0013:00r") == "3x4:00/3:00r"

    def test_separator_read_as_one(self):
        """A rest of ten minutes or more means the 1 was the slash."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("2x20:00/11:15r") == "2x20:00/1:15r"

    def test_plausible_rest_kept(self):
        """A one-minute rest is left alone."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("3x4:00/1:00r") == "3x4:00/1:00r"

    def test_comma_separator(self):
        """A comma in the descriptor is the slash."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("3x4:00,3:00r") == "3x4:00/3:00r"

    def test_leading_three_lookalike(self):
        """Cyrillic Ze before x reads as 3."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("Зx4:00/3:00r") == "3x4:00/3:00r"

    def test_rep_separator_variants(self):
        """Uppercase X and the multiplication sign become x."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("3X4:00/3:00r") == "3x4:00/3:00r"
        assert normalize_descriptor("3×4:00/3:00r") == "3x4:00/3:00r"

    def test_whitespace_removed(self):
        """Spaces inside the descriptor are dropped."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("3 x 4:00 / 3:00r") == "3x4:00/3:00r"

    def test_single_pieces_unchanged(self):
        """Single-piece descriptors pass through."""
        from utils.ocr_text import normalize_descriptor

        assert normalize_descriptor("2000m") == "2000m"
        assert normalize_descriptor("30:00") == "30:00"
