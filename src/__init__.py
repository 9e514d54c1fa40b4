"""
ergscan
=======

OCR parsing for rowing ergometer (PM5) workout summary screens.
Turns noisy text detections from one or more captures of the screen into
a structured, typed workout table.

Main components:
- Guide mapping and spatial row grouping
- OCR text normalization
- Field, date, descriptor and landmark pattern matching
- Row classification and table assembly
- Cross-capture merging and completeness scoring
- JSON / Markdown / CSV export
"""

from .version import __version__

__author__ = "ergscan Team"
