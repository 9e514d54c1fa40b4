"""
Configuration and constants for the workout screen parsing pipeline.

This module provides:
- Global logging setup
- Tunable geometry and parsing parameters
- Capture loop settings
- Environment overrides
"""

import os
from dataclasses import dataclass, field
from typing import Optional, List
from pathlib import Path
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("ergscan")


# ============================================================================
# Directory Paths
# ============================================================================

SRC_DIR = Path(__file__).parent
DEFAULT_OUTPUT_DIR = Path.cwd() / "ergscan_output"


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class GuideConfig:
    """Mapping of recognizer boxes into the display guide."""
    bounds_tolerance: float = 0.1  # Centers may sit this far outside the unit square
    portrait_flip: bool = True     # Swap axes for portrait captures cropped to the guide


@dataclass
class GroupingConfig:
    """Row grouping configuration."""
    row_tolerance: float = 0.03  # Fraction of guide height


@dataclass
class ParserConfig:
    """Row classification and table assembly configuration."""
    column_tolerance: float = 0.05
    header_gap: float = 0.02
    time_split_boundary: float = 0.42  # Left half holds time/meters, right half split/rate
    min_row_fields: int = 2


@dataclass
class CaptureConfig:
    """Capture loop configuration."""
    max_captures: int = 3
    short_final_row_meters: int = 100
    default_expected_rows: int = 5


@dataclass
class ExportConfig:
    """Export configuration."""
    output_formats: List[str] = field(default_factory=lambda: [
        "json", "markdown"
    ])
    write_debug_log: bool = False


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    guide: GuideConfig = field(default_factory=GuideConfig)
    grouping: GroupingConfig = field(default_factory=GroupingConfig)
    parser: ParserConfig = field(default_factory=ParserConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    # Global settings
    debug_mode: bool = False
    verbose: bool = False
    output_dir: Optional[Path] = None


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return None


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    if os.environ.get("ERGSCAN_DEBUG", "").lower() == "true":
        config.debug_mode = True
        config.export.write_debug_log = True

    tolerance = _env_float("ERGSCAN_ROW_TOLERANCE")
    if tolerance is not None:
        config.grouping.row_tolerance = tolerance

    max_captures = _env_float("ERGSCAN_MAX_CAPTURES")
    if max_captures is not None:
        config.capture.max_captures = max(1, int(max_captures))

    return config
