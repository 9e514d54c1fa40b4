"""
Capture session module.

Provides:
- Accumulation of successive captures of the same screen
- Progress and completeness tracking after every capture
- Locking once complete or out of captures
- A combined debug log across captures
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from .assembler import TableBuilder
from .completeness import (
    DEFAULT_EXPECTED_ROWS,
    SHORT_FINAL_ROW_METERS,
    field_progress,
    is_complete,
    missing_fields,
)
from .layout import BoxMapper, Detection, GuideRelativeDetection
from .merge import merge_tables
from .tables import RecognizedTable

logger = logging.getLogger(__name__)


class SessionState(Enum):
    READY = "ready"
    CAPTURING = "capturing"
    LOCKED = "locked"


@dataclass
class CaptureRecord:
    """What one capture contributed."""
    index: int
    detection_count: int
    table: RecognizedTable
    debug_log: str = ""
    progress: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "detections": self.detection_count,
            "table": self.table.to_dict(),
            "progress": round(self.progress, 4),
        }


@dataclass
class CaptureSession:
    """
    Accumulates captures until the table is complete.

    Captures are merged strictly in the order they are added. The session
    locks when the merged table is complete or after ``max_captures``
    captures, whichever comes first; further captures are ignored until
    ``reset()``.
    """
    builder: TableBuilder = field(default_factory=TableBuilder)
    max_captures: int = 3
    short_final_row_meters: int = SHORT_FINAL_ROW_METERS
    default_expected_rows: int = DEFAULT_EXPECTED_ROWS

    state: SessionState = SessionState.READY
    accumulated: Optional[RecognizedTable] = None
    captures: List[CaptureRecord] = field(default_factory=list)
    progress: float = 0.0

    @classmethod
    def from_config(cls, config) -> 'CaptureSession':
        """Build from a PipelineConfig."""
        return cls(
            builder=TableBuilder.from_config(config),
            max_captures=config.capture.max_captures,
            short_final_row_meters=config.capture.short_final_row_meters,
            default_expected_rows=config.capture.default_expected_rows
        )

    @property
    def capture_count(self) -> int:
        return len(self.captures)

    @property
    def is_locked(self) -> bool:
        return self.state == SessionState.LOCKED

    @property
    def is_complete(self) -> bool:
        return is_complete(self.accumulated, self.short_final_row_meters)

    def missing(self) -> List[str]:
        return missing_fields(self.accumulated, self.short_final_row_meters)

    def add_capture(
        self,
        detections: Iterable[Union[Detection, GuideRelativeDetection]],
        mapper: Optional[BoxMapper] = None
    ) -> Optional[RecognizedTable]:
        """
        Parse one capture and merge it into the accumulated table.

        Returns:
            The accumulated table after this capture
        """
        if self.is_locked:
            logger.warning("Session is locked; capture ignored")
            return self.accumulated

        detections = list(detections)
        self.state = SessionState.CAPTURING

        result = self.builder.parse(detections, mapper)
        self.accumulated = merge_tables(self.accumulated, result.table)
        self.progress = field_progress(self.accumulated, self.default_expected_rows)

        self.captures.append(CaptureRecord(
            index=len(self.captures) + 1,
            detection_count=len(detections),
            table=result.table,
            debug_log=result.debug_log,
            progress=self.progress
        ))

        logger.info(
            f"Capture {self.capture_count}: progress {self.progress:.0%}, "
            f"type={self.accumulated.workout_type} rows={len(self.accumulated.rows)}"
        )

        if self.is_complete:
            logger.info("Table complete; session locked")
            self.state = SessionState.LOCKED
        elif self.capture_count >= self.max_captures:
            logger.warning(
                f"Locked after {self.capture_count} captures; still missing: "
                f"{', '.join(self.missing())}"
            )
            self.state = SessionState.LOCKED

        return self.accumulated

    @property
    def debug_log(self) -> str:
        """Per-capture parser logs followed by the merged result."""
        parts = []
        for record in self.captures:
            parts.append(f"--- Capture {record.index} ({record.detection_count} detections) ---")
            parts.append(record.debug_log)

        if self.accumulated is not None:
            parts.append("--- Merged ---")
            parts.append(self.accumulated.summary())
            parts.append(f"progress: {self.progress:.1%}")
            parts.append(f"complete: {self.is_complete}")
        return "\n".join(parts)

    def reset(self):
        """Discard everything and start over (retake)."""
        self.state = SessionState.READY
        self.accumulated = None
        self.captures = []
        self.progress = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "captures": [c.to_dict() for c in self.captures],
            "progress": round(self.progress, 4),
            "complete": self.is_complete,
            "missing": self.missing(),
            "table": self.accumulated.to_dict() if self.accumulated else None,
        }
