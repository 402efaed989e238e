"""Records describing recording session output."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class RecordedClip(BaseModel):
    """A clip written by a flush task."""

    clip_number: int
    path: Path
    frame_count: int
    first_seq: int
    last_seq: int
    width: int
    height: int
    fps: float
    triggered_at: datetime
    written_at: datetime

    @property
    def duration_s(self) -> float:
        return self.frame_count / self.fps if self.fps else 0.0


class SessionStats(BaseModel):
    """Counters returned when a capture session ends."""

    frames_read: int = 0
    frames_skipped: int = 0
    frames_pushed: int = 0
    classifications: int = 0
    classification_failures: int = 0
    triggers: int = 0
    flushes_scheduled: int = 0
    clips_written: int = 0
    device_closed: bool = False
