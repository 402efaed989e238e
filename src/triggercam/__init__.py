"""triggercam: record video clips around classifier matches."""

__version__ = "0.1.0"

from triggercam.buffer import BufferedFrame, BufferSnapshot, RingBuffer
from triggercam.capture import CaptureLoop
from triggercam.errors import RecorderError
from triggercam.models.clip import RecordedClip, SessionStats
from triggercam.trigger import ClassificationState, ClipNamer, TriggerController

__all__ = [
    "BufferSnapshot",
    "BufferedFrame",
    "CaptureLoop",
    "ClassificationState",
    "ClipNamer",
    "RecordedClip",
    "RecorderError",
    "RingBuffer",
    "SessionStats",
    "TriggerController",
    "__version__",
]
