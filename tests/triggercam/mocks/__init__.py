"""Mock implementations for testing."""

from tests.triggercam.mocks.classifier import MockClassifier, MutatingClassifier
from tests.triggercam.mocks.clock import FakeClock, GatedClock, wait_until
from tests.triggercam.mocks.frames import (
    ScriptedFrameSource,
    endless_frames,
    frame_value,
    make_frame,
)
from tests.triggercam.mocks.sink import MemorySink, MemorySinkFactory
from tests.triggercam.mocks.storage import MockStorage

__all__ = [
    "FakeClock",
    "GatedClock",
    "MemorySink",
    "MemorySinkFactory",
    "MockClassifier",
    "MockStorage",
    "MutatingClassifier",
    "ScriptedFrameSource",
    "endless_frames",
    "frame_value",
    "make_frame",
    "wait_until",
]
