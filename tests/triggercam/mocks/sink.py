"""Mock video sink for testing."""

from __future__ import annotations

import threading
from pathlib import Path

import numpy as np
import numpy.typing as npt

from triggercam.errors import SinkOpenError
from triggercam.interfaces import VideoSink


class MemorySink(VideoSink):
    """Keeps written frames in memory."""

    def __init__(self, *, fail_open: bool = False) -> None:
        self.fail_open = fail_open
        self.path: Path | None = None
        self.fps: float | None = None
        self.size: tuple[int, int] | None = None
        self.frames: list[npt.NDArray[np.uint8]] = []
        self.opened = False
        self.closed = False

    def open(self, path: Path, fps: float, width: int, height: int) -> None:
        self.path = path
        if self.fail_open:
            raise SinkOpenError(str(path), cause=OSError("Simulated open failure"))
        self.fps = fps
        self.size = (width, height)
        self.opened = True

    def write_frame(self, frame: npt.NDArray[np.uint8]) -> None:
        assert self.opened and not self.closed
        self.frames.append(np.array(frame, copy=True))

    def close(self) -> None:
        self.closed = True


class MemorySinkFactory:
    """Sink factory recording every sink it creates.

    The first `fail_first` sinks fail to open.
    """

    def __init__(self, *, fail_first: int = 0) -> None:
        self._fail_first = fail_first
        self._lock = threading.Lock()
        self.sinks: list[MemorySink] = []

    def __call__(self) -> MemorySink:
        with self._lock:
            sink = MemorySink(fail_open=len(self.sinks) < self._fail_first)
            self.sinks.append(sink)
        return sink

    @property
    def written(self) -> list[MemorySink]:
        with self._lock:
            return [sink for sink in self.sinks if sink.opened]
