"""Capture loop driving a recording session."""

from __future__ import annotations

import logging
import threading

from triggercam.buffer import RingBuffer
from triggercam.errors import DeviceError, TransientFrameError
from triggercam.interfaces import FrameSource
from triggercam.models.clip import SessionStats
from triggercam.trigger import TriggerController

logger = logging.getLogger(__name__)


class CaptureLoop:
    """Reads frames, buffers them and feeds the trigger controller.

    Runs on the calling thread until the shutdown event is set or the device
    closes, then drains outstanding classification and flush work.
    """

    def __init__(
        self,
        *,
        source: FrameSource,
        buffer: RingBuffer,
        controller: TriggerController,
        stop_event: threading.Event | None = None,
        heartbeat_frames: int = 0,
    ) -> None:
        self._source = source
        self._buffer = buffer
        self._controller = controller
        self._stop_event = stop_event or threading.Event()
        self._heartbeat_frames = int(heartbeat_frames)

        self.frames_read = 0
        self.frames_skipped = 0
        self.frames_pushed = 0
        self.device_closed = False

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> SessionStats:
        try:
            while not self._stop_event.is_set():
                try:
                    frame = self._source.read_frame()
                except DeviceError as exc:
                    logger.error("Device closed: %s", exc)
                    self.device_closed = True
                    break

                self.frames_read += 1
                if frame is None:
                    self.frames_skipped += 1
                    continue

                try:
                    node = self._buffer.push(frame)
                except TransientFrameError:
                    self.frames_skipped += 1
                    continue
                self.frames_pushed += 1

                self._controller.step(node.data)
                self._maybe_log_heartbeat()

            if self._stop_event.is_set():
                logger.info("Shutdown requested; draining outstanding work")
        finally:
            self._controller.drain()

        return self._build_stats()

    def _maybe_log_heartbeat(self) -> None:
        if self._heartbeat_frames <= 0 or self.frames_pushed % self._heartbeat_frames:
            return
        logger.debug(
            "Heartbeat: frames_read=%d pushed=%d skipped=%d buffered=%d/%d writable=%s",
            self.frames_read,
            self.frames_pushed,
            self.frames_skipped,
            self._buffer.length(),
            self._buffer.capacity(),
            self._buffer.is_writable(),
        )

    def _build_stats(self) -> SessionStats:
        stats = self._controller.stats()
        stats.frames_read = self.frames_read
        stats.frames_skipped = self.frames_skipped
        stats.frames_pushed = self.frames_pushed
        stats.device_closed = self.device_closed
        return stats
