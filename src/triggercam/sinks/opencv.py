"""OpenCV VideoWriter sink."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import cv2
import numpy as np
import numpy.typing as npt

from triggercam.errors import SinkOpenError
from triggercam.interfaces import VideoSink

logger = logging.getLogger(__name__)


class OpenCVVideoSink(VideoSink):
    """Writes BGR frames to a video file with a fixed FOURCC codec.

    Grayscale frames are expanded to BGR before writing.
    """

    def __init__(self, *, fourcc: str = "MJPG") -> None:
        if len(fourcc) != 4:
            raise ValueError(f"FOURCC must be 4 characters: {fourcc!r}")
        self._fourcc = fourcc
        self._writer: Any | None = None
        self._path: Path | None = None
        self._size: tuple[int, int] | None = None
        self.frames_written = 0

    def open(self, path: Path, fps: float, width: int, height: int) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            writer = cv2.VideoWriter(
                str(path),
                cv2.VideoWriter_fourcc(*self._fourcc),
                float(fps),
                (int(width), int(height)),
                True,
            )
        except Exception as exc:
            raise SinkOpenError(str(path), cause=exc) from exc
        if not writer.isOpened():
            writer.release()
            raise SinkOpenError(str(path))

        self._writer = writer
        self._path = path
        self._size = (int(width), int(height))
        self.frames_written = 0
        logger.debug("Opened video writer %s (%s, %dx%d @ %.1f)", path, self._fourcc, width, height, fps)

    def write_frame(self, frame: npt.NDArray[np.uint8]) -> None:
        if self._writer is None:
            raise RuntimeError("Video sink is not open")
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        if self._size is not None and (frame.shape[1], frame.shape[0]) != self._size:
            frame = cv2.resize(frame, self._size)
        self._writer.write(frame)
        self.frames_written += 1

    def close(self) -> None:
        writer = self._writer
        if writer is None:
            return
        self._writer = None
        try:
            writer.release()
        except Exception:
            logger.exception("Error releasing video writer %s", self._path)
        logger.debug("Closed video writer %s after %d frames", self._path, self.frames_written)
