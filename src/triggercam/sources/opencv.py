"""OpenCV VideoCapture frame source."""

from __future__ import annotations

import logging
from typing import Any

import cv2
import numpy as np
import numpy.typing as npt

from triggercam.errors import DeviceError
from triggercam.interfaces import FrameSource
from triggercam.sources.utils import redact_device_ref

logger = logging.getLogger(__name__)


def _parse_device_ref(device_ref: str | int) -> str | int:
    if isinstance(device_ref, int):
        return device_ref
    text = str(device_ref).strip()
    if text.isdigit():
        return int(text)
    return text


class OpenCVFrameSource(FrameSource):
    """Reads frames from a camera index, file or stream URL via cv2.VideoCapture.

    The same ndarray is reused across reads, so callers must copy frames they
    want to keep.
    """

    def __init__(self, *, width: int | None = None, height: int | None = None) -> None:
        self._width = width
        self._height = height
        self._cap: Any | None = None
        self._frame: npt.NDArray[np.uint8] | None = None
        self._device_ref: str = "-"

    @property
    def device_ref(self) -> str:
        return self._device_ref

    def open(self, device_ref: str | int) -> None:
        ref = _parse_device_ref(device_ref)
        self._device_ref = redact_device_ref(str(ref))
        try:
            cap = cv2.VideoCapture(ref)
        except Exception as exc:
            raise DeviceError(self._device_ref, "failed to open", cause=exc) from exc
        if not cap.isOpened():
            cap.release()
            raise DeviceError(self._device_ref, "failed to open")

        if self._width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(self._width))
        if self._height:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(self._height))

        self._cap = cap
        logger.info(
            "Opened capture device %s (%dx%d @ %.1f fps reported)",
            self._device_ref,
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            float(cap.get(cv2.CAP_PROP_FPS) or 0.0),
        )

    def read_frame(self) -> npt.NDArray[np.uint8] | None:
        cap = self._cap
        if cap is None:
            raise DeviceError(self._device_ref, "not open")

        try:
            ok, frame = cap.read(self._frame)
        except Exception as exc:
            raise DeviceError(self._device_ref, "read failed", cause=exc) from exc
        if not ok:
            raise DeviceError(self._device_ref, "closed")
        if frame is None or frame.size == 0:
            return None

        self._frame = frame
        return frame

    def close(self) -> None:
        cap = self._cap
        if cap is None:
            return
        self._cap = None
        self._frame = None
        try:
            cap.release()
        except Exception:
            logger.exception("Error releasing capture device %s", self._device_ref)
        logger.info("Closed capture device %s", self._device_ref)
