"""Abstract seams between the recorder core and its devices, models and storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np
    import numpy.typing as npt

    from triggercam.models.storage import StorageUploadResult

    Frame = npt.NDArray[np.uint8]


class Shutdownable(ABC):
    """Component that owns async resources."""

    @abstractmethod
    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop accepting work and release clients. Idempotent."""
        raise NotImplementedError


class FrameSource(ABC):
    """Yields frames from a capture device."""

    @abstractmethod
    def open(self, device_ref: str | int) -> None:
        """Open the capture device.

        Raises:
            DeviceError: If the device cannot be opened.
        """
        raise NotImplementedError

    @abstractmethod
    def read_frame(self) -> Frame | None:
        """Read the next frame.

        Implementations may reuse the returned array across reads; callers
        must copy it before keeping a reference.

        Returns:
            The frame, or None when the read produced an empty frame.

        Raises:
            DeviceError: If the device has been closed or is unreadable.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release the capture device. Safe to call more than once."""
        raise NotImplementedError


class Classifier(ABC):
    """Maps a single frame to a label index."""

    @abstractmethod
    def classify(self, frame: Frame) -> int:
        """Return the most probable label index for the frame.

        Implementation notes:
        - Runs on a worker thread, never on the capture thread
        - MUST NOT mutate `frame`
        - Raise on failure; the controller frees the in-flight slot
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release model resources."""


class VideoSink(ABC):
    """Durably encodes an ordered frame sequence to a single file."""

    @abstractmethod
    def open(self, path: Path, fps: float, width: int, height: int) -> None:
        """Open the sink for writing.

        Raises:
            SinkOpenError: If the output cannot be created.
        """
        raise NotImplementedError

    @abstractmethod
    def write_frame(self, frame: Frame) -> None:
        """Append one frame."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Finalize the output file."""
        raise NotImplementedError


SinkFactory = Callable[[], VideoSink]


class StorageBackend(Shutdownable, ABC):
    """Stores finished clips remotely."""

    @abstractmethod
    async def put_file(self, local_path: Path, dest_path: str) -> StorageUploadResult:
        """Copy `local_path` to `dest_path` under the backend root, overwriting.

        Raises:
            ValueError: If `dest_path` escapes the root.
            RuntimeError: If the backend has been shut down.
        """
        raise NotImplementedError

    @abstractmethod
    async def exists(self, storage_uri: str) -> bool:
        """True if `storage_uri` was produced by this backend and still exists."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """True if the backend is reachable with the configured credentials."""
        raise NotImplementedError
