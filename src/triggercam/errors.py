"""Error hierarchy for triggercam recording stages."""

from __future__ import annotations


class RecorderError(Exception):
    """Base exception for all recorder errors.

    Carries the stage that failed and preserves the originating exception
    via exception chaining.
    """

    def __init__(self, message: str, stage: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.cause = cause
        self.__cause__ = cause  # Python's exception chaining


class DeviceError(RecorderError):
    """Frame source is closed or unreadable. Fatal to the capture session."""

    def __init__(self, device_ref: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(
            f"Capture device {device_ref}: {message}", stage="capture", cause=cause
        )
        self.device_ref = device_ref


class TransientFrameError(RecorderError):
    """Empty or malformed frame. Skipped by the capture loop."""

    def __init__(self, message: str = "Empty frame") -> None:
        super().__init__(message, stage="capture")


class ClassifierError(RecorderError):
    """Classification of a single frame failed."""

    def __init__(self, backend: str, cause: Exception) -> None:
        super().__init__(
            f"Classification failed (backend: {backend})", stage="classify", cause=cause
        )
        self.backend = backend


class SinkOpenError(RecorderError):
    """Video sink could not be opened. Aborts only the current flush."""

    def __init__(self, path: str, cause: Exception | None = None) -> None:
        super().__init__(f"Failed to open video sink: {path}", stage="flush", cause=cause)
        self.path = path


class UploadError(RecorderError):
    """Storage upload failed for a local clip file."""

    def __init__(self, local_path: str, attempts: int, cause: Exception | None) -> None:
        super().__init__(
            f"Upload failed for {local_path} after {attempts} attempt(s)",
            stage="upload",
            cause=cause,
        )
        self.local_path = local_path
        self.attempts = attempts
