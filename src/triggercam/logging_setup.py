from __future__ import annotations

import json
import logging
import logging.config
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager

_NOISY_LOGGERS = ("dropbox", "urllib3", "ultralytics")
_CONTEXT_FIELDS = frozenset({"camera_name", "recording_id"})
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}

_camera_name = "-"
# Flushes for different clips run on different threads, so the recording id
# is tracked per thread.
_thread_context = threading.local()


def set_camera_name(name: str | None) -> None:
    """Set the `camera_name` injected into every log record."""
    global _camera_name
    _camera_name = name or "-"


def set_recording_id(recording_id: str | None) -> None:
    """Set the `recording_id` injected into log records from the calling thread."""
    _thread_context.recording_id = recording_id or None


def current_recording_id() -> str | None:
    return getattr(_thread_context, "recording_id", None)


@contextmanager
def recording_context(recording_id: str) -> Iterator[None]:
    """Tag log records from this thread with `recording_id` for the block."""
    previous = current_recording_id()
    set_recording_id(recording_id)
    try:
        yield
    finally:
        set_recording_id(previous)


class _ContextFilter(logging.Filter):
    """Fills `camera_name` and `recording_id` unless passed via `extra=`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "camera_name", None):
            record.camera_name = _camera_name
        if not getattr(record, "recording_id", None):
            record.recording_id = current_recording_id()
        return True


class _ExtrasFormatter(logging.Formatter):
    """Appends non-standard record fields as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and key not in _CONTEXT_FIELDS
        }
        if not extras:
            return text
        return f"{text} {json.dumps(extras, default=str, sort_keys=True)}"


def configure_logging(*, log_level: str = "INFO", camera_name: str | None = None) -> None:
    """Configure root logging to stdout.

    The default format shows the camera and the thread, since capture,
    classification and flushes each log from their own thread. Override it
    with `TRIGGERCAM_LOG_FORMAT`.
    """
    fmt = os.getenv(
        "TRIGGERCAM_LOG_FORMAT",
        "%(asctime)s %(levelname)s [%(camera_name)s] %(threadName)s "
        "%(module)s:%(lineno)d %(message)s",
    )
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"context": {"()": _ContextFilter}},
            "formatters": {"console": {"()": _ExtrasFormatter, "format": fmt}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": str(log_level).upper(),
                    "formatter": "console",
                    "filters": ["context"],
                    "stream": "ext://sys.stdout",
                }
            },
            "root": {"level": "DEBUG", "handlers": ["console"]},
        }
    )
    set_camera_name(camera_name)
    logging.captureWarnings(True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
