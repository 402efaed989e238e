"""triggercam data models."""

from triggercam.models.clip import RecordedClip, SessionStats
from triggercam.models.config import (
    CLIP_NUMBER_PLACEHOLDER,
    ClassifierConfig,
    Config,
    DropboxStorageConfig,
    LocalStorageConfig,
    RecorderConfig,
    SourceConfig,
    StorageConfig,
    UploadConfig,
)
from triggercam.models.storage import FileSyncResult, StorageUploadResult

__all__ = [
    "CLIP_NUMBER_PLACEHOLDER",
    "ClassifierConfig",
    "Config",
    "DropboxStorageConfig",
    "FileSyncResult",
    "LocalStorageConfig",
    "RecordedClip",
    "RecorderConfig",
    "SessionStats",
    "SourceConfig",
    "StorageConfig",
    "StorageUploadResult",
    "UploadConfig",
]
