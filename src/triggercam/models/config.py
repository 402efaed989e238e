"""Configuration models for a triggercam session."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

CLIP_NUMBER_PLACEHOLDER = "{number}"


def _lowercase(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class SourceConfig(BaseModel):
    """Frame source configuration."""

    model_config = {"extra": "forbid"}

    backend: str = "opencv"
    device: int | str = Field(
        default=0,
        description="Capture device index, file path or stream URL.",
    )
    device_env: str | None = Field(
        default=None,
        description="Environment variable containing the device URL (overrides device).",
    )
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)

    _backend_lowercase = field_validator("backend", mode="before")(_lowercase)


class RecorderConfig(BaseModel):
    """Trigger and clip recording configuration."""

    model_config = {"extra": "forbid"}

    target_label: int = Field(
        default=535,
        ge=0,
        description="Label index that triggers a recording.",
    )
    record_window_s: float = Field(
        default=15.0,
        gt=0.0,
        description="Total clip duration; half before the trigger, half after.",
    )
    fps: float = Field(
        default=15.0,
        gt=0.0,
        description="Capture frame rate, also used as the clip frame rate.",
    )
    output_template: str = Field(
        default=f"recordings/recording_{CLIP_NUMBER_PLACEHOLDER}.avi",
        description="Clip path template with exactly one {number} placeholder.",
    )
    fourcc: str = Field(
        default="MJPG",
        min_length=4,
        max_length=4,
        description="FOURCC codec used by the video writer.",
    )
    flush_workers: int = Field(
        default=2,
        ge=1,
        description="Threads available for encoding clips.",
    )

    @field_validator("output_template")
    @classmethod
    def _require_single_placeholder(cls, value: str) -> str:
        count = value.count(CLIP_NUMBER_PLACEHOLDER)
        if count != 1:
            raise ValueError(
                f"output_template must contain exactly one {CLIP_NUMBER_PLACEHOLDER} "
                f"placeholder, found {count}"
            )
        return value

    @property
    def capacity(self) -> int:
        """Buffer capacity in frames (fps x record window)."""
        return max(1, int(self.fps * self.record_window_s))

    @property
    def post_trigger_delay_s(self) -> float:
        return self.record_window_s / 2


class ClassifierConfig(BaseModel):
    """Classifier backend name and its settings.

    `config` is a plain dict after parsing and is replaced by the plugin's own
    settings model once the backend has been validated.
    """

    model_config = {"extra": "forbid"}

    backend: str = "opencv_dnn"
    config: dict[str, Any] | BaseModel = Field(default_factory=dict)

    _backend_lowercase = field_validator("backend", mode="before")(_lowercase)


class DropboxStorageConfig(BaseModel):
    """Dropbox folder plus the names of the env vars holding credentials."""

    root: str
    token_env: str = "DROPBOX_TOKEN"
    app_key_env: str = "DROPBOX_APP_KEY"
    app_secret_env: str = "DROPBOX_APP_SECRET"
    refresh_token_env: str = "DROPBOX_REFRESH_TOKEN"


class LocalStorageConfig(BaseModel):
    """Directory that receives uploaded clips."""

    root: str = "./storage"


class StorageConfig(BaseModel):
    """Which backend receives uploads, with one optional section per backend.

    Unknown keys are kept so plugins from other packages can read their own
    section; the backend name itself is checked once plugins are discovered.
    """

    model_config = {"extra": "allow"}

    backend: str = "local"
    dropbox: DropboxStorageConfig | None = None
    local: LocalStorageConfig | None = None

    _backend_lowercase = field_validator("backend", mode="before")(_lowercase)

    @model_validator(mode="after")
    def _fill_builtin_sections(self) -> StorageConfig:
        if self.backend == "local" and self.local is None:
            self.local = LocalStorageConfig()
        if self.backend == "dropbox" and self.dropbox is None:
            raise ValueError("backend dropbox needs a storage.dropbox section with at least root")
        return self


class UploadConfig(BaseModel):
    """Uploader settings."""

    model_config = {"extra": "forbid"}

    local_dir: str | None = Field(
        default=None,
        description="Directory to sync (defaults to the output template's directory).",
    )
    extension: str = ".avi"
    max_attempts: int = Field(default=3, ge=1)
    remote_prefix: str = "clips"

    @field_validator("extension")
    @classmethod
    def _normalize_extension(cls, value: str) -> str:
        ext = str(value).strip().lower()
        if not ext:
            raise ValueError("extension must not be empty")
        if not ext.startswith("."):
            ext = f".{ext}"
        return ext


class Config(BaseModel):
    """Root configuration."""

    model_config = {"extra": "forbid"}

    camera_name: str = "camera"
    source: SourceConfig = Field(default_factory=SourceConfig)
    recorder: RecorderConfig = Field(default_factory=RecorderConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    labels_path: str | None = None
    storage: StorageConfig = Field(default_factory=StorageConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
