"""Reads the YAML config file into a validated `Config`."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from triggercam.models.config import Config

logger = logging.getLogger(__name__)


class ConfigErrorCode(str, Enum):
    FILE_NOT_FOUND = "CONFIG_FILE_NOT_FOUND"
    YAML_INVALID = "CONFIG_YAML_INVALID"
    EMPTY_FILE = "CONFIG_EMPTY_FILE"
    ROOT_NOT_MAPPING = "CONFIG_ROOT_NOT_MAPPING"
    VALIDATION_FAILED = "CONFIG_VALIDATION_FAILED"
    PLUGIN_NAMES_INVALID = "CONFIG_PLUGIN_NAMES_INVALID"
    PLUGIN_CONFIG_INVALID = "CONFIG_PLUGIN_CONFIG_INVALID"
    LABELS_INVALID = "CONFIG_LABELS_INVALID"
    ENV_VAR_MISSING = "CONFIG_ENV_VAR_MISSING"
    UNKNOWN = "CONFIG_UNKNOWN"


class ConfigError(Exception):
    """Raised when the recorder cannot be configured.

    `code` is stable across releases so callers can branch on it; `path` is
    the offending file when there is one.
    """

    def __init__(
        self,
        message: str,
        *,
        code: ConfigErrorCode = ConfigErrorCode.UNKNOWN,
        path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.path = path
        self.__cause__ = cause


def load_config(path: Path) -> Config:
    """Parse `path` and validate it, including plugin names and settings.

    Raises:
        ConfigError: With a code describing which stage failed.
    """
    return _build(_read_mapping(path), path)


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Validate an in-memory config, as `load_config` does after parsing."""
    return _build(data, None)


def resolve_env_var(env_var_name: str, required: bool = True) -> str | None:
    """Look up a value the config refers to by environment variable name.

    Raises:
        ConfigError: If `required` and the variable is unset.
    """
    value = os.environ.get(env_var_name)
    if value is None and required:
        raise ConfigError(
            f"Environment variable {env_var_name} is referenced by the config but not set",
            code=ConfigErrorCode.ENV_VAR_MISSING,
        )
    return value


def format_validation_error(e: ValidationError, path: Path | None = None) -> str:
    """Render pydantic errors one per line as `section -> field: message`."""
    source = f" in {path}" if path else ""
    lines = [f"Invalid config{source}:"]
    for err in e.errors():
        location = " -> ".join(str(part) for part in err["loc"]) or "<root>"
        lines.append(f"  {location}: {err['msg']}")
    return "\n".join(lines)


def _read_mapping(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise ConfigError(
            f"No config file at {path}",
            code=ConfigErrorCode.FILE_NOT_FOUND,
            path=path,
            cause=exc,
        ) from exc

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"{path} is not valid YAML: {exc}",
            code=ConfigErrorCode.YAML_INVALID,
            path=path,
            cause=exc,
        ) from exc

    if raw is None:
        raise ConfigError(f"{path} is empty", code=ConfigErrorCode.EMPTY_FILE, path=path)
    if not isinstance(raw, dict):
        raise ConfigError(
            f"{path} must hold a mapping of sections, not a {type(raw).__name__}",
            code=ConfigErrorCode.ROOT_NOT_MAPPING,
            path=path,
        )
    return raw


def _build(data: dict[str, Any], path: Path | None) -> Config:
    try:
        config = Config.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(
            format_validation_error(exc, path),
            code=ConfigErrorCode.VALIDATION_FAILED,
            path=path,
            cause=exc,
        ) from exc

    # Plugin names are only known once entry points have been scanned.
    from triggercam.config.validation import validate_config
    from triggercam.plugins import discover_all_plugins

    discover_all_plugins()
    try:
        validate_config(config)
    except ConfigError as exc:
        exc.path = exc.path or path
        raise
    logger.debug("Loaded config for camera %s from %s", config.camera_name, path or "<dict>")
    return config
