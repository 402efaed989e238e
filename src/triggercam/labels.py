"""Label descriptions file (one description per line, index = line number)."""

from __future__ import annotations

from pathlib import Path

from triggercam.config.loader import ConfigError, ConfigErrorCode


def read_labels(path: Path) -> list[str]:
    """Read label descriptions.

    Raises:
        ConfigError: If the file cannot be read
    """
    try:
        with path.open(encoding="utf-8") as f:
            return [line.rstrip("\r\n") for line in f]
    except OSError as e:
        raise ConfigError(
            f"Cannot read labels file {path}: {e}",
            code=ConfigErrorCode.LABELS_INVALID,
            path=path,
            cause=e,
        ) from e
