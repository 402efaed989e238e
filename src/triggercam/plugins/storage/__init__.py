"""Storage backend plugins."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import cast

from triggercam.interfaces import StorageBackend
from triggercam.models.config import StorageConfig
from triggercam.plugins.registry import PluginType, load_plugin


def relative_parts(dest_path: str) -> tuple[str, ...]:
    """Split a storage destination into path parts, rejecting escapes.

    Leading slashes are ignored so `/clips/a.avi` and `clips/a.avi` land in
    the same place under a backend's root.

    Raises:
        ValueError: If the destination is empty, uses backslashes or climbs
            out of the root with `..`.
    """
    relative = str(dest_path).lstrip("/")
    parts = PurePosixPath(relative).parts
    if not relative or "\\" in relative or ".." in parts:
        raise ValueError(f"Refusing to store at {dest_path!r}")
    return parts


def load_storage_plugin(config: StorageConfig) -> StorageBackend:
    """Create the backend named by `config.backend` from its own section.

    Raises:
        RuntimeError: If `storage.<backend>` is absent from the config.
        ValueError: If no plugin is registered under that name.
    """
    name = config.backend
    section = getattr(config, name, None)
    if section is None:
        raise RuntimeError(f"storage.backend is {name!r} but storage.{name} is not configured")
    return cast(StorageBackend, load_plugin(PluginType.STORAGE, name, section))


__all__ = ["load_storage_plugin", "relative_parts"]
