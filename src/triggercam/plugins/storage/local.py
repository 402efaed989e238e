"""Copies finished clips into a local or mounted directory."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from triggercam.interfaces import StorageBackend
from triggercam.models.config import LocalStorageConfig
from triggercam.models.storage import StorageUploadResult
from triggercam.plugins.registry import PluginType, plugin
from triggercam.plugins.storage import relative_parts

logger = logging.getLogger(__name__)

URI_SCHEME = "local:"


@plugin(plugin_type=PluginType.STORAGE, name="local")
class LocalStorage(StorageBackend):
    """Directory-backed storage for NAS mounts and development."""

    config_cls = LocalStorageConfig

    @classmethod
    def create(cls, config: LocalStorageConfig) -> StorageBackend:
        return cls(config)

    def __init__(self, config: LocalStorageConfig) -> None:
        self._root = Path(config.root).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._closed = False
        logger.info("Copying clips to %s", self._root)

    async def put_file(self, local_path: Path, dest_path: str) -> StorageUploadResult:
        self._check_open()
        target = self._root.joinpath(*relative_parts(dest_path))
        await asyncio.to_thread(self._copy, local_path, target)
        return StorageUploadResult(storage_uri=URI_SCHEME + str(target), view_url=target.as_uri())

    async def exists(self, storage_uri: str) -> bool:
        self._check_open()
        if not storage_uri.startswith(URI_SCHEME):
            return False
        return await asyncio.to_thread(Path(storage_uri[len(URI_SCHEME) :]).is_file)

    async def ping(self) -> bool:
        return self._root.is_dir()

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Local storage is closed")

    @staticmethod
    def _copy(source: Path, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
