"""Uploads finished clips to a Dropbox folder."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path, PurePosixPath
from typing import BinaryIO

import dropbox  # type: ignore[import-untyped]

from triggercam.interfaces import StorageBackend
from triggercam.models.config import DropboxStorageConfig
from triggercam.models.storage import StorageUploadResult
from triggercam.plugins.registry import PluginType, plugin
from triggercam.plugins.storage import relative_parts

logger = logging.getLogger(__name__)

# Dropbox rejects single-request uploads above 150MB; clips larger than one
# chunk go through an upload session instead.
CHUNK_SIZE = 4 * 1024 * 1024
URI_SCHEME = "dropbox:"


def _client_from_env(config: DropboxStorageConfig) -> dropbox.Dropbox:
    """Build a client from a long-lived token or an app refresh token."""
    token = os.getenv(config.token_env)
    if token:
        logger.info("Dropbox auth: access token from %s", config.token_env)
        return dropbox.Dropbox(token)

    refresh = {
        "app_key": os.getenv(config.app_key_env),
        "app_secret": os.getenv(config.app_secret_env),
        "oauth2_refresh_token": os.getenv(config.refresh_token_env),
    }
    if all(refresh.values()):
        logger.info("Dropbox auth: refresh token from %s", config.refresh_token_env)
        return dropbox.Dropbox(**refresh)

    raise ValueError(
        f"No Dropbox credentials in the environment; set {config.token_env}, or set "
        f"{config.app_key_env}, {config.app_secret_env} and {config.refresh_token_env}"
    )


@plugin(plugin_type=PluginType.STORAGE, name="dropbox")
class DropboxStorage(StorageBackend):
    """Stores clips under `root` in the account's Dropbox.

    The SDK is blocking, so every call runs in a worker thread.
    """

    config_cls = DropboxStorageConfig

    @classmethod
    def create(cls, config: DropboxStorageConfig) -> StorageBackend:
        return cls(config)

    def __init__(self, config: DropboxStorageConfig) -> None:
        self._root = str(config.root).rstrip("/")
        self._client = _client_from_env(config)
        self._closed = False
        logger.info("Uploading clips to Dropbox folder %s", self._root or "/")

    async def put_file(self, local_path: Path, dest_path: str) -> StorageUploadResult:
        self._check_open()
        remote = f"{self._root}/{PurePosixPath(*relative_parts(dest_path))}"
        await asyncio.to_thread(self._upload, local_path, remote)
        return StorageUploadResult(storage_uri=URI_SCHEME + remote)

    async def exists(self, storage_uri: str) -> bool:
        self._check_open()
        if not storage_uri.startswith(URI_SCHEME):
            return False
        remote = storage_uri[len(URI_SCHEME) :]
        return await asyncio.to_thread(self._has_metadata, remote)

    async def ping(self) -> bool:
        try:
            await asyncio.to_thread(self._client.users_get_current_account)
        except Exception as exc:
            logger.warning("Dropbox is unreachable: %s", exc, exc_info=True)
            return False
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        if not self._closed:
            self._closed = True
            logger.info("Dropbox storage closed")

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Dropbox storage is closed")

    def _upload(self, local_path: Path, remote: str) -> None:
        size = local_path.stat().st_size
        with open(local_path, "rb") as handle:
            if size > CHUNK_SIZE:
                self._upload_in_session(handle, remote, size)
            else:
                self._client.files_upload(
                    handle.read(), remote, mode=dropbox.files.WriteMode.overwrite
                )
        logger.debug("Uploaded %s (%d bytes) to %s", local_path.name, size, remote)

    def _upload_in_session(self, handle: BinaryIO, remote: str, size: int) -> None:
        first = handle.read(CHUNK_SIZE)
        session = self._client.files_upload_session_start(first)
        cursor = dropbox.files.UploadSessionCursor(
            session_id=session.session_id, offset=len(first)
        )
        commit = dropbox.files.CommitInfo(path=remote, mode=dropbox.files.WriteMode.overwrite)

        while True:
            chunk = handle.read(CHUNK_SIZE)
            if not chunk:
                raise RuntimeError(f"{remote}: file shrank during upload at byte {cursor.offset}")
            if cursor.offset + len(chunk) >= size:
                self._client.files_upload_session_finish(chunk, cursor, commit)
                return
            self._client.files_upload_session_append_v2(chunk, cursor)
            cursor.offset += len(chunk)

    def _has_metadata(self, remote: str) -> bool:
        try:
            self._client.files_get_metadata(remote)
        except dropbox.exceptions.ApiError:
            return False
        return True
