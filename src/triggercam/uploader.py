"""Syncs finished clips from a local directory to a storage backend."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path, PurePosixPath

from triggercam.errors import UploadError
from triggercam.interfaces import StorageBackend
from triggercam.models.storage import FileSyncResult

logger = logging.getLogger(__name__)


def default_remote_name(local_path: Path) -> str:
    """`<YYYYmmddTHHMMSS>-<uuid4><ext>` for a local clip."""
    stamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    return f"{stamp}-{uuid.uuid4()}{local_path.suffix.lower()}"


class Uploader:
    """Uploads each matching file with a bounded number of attempts.

    Files are handled independently: one failing file does not stop the
    rest of the pass. Only one upload runs at a time per uploader.
    """

    def __init__(
        self,
        storage: StorageBackend,
        *,
        max_attempts: int = 3,
        retry_delay_s: float = 1.0,
        remote_prefix: str = "",
        remote_name: Callable[[Path], str] = default_remote_name,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._storage = storage
        self._max_attempts = int(max_attempts)
        self._retry_delay_s = float(retry_delay_s)
        self._remote_prefix = remote_prefix.strip("/")
        self._remote_name = remote_name
        self._lock = asyncio.Lock()

    async def sync(self, local_dir: Path, extension: str) -> dict[Path, bool]:
        """Upload every `extension` file under `local_dir`.

        Returns:
            Mapping of local path to upload success.
        """
        results = await self.sync_detailed(local_dir, extension)
        return {result.local_path: result.ok for result in results}

    async def sync_detailed(self, local_dir: Path, extension: str) -> list[FileSyncResult]:
        files = find_files(local_dir, extension)
        if not files:
            logger.info("No %s files to upload in %s", extension, local_dir)
            return []

        logger.info("Uploading %d file(s) from %s", len(files), local_dir)
        results: list[FileSyncResult] = []
        for path in files:
            results.append(await self.upload(path))

        failed = sum(1 for result in results if not result.ok)
        if failed:
            logger.warning("Upload pass finished with %d failure(s) of %d", failed, len(results))
        else:
            logger.info("Upload pass finished: %d file(s) uploaded", len(results))
        return results

    async def upload(self, local_path: Path) -> FileSyncResult:
        """Upload one file, retrying up to `max_attempts` times."""
        async with self._lock:
            dest_path = self._dest_path(local_path)
            last_exc: Exception | None = None
            for attempt in range(1, self._max_attempts + 1):
                logger.debug("Uploading %s (attempt %d/%d)", local_path, attempt, self._max_attempts)
                try:
                    stored = await self._storage.put_file(local_path, dest_path)
                except Exception as exc:
                    last_exc = exc
                    logger.warning(
                        "Upload attempt %d/%d failed for %s: %s",
                        attempt,
                        self._max_attempts,
                        local_path,
                        exc,
                    )
                    if attempt < self._max_attempts and self._retry_delay_s > 0:
                        await asyncio.sleep(self._retry_delay_s)
                    continue

                logger.info("Uploaded %s -> %s", local_path, stored.storage_uri)
                return FileSyncResult(
                    local_path=local_path,
                    ok=True,
                    attempts=attempt,
                    storage_uri=stored.storage_uri,
                )

            error = UploadError(str(local_path), self._max_attempts, last_exc)
            logger.error("%s", error, exc_info=last_exc)
            return FileSyncResult(
                local_path=local_path,
                ok=False,
                attempts=self._max_attempts,
                error=str(last_exc) if last_exc else str(error),
            )

    def _dest_path(self, local_path: Path) -> str:
        name = self._remote_name(local_path)
        if self._remote_prefix:
            return str(PurePosixPath(self._remote_prefix) / name)
        return name


def find_files(local_dir: Path, extension: str) -> list[Path]:
    """Regular files under `local_dir` whose suffix matches `extension`."""
    ext = extension.lower() if extension.startswith(".") else f".{extension.lower()}"
    if not local_dir.is_dir():
        return []
    return sorted(p for p in local_dir.rglob("*") if p.is_file() and p.suffix.lower() == ext)
