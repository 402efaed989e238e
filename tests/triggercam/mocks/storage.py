"""Mock storage backend for testing."""

from __future__ import annotations

from pathlib import Path

from triggercam.interfaces import StorageBackend
from triggercam.models.storage import StorageUploadResult


class MockStorage(StorageBackend):
    """Keeps uploads in memory.

    Args:
        failures: local filename -> number of put_file calls to fail before succeeding
    """

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.failures = dict(failures or {})
        self.files: dict[str, bytes] = {}
        self.attempts: dict[str, int] = {}
        self.shutdown_called = False

    async def put_file(self, local_path: Path, dest_path: str) -> StorageUploadResult:
        name = local_path.name
        self.attempts[name] = self.attempts.get(name, 0) + 1
        remaining = self.failures.get(name, 0)
        if remaining > 0:
            self.failures[name] = remaining - 1
            raise ConnectionError(f"Simulated upload failure for {name}")

        storage_uri = f"mock:{dest_path}"
        self.files[storage_uri] = local_path.read_bytes()
        return StorageUploadResult(storage_uri=storage_uri)

    async def exists(self, storage_uri: str) -> bool:
        return storage_uri in self.files

    async def ping(self) -> bool:
        return True

    async def shutdown(self, timeout: float | None = None) -> None:
        _ = timeout
        self.shutdown_called = True
