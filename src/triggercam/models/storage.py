"""Storage and upload result models."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class StorageUploadResult(BaseModel):
    """Where a storage backend put an uploaded clip."""

    storage_uri: str
    view_url: str | None = None


class FileSyncResult(BaseModel):
    """Outcome of syncing one local clip file."""

    local_path: Path
    ok: bool
    attempts: int
    storage_uri: str | None = None
    error: str | None = None
