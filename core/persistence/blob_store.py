"""On-disk blob store for uploaded workspace files."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterable

from core.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


def build_storage_path(user_id: str, workspace_id: str, file_name: str) -> str:
    """Storage key for an uploaded file: ``<user>/<workspace>/<name>``."""
    safe_name = PurePosixPath(file_name.replace("\\", "/")).name or "file"
    return f"{user_id}/{workspace_id}/{safe_name}"


class BlobStore:
    """Stores binaries under ``root`` keyed by a relative storage path.

    Uploading to an existing path replaces the previous content.
    """

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise PersistenceError(f"Invalid storage path: {path}")
        return target

    def upload(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise PersistenceError(f"Failed to upload {path}: {exc}") from exc
        logger.debug("Stored blob %s (%d bytes)", path, len(data))
        return path

    def read(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.exists():
            raise NotFoundError(f"Stored file {path} not found")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise PersistenceError(f"Failed to read {path}: {exc}") from exc

    def remove(self, paths: Iterable[str]) -> None:
        """Remove blobs; missing paths are ignored."""
        for path in paths:
            target = self._resolve(path)
            try:
                target.unlink(missing_ok=True)
            except OSError as exc:
                raise PersistenceError(f"Failed to remove {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def public_url(self, path: str) -> str:
        """``file://`` URI of a stored path, resolved at read time."""
        return self._resolve(path).as_uri()
