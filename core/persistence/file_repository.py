"""Workspace file repository implementation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from core.errors import NotFoundError
from core.models import WorkspaceFile
from .blob_store import BlobStore
from .database import Database

logger = logging.getLogger(__name__)


def _parse_size(value) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        logger.warning("Unreadable file size %r, using 0", value)
        return 0


class FileRepository:
    """SQLite metadata for files whose bytes live in a BlobStore.

    URL-reference pseudo-files are never written here.
    """

    _COLUMNS = "id, name, size, type, path, workspace_id, user_id, uploaded_at"

    def __init__(self, database: Database, blob_store: BlobStore):
        self._db = database
        self._blobs = blob_store

    def _row_to_file(self, row) -> WorkspaceFile:
        return WorkspaceFile(
            id=row["id"],
            name=row["name"],
            size=_parse_size(row["size"]),
            type=row["type"],
            url=self._blobs.public_url(row["path"]),
            path=row["path"],
            workspace_id=row["workspace_id"],
            user_id=row["user_id"],
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
        )

    def create(self, file: WorkspaceFile) -> WorkspaceFile:
        if file.is_url_reference:
            raise ValueError("URL references are not persisted")
        with self._db.transaction("save file record") as conn:
            conn.execute(
                f"""
                INSERT INTO files ({self._COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    file.id,
                    file.name,
                    str(file.size),
                    file.type,
                    file.path,
                    file.workspace_id,
                    file.user_id,
                    file.uploaded_at.isoformat(),
                ),
            )
        file.url = self._blobs.public_url(file.path)
        return file

    def get_by_id(self, file_id: str) -> Optional[WorkspaceFile]:
        with self._db.reading("load file") as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM files WHERE id = ?",
                (file_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_file(row)

    def get_by_workspace(self, workspace_id: str) -> List[WorkspaceFile]:
        """Files of a workspace, most recently uploaded first."""
        with self._db.reading("load files") as conn:
            rows = conn.execute(
                f"""
                SELECT {self._COLUMNS}
                FROM files
                WHERE workspace_id = ?
                ORDER BY uploaded_at DESC
                """,
                (workspace_id,),
            ).fetchall()
        return [self._row_to_file(row) for row in rows]

    def delete(self, file_id: str) -> None:
        with self._db.transaction("delete file record") as conn:
            cursor = conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
        if cursor.rowcount == 0:
            raise NotFoundError(f"File {file_id} not found")
