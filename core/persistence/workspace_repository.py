"""Workspace repository implementation."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from core.errors import NotFoundError
from core.models import Workspace
from .database import Database


class WorkspaceRepository:
    """SQLite implementation of workspace persistence."""

    _COLUMNS = "id, name, description, user_id, created_at, updated_at"

    def __init__(self, database: Database):
        self._db = database

    @staticmethod
    def _row_to_workspace(row) -> Workspace:
        return Workspace(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            user_id=row["user_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def create(self, workspace: Workspace) -> None:
        with self._db.transaction("create workspace") as conn:
            conn.execute(
                f"""
                INSERT INTO workspaces ({self._COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    workspace.id,
                    workspace.name,
                    workspace.description,
                    workspace.user_id,
                    workspace.created_at.isoformat(),
                    workspace.updated_at.isoformat(),
                ),
            )

    def get_by_id(self, workspace_id: str) -> Optional[Workspace]:
        with self._db.reading("load workspace") as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM workspaces WHERE id = ?",
                (workspace_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_workspace(row)

    def get_by_user(self, user_id: str) -> List[Workspace]:
        with self._db.reading("load workspaces") as conn:
            rows = conn.execute(
                f"""
                SELECT {self._COLUMNS}
                FROM workspaces
                WHERE user_id = ?
                ORDER BY created_at DESC
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_workspace(row) for row in rows]

    def update(self, workspace: Workspace) -> None:
        workspace.updated_at = datetime.now()
        with self._db.transaction("update workspace") as conn:
            cursor = conn.execute(
                """
                UPDATE workspaces
                SET name = ?, description = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    workspace.name,
                    workspace.description,
                    workspace.updated_at.isoformat(),
                    workspace.id,
                ),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Workspace {workspace.id} not found")

    def delete(self, workspace_id: str) -> None:
        """Delete a workspace; sessions, messages and file rows cascade."""
        with self._db.transaction("delete workspace") as conn:
            cursor = conn.execute(
                "DELETE FROM workspaces WHERE id = ?",
                (workspace_id,),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Workspace {workspace_id} not found")
