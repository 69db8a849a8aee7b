"""Chat session repository implementation."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from core.errors import NotFoundError
from core.models import ChatSession
from .database import Database


class SessionRepository:
    """SQLite implementation of chat session persistence.

    ``ChatSession.timestamp`` maps to the ``updated_at`` column, so it moves
    forward whenever a message is added to the session.
    """

    _COLUMNS = (
        "id, workspace_id, user_id, title, last_message, is_pinned, "
        "created_at, updated_at"
    )

    def __init__(self, database: Database):
        self._db = database

    @staticmethod
    def _row_to_session(row) -> ChatSession:
        return ChatSession(
            id=row["id"],
            workspace_id=row["workspace_id"],
            user_id=row["user_id"],
            title=row["title"],
            last_message=row["last_message"] or "",
            is_pinned=bool(row["is_pinned"]),
            timestamp=datetime.fromisoformat(row["updated_at"]),
        )

    def create(self, session: ChatSession) -> None:
        with self._db.transaction("create chat session") as conn:
            conn.execute(
                f"""
                INSERT INTO chat_sessions ({self._COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.workspace_id,
                    session.user_id,
                    session.title,
                    session.last_message,
                    int(session.is_pinned),
                    session.timestamp.isoformat(),
                    session.timestamp.isoformat(),
                ),
            )

    def get_by_id(self, session_id: str) -> Optional[ChatSession]:
        with self._db.reading("load chat session") as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM chat_sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    def get_by_workspace(self, workspace_id: str) -> List[ChatSession]:
        """Sessions of a workspace, newest activity first."""
        with self._db.reading("load chat sessions") as conn:
            rows = conn.execute(
                f"""
                SELECT {self._COLUMNS}
                FROM chat_sessions
                WHERE workspace_id = ?
                ORDER BY updated_at DESC
                """,
                (workspace_id,),
            ).fetchall()
        return [self._row_to_session(row) for row in rows]

    def update_title(self, session_id: str, title: str) -> None:
        self._update(session_id, "title = ?", (title,), "rename chat session")

    def set_pinned(self, session_id: str, is_pinned: bool) -> None:
        self._update(session_id, "is_pinned = ?", (int(is_pinned),), "pin chat session")

    def update_preview(
        self,
        session_id: str,
        last_message: str,
        timestamp: datetime,
    ) -> None:
        self._update(
            session_id,
            "last_message = ?, updated_at = ?",
            (last_message, timestamp.isoformat()),
            "update chat session",
        )

    def _update(self, session_id: str, assignments: str, values: tuple, action: str) -> None:
        with self._db.transaction(action) as conn:
            cursor = conn.execute(
                f"UPDATE chat_sessions SET {assignments} WHERE id = ?",
                (*values, session_id),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Chat session {session_id} not found")

    def delete(self, session_id: str) -> None:
        """Delete a session; its messages and shares cascade."""
        with self._db.transaction("delete chat session") as conn:
            cursor = conn.execute(
                "DELETE FROM chat_sessions WHERE id = ?",
                (session_id,),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Chat session {session_id} not found")
