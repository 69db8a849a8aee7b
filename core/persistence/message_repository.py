"""Chat message repository implementation."""

from __future__ import annotations

from datetime import datetime
from typing import List

from core.errors import NotFoundError
from core.models import ChatMessage, MessageRole
from .database import Database


class MessageRepository:
    """SQLite implementation of chat message persistence.

    Adding or deleting a message keeps the parent session's preview
    (``last_message``) and activity timestamp in step, in one transaction.
    """

    def __init__(self, database: Database):
        self._db = database

    def add(self, message: ChatMessage) -> None:
        with self._db.transaction("save message") as conn:
            cursor = conn.execute(
                """
                UPDATE chat_sessions
                SET last_message = ?, updated_at = ?
                WHERE id = ?
                """,
                (message.content, message.timestamp.isoformat(), message.session_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Chat session {message.session_id} not found")
            conn.execute(
                """
                INSERT INTO chat_messages (id, session_id, role, content, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    message.session_id,
                    message.role.value,
                    message.content,
                    message.timestamp.isoformat(),
                ),
            )

    def get_by_session(self, session_id: str) -> List[ChatMessage]:
        """Messages of a session in creation order."""
        with self._db.reading("load messages") as conn:
            rows = conn.execute(
                """
                SELECT id, session_id, role, content, timestamp
                FROM chat_messages
                WHERE session_id = ?
                ORDER BY timestamp ASC, rowid ASC
                """,
                (session_id,),
            ).fetchall()
        return [
            ChatMessage(
                id=row["id"],
                session_id=row["session_id"],
                role=MessageRole(row["role"]),
                content=row["content"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
            )
            for row in rows
        ]

    def delete(self, message_id: str) -> None:
        with self._db.transaction("delete message") as conn:
            row = conn.execute(
                "SELECT session_id FROM chat_messages WHERE id = ?",
                (message_id,),
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Message {message_id} not found")
            session_id = row["session_id"]
            conn.execute("DELETE FROM chat_messages WHERE id = ?", (message_id,))
            latest = conn.execute(
                """
                SELECT content FROM chat_messages
                WHERE session_id = ?
                ORDER BY timestamp DESC, rowid DESC
                LIMIT 1
                """,
                (session_id,),
            ).fetchone()
            conn.execute(
                "UPDATE chat_sessions SET last_message = ? WHERE id = ?",
                (latest["content"] if latest else "", session_id),
            )

    def count_by_session(self, session_id: str) -> int:
        with self._db.reading("count messages") as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM chat_messages WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        return int(row["total"])
