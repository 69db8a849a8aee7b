"""Chat share repository implementation."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from core.errors import NotFoundError
from core.models import ChatShare, SharePermission, ShareStatus
from .database import Database


class ShareRepository:
    """SQLite implementation of chat share invites."""

    _COLUMNS = "id, session_id, shared_with, permission, status, created_at"

    def __init__(self, database: Database):
        self._db = database

    @staticmethod
    def _row_to_share(row) -> ChatShare:
        return ChatShare(
            id=row["id"],
            session_id=row["session_id"],
            shared_with=row["shared_with"],
            permission=SharePermission(row["permission"]),
            status=ShareStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def create(self, share: ChatShare) -> None:
        with self._db.transaction("share chat") as conn:
            conn.execute(
                f"INSERT INTO chat_shares ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    share.id,
                    share.session_id,
                    share.shared_with,
                    share.permission.value,
                    share.status.value,
                    share.created_at.isoformat(),
                ),
            )

    def get_by_id(self, share_id: str) -> Optional[ChatShare]:
        with self._db.reading("load share") as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM chat_shares WHERE id = ?",
                (share_id,),
            ).fetchone()
        return self._row_to_share(row) if row else None

    def find(self, session_id: str, shared_with: str) -> Optional[ChatShare]:
        with self._db.reading("load share") as conn:
            row = conn.execute(
                f"""
                SELECT {self._COLUMNS} FROM chat_shares
                WHERE session_id = ? AND shared_with = ?
                """,
                (session_id, shared_with),
            ).fetchone()
        return self._row_to_share(row) if row else None

    def get_by_session(self, session_id: str) -> List[ChatShare]:
        with self._db.reading("load shares") as conn:
            rows = conn.execute(
                f"""
                SELECT {self._COLUMNS} FROM chat_shares
                WHERE session_id = ?
                ORDER BY created_at ASC
                """,
                (session_id,),
            ).fetchall()
        return [self._row_to_share(row) for row in rows]

    def get_for_user(
        self,
        profile_id: str,
        status: Optional[ShareStatus] = None,
    ) -> List[ChatShare]:
        query = f"SELECT {self._COLUMNS} FROM chat_shares WHERE shared_with = ?"
        params: list = [profile_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status.value)
        query += " ORDER BY created_at DESC"
        with self._db.reading("load shares") as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_share(row) for row in rows]

    def update_status(self, share_id: str, status: ShareStatus) -> None:
        with self._db.transaction("update share") as conn:
            cursor = conn.execute(
                "UPDATE chat_shares SET status = ? WHERE id = ?",
                (status.value, share_id),
            )
        if cursor.rowcount == 0:
            raise NotFoundError(f"Share {share_id} not found")
