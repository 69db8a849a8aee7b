"""Remote user preferences repository implementation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from core.models import ChatStyle, UserPreferences
from .database import Database

logger = logging.getLogger(__name__)


def parse_chat_style(value: Optional[str]) -> ChatStyle:
    """Map a stored value to a ChatStyle, defaulting to standard."""
    try:
        return ChatStyle(value)
    except ValueError:
        if value:
            logger.warning("Unknown chat style %r, using standard", value)
        return ChatStyle.STANDARD


class PreferencesRepository:
    """SQLite implementation of per-user chat preferences."""

    def __init__(self, database: Database):
        self._db = database

    def get(self, user_id: str) -> Optional[UserPreferences]:
        with self._db.reading("load preferences") as conn:
            row = conn.execute(
                """
                SELECT user_id, chat_style, bot_avatar_url, updated_at
                FROM user_preferences
                WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return UserPreferences(
            user_id=row["user_id"],
            chat_style=parse_chat_style(row["chat_style"]),
            bot_avatar_url=row["bot_avatar_url"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def upsert(self, preferences: UserPreferences) -> UserPreferences:
        preferences.updated_at = datetime.now()
        with self._db.transaction("save preferences") as conn:
            conn.execute(
                """
                INSERT INTO user_preferences (user_id, chat_style, bot_avatar_url, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    chat_style = excluded.chat_style,
                    bot_avatar_url = excluded.bot_avatar_url,
                    updated_at = excluded.updated_at
                """,
                (
                    preferences.user_id,
                    preferences.chat_style.value,
                    preferences.bot_avatar_url,
                    preferences.updated_at.isoformat(),
                ),
            )
        return preferences
