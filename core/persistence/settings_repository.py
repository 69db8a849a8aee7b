"""Local key/value settings repository."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.models import Setting
from .database import Database


class SettingsRepository:
    """Device-local settings such as chat style, avatar and platform.

    Values are plain strings grouped by category.
    """

    def __init__(self, database: Database):
        self._db = database

    @staticmethod
    def _row_to_setting(row) -> Setting:
        return Setting(
            key=row["key"],
            value=row["value"],
            category=row["category"],
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get(self, key: str) -> Optional[Setting]:
        with self._db.reading("load setting") as conn:
            row = conn.execute(
                "SELECT key, value, category, updated_at FROM settings WHERE key = ?",
                (key,),
            ).fetchone()
        return self._row_to_setting(row) if row else None

    def get_by_category(self, category: str) -> list[Setting]:
        with self._db.reading("load settings") as conn:
            rows = conn.execute(
                """
                SELECT key, value, category, updated_at FROM settings
                WHERE category = ? ORDER BY key
                """,
                (category,),
            ).fetchall()
        return [self._row_to_setting(row) for row in rows]

    def set(self, key: str, value: str, category: str) -> Setting:
        now = datetime.now()
        with self._db.transaction("save setting") as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value, category, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    category = excluded.category,
                    updated_at = excluded.updated_at
                """,
                (key, value, category, now.isoformat()),
            )
        return Setting(key=key, value=value, category=category, updated_at=now)

    def delete(self, key: str) -> bool:
        with self._db.transaction("delete setting") as conn:
            cursor = conn.execute("DELETE FROM settings WHERE key = ?", (key,))
        return cursor.rowcount > 0

    def get_value(self, key: str, default: str = "") -> str:
        setting = self.get(key)
        return setting.value if setting else default
