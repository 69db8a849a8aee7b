"""Profile repository implementation."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.models import Profile
from .database import Database


class ProfileRepository:
    """SQLite implementation of user profile lookups."""

    _COLUMNS = "id, email, name, avatar_url, created_at"

    def __init__(self, database: Database):
        self._db = database

    @staticmethod
    def _row_to_profile(row) -> Profile:
        return Profile(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            avatar_url=row["avatar_url"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def create(self, profile: Profile) -> None:
        with self._db.transaction("create profile") as conn:
            conn.execute(
                f"INSERT INTO profiles ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?)",
                (
                    profile.id,
                    profile.email.lower(),
                    profile.name,
                    profile.avatar_url,
                    profile.created_at.isoformat(),
                ),
            )

    def get_by_id(self, profile_id: str) -> Optional[Profile]:
        with self._db.reading("load profile") as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM profiles WHERE id = ?",
                (profile_id,),
            ).fetchone()
        return self._row_to_profile(row) if row else None

    def get_by_email(self, email: str) -> Optional[Profile]:
        with self._db.reading("look up profile") as conn:
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM profiles WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        return self._row_to_profile(row) if row else None
