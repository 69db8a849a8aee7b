"""SQLite database manager for workspaces, chats, files and preferences."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from core.constants import APP_DIR_NAME, DEFAULT_REQUEST_TIMEOUT
from core.errors import PersistenceError


class Database:
    """Unified database manager for the application."""

    SCHEMA = """
    PRAGMA foreign_keys = ON;

    -- Workspaces
    CREATE TABLE IF NOT EXISTS workspaces (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        user_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_workspaces_user_id ON workspaces(user_id);

    -- Chat sessions
    CREATE TABLE IF NOT EXISTS chat_sessions (
        id TEXT PRIMARY KEY,
        workspace_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        last_message TEXT NOT NULL DEFAULT '',
        is_pinned INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (workspace_id) REFERENCES workspaces(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS idx_chat_sessions_workspace_id
        ON chat_sessions(workspace_id);

    -- Chat messages
    CREATE TABLE IF NOT EXISTS chat_messages (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
        content TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        FOREIGN KEY (session_id) REFERENCES chat_sessions(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS idx_chat_messages_session_id ON chat_messages(session_id);
    CREATE INDEX IF NOT EXISTS idx_chat_messages_timestamp ON chat_messages(timestamp);

    -- Workspace files
    CREATE TABLE IF NOT EXISTS files (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        size TEXT NOT NULL,
        type TEXT NOT NULL,
        path TEXT NOT NULL,
        workspace_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        uploaded_at TEXT NOT NULL,
        FOREIGN KEY (workspace_id) REFERENCES workspaces(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS idx_files_workspace_id ON files(workspace_id);

    -- User preferences
    CREATE TABLE IF NOT EXISTS user_preferences (
        user_id TEXT PRIMARY KEY,
        chat_style TEXT NOT NULL DEFAULT 'standard',
        bot_avatar_url TEXT,
        updated_at TEXT NOT NULL
    );

    -- Profiles
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL DEFAULT '',
        avatar_url TEXT,
        created_at TEXT NOT NULL
    );

    -- Chat shares
    CREATE TABLE IF NOT EXISTS chat_shares (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        shared_with TEXT NOT NULL,
        permission TEXT NOT NULL CHECK (permission IN ('view', 'edit')),
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL,
        UNIQUE (session_id, shared_with),
        FOREIGN KEY (session_id) REFERENCES chat_sessions(id) ON DELETE CASCADE,
        FOREIGN KEY (shared_with) REFERENCES profiles(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS idx_chat_shares_shared_with ON chat_shares(shared_with);

    -- Settings
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        category TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_settings_category ON settings(category);
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        if db_path is None:
            db_path = Path.home() / APP_DIR_NAME / "katagrafy.db"
        self.db_path = db_path
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._init_schema()

    def _init_schema(self) -> None:
        conn = self.get_connection()
        try:
            conn.executescript(self.SCHEMA)
            conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to initialize database: {exc}") from exc

    def get_connection(self) -> sqlite3.Connection:
        """Get or create a database connection for the current thread."""
        if not hasattr(self._local, "connection") or self._local.connection is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path), timeout=self.timeout
            )
            self._local.connection.row_factory = sqlite3.Row
            self._local.connection.execute("PRAGMA foreign_keys = ON")
            self._local.connection.execute("PRAGMA journal_mode=WAL")
        return self._local.connection

    @contextmanager
    def transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Yield a connection, commit on success and map errors.

        Args:
            action: Short description used in the PersistenceError message.
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(f"Failed to {action}: {exc}") from exc
        except Exception:
            conn.rollback()
            raise

    @contextmanager
    def reading(self, action: str) -> Iterator[sqlite3.Connection]:
        """Yield a connection for queries, mapping sqlite errors."""
        try:
            yield self.get_connection()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to {action}: {exc}") from exc

    def close(self) -> None:
        """Close the database connection for the current thread."""
        if hasattr(self._local, "connection") and self._local.connection is not None:
            self._local.connection.close()
            self._local.connection = None
