"""Persistence package exports."""

from .blob_store import BlobStore, build_storage_path
from .database import Database
from .file_repository import FileRepository
from .message_repository import MessageRepository
from .preferences_repository import PreferencesRepository, parse_chat_style
from .profile_repository import ProfileRepository
from .session_repository import SessionRepository
from .settings_repository import SettingsRepository
from .share_repository import ShareRepository
from .workspace_repository import WorkspaceRepository

__all__ = [
    "BlobStore",
    "build_storage_path",
    "Database",
    "FileRepository",
    "MessageRepository",
    "PreferencesRepository",
    "parse_chat_style",
    "ProfileRepository",
    "SessionRepository",
    "SettingsRepository",
    "ShareRepository",
    "WorkspaceRepository",
]
