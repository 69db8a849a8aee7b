"""Domain models for workspaces, chat sessions, files and preferences."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from core.constants import (
    DEFAULT_SESSION_TITLE,
    TITLE_CONTINUATION,
    TITLE_PREFIX_LENGTH,
    URL_FILE_ID_PREFIX,
)


class MessageRole(str, Enum):
    """Role of a message sender."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatStyle(str, Enum):
    """Layout used to render the conversation."""

    STANDARD = "standard"
    COMPACT = "compact"
    BUBBLE = "bubble"


class Platform(str, Enum):
    """UI platform preference."""

    WEB = "web"
    MOBILE = "mobile"


class SharePermission(str, Enum):
    """Access level granted by a chat share."""

    VIEW = "view"
    EDIT = "edit"


class ShareStatus(str, Enum):
    """Lifecycle of a chat share invite."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class NotificationLevel(str, Enum):
    """Severity of a user-facing notification."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Setting:
    """A locally cached configuration setting."""

    key: str
    value: str
    category: str
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Workspace:
    """A named container scoping sessions and files."""

    id: str
    name: str
    user_id: str
    description: str = ""
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(cls, name: str, user_id: str, description: str = "") -> "Workspace":
        """Create a new workspace with an auto-generated ID."""
        now = datetime.now()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            user_id=user_id,
            description=description or "",
            created_at=now,
            updated_at=now,
        )


@dataclass(frozen=True)
class ChatMessage:
    """A single message in a session. Never mutated after creation."""

    id: str
    session_id: str
    role: MessageRole
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
        session_id: str,
        role: MessageRole,
        content: str,
    ) -> "ChatMessage":
        """Create a message with an auto-generated ID."""
        return cls(
            id=str(uuid.uuid4()),
            session_id=session_id,
            role=role,
            content=content,
            timestamp=datetime.now(),
        )


@dataclass
class ChatSession:
    """A conversation thread within a workspace."""

    id: str
    workspace_id: str
    user_id: str
    title: str
    last_message: str = ""
    is_pinned: bool = False
    timestamp: datetime = field(default_factory=datetime.now)
    messages: list[ChatMessage] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        workspace_id: str,
        user_id: str,
        title: Optional[str] = None,
    ) -> "ChatSession":
        """Create a new session with an auto-generated ID."""
        return cls(
            id=str(uuid.uuid4()),
            workspace_id=workspace_id,
            user_id=user_id,
            title=title or DEFAULT_SESSION_TITLE,
            timestamp=datetime.now(),
        )


@dataclass
class WorkspaceFile:
    """A stored file or a URL reference attached to a workspace."""

    id: str
    name: str
    size: int
    type: str
    url: str
    workspace_id: str
    user_id: str
    uploaded_at: datetime = field(default_factory=datetime.now)
    path: Optional[str] = None
    content: Optional[str] = None

    @property
    def is_url_reference(self) -> bool:
        """URL references live in local state only."""
        return self.id.startswith(URL_FILE_ID_PREFIX)

    @classmethod
    def create_url_reference(
        cls,
        url: str,
        workspace_id: str,
        user_id: str,
    ) -> "WorkspaceFile":
        """Wrap an external link as a pseudo-file."""
        return cls(
            id=f"{URL_FILE_ID_PREFIX}{uuid.uuid4()}",
            name=url,
            size=0,
            type="text/uri-list",
            url=url,
            workspace_id=workspace_id,
            user_id=user_id,
            uploaded_at=datetime.now(),
        )


@dataclass
class UserPreferences:
    """Chat display preferences synced to the backend."""

    user_id: str
    chat_style: ChatStyle = ChatStyle.STANDARD
    bot_avatar_url: Optional[str] = None
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Profile:
    """Public profile of a registered user."""

    id: str
    email: str
    name: str = ""
    avatar_url: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(cls, email: str, name: str = "") -> "Profile":
        return cls(
            id=str(uuid.uuid4()),
            email=email.lower(),
            name=name,
            created_at=datetime.now(),
        )


@dataclass
class ChatShare:
    """An invite giving another user access to a chat session."""

    id: str
    session_id: str
    shared_with: str
    permission: SharePermission
    status: ShareStatus = ShareStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(
        cls,
        session_id: str,
        shared_with: str,
        permission: SharePermission,
    ) -> "ChatShare":
        return cls(
            id=str(uuid.uuid4()),
            session_id=session_id,
            shared_with=shared_with,
            permission=permission,
            status=ShareStatus.PENDING,
            created_at=datetime.now(),
        )


@dataclass(frozen=True)
class Notification:
    """A toast-style message for the user."""

    level: NotificationLevel
    title: str
    message: str


def derive_session_title(message: Optional[str]) -> str:
    """Build a session title from the first user message."""
    if not message or not message.strip():
        return DEFAULT_SESSION_TITLE
    if len(message) > TITLE_PREFIX_LENGTH:
        return message[:TITLE_PREFIX_LENGTH] + TITLE_CONTINUATION
    return message


def sort_sessions(sessions: list[ChatSession]) -> list[ChatSession]:
    """Pinned sessions first, then newest activity first.

    ``sorted`` is stable, so ties keep the order of the input list.
    """
    return sorted(
        sessions,
        key=lambda s: (not s.is_pinned, -s.timestamp.timestamp()),
    )


def most_recent_first(sessions: list[ChatSession]) -> list[ChatSession]:
    """Order by last activity only, ignoring pin state."""
    return sorted(sessions, key=lambda s: -s.timestamp.timestamp())


def format_file_size(size_in_bytes: int) -> str:
    if size_in_bytes < 1024:
        return f"{size_in_bytes} B"
    if size_in_bytes < 1024 * 1024:
        return f"{size_in_bytes / 1024:.1f} KB"
    return f"{size_in_bytes / (1024 * 1024):.1f} MB"
