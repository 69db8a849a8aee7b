"""SessionManager - Session list, active session and message state."""

import logging
from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import QObject, Signal

from core.errors import NotFoundError
from core.models import (
    ChatMessage,
    ChatSession,
    derive_session_title,
    most_recent_first,
    sort_sessions,
)
from core.persistence import MessageRepository, SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceSnapshot:
    """Sessions of one workspace with its opened session, read but not applied."""

    workspace_id: str
    sessions: list[ChatSession]
    active_session: Optional[ChatSession]
    messages: list[ChatMessage]


class SessionManager(QObject):
    """Holds the sessions of the active workspace and the open conversation.

    The session list is kept in load/insertion order and exposed sorted
    (pinned first, then most recent activity). Pin changes only flip the
    flag, so unpinning puts a session back in its previous slot.

    Local state changes only after the matching repository call succeeds.
    Repository errors propagate to the caller.

    Signals:
        sessions_changed(object): Sorted list of sessions
        active_session_changed(object): Active session or None
        messages_loaded(object): Message list of the active session
        message_added(object): A ChatMessage appended to the active session
        selection_changed(object): Sorted list of selected session ids
    """

    sessions_changed = Signal(object)
    active_session_changed = Signal(object)
    messages_loaded = Signal(object)
    message_added = Signal(object)
    selection_changed = Signal(object)

    def __init__(
        self,
        session_repository: SessionRepository,
        message_repository: MessageRepository,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._session_repository = session_repository
        self._message_repository = message_repository

        self._workspace_id: Optional[str] = None
        self._sessions: list[ChatSession] = []
        self._active_session: Optional[ChatSession] = None
        self._messages: list[ChatMessage] = []
        self._selected_ids: set[str] = set()

    @property
    def workspace_id(self) -> Optional[str]:
        return self._workspace_id

    @property
    def sessions(self) -> list[ChatSession]:
        """Sessions ordered pinned-first, then by last activity."""
        return sort_sessions(self._sessions)

    @property
    def active_session(self) -> Optional[ChatSession]:
        return self._active_session

    @property
    def active_session_id(self) -> Optional[str]:
        return self._active_session.id if self._active_session else None

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def selected_ids(self) -> list[str]:
        return sorted(self._selected_ids)

    def get(self, session_id: str) -> Optional[ChatSession]:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def fetch_workspace(self, workspace_id: str) -> WorkspaceSnapshot:
        """Read a workspace's sessions and the messages of its most recent one.

        Nothing local changes; pass the result to apply_workspace.
        """
        sessions = self._session_repository.get_by_workspace(workspace_id)
        fallback = most_recent_first(sessions)
        if not fallback:
            return WorkspaceSnapshot(workspace_id, sessions, None, [])
        active = fallback[0]
        messages = self._message_repository.get_by_session(active.id)
        active.messages = messages
        return WorkspaceSnapshot(workspace_id, sessions, active, messages)

    def apply_workspace(self, snapshot: WorkspaceSnapshot) -> None:
        self._workspace_id = snapshot.workspace_id
        self._sessions = list(snapshot.sessions)
        self._selected_ids.clear()
        self._emit_sessions()
        self.selection_changed.emit([])
        self._set_active(snapshot.active_session, snapshot.messages)

    def load_workspace(self, workspace_id: str) -> None:
        """Load sessions for a workspace and open the most recent one."""
        self.apply_workspace(self.fetch_workspace(workspace_id))

    def select(self, session_id: str) -> None:
        """Open a session and load its messages."""
        session = self.get(session_id)
        if session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        messages = self._message_repository.get_by_session(session_id)
        session.messages = messages
        if self._selected_ids:
            self._selected_ids.clear()
            self.selection_changed.emit([])
        self._set_active(session, messages)

    def create(self, workspace_id: str, user_id: str, initial_message: Optional[str] = None) -> ChatSession:
        """Create, persist and open a new session."""
        session = ChatSession.create(
            workspace_id=workspace_id,
            user_id=user_id,
            title=derive_session_title(initial_message),
        )
        self._session_repository.create(session)
        self._sessions.insert(0, session)
        self._emit_sessions()
        self._set_active(session, [])
        return session

    def delete(self, session_id: str) -> None:
        """Delete a session, falling back to the next most recent one.

        A session that is already gone remotely is still removed locally.
        """
        try:
            self._session_repository.delete(session_id)
        except NotFoundError:
            logger.info("Session %s already deleted", session_id)
        self._remove_local([session_id])

    def delete_many(self, session_ids: list[str]) -> list[str]:
        """Delete several sessions; returns the ids actually removed.

        Stops at the first persistence failure, keeping what was removed.
        """
        removed: list[str] = []
        try:
            for session_id in session_ids:
                try:
                    self._session_repository.delete(session_id)
                except NotFoundError:
                    logger.info("Session %s already deleted", session_id)
                removed.append(session_id)
        finally:
            if removed:
                self._remove_local(removed)
        return removed

    def _remove_local(self, session_ids: list[str]) -> None:
        doomed = set(session_ids)
        self._sessions = [s for s in self._sessions if s.id not in doomed]
        if self._selected_ids & doomed:
            self._selected_ids -= doomed
            self.selection_changed.emit(self.selected_ids)
        self._emit_sessions()

        if self._active_session and self._active_session.id in doomed:
            fallback = most_recent_first(self._sessions)
            if fallback:
                self.select(fallback[0].id)
            else:
                self._set_active(None, [])

    def toggle_pin(self, session_id: str) -> bool:
        """Flip the pinned flag and return the new value."""
        session = self.get(session_id)
        if session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        pinned = not session.is_pinned
        self._session_repository.set_pinned(session_id, pinned)
        session.is_pinned = pinned
        self._emit_sessions()
        return pinned

    def rename(self, session_id: str, title: str) -> None:
        session = self.get(session_id)
        if session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        self._session_repository.update_title(session_id, title)
        session.title = title
        self._emit_sessions()

    def append_message(self, message: ChatMessage) -> bool:
        """Record a persisted message in local state.

        The session preview and activity time are always updated. The message
        is only added to the visible list when its session is active.

        Returns:
            True if the message became visible.
        """
        session = self.get(message.session_id)
        if session is not None:
            session.last_message = message.content
            session.timestamp = message.timestamp
            self._emit_sessions()

        if self._active_session is None or self._active_session.id != message.session_id:
            logger.info(
                "Message for session %s stored while %s is open",
                message.session_id,
                self.active_session_id,
            )
            return False

        self._messages.append(message)
        self._active_session.messages = list(self._messages)
        self.message_added.emit(message)
        return True

    def toggle_selection(self, session_id: str) -> bool:
        """Add or remove a session from the multi-select set."""
        if self.get(session_id) is None:
            return False
        if session_id in self._selected_ids:
            self._selected_ids.remove(session_id)
            selected = False
        else:
            self._selected_ids.add(session_id)
            selected = True
        self.selection_changed.emit(self.selected_ids)
        return selected

    def clear_selection(self) -> None:
        if not self._selected_ids:
            return
        self._selected_ids.clear()
        self.selection_changed.emit([])

    def load_messages(self, session_id: str) -> list[ChatMessage]:
        """Messages of any session in the workspace, cached on the session."""
        session = self.get(session_id)
        messages = self._message_repository.get_by_session(session_id)
        if session is not None:
            session.messages = messages
        return messages

    def clear(self) -> None:
        """Forget the workspace, its sessions and the open conversation."""
        self._workspace_id = None
        self._sessions = []
        self._selected_ids.clear()
        self._emit_sessions()
        self.selection_changed.emit([])
        self._set_active(None, [])

    def _set_active(self, session: Optional[ChatSession], messages: list[ChatMessage]) -> None:
        self._active_session = session
        self._messages = list(messages)
        self.active_session_changed.emit(session)
        self.messages_loaded.emit(list(self._messages))

    def _emit_sessions(self) -> None:
        self.sessions_changed.emit(self.sessions)
