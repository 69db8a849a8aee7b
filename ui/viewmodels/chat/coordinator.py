"""ChatCoordinator - Facade coordinating all chat subsystems."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

from PySide6.QtCore import QObject, Signal, Slot

from core.constants import EXPORT_MAX_SESSIONS
from core.errors import KatagrafyError, LLMError, NotFoundError
from core.llm.client import LLMClient
from core.models import (
    ChatMessage,
    ChatSession,
    ChatShare,
    MessageRole,
    Notification,
    NotificationLevel,
    SharePermission,
    WorkspaceFile,
    most_recent_first,
)
from core.persistence import (
    BlobStore,
    FileRepository,
    MessageRepository,
    ProfileRepository,
    SessionRepository,
    ShareRepository,
)
from core.services.content_extraction import ContentExtractor
from core.services.export_service import export_session_text, export_to_spreadsheet
from ui.viewmodels.chat.completion_handler import CompletionHandler
from ui.viewmodels.chat.file_manager import FileManager
from ui.viewmodels.chat.session_manager import SessionManager
from ui.viewmodels.chat.share_manager import ShareManager

logger = logging.getLogger(__name__)

NO_WORKSPACE_MESSAGE = "Please create or select a workspace first"
WORKSPACE_QUERY_KEY = "workspace"


class ChatCoordinator(QObject):
    """Facade coordinating all chat subsystems.

    Delegates to:
    - SessionManager: session list, ordering, active session and messages
    - FileManager: workspace files, URL references and LLM context
    - CompletionHandler: the send pipeline
    - ShareManager: chat share invites

    Subsystems raise; this class is the boundary where failures are logged
    and turned into notifications. Only ``send_message`` re-raises, and only
    for LLM failures.
    """

    # Forwarded signals from subsystems
    sessions_changed = Signal(object)
    active_session_changed = Signal(object)
    messages_loaded = Signal(object)
    message_added = Signal(object)
    files_changed = Signal(object)
    preview_loaded = Signal(str, str)
    selection_changed = Signal(object)
    is_processing_changed = Signal(bool)
    status_changed = Signal(str)

    # Coordinator signals
    workspace_changed = Signal(object)
    is_loading_changed = Signal(bool)
    notification = Signal(object)
    error_occurred = Signal(str)
    url_changed = Signal(str)

    def __init__(
        self,
        user_id: str,
        session_repository: SessionRepository,
        message_repository: MessageRepository,
        file_repository: FileRepository,
        share_repository: ShareRepository,
        profile_repository: ProfileRepository,
        blob_store: BlobStore,
        extractor: ContentExtractor,
        llm_client: LLMClient,
        run_in_background: bool = False,
        parent: Optional[QObject] = None,
    ):
        """Initialize the chat coordinator.

        Args:
            user_id: Signed-in user; owns new sessions and files
            session_repository: Repository for session persistence
            message_repository: Repository for message persistence
            file_repository: Repository for file metadata
            share_repository: Repository for chat shares
            profile_repository: Repository for invitee lookups
            blob_store: Storage for uploaded file bytes
            extractor: Content extractor for file context and previews
            llm_client: Client used to answer messages
            run_in_background: Run LLM calls in a worker thread
            parent: Optional parent QObject
        """
        super().__init__(parent)
        self._user_id = user_id
        self._llm_client = llm_client

        self._active_workspace_id: Optional[str] = None
        self._is_loading = False
        self._error: Optional[str] = None

        self.sessions = SessionManager(
            session_repository=session_repository,
            message_repository=message_repository,
            parent=self,
        )
        self.files = FileManager(
            file_repository=file_repository,
            blob_store=blob_store,
            extractor=extractor,
            parent=self,
        )
        self.completion = CompletionHandler(
            message_repository=message_repository,
            llm_client=llm_client,
            session_manager=self.sessions,
            file_manager=self.files,
            run_in_background=run_in_background,
            parent=self,
        )
        self.shares = ShareManager(
            share_repository=share_repository,
            profile_repository=profile_repository,
            parent=self,
        )

        self._connect_signals()

    def _connect_signals(self):
        """Forward signals from subsystems to coordinator signals."""
        self.sessions.sessions_changed.connect(self.sessions_changed)
        self.sessions.active_session_changed.connect(self.active_session_changed)
        self.sessions.messages_loaded.connect(self.messages_loaded)
        self.sessions.message_added.connect(self.message_added)
        self.sessions.selection_changed.connect(self.selection_changed)

        self.files.files_changed.connect(self.files_changed)
        self.files.preview_loaded.connect(self.preview_loaded)

        self.completion.is_processing_changed.connect(self.is_processing_changed)
        self.completion.status_changed.connect(self.status_changed)
        self.completion.error_occurred.connect(self._on_completion_error)

    # ========== State ==========

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def active_workspace_id(self) -> Optional[str]:
        return self._active_workspace_id

    @property
    def active_session(self) -> Optional[ChatSession]:
        return self.sessions.active_session

    @property
    def active_session_id(self) -> Optional[str]:
        return self.sessions.active_session_id

    @property
    def session_list(self) -> list[ChatSession]:
        return self.sessions.sessions

    @property
    def messages(self) -> list[ChatMessage]:
        return self.sessions.messages

    @property
    def file_list(self) -> list[WorkspaceFile]:
        return self.files.files

    @property
    def selected_session_ids(self) -> list[str]:
        return self.sessions.selected_ids

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_processing(self) -> bool:
        return self.completion.is_processing

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def navigation_url(self) -> str:
        """Query string mirroring the active workspace."""
        if not self._active_workspace_id:
            return ""
        return "?" + urlencode({WORKSPACE_QUERY_KEY: self._active_workspace_id})

    def _set_loading(self, loading: bool) -> None:
        if self._is_loading != loading:
            self._is_loading = loading
            self.is_loading_changed.emit(loading)

    # ========== Notifications ==========

    def _notify_success(self, title: str, message: str) -> None:
        self.notification.emit(Notification(NotificationLevel.SUCCESS, title, message))

    def _notify_error(self, title: str, message: str) -> None:
        self._error = message
        self.notification.emit(Notification(NotificationLevel.ERROR, title, message))
        self.error_occurred.emit(message)

    def _report(self, title: str, exc: KatagrafyError) -> None:
        logger.warning("%s: %s", title, exc.message)
        self._notify_error(title, exc.message)

    @Slot(str)
    def _on_completion_error(self, message: str) -> None:
        self._notify_error("Gemini Error", message)

    # ========== Workspace ==========

    @Slot(str)
    def select_workspace(self, workspace_id: str) -> bool:
        """Switch workspace and reload its sessions and files.

        Both lists are read before anything local changes; on failure the
        previous workspace stays active with its sessions and files.
        """
        self._set_loading(True)
        try:
            snapshot = self.sessions.fetch_workspace(workspace_id)
            files = self.files.fetch_workspace(workspace_id)
        except KatagrafyError as exc:
            logger.exception("Failed to load workspace %s", workspace_id)
            self._notify_error("Error", f"Failed to load chat data: {exc.message}")
            return False
        finally:
            self._set_loading(False)

        if self.completion.is_processing:
            self.completion.cancel_generation()

        changed = workspace_id != self._active_workspace_id
        self._active_workspace_id = workspace_id
        self.sessions.apply_workspace(snapshot)
        self.files.apply_files(files)

        self.workspace_changed.emit(workspace_id)
        if changed:
            self.url_changed.emit(self.navigation_url)
        return True

    def clear_workspace(self) -> None:
        """Leave the current workspace, e.g. after it was deleted."""
        self._active_workspace_id = None
        self.sessions.clear()
        self.files.clear()
        self.workspace_changed.emit(None)
        self.url_changed.emit(self.navigation_url)

    def restore_from_url(self, url: str) -> bool:
        """Select the workspace named in a ``?workspace=<id>`` query string."""
        query = urlparse(url).query if "?" in url else url.lstrip("?")
        workspace_ids = parse_qs(query).get(WORKSPACE_QUERY_KEY)
        if not workspace_ids or not workspace_ids[0]:
            return False
        return self.select_workspace(workspace_ids[0])

    # ========== Sessions ==========

    @Slot(str)
    def select_session(self, session_id: str) -> bool:
        try:
            self.sessions.select(session_id)
        except KatagrafyError as exc:
            self._report("Error", exc)
            return False
        return True

    def new_session(self, initial_message: Optional[str] = None) -> Optional[ChatSession]:
        """Create a session and optionally send its first message.

        Raises:
            LLMError: if the first message was sent and the LLM call failed.
        """
        if not self._active_workspace_id:
            self._notify_error("Error", NO_WORKSPACE_MESSAGE)
            return None
        try:
            session = self.sessions.create(
                self._active_workspace_id,
                self._user_id,
                initial_message,
            )
        except KatagrafyError as exc:
            self._report("Error", exc)
            return None

        if initial_message and initial_message.strip():
            self._send_to_session(session.id, initial_message)
        return session

    def send_message(self, content: str) -> Optional[ChatMessage]:
        """Send a message in the active session, creating one if needed.

        Returns:
            The assistant message when answered inline, otherwise None.

        Raises:
            LLMError: when the LLM call fails. The user message stays
                persisted and visible.
        """
        if not content or not content.strip():
            return None
        if not self._active_workspace_id:
            self._notify_error("Error", NO_WORKSPACE_MESSAGE)
            return None

        session_id = self.sessions.active_session_id
        if session_id is None:
            session = self.new_session(content)
            if session is None or not session.messages:
                return None
            last = session.messages[-1]
            return last if last.role is MessageRole.ASSISTANT else None

        return self._send_to_session(session_id, content)

    def _send_to_session(self, session_id: str, content: str) -> Optional[ChatMessage]:
        self._error = None
        try:
            return self.completion.send(session_id, content)
        except LLMError:
            # Already reported through CompletionHandler.error_occurred
            raise
        except KatagrafyError as exc:
            self._report("Error", exc)
            return None

    @Slot()
    def cancel_generation(self):
        """Cancel the current generation (best-effort)."""
        self.completion.cancel_generation()

    @Slot(str)
    def delete_session(self, session_id: str) -> bool:
        try:
            self.sessions.delete(session_id)
        except KatagrafyError as exc:
            self._report("Error", exc)
            return False
        self._notify_success("Success", "Chat deleted successfully")
        return True

    @Slot(str)
    def pin_session(self, session_id: str) -> Optional[bool]:
        try:
            pinned = self.sessions.toggle_pin(session_id)
        except KatagrafyError as exc:
            logger.warning("Failed to update pin status: %s", exc.message)
            self._notify_error("Error", "Failed to update chat pin status")
            return None
        self._notify_success(
            "Success",
            "Chat pinned successfully" if pinned else "Chat unpinned successfully",
        )
        return pinned

    def rename_session(self, session_id: str, title: str) -> bool:
        title = (title or "").strip()
        if not title:
            self._notify_error("Error", "Chat title cannot be empty")
            return False
        try:
            self.sessions.rename(session_id, title)
        except KatagrafyError as exc:
            self._report("Error", exc)
            return False
        return True

    # ========== Multi-select ==========

    @Slot(str)
    def toggle_session_selection(self, session_id: str) -> bool:
        return self.sessions.toggle_selection(session_id)

    def delete_selected_sessions(self) -> int:
        ids = self.sessions.selected_ids
        if not ids:
            return 0
        try:
            removed = self.sessions.delete_many(ids)
        except KatagrafyError as exc:
            self._report("Error", exc)
            return 0
        self._notify_success("Success", f"Deleted {len(removed)} chats")
        return len(removed)

    # ========== Files ==========

    def upload_file(self, file_path: Path) -> Optional[WorkspaceFile]:
        if not self._active_workspace_id:
            self._notify_error("Error", NO_WORKSPACE_MESSAGE)
            return None
        self._set_loading(True)
        try:
            file = self.files.upload_path(file_path, self._active_workspace_id, self._user_id)
        except KatagrafyError as exc:
            logger.exception("Error uploading file %s", file_path)
            self._notify_error("Error", f"Failed to upload file: {exc.message}")
            return None
        finally:
            self._set_loading(False)
        self._notify_success("Success", "File uploaded successfully")
        return file

    def upload_bytes(self, name: str, mime_type: str, data: bytes) -> Optional[WorkspaceFile]:
        if not self._active_workspace_id:
            self._notify_error("Error", NO_WORKSPACE_MESSAGE)
            return None
        self._set_loading(True)
        try:
            file = self.files.upload_bytes(
                name, mime_type, data, self._active_workspace_id, self._user_id
            )
        except KatagrafyError as exc:
            logger.exception("Error uploading file %s", name)
            self._notify_error("Error", f"Failed to upload file: {exc.message}")
            return None
        finally:
            self._set_loading(False)
        self._notify_success("Success", "File uploaded successfully")
        return file

    def add_url_file(self, url: str) -> Optional[WorkspaceFile]:
        if not self._active_workspace_id:
            self._notify_error("Error", NO_WORKSPACE_MESSAGE)
            return None
        try:
            file = self.files.add_url(url, self._active_workspace_id, self._user_id)
        except ValueError as exc:
            self._notify_error("Error", str(exc))
            return None
        self._notify_success("Success", "URL added successfully")
        return file

    @Slot(str)
    def delete_file(self, file_id: str) -> bool:
        try:
            self.files.delete(file_id)
        except KatagrafyError as exc:
            self._report("Error", exc)
            return False
        return True

    @Slot(str)
    def load_file_preview(self, file_id: str) -> Optional[str]:
        self._set_loading(True)
        try:
            return self.files.load_preview(file_id)
        except NotFoundError as exc:
            self._report("Error", exc)
            return None
        finally:
            self._set_loading(False)

    def refresh_suggestions(self) -> list[str]:
        """Follow-up questions for the active conversation."""
        last_question = None
        for message in reversed(self.sessions.messages):
            if message.role is MessageRole.USER:
                last_question = message.content
                break
        context = self.files.build_context() if self.files.files else None
        return self._llm_client.get_suggestions(last_question, context)

    # ========== Sharing ==========

    def share_session(
        self,
        session_id: str,
        email: str,
        permission: SharePermission | str = SharePermission.VIEW,
    ) -> Optional[ChatShare]:
        try:
            share = self.shares.share(session_id, email, permission)
        except ValueError as exc:
            self._notify_error("Error", str(exc))
            return None
        except KatagrafyError as exc:
            self._report("Error", exc)
            return None
        self._notify_success("Success", f"Chat shared with {email}")
        return share

    def respond_to_share(self, share_id: str, accept: bool) -> Optional[ChatShare]:
        try:
            share = self.shares.respond(share_id, accept)
        except KatagrafyError as exc:
            self._report("Error", exc)
            return None
        self._notify_success(
            "Success",
            "Invitation accepted" if accept else "Invitation declined",
        )
        return share

    # ========== Export ==========

    def export_sessions(
        self,
        output_dir: Path,
        max_sessions: int = EXPORT_MAX_SESSIONS,
    ) -> int:
        """Export the most recent sessions of the workspace to a spreadsheet."""
        sessions = most_recent_first(self.sessions.sessions)[:max(max_sessions, 0)]
        if not sessions:
            self._notify_error("Error", "No chats to export")
            return 0

        try:
            for session in sessions:
                self.sessions.load_messages(session.id)
            count = export_to_spreadsheet(sessions, output_dir, max_sessions)
        except KatagrafyError as exc:
            self._report("Export failed", exc)
            return 0
        except OSError as exc:
            logger.exception("Failed to write export")
            self._notify_error("Export failed", str(exc))
            return 0

        if count == 0:
            self._notify_error("Error", "No chats to export")
            return 0
        self._notify_success("Success", f"Exported {count} chats")
        return count

    def export_active_session_text(self, output_dir: Path) -> Optional[Path]:
        session = self.sessions.active_session
        if session is None:
            self._notify_error("Error", "No chat selected")
            return None
        try:
            return export_session_text(session, self.sessions.messages, output_dir)
        except OSError as exc:
            logger.exception("Failed to write chat transcript")
            self._notify_error("Export failed", str(exc))
            return None
