"""Workspace ViewModel for creating, listing and deleting workspaces."""

from __future__ import annotations

import logging
from typing import List, Optional

from PySide6.QtCore import QObject, Signal, Property, Slot

from core.errors import KatagrafyError, NotFoundError
from core.models import Notification, NotificationLevel, Workspace
from core.persistence import BlobStore, FileRepository, WorkspaceRepository
from ui.viewmodels.chat.coordinator import ChatCoordinator

logger = logging.getLogger(__name__)


class WorkspaceViewModel(QObject):
    """ViewModel for the workspace list of the signed-in user.

    Selecting a workspace is delegated to the ChatCoordinator, which loads
    its sessions and files.
    """

    workspaces_changed = Signal()
    current_workspace_changed = Signal()
    notification = Signal(object)
    error_occurred = Signal(str)

    def __init__(
        self,
        user_id: str,
        workspace_repository: WorkspaceRepository,
        file_repository: FileRepository,
        blob_store: BlobStore,
        chat_coordinator: ChatCoordinator,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._user_id = user_id
        self._workspace_repository = workspace_repository
        self._file_repository = file_repository
        self._blob_store = blob_store
        self._chat = chat_coordinator

        self._workspaces: List[Workspace] = []

    @Property(list, notify=workspaces_changed)
    def workspaces(self) -> List[Workspace]:
        return self._workspaces

    @Property(object, notify=current_workspace_changed)
    def current_workspace(self) -> Optional[Workspace]:
        workspace_id = self._chat.active_workspace_id
        for workspace in self._workspaces:
            if workspace.id == workspace_id:
                return workspace
        return None

    def _notify_error(self, message: str) -> None:
        self.notification.emit(Notification(NotificationLevel.ERROR, "Error", message))
        self.error_occurred.emit(message)

    def load(self) -> bool:
        """Load the user's workspaces; selects the newest if none is active."""
        try:
            self._workspaces = self._workspace_repository.get_by_user(self._user_id)
        except KatagrafyError as exc:
            logger.exception("Failed to load workspaces")
            self._notify_error(exc.message)
            return False
        self.workspaces_changed.emit()

        if self._workspaces and self._chat.active_workspace_id is None:
            self.select_workspace(self._workspaces[0].id)
        return True

    @Slot(str)
    def select_workspace(self, workspace_id: str) -> None:
        if self._chat.select_workspace(workspace_id):
            self.current_workspace_changed.emit()

    @Slot(str, str)
    def create_workspace(self, name: str, description: str = "") -> Optional[Workspace]:
        if not name or not name.strip():
            self._notify_error("Workspace name cannot be empty")
            return None
        workspace = Workspace.create(name.strip(), self._user_id, description.strip())
        try:
            self._workspace_repository.create(workspace)
        except KatagrafyError as exc:
            logger.exception("Failed to create workspace")
            self._notify_error(exc.message)
            return None
        self._workspaces.insert(0, workspace)
        self.workspaces_changed.emit()
        self.notification.emit(
            Notification(NotificationLevel.SUCCESS, "Success", "Workspace created successfully")
        )
        self.select_workspace(workspace.id)
        return workspace

    @Slot(str)
    def delete_workspace(self, workspace_id: str) -> bool:
        """Delete a workspace with its blobs; rows cascade in the database."""
        try:
            files = self._file_repository.get_by_workspace(workspace_id)
            self._blob_store.remove(f.path for f in files if f.path)
            self._workspace_repository.delete(workspace_id)
        except NotFoundError:
            logger.info("Workspace %s already deleted", workspace_id)
        except KatagrafyError as exc:
            logger.exception("Failed to delete workspace %s", workspace_id)
            self._notify_error(exc.message)
            return False

        self._workspaces = [w for w in self._workspaces if w.id != workspace_id]
        self.workspaces_changed.emit()

        if self._chat.active_workspace_id == workspace_id:
            self._chat.clear_workspace()
            if self._workspaces:
                self.select_workspace(self._workspaces[0].id)
            else:
                self.current_workspace_changed.emit()
        return True
