"""ViewModels package for Katagrafy."""

from ui.viewmodels.chat import ChatCoordinator
from ui.viewmodels.settings import ChatPreferences
from ui.viewmodels.workspace_viewmodel import WorkspaceViewModel

__all__ = [
    "ChatCoordinator",
    "ChatPreferences",
    "WorkspaceViewModel",
]
