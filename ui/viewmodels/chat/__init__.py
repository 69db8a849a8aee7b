"""Chat subsystem - Decomposed chat management."""

from .session_manager import SessionManager
from .file_manager import FileManager
from .completion_worker import CompletionWorker
from .completion_handler import CompletionHandler
from .share_manager import ShareManager
from .coordinator import ChatCoordinator

__all__ = [
    "SessionManager",
    "FileManager",
    "CompletionWorker",
    "CompletionHandler",
    "ShareManager",
    "ChatCoordinator",
]
