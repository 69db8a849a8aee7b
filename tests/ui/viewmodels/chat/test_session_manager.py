"""Unit tests for SessionManager."""

from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

import pytest

from core.errors import NotFoundError, PersistenceError
from core.models import ChatMessage, ChatSession, MessageRole, Workspace
from core.persistence import Database, MessageRepository, SessionRepository, WorkspaceRepository
from ui.viewmodels.chat.session_manager import SessionManager

BASE = datetime(2024, 1, 1, 12, 0, 0)


def make_session(session_id: str, minutes: int, pinned: bool = False) -> ChatSession:
    return ChatSession(
        id=session_id,
        workspace_id="ws",
        user_id="user",
        title=session_id,
        is_pinned=pinned,
        timestamp=BASE + timedelta(minutes=minutes),
    )


@pytest.fixture
def mock_session_repository():
    """Create a mock SessionRepository."""
    return Mock()


@pytest.fixture
def mock_message_repository():
    """Create a mock MessageRepository."""
    repo = Mock()
    repo.get_by_session.return_value = []
    return repo


@pytest.fixture
def session_manager(mock_session_repository, mock_message_repository):
    """Create a SessionManager instance with mocked dependencies."""
    return SessionManager(
        session_repository=mock_session_repository,
        message_repository=mock_message_repository,
    )


@pytest.fixture
def loaded_manager(session_manager, mock_session_repository):
    """Manager with three sessions loaded; 'c' is the most recent."""
    mock_session_repository.get_by_workspace.return_value = [
        make_session("c", 3),
        make_session("b", 2),
        make_session("a", 1),
    ]
    session_manager.load_workspace("ws")
    return session_manager


class TestSessionManagerInitialization:
    def test_initial_properties(self, session_manager):
        assert session_manager.workspace_id is None
        assert session_manager.active_session is None
        assert session_manager.active_session_id is None
        assert session_manager.messages == []
        assert session_manager.sessions == []


class TestLoadWorkspace:
    def test_selects_most_recent_session(self, loaded_manager, mock_message_repository):
        assert loaded_manager.workspace_id == "ws"
        assert loaded_manager.active_session_id == "c"
        mock_message_repository.get_by_session.assert_called_with("c")

    def test_selects_most_recent_even_if_another_is_pinned(
        self, session_manager, mock_session_repository
    ):
        mock_session_repository.get_by_workspace.return_value = [
            make_session("new", 5),
            make_session("pinned", 1, pinned=True),
        ]
        session_manager.load_workspace("ws")

        assert session_manager.active_session_id == "new"
        assert [s.id for s in session_manager.sessions] == ["pinned", "new"]

    def test_empty_workspace(self, session_manager, mock_session_repository, qtbot):
        mock_session_repository.get_by_workspace.return_value = []
        with qtbot.waitSignal(session_manager.active_session_changed, timeout=1000) as blocker:
            session_manager.load_workspace("ws")
        assert blocker.args == [None]
        assert session_manager.messages == []

    def test_repository_error_propagates(self, session_manager, mock_session_repository):
        mock_session_repository.get_by_workspace.side_effect = PersistenceError("offline")
        with pytest.raises(PersistenceError):
            session_manager.load_workspace("ws")
        assert session_manager.workspace_id is None

    def test_failed_message_load_keeps_current_workspace(
        self, loaded_manager, mock_session_repository, mock_message_repository
    ):
        mock_session_repository.get_by_workspace.return_value = [make_session("x", 9)]
        mock_message_repository.get_by_session.side_effect = PersistenceError("offline")

        with pytest.raises(PersistenceError):
            loaded_manager.load_workspace("other")

        assert loaded_manager.workspace_id == "ws"
        assert loaded_manager.active_session_id == "c"
        assert [s.id for s in loaded_manager.sessions] == ["c", "b", "a"]


class TestSelect:
    def test_select_loads_messages(self, loaded_manager, mock_message_repository, qtbot):
        message = ChatMessage("m1", "a", MessageRole.USER, "hi", BASE)
        mock_message_repository.get_by_session.return_value = [message]

        with qtbot.waitSignal(loaded_manager.messages_loaded, timeout=1000) as blocker:
            loaded_manager.select("a")

        assert blocker.args == [[message]]
        assert loaded_manager.active_session_id == "a"
        assert loaded_manager.messages == [message]

    def test_select_unknown_raises(self, loaded_manager):
        with pytest.raises(NotFoundError):
            loaded_manager.select("missing")

    def test_select_clears_multi_select(self, loaded_manager):
        loaded_manager.toggle_selection("a")
        loaded_manager.toggle_selection("b")
        assert loaded_manager.selected_ids == ["a", "b"]

        loaded_manager.select("b")

        assert loaded_manager.selected_ids == []


class TestCreate:
    def test_create_derives_title_and_activates(self, loaded_manager, mock_session_repository):
        session = loaded_manager.create("ws", "user", "Help me plan my vacation to Japan this summer")

        assert session.title == "Help me plan my vacation to Ja..."
        mock_session_repository.create.assert_called_once_with(session)
        assert loaded_manager.active_session is session
        assert loaded_manager.sessions[0] is session
        assert loaded_manager.messages == []

    def test_failed_create_leaves_state(self, loaded_manager, mock_session_repository):
        mock_session_repository.create.side_effect = PersistenceError("offline")

        with pytest.raises(PersistenceError):
            loaded_manager.create("ws", "user", "hello")

        assert len(loaded_manager.sessions) == 3
        assert loaded_manager.active_session_id == "c"


class TestDelete:
    def test_deleting_active_falls_back_to_next_most_recent(self, loaded_manager):
        loaded_manager.delete("c")

        assert [s.id for s in loaded_manager.sessions] == ["b", "a"]
        assert loaded_manager.active_session_id == "b"

    def test_deleting_last_session_clears_active(self, session_manager, mock_session_repository):
        mock_session_repository.get_by_workspace.return_value = [make_session("only", 1)]
        session_manager.load_workspace("ws")

        session_manager.delete("only")

        assert session_manager.active_session is None
        assert session_manager.messages == []

    def test_deleting_inactive_keeps_active(self, loaded_manager):
        loaded_manager.delete("a")
        assert loaded_manager.active_session_id == "c"

    def test_already_deleted_is_benign(self, loaded_manager, mock_session_repository):
        mock_session_repository.delete.side_effect = NotFoundError()

        loaded_manager.delete("c")

        assert loaded_manager.get("c") is None
        assert loaded_manager.active_session_id == "b"

    def test_persistence_error_keeps_session(self, loaded_manager, mock_session_repository):
        mock_session_repository.delete.side_effect = PersistenceError("offline")

        with pytest.raises(PersistenceError):
            loaded_manager.delete("c")

        assert loaded_manager.get("c") is not None

    def test_delete_many(self, loaded_manager):
        assert loaded_manager.delete_many(["a", "c"]) == ["a", "c"]
        assert [s.id for s in loaded_manager.sessions] == ["b"]
        assert loaded_manager.active_session_id == "b"


class TestPinAndRename:
    def test_pin_moves_to_front_and_unpin_restores(self, session_manager, mock_session_repository):
        mock_session_repository.get_by_workspace.return_value = [
            make_session("a", 1),
            make_session("b", 1),
            make_session("c", 1),
        ]
        session_manager.load_workspace("ws")
        original = [s.id for s in session_manager.sessions]

        assert session_manager.toggle_pin("c") is True
        assert [s.id for s in session_manager.sessions] == ["c", "a", "b"]
        mock_session_repository.set_pinned.assert_called_with("c", True)

        assert session_manager.toggle_pin("c") is False
        assert [s.id for s in session_manager.sessions] == original

    def test_failed_pin_keeps_flag(self, loaded_manager, mock_session_repository):
        mock_session_repository.set_pinned.side_effect = PersistenceError("offline")

        with pytest.raises(PersistenceError):
            loaded_manager.toggle_pin("a")

        assert loaded_manager.get("a").is_pinned is False

    def test_rename(self, loaded_manager, mock_session_repository):
        loaded_manager.rename("a", "Renamed")
        assert loaded_manager.get("a").title == "Renamed"
        mock_session_repository.update_title.assert_called_once_with("a", "Renamed")


class TestAppendMessage:
    def test_append_to_active_session(self, loaded_manager, qtbot):
        message = ChatMessage.create("c", MessageRole.USER, "hello")

        with qtbot.waitSignal(loaded_manager.message_added, timeout=1000):
            assert loaded_manager.append_message(message) is True

        assert loaded_manager.messages[-1] is message
        assert loaded_manager.get("c").last_message == "hello"

    def test_append_moves_session_to_top(self, loaded_manager):
        message = ChatMessage.create("a", MessageRole.USER, "bump")

        visible = loaded_manager.append_message(message)

        assert visible is False
        assert loaded_manager.sessions[0].id == "a"
        assert message not in loaded_manager.messages


class TestWithDatabase:
    """SessionManager over real repositories."""

    def test_reload_keeps_ordering(self, tmp_path: Path):
        db = Database(tmp_path / "test.db")
        workspace = Workspace.create("W", "user")
        WorkspaceRepository(db).create(workspace)
        manager = SessionManager(SessionRepository(db), MessageRepository(db))
        manager.load_workspace(workspace.id)

        first = manager.create(workspace.id, "user", "first")
        second = manager.create(workspace.id, "user", "second")
        manager.toggle_pin(first.id)

        reloaded = SessionManager(SessionRepository(db), MessageRepository(db))
        reloaded.load_workspace(workspace.id)

        assert [s.id for s in reloaded.sessions] == [first.id, second.id]
        assert reloaded.active_session_id == second.id
        db.close()
