"""Tests for viewmodels."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from core.errors import PersistenceError
from core.models import NotificationLevel
from core.persistence import (
    BlobStore,
    Database,
    FileRepository,
    MessageRepository,
    ProfileRepository,
    SessionRepository,
    ShareRepository,
    WorkspaceRepository,
)
from ui.viewmodels.chat import ChatCoordinator
from ui.viewmodels.workspace_viewmodel import WorkspaceViewModel


@pytest.fixture
def env(tmp_path: Path):
    db = Database(tmp_path / "workspace.db")
    blobs = BlobStore(tmp_path / "storage")
    file_repo = FileRepository(db, blobs)
    llm_client = Mock()
    llm_client.ask.return_value = "answer"
    extractor = Mock()
    extractor.extract.return_value = "text"
    coordinator = ChatCoordinator(
        user_id="user-1",
        session_repository=SessionRepository(db),
        message_repository=MessageRepository(db),
        file_repository=file_repo,
        share_repository=ShareRepository(db),
        profile_repository=ProfileRepository(db),
        blob_store=blobs,
        extractor=extractor,
        llm_client=llm_client,
    )
    viewmodel = WorkspaceViewModel(
        "user-1",
        WorkspaceRepository(db),
        file_repo,
        blobs,
        coordinator,
    )
    yield viewmodel, coordinator, db, blobs
    db.close()


def test_workspace_viewmodel_crud(env) -> None:
    viewmodel, coordinator, db, _ = env

    workspace = viewmodel.create_workspace("Workspace A", "Notes")
    assert len(viewmodel.workspaces) == 1
    assert viewmodel.current_workspace is workspace
    assert coordinator.active_workspace_id == workspace.id

    coordinator.send_message("Hello")
    assert len(coordinator.session_list) == 1

    assert viewmodel.delete_workspace(workspace.id)
    assert len(viewmodel.workspaces) == 0
    assert viewmodel.current_workspace is None
    assert coordinator.active_workspace_id is None
    assert coordinator.session_list == []
    assert SessionRepository(db).get_by_workspace(workspace.id) == []


def test_delete_workspace_removes_blobs(env) -> None:
    viewmodel, coordinator, _, blobs = env
    workspace = viewmodel.create_workspace("Files")
    file = coordinator.upload_bytes("notes.txt", "text/plain", b"hello")
    assert blobs.exists(file.path)

    viewmodel.delete_workspace(workspace.id)

    assert not blobs.exists(file.path)


def test_delete_switches_to_remaining_workspace(env) -> None:
    viewmodel, coordinator, _, _ = env
    first = viewmodel.create_workspace("First")
    second = viewmodel.create_workspace("Second")
    assert coordinator.active_workspace_id == second.id

    viewmodel.delete_workspace(second.id)

    assert coordinator.active_workspace_id == first.id


def test_load_selects_newest(env) -> None:
    viewmodel, coordinator, _, _ = env
    viewmodel.create_workspace("Older")
    newer = viewmodel.create_workspace("Newer")
    coordinator.clear_workspace()

    assert viewmodel.load()

    assert [w.name for w in viewmodel.workspaces] == ["Newer", "Older"]
    assert coordinator.active_workspace_id == newer.id


def test_blank_name_is_rejected(env, qtbot) -> None:
    viewmodel, _, _, _ = env

    with qtbot.waitSignal(viewmodel.notification, timeout=1000) as blocker:
        assert viewmodel.create_workspace("   ") is None

    assert blocker.args[0].level is NotificationLevel.ERROR
    assert viewmodel.workspaces == []


def test_delete_missing_workspace_is_benign(env) -> None:
    viewmodel, _, _, _ = env
    assert viewmodel.delete_workspace("missing")


def test_load_failure_is_notified(env, qtbot) -> None:
    viewmodel, _, _, _ = env
    viewmodel._workspace_repository = Mock()
    viewmodel._workspace_repository.get_by_user.side_effect = PersistenceError("offline")

    with qtbot.waitSignal(viewmodel.error_occurred, timeout=1000) as blocker:
        assert viewmodel.load() is False

    assert blocker.args == ["offline"]
