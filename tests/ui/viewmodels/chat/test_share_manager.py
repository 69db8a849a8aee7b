"""Tests for ShareManager."""

from pathlib import Path

import pytest

from core.errors import NotFoundError
from core.models import ChatSession, Profile, SharePermission, ShareStatus, Workspace
from core.persistence import (
    Database,
    ProfileRepository,
    SessionRepository,
    ShareRepository,
    WorkspaceRepository,
)
from ui.viewmodels.chat.share_manager import (
    ALREADY_SHARED_MESSAGE,
    USER_NOT_FOUND_MESSAGE,
    ShareConflictError,
    ShareManager,
    describe_share_status,
    parse_permission,
)


@pytest.fixture
def setup(tmp_path: Path):
    db = Database(tmp_path / "test.db")
    workspace = Workspace.create("W", "owner")
    WorkspaceRepository(db).create(workspace)
    session = ChatSession.create(workspace.id, "owner", "Shared chat")
    SessionRepository(db).create(session)
    invitee = Profile.create("friend@example.com", "Friend")
    ProfileRepository(db).create(invitee)
    manager = ShareManager(ShareRepository(db), ProfileRepository(db))
    yield manager, session, invitee
    db.close()


def test_share_creates_pending_invite(setup, qtbot):
    manager, session, invitee = setup

    with qtbot.waitSignal(manager.share_created, timeout=1000):
        share = manager.share(session.id, "Friend@Example.com", "edit")

    assert share.status is ShareStatus.PENDING
    assert share.permission is SharePermission.EDIT
    assert share.shared_with == invitee.id
    assert [s.id for s in manager.pending_invites(invitee.id)] == [share.id]


def test_unknown_email(setup):
    manager, session, _ = setup
    with pytest.raises(NotFoundError) as excinfo:
        manager.share(session.id, "nobody@example.com")
    assert excinfo.value.message == USER_NOT_FOUND_MESSAGE


def test_duplicate_share(setup):
    manager, session, _ = setup
    manager.share(session.id, "friend@example.com")

    with pytest.raises(ShareConflictError) as excinfo:
        manager.share(session.id, "friend@example.com", SharePermission.EDIT)

    assert excinfo.value.message == ALREADY_SHARED_MESSAGE


def test_respond_accept_and_reject_once(setup):
    manager, session, invitee = setup
    share = manager.share(session.id, "friend@example.com")

    accepted = manager.respond(share.id, accept=True)

    assert accepted.status is ShareStatus.ACCEPTED
    assert manager.pending_invites(invitee.id) == []
    assert manager.shares_for_session(session.id)[0].status is ShareStatus.ACCEPTED
    with pytest.raises(ShareConflictError):
        manager.respond(share.id, accept=False)


def test_respond_unknown_share(setup):
    manager, _, _ = setup
    with pytest.raises(NotFoundError):
        manager.respond("missing", accept=True)


@pytest.mark.parametrize("status", list(ShareStatus))
def test_every_status_has_a_label(status):
    assert describe_share_status(status)


def test_parse_permission():
    assert parse_permission(" VIEW ") is SharePermission.VIEW
    with pytest.raises(ValueError):
        parse_permission("admin")
