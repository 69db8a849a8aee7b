"""ShareManager - Chat share invites between users."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from core.errors import KatagrafyError, NotFoundError
from core.models import ChatShare, SharePermission, ShareStatus
from core.persistence import ProfileRepository, ShareRepository

logger = logging.getLogger(__name__)

USER_NOT_FOUND_MESSAGE = "User not found. Please ask them to sign up first."
ALREADY_SHARED_MESSAGE = "This chat has already been shared with this user"


class ShareConflictError(KatagrafyError):
    """The share already exists or the invite was already answered."""

    default_message = ALREADY_SHARED_MESSAGE


def describe_share_status(status: ShareStatus) -> str:
    """Human-readable label for each invite state."""
    if status is ShareStatus.PENDING:
        return "Waiting for a response"
    elif status is ShareStatus.ACCEPTED:
        return "Accepted"
    elif status is ShareStatus.REJECTED:
        return "Declined"
    raise ValueError(f"Unhandled share status: {status!r}")


def parse_permission(value: SharePermission | str) -> SharePermission:
    if isinstance(value, SharePermission):
        return value
    try:
        return SharePermission(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown share permission: {value}") from None


class ShareManager(QObject):
    """Creates share invites and records invitee responses.

    Signals:
        share_created(object): The new ChatShare
        share_updated(object): A ChatShare whose status changed
    """

    share_created = Signal(object)
    share_updated = Signal(object)

    def __init__(
        self,
        share_repository: ShareRepository,
        profile_repository: ProfileRepository,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._share_repository = share_repository
        self._profile_repository = profile_repository

    def share(
        self,
        session_id: str,
        email: str,
        permission: SharePermission | str = SharePermission.VIEW,
    ) -> ChatShare:
        """Invite a registered user to a session.

        Raises:
            NotFoundError: no profile with that e-mail exists.
            ShareConflictError: the session is already shared with them.
        """
        permission = parse_permission(permission)
        profile = self._profile_repository.get_by_email(email)
        if profile is None:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)

        if self._share_repository.find(session_id, profile.id) is not None:
            raise ShareConflictError()

        share = ChatShare.create(session_id, profile.id, permission)
        self._share_repository.create(share)
        logger.info("Shared session %s with %s (%s)", session_id, profile.id, permission.value)
        self.share_created.emit(share)
        return share

    def respond(self, share_id: str, accept: bool) -> ChatShare:
        """Accept or reject a pending invite."""
        share = self._share_repository.get_by_id(share_id)
        if share is None:
            raise NotFoundError(f"Share {share_id} not found")

        if share.status is ShareStatus.PENDING:
            status = ShareStatus.ACCEPTED if accept else ShareStatus.REJECTED
        elif share.status in (ShareStatus.ACCEPTED, ShareStatus.REJECTED):
            raise ShareConflictError(
                f"This invite was already {share.status.value}"
            )
        else:
            raise ValueError(f"Unhandled share status: {share.status!r}")

        self._share_repository.update_status(share_id, status)
        share.status = status
        self.share_updated.emit(share)
        return share

    def pending_invites(self, profile_id: str) -> list[ChatShare]:
        return self._share_repository.get_for_user(profile_id, ShareStatus.PENDING)

    def shares_for_session(self, session_id: str) -> list[ChatShare]:
        return self._share_repository.get_by_session(session_id)
