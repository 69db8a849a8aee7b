"""ChatPreferences - Chat style, bot avatar and platform preferences."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Optional
from uuid import uuid4

from PySide6.QtCore import QObject, Signal

from core.constants import BOT_AVATAR_MAX_BYTES
from core.errors import KatagrafyError
from core.models import ChatStyle, Platform, UserPreferences
from core.persistence import (
    BlobStore,
    PreferencesRepository,
    SettingsRepository,
    parse_chat_style,
)

logger = logging.getLogger(__name__)


def parse_platform(value: Optional[str]) -> Platform:
    try:
        return Platform(value)
    except ValueError:
        return Platform.WEB


class ChatPreferences(QObject):
    """Chat display preferences.

    The local settings table is a cache read first on start-up; the
    per-user remote row wins when present. Platform is device-local.
    """

    chat_style_changed = Signal(ChatStyle)
    bot_avatar_changed = Signal(object)
    platform_changed = Signal(Platform)
    settings_changed = Signal()
    error_occurred = Signal(str)

    KEY_CHAT_STYLE = "chat.style"
    KEY_BOT_AVATAR = "chat.bot_avatar_url"
    KEY_PLATFORM = "ui.platform"
    CATEGORY = "chat"

    def __init__(
        self,
        user_id: str,
        settings_repository: SettingsRepository,
        preferences_repository: Optional[PreferencesRepository] = None,
        blob_store: Optional[BlobStore] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._user_id = user_id
        self._settings = settings_repository
        self._remote = preferences_repository
        self._blob_store = blob_store

        self._chat_style: ChatStyle = ChatStyle.STANDARD
        self._bot_avatar_url: Optional[str] = None
        self._platform: Platform = Platform.WEB

    @property
    def chat_style(self) -> ChatStyle:
        return self._chat_style

    @chat_style.setter
    def chat_style(self, value: ChatStyle | str) -> None:
        style = value if isinstance(value, ChatStyle) else parse_chat_style(str(value).lower())
        if self._chat_style != style:
            self._chat_style = style
            self.chat_style_changed.emit(style)
            self.settings_changed.emit()

    @property
    def bot_avatar_url(self) -> Optional[str]:
        return self._bot_avatar_url

    @bot_avatar_url.setter
    def bot_avatar_url(self, value: Optional[str]) -> None:
        value = value or None
        if self._bot_avatar_url != value:
            self._bot_avatar_url = value
            self.bot_avatar_changed.emit(value)
            self.settings_changed.emit()

    @property
    def platform(self) -> Platform:
        return self._platform

    @platform.setter
    def platform(self, value: Platform | str) -> None:
        platform = value if isinstance(value, Platform) else parse_platform(str(value).lower())
        if self._platform != platform:
            self._platform = platform
            self.platform_changed.emit(platform)
            self.settings_changed.emit()

    def _apply(self, chat_style: ChatStyle, bot_avatar_url: Optional[str]) -> None:
        self._chat_style = chat_style
        self._bot_avatar_url = bot_avatar_url or None
        self.chat_style_changed.emit(self._chat_style)
        self.bot_avatar_changed.emit(self._bot_avatar_url)
        self.settings_changed.emit()

    def load(self) -> None:
        """Load local values and emit, then overlay the remote row."""
        self._platform = parse_platform(self._settings.get_value(self.KEY_PLATFORM, Platform.WEB.value))
        self.platform_changed.emit(self._platform)
        self._apply(
            parse_chat_style(self._settings.get_value(self.KEY_CHAT_STYLE, ChatStyle.STANDARD.value)),
            self._settings.get_value(self.KEY_BOT_AVATAR, ""),
        )

        if self._remote is None:
            return
        try:
            remote = self._remote.get(self._user_id)
        except KatagrafyError as exc:
            logger.warning("Failed to load remote preferences: %s", exc.message)
            return
        if remote is None:
            return

        self._apply(remote.chat_style, remote.bot_avatar_url)
        self._save_local()

    def _save_local(self) -> None:
        self._settings.set(self.KEY_CHAT_STYLE, self._chat_style.value, self.CATEGORY)
        self._settings.set(self.KEY_BOT_AVATAR, self._bot_avatar_url or "", self.CATEGORY)
        self._settings.set(self.KEY_PLATFORM, self._platform.value, "ui")

    def save(self) -> bool:
        """Write local settings, then the remote row."""
        self._save_local()
        if self._remote is None:
            return True
        try:
            self._remote.upsert(
                UserPreferences(
                    user_id=self._user_id,
                    chat_style=self._chat_style,
                    bot_avatar_url=self._bot_avatar_url,
                )
            )
        except KatagrafyError as exc:
            logger.error("Failed to save preferences: %s", exc.message)
            self.error_occurred.emit(f"Failed to save preferences: {exc.message}")
            return False
        return True

    def upload_bot_avatar(self, name: str, mime_type: str, data: bytes) -> Optional[str]:
        """Store an avatar image and point the preference at it.

        Returns:
            The avatar URL, or None when the image was rejected.
        """
        if not (mime_type or "").lower().startswith("image/"):
            self.error_occurred.emit("Please upload an image file")
            return None
        if len(data) > BOT_AVATAR_MAX_BYTES:
            self.error_occurred.emit("Image size should be less than 5MB")
            return None
        if self._blob_store is None:
            self.error_occurred.emit("Avatar storage is not available")
            return None

        extension = PurePosixPath(name).suffix or ".png"
        path = f"{self._user_id}/avatars/{uuid4()}{extension}"
        try:
            self._blob_store.upload(path, data)
        except KatagrafyError as exc:
            logger.error("Failed to upload bot avatar: %s", exc.message)
            self.error_occurred.emit(f"Failed to upload avatar: {exc.message}")
            return None

        url = self._blob_store.public_url(path)
        self.bot_avatar_url = url
        return url

    def snapshot(self) -> dict[str, object]:
        """Create snapshot of current state for revert functionality."""
        return {
            "chat_style": self._chat_style,
            "bot_avatar_url": self._bot_avatar_url,
            "platform": self._platform,
        }

    def restore_snapshot(self, snapshot: dict[str, object]) -> None:
        self._platform = snapshot.get("platform", Platform.WEB)
        self.platform_changed.emit(self._platform)
        self._apply(
            snapshot.get("chat_style", ChatStyle.STANDARD),
            snapshot.get("bot_avatar_url"),
        )
