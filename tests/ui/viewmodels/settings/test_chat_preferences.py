"""Unit tests for ChatPreferences."""

from unittest.mock import Mock

import pytest

from core.constants import BOT_AVATAR_MAX_BYTES
from core.errors import PersistenceError
from core.models import ChatStyle, Platform, UserPreferences
from core.persistence import (
    BlobStore,
    Database,
    PreferencesRepository,
    SettingsRepository,
)
from ui.viewmodels.settings import ChatPreferences, parse_platform


@pytest.fixture
def temp_db(tmp_path):
    """Create temporary database for testing."""
    db = Database(tmp_path / "test_preferences.db")
    yield db
    db.close()


@pytest.fixture
def preferences(temp_db, tmp_path):
    return ChatPreferences(
        "user-1",
        SettingsRepository(temp_db),
        PreferencesRepository(temp_db),
        BlobStore(tmp_path / "storage"),
    )


def test_default_values(preferences):
    assert preferences.chat_style == ChatStyle.STANDARD
    assert preferences.bot_avatar_url is None
    assert preferences.platform == Platform.WEB


def test_chat_style_change_emits_signal(preferences, qtbot):
    with qtbot.waitSignal(preferences.chat_style_changed) as blocker:
        preferences.chat_style = ChatStyle.BUBBLE

    assert blocker.args[0] == ChatStyle.BUBBLE


def test_unknown_values_fall_back(preferences):
    preferences.chat_style = ChatStyle.COMPACT
    preferences.chat_style = "fancy"
    preferences.platform = "tablet"

    assert preferences.chat_style == ChatStyle.STANDARD
    assert preferences.platform == Platform.WEB
    assert parse_platform("MOBILE".lower()) == Platform.MOBILE


def test_save_and_load_round_trip(temp_db, preferences):
    preferences.chat_style = ChatStyle.COMPACT
    preferences.platform = Platform.MOBILE
    assert preferences.save()

    reloaded = ChatPreferences("user-1", SettingsRepository(temp_db), PreferencesRepository(temp_db))
    reloaded.load()

    assert reloaded.chat_style == ChatStyle.COMPACT
    assert reloaded.platform == Platform.MOBILE


def test_remote_row_wins_over_local_cache(temp_db):
    settings = SettingsRepository(temp_db)
    settings.set(ChatPreferences.KEY_CHAT_STYLE, "compact", ChatPreferences.CATEGORY)
    remote = PreferencesRepository(temp_db)
    remote.upsert(
        UserPreferences(
            user_id="user-1",
            chat_style=ChatStyle.BUBBLE,
            bot_avatar_url="https://cdn.example/bot.png",
        )
    )

    preferences = ChatPreferences("user-1", settings, remote)
    preferences.load()

    assert preferences.chat_style == ChatStyle.BUBBLE
    assert preferences.bot_avatar_url == "https://cdn.example/bot.png"
    assert settings.get_value(ChatPreferences.KEY_CHAT_STYLE) == "bubble"


def test_remote_load_failure_keeps_local_values(temp_db):
    settings = SettingsRepository(temp_db)
    settings.set(ChatPreferences.KEY_CHAT_STYLE, "compact", ChatPreferences.CATEGORY)
    remote = Mock()
    remote.get.side_effect = PersistenceError("offline")

    preferences = ChatPreferences("user-1", settings, remote)
    preferences.load()

    assert preferences.chat_style == ChatStyle.COMPACT


def test_remote_save_failure_emits_error(temp_db, qtbot):
    remote = Mock()
    remote.upsert.side_effect = PersistenceError("offline")
    preferences = ChatPreferences("user-1", SettingsRepository(temp_db), remote)
    preferences.chat_style = ChatStyle.BUBBLE

    with qtbot.waitSignal(preferences.error_occurred) as blocker:
        assert preferences.save() is False

    assert blocker.args[0] == "Failed to save preferences: offline"
    assert SettingsRepository(temp_db).get_value(ChatPreferences.KEY_CHAT_STYLE) == "bubble"


def test_upload_bot_avatar(preferences, tmp_path):
    url = preferences.upload_bot_avatar("bot.jpg", "image/jpeg", b"\xff\xd8\xff")

    avatars = (tmp_path / "storage" / "user-1" / "avatars").resolve()
    assert url.startswith(avatars.as_uri() + "/")
    assert url.endswith(".jpg")
    assert preferences.bot_avatar_url == url


def test_upload_bot_avatar_rejects_non_image(preferences, qtbot):
    with qtbot.waitSignal(preferences.error_occurred) as blocker:
        assert preferences.upload_bot_avatar("notes.pdf", "application/pdf", b"%PDF") is None

    assert blocker.args[0] == "Please upload an image file"
    assert preferences.bot_avatar_url is None


def test_upload_bot_avatar_rejects_large_image(preferences, qtbot):
    data = b"0" * (BOT_AVATAR_MAX_BYTES + 1)

    with qtbot.waitSignal(preferences.error_occurred) as blocker:
        assert preferences.upload_bot_avatar("big.png", "image/png", data) is None

    assert blocker.args[0] == "Image size should be less than 5MB"


def test_snapshot_restore(preferences):
    snapshot = preferences.snapshot()
    preferences.chat_style = ChatStyle.BUBBLE
    preferences.bot_avatar_url = "https://cdn.example/bot.png"

    preferences.restore_snapshot(snapshot)

    assert preferences.chat_style == ChatStyle.STANDARD
    assert preferences.bot_avatar_url is None
