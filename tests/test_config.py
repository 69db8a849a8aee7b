"""Tests for configuration loading."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from core.config import (
    LLM_MODE_DIRECT,
    LLM_MODE_PROXY,
    AppConfig,
    load_config,
    store_gemini_api_key,
)
from core.constants import DEFAULT_REQUEST_TIMEOUT
from core.errors import AuthConfigurationError


@pytest.fixture
def keyring():
    keyring = Mock()
    keyring.get_credential.side_effect = lambda name: {
        "backend": "anon-key",
        "gemini": "gemini-key",
    }.get(name)
    return keyring


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "KATAGRAFY_BACKEND_URL",
        "KATAGRAFY_DATA_DIR",
        "KATAGRAFY_REQUEST_TIMEOUT",
        "KATAGRAFY_LLM_MODE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_load_config_from_environment(monkeypatch, tmp_path: Path, keyring) -> None:
    monkeypatch.setenv("KATAGRAFY_BACKEND_URL", "https://backend.example.com/")
    monkeypatch.setenv("KATAGRAFY_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("KATAGRAFY_REQUEST_TIMEOUT", "12.5")
    monkeypatch.setenv("KATAGRAFY_LLM_MODE", "Direct")

    config = load_config(keyring)

    assert config.backend_url == "https://backend.example.com"
    assert config.backend_anon_key == "anon-key"
    assert config.gemini_api_key == "gemini-key"
    assert config.request_timeout == 12.5
    assert config.llm_mode == LLM_MODE_DIRECT
    assert config.database_path == tmp_path / "katagrafy.db"
    assert config.storage_root == tmp_path / "storage"
    assert config.log_dir == tmp_path / "logs"
    assert config.has_backend


def test_load_config_defaults(keyring) -> None:
    config = load_config(keyring)

    assert config.backend_url is None
    assert config.request_timeout == DEFAULT_REQUEST_TIMEOUT
    assert config.llm_mode == LLM_MODE_PROXY
    assert not config.has_backend


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_timeout_falls_back(monkeypatch, keyring, value) -> None:
    monkeypatch.setenv("KATAGRAFY_REQUEST_TIMEOUT", value)
    assert load_config(keyring).request_timeout == DEFAULT_REQUEST_TIMEOUT


def test_unknown_llm_mode_falls_back(monkeypatch, keyring) -> None:
    monkeypatch.setenv("KATAGRAFY_LLM_MODE", "carrier-pigeon")
    assert load_config(keyring).llm_mode == LLM_MODE_PROXY


def test_require_backend() -> None:
    with pytest.raises(AuthConfigurationError):
        AppConfig(backend_url="https://backend.example.com").require_backend()

    AppConfig(
        backend_url="https://backend.example.com",
        backend_anon_key="anon",
    ).require_backend()


def test_store_gemini_api_key() -> None:
    keyring = Mock()
    keyring.store_credential.return_value = True

    assert store_gemini_api_key("secret", keyring)
    keyring.store_credential.assert_called_once_with("gemini", "secret")
