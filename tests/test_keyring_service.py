"""
Unit tests for KeyringService.

Tests credential storage using an in-memory keyring backend.
"""

import os
from unittest.mock import MagicMock, patch

import pytest

from core.infrastructure.keyring_service import KeyringService, get_keyring_service


class TestKeyringService:
    """Tests for KeyringService class."""

    @pytest.fixture
    def mock_keyring(self):
        """In-memory stand-in for the keyring module."""
        keyring_mock = MagicMock()
        keyring_mock._storage = {}

        def get_password(service, name):
            return keyring_mock._storage.get((service, name))

        def set_password(service, name, value):
            keyring_mock._storage[(service, name)] = value

        def delete_password(service, name):
            if (service, name) in keyring_mock._storage:
                del keyring_mock._storage[(service, name)]
            else:
                raise Exception("Password not found")

        keyring_mock.get_password = get_password
        keyring_mock.set_password = set_password
        keyring_mock.delete_password = delete_password
        return keyring_mock

    @pytest.fixture
    def service(self, mock_keyring):
        """Create a KeyringService with the mocked backend."""
        svc = KeyringService()
        svc._available = True
        svc._keyring_module = mock_keyring
        return svc

    @pytest.fixture(autouse=True)
    def clean_env(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("GEMINI_API_KEY", None)
            os.environ.pop("KATAGRAFY_BACKEND_ANON_KEY", None)
            yield

    def test_store_and_get_credential(self, service, mock_keyring):
        assert service.store_credential("gemini", "test-key-123")
        assert service.get_credential("gemini") == "test-key-123"
        assert mock_keyring._storage[("katagrafy", "gemini_api_key")] == "test-key-123"

    def test_get_credential_not_found(self, service):
        assert service.get_credential("gemini") is None

    def test_has_credential(self, service):
        assert not service.has_credential("backend")
        service.store_credential("backend", "anon")
        assert service.has_credential("backend")

    def test_delete_credential(self, service):
        service.store_credential("gemini", "test-key")
        assert service.delete_credential("gemini")
        assert not service.has_credential("gemini")

    def test_delete_nonexistent_credential(self, service):
        assert not service.delete_credential("gemini")

    def test_credential_name_normalization(self, service):
        service.store_credential("gemini", "key1")
        service.store_credential("GEMINI", "key2")
        assert service.get_credential("gemini") == "key2"

    def test_env_var_fallback(self, service):
        """Environment variables are used when the keyring is unavailable."""
        service._available = False

        with patch.dict(os.environ, {"GEMINI_API_KEY": "env-key-123"}):
            assert service.get_credential("gemini") == "env-key-123"

    def test_env_var_used_when_keyring_empty(self, service):
        with patch.dict(os.environ, {"KATAGRAFY_BACKEND_ANON_KEY": "env-anon"}):
            assert service.get_credential("backend") == "env-anon"

    def test_keyring_takes_precedence_over_env(self, service):
        service.store_credential("gemini", "keyring-key")

        with patch.dict(os.environ, {"GEMINI_API_KEY": "env-key"}):
            assert service.get_credential("gemini") == "keyring-key"

    def test_store_fails_without_keyring(self, service):
        service._available = False
        assert not service.store_credential("gemini", "value")
        assert not service.delete_credential("gemini")


def test_get_keyring_service_returns_shared_instance():
    assert get_keyring_service() is get_keyring_service()
