"""
Secure credential storage using OS keyring.

Holds the Gemini API key used in direct-key mode and, optionally, the
backend anon key. Falls back to environment variables when no keyring
backend is available (headless CI, containers).
"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


class KeyringService:
    """
    Secure credential storage using OS keyring.

    Provides a unified interface for storing and retrieving secrets
    in the operating system's credential vault.
    """

    SERVICE_NAME = "katagrafy"

    CREDENTIAL_NAMES = {
        "gemini": "gemini_api_key",
        "backend": "backend_anon_key",
    }

    # Environment variable names for fallback
    ENV_VAR_NAMES = {
        "gemini": "GEMINI_API_KEY",
        "backend": "KATAGRAFY_BACKEND_ANON_KEY",
    }

    def __init__(self) -> None:
        self._available: Optional[bool] = None
        self._keyring_module = None

    @property
    def is_available(self) -> bool:
        """
        Check if a keyring backend is available.

        Returns:
            True if keyring can be used, False otherwise.
        """
        if self._available is not None:
            return self._available

        try:
            import keyring
            from keyring.backends.fail import Keyring as FailKeyring

            self._keyring_module = keyring

            backend = keyring.get_keyring()
            if isinstance(backend, FailKeyring):
                logger.warning(
                    "No secure keyring backend available. "
                    "Falling back to environment variables."
                )
                self._available = False
            else:
                logger.debug("Using keyring backend: %s", type(backend).__name__)
                self._available = True
        except Exception as e:
            logger.warning("Failed to initialize keyring: %s", e)
            self._available = False

        return self._available

    def _get_credential_name(self, name: str) -> str:
        return self.CREDENTIAL_NAMES.get(name.lower(), name)

    def store_credential(self, name: str, value: str) -> bool:
        """
        Store a credential in the keyring.

        Args:
            name: Short name (``gemini``, ``backend``) or full credential name
            value: The secret to store

        Returns:
            True if stored successfully, False otherwise
        """
        if not self.is_available:
            logger.warning("Keyring not available, cannot store credential")
            return False

        credential_name = self._get_credential_name(name)
        try:
            self._keyring_module.set_password(self.SERVICE_NAME, credential_name, value)
        except Exception as e:
            logger.error("Failed to store credential %s: %s", name, e)
            return False
        logger.debug("Stored credential: %s", credential_name)
        return True

    def get_credential(self, name: str) -> Optional[str]:
        """
        Retrieve a credential, keyring first, then environment variable.

        Returns:
            The credential value, or None if not found
        """
        credential_name = self._get_credential_name(name)

        if self.is_available:
            try:
                value = self._keyring_module.get_password(
                    self.SERVICE_NAME, credential_name
                )
                if value:
                    return value
            except Exception as e:
                logger.warning("Failed to get credential from keyring: %s", e)

        env_var = self.ENV_VAR_NAMES.get(name.lower())
        if env_var:
            value = os.environ.get(env_var)
            if value:
                logger.debug("Using %s from environment", env_var)
                return value

        return None

    def delete_credential(self, name: str) -> bool:
        if not self.is_available:
            return False

        credential_name = self._get_credential_name(name)
        try:
            self._keyring_module.delete_password(self.SERVICE_NAME, credential_name)
        except Exception as e:
            # keyring raises PasswordDeleteError if not found
            logger.debug("Could not delete credential %s: %s", name, e)
            return False
        logger.debug("Deleted credential: %s", credential_name)
        return True

    def has_credential(self, name: str) -> bool:
        return self.get_credential(name) is not None


_keyring_service: Optional[KeyringService] = None


def get_keyring_service() -> KeyringService:
    """Return the shared KeyringService instance."""
    global _keyring_service
    if _keyring_service is None:
        _keyring_service = KeyringService()
    return _keyring_service
