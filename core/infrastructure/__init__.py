"""Infrastructure services: OS keyring access."""

from core.infrastructure.keyring_service import KeyringService, get_keyring_service

__all__ = ["KeyringService", "get_keyring_service"]
