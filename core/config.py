"""
Configuration loader for Katagrafy.

Settings come from environment variables, with secrets looked up in the
OS keyring first:

- ``KATAGRAFY_BACKEND_URL``: base URL of the hosted backend
- ``KATAGRAFY_BACKEND_ANON_KEY``: anonymous (public) backend key
- ``KATAGRAFY_DATA_DIR``: local database, blob and log directory
- ``KATAGRAFY_REQUEST_TIMEOUT``: network timeout in seconds
- ``KATAGRAFY_LLM_MODE``: ``proxy`` (default) or ``direct``
- ``GEMINI_API_KEY``: Gemini key for direct mode
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from core.constants import APP_DIR_NAME, DEFAULT_REQUEST_TIMEOUT
from core.errors import AuthConfigurationError
from core.infrastructure.keyring_service import KeyringService, get_keyring_service

logger = logging.getLogger(__name__)

LLM_MODE_PROXY = "proxy"
LLM_MODE_DIRECT = "direct"
_LLM_MODES = (LLM_MODE_PROXY, LLM_MODE_DIRECT)


@dataclass
class AppConfig:
    """Resolved runtime configuration."""

    backend_url: Optional[str] = None
    backend_anon_key: Optional[str] = None
    data_dir: Path = field(default_factory=lambda: Path.home() / APP_DIR_NAME)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    llm_mode: str = LLM_MODE_PROXY
    gemini_api_key: Optional[str] = None

    @property
    def has_backend(self) -> bool:
        return bool(self.backend_url and self.backend_anon_key)

    @property
    def database_path(self) -> Path:
        return self.data_dir / "katagrafy.db"

    @property
    def storage_root(self) -> Path:
        return self.data_dir / "storage"

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    def require_backend(self) -> None:
        """Raise AuthConfigurationError unless backend URL and key are set."""
        if not self.has_backend:
            raise AuthConfigurationError()


def _parse_timeout(value: Optional[str]) -> float:
    if not value:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        logger.warning("Invalid KATAGRAFY_REQUEST_TIMEOUT %r, using default", value)
        return DEFAULT_REQUEST_TIMEOUT
    if timeout <= 0:
        logger.warning("Non-positive KATAGRAFY_REQUEST_TIMEOUT %r, using default", value)
        return DEFAULT_REQUEST_TIMEOUT
    return timeout


def _parse_llm_mode(value: Optional[str]) -> str:
    mode = (value or LLM_MODE_PROXY).strip().lower()
    if mode not in _LLM_MODES:
        logger.warning("Unknown KATAGRAFY_LLM_MODE %r, using %s", value, LLM_MODE_PROXY)
        return LLM_MODE_PROXY
    return mode


def load_config(keyring: Optional[KeyringService] = None) -> AppConfig:
    """
    Build an AppConfig from the environment and the OS keyring.

    Args:
        keyring: Credential store. Defaults to the shared KeyringService.

    Returns:
        The resolved configuration. Missing backend settings are not an
        error here; callers use ``require_backend`` where they matter.
    """
    keyring = keyring or get_keyring_service()

    backend_url = os.environ.get("KATAGRAFY_BACKEND_URL") or None
    if backend_url:
        backend_url = backend_url.rstrip("/")

    data_dir_value = os.environ.get("KATAGRAFY_DATA_DIR")
    data_dir = Path(data_dir_value).expanduser() if data_dir_value else Path.home() / APP_DIR_NAME

    config = AppConfig(
        backend_url=backend_url,
        backend_anon_key=keyring.get_credential("backend"),
        data_dir=data_dir,
        request_timeout=_parse_timeout(os.environ.get("KATAGRAFY_REQUEST_TIMEOUT")),
        llm_mode=_parse_llm_mode(os.environ.get("KATAGRAFY_LLM_MODE")),
        gemini_api_key=keyring.get_credential("gemini"),
    )

    if config.llm_mode == LLM_MODE_DIRECT and not config.gemini_api_key:
        logger.warning("Direct LLM mode selected but no Gemini API key is configured")
    logger.debug(
        "Loaded config: backend=%s, mode=%s, data_dir=%s",
        config.backend_url or "<none>",
        config.llm_mode,
        config.data_dir,
    )
    return config


def store_gemini_api_key(value: str, keyring: Optional[KeyringService] = None) -> bool:
    """Persist the Gemini key in the OS keyring for direct-key mode."""
    keyring = keyring or get_keyring_service()
    return keyring.store_credential("gemini", value)
