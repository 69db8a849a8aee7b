"""
Core package for Katagrafy.

Domain models, persistence, content extraction, export and the Gemini
client. Independent of the UI layer.
"""

from core.config import AppConfig, load_config
from core.errors import (
    AuthConfigurationError,
    ContentExtractionError,
    KatagrafyError,
    LLMError,
    NotFoundError,
    PersistenceError,
)

__all__ = [
    "AppConfig",
    "load_config",
    "AuthConfigurationError",
    "ContentExtractionError",
    "KatagrafyError",
    "LLMError",
    "NotFoundError",
    "PersistenceError",
]
