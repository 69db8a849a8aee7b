"""Error taxonomy shared by the persistence, extraction and LLM layers."""

from __future__ import annotations

from typing import Optional


class KatagrafyError(Exception):
    """Base class for errors surfaced to the user.

    Attributes:
        message: Human-readable text suitable for a notification.
    """

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthConfigurationError(KatagrafyError):
    """The backend is not configured, so authenticated flows are disabled."""

    default_message = (
        "Backend is not configured. Set KATAGRAFY_BACKEND_URL and "
        "KATAGRAFY_BACKEND_ANON_KEY."
    )


class NotFoundError(KatagrafyError):
    """A referenced entity does not exist."""

    default_message = "The requested item could not be found"


class PersistenceError(KatagrafyError):
    """A read or write against the backing store failed."""

    default_message = "Failed to reach the data store"


class ContentExtractionError(KatagrafyError):
    """Content could not be extracted. Never escapes the extractor."""

    default_message = "Unable to extract content"


class LLMError(KatagrafyError):
    """The remote completion failed or returned an empty answer."""

    default_message = "Failed to get answer from Gemini AI"

    def __init__(self, message: Optional[str] = None, details: object = None):
        super().__init__(message)
        self.details = details
