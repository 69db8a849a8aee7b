"""
LLM client used by the chat orchestrator.

``LLMClient`` builds the request payload and hands it to a transport:
``ProxyTransport`` calls the hosted ``gemini-faq`` function over HTTP,
``DirectTransport`` runs the same handler in-process with a local key.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Protocol

import httpx

from core.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SUGGESTIONS,
    IMAGE_MARKER,
    LLM_FUNCTION_NAME,
    MIN_SUGGESTIONS,
)
from core.errors import LLMError
from core.llm.gemini import GeminiChat
from core.llm.prompts import (
    build_enhanced_prompt,
    build_suggestion_prompt,
    parse_suggestions,
)
from core.llm.proxy import handle_proxy_request

logger = logging.getLogger(__name__)

API_KEY_ERROR_MESSAGE = (
    "Gemini API key is missing or invalid. Please check your Gemini key."
)
EMPTY_ANSWER_MESSAGE = "Received an empty answer from Gemini AI"


def classify_error_message(message: Optional[str]) -> str:
    """Rewrite raw error text into something a user can act on."""
    if not message:
        return LLMError.default_message
    if "api key" in message.lower() or "api_key" in message.lower():
        return API_KEY_ERROR_MESSAGE
    return message


def _answer_from(status: int, data: Any) -> str:
    if not isinstance(data, dict):
        raise LLMError(details=data)
    if status >= 400 or data.get("error"):
        raise LLMError(classify_error_message(data.get("error")), details=data.get("details"))
    answer = data.get("answer")
    if not answer or not str(answer).strip():
        raise LLMError(EMPTY_ANSWER_MESSAGE)
    return str(answer)


class Transport(Protocol):
    def send(self, payload: dict[str, Any]) -> str:
        """Deliver the payload and return the answer, or raise LLMError."""

    def close(self) -> None:
        ...


class ProxyTransport:
    """POSTs payloads to the backend's ``gemini-faq`` function."""

    def __init__(
        self,
        backend_url: str,
        anon_key: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self._endpoint = f"{backend_url.rstrip('/')}/functions/v1/{LLM_FUNCTION_NAME}"
        self._headers = {
            "Authorization": f"Bearer {anon_key}",
            "apikey": anon_key,
            "Content-Type": "application/json",
        }
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, payload: dict[str, Any]) -> str:
        try:
            response = self._client.post(self._endpoint, json=payload, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.error("Error invoking %s: %s", LLM_FUNCTION_NAME, exc)
            raise LLMError(details=str(exc)) from exc

        try:
            data = response.json()
        except ValueError:
            data = {"error": response.text or None} if response.is_error else None
        return _answer_from(response.status_code, data)

    def close(self) -> None:
        self._client.close()


class DirectTransport:
    """Runs the proxy handler locally with the user's own Gemini key."""

    def __init__(self, chat_model: GeminiChat):
        self._chat_model = chat_model

    def send(self, payload: dict[str, Any]) -> str:
        response = handle_proxy_request("POST", payload, self._chat_model)
        return _answer_from(response.status, response.body)

    def close(self) -> None:
        if self._chat_model.http_client is not None:
            self._chat_model.http_client.close()


class LLMClient:
    """Asks Gemini questions, optionally grounded in file context."""

    def __init__(self, transport: Transport):
        self._transport = transport

    def ask(self, prompt: str, context: Optional[str] = None) -> str:
        """Return the model's answer.

        Raises:
            LLMError: when the call fails or the answer is empty.
        """
        payload = self._build_payload(build_enhanced_prompt(prompt, context), context)
        if context:
            logger.debug("Sending prompt with %d chars of file context", len(context))
        return self._transport.send(payload)

    def get_suggestions(
        self,
        last_question: Optional[str] = None,
        file_context: Optional[str] = None,
    ) -> list[str]:
        """Three to six follow-up questions, or the default list."""
        payload = self._build_payload(
            build_suggestion_prompt(last_question, file_context),
            file_context,
            is_suggestion_request=True,
        )
        payload["cacheKey"] = f"suggestions-{time.time_ns()}"
        payload["refreshSuggestions"] = True

        try:
            answer = self._transport.send(payload)
        except LLMError as exc:
            logger.warning("Suggestion request failed: %s", exc.message)
            return list(DEFAULT_SUGGESTIONS)

        suggestions = parse_suggestions(answer)
        if len(suggestions) < MIN_SUGGESTIONS:
            logger.debug("Could not parse suggestions, using defaults")
            return list(DEFAULT_SUGGESTIONS)
        return suggestions

    def close(self) -> None:
        self._transport.close()

    @staticmethod
    def _build_payload(
        prompt: str,
        context: Optional[str],
        is_suggestion_request: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "prompt": prompt,
            "includeFileContent": bool(context),
            "includesImageAnalysis": bool(context and IMAGE_MARKER in context),
            "isSuggestionRequest": is_suggestion_request,
        }
        if context:
            payload["fileContext"] = context
        return payload
