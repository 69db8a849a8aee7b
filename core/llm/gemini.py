"""
Gemini LLM wrapper.

Calls the Gemini ``generateContent`` REST endpoint directly with httpx and
exposes it as a LangChain chat model.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from langchain_core.callbacks import CallbackManagerForLLMRun
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import ConfigDict, Field

from core.constants import DEFAULT_REQUEST_TIMEOUT, GEMINI_API_URL, GEMINI_MODEL

logger = logging.getLogger(__name__)

NO_ANSWER_TEXT = (
    "I'm sorry, I couldn't generate an answer at this time. "
    "Please try again later."
)

SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


class GeminiAPIError(Exception):
    """Non-2xx response from the Gemini API.

    Attributes:
        status_code: HTTP status returned upstream.
        payload: Decoded error body, or the raw text when not JSON.
    """

    def __init__(self, status_code: int, message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload


class GeminiChat(BaseChatModel):
    """Chat model backed by Google's Gemini REST API."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: str = Field(default=GEMINI_MODEL)
    temperature: float = Field(default=0.7)
    top_k: int = Field(default=40)
    top_p: float = Field(default=0.95)
    max_output_tokens: int = Field(default=4096)
    timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT)
    api_key: Optional[str] = Field(default=None)
    api_url: str = Field(default=GEMINI_API_URL)
    http_client: Optional[httpx.Client] = Field(default=None, exclude=True)

    @property
    def _llm_type(self) -> str:
        return "gemini"

    @property
    def _identifying_params(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
        }

    def _convert_messages(self, messages: list[BaseMessage]) -> list[dict[str, Any]]:
        """Convert LangChain messages to Gemini ``contents``.

        Gemini has no system role here, so system text is sent as a user turn.
        """
        contents = []
        for msg in messages:
            role = "model" if isinstance(msg, AIMessage) else "user"
            if isinstance(msg, SystemMessage):
                role = "user"
            contents.append({"role": role, "parts": [{"text": str(msg.content)}]})
        return contents

    def build_request_body(self, messages: list[BaseMessage]) -> dict[str, Any]:
        return {
            "contents": self._convert_messages(messages),
            "generationConfig": {
                "temperature": self.temperature,
                "topK": self.top_k,
                "topP": self.top_p,
                "maxOutputTokens": self.max_output_tokens,
            },
            "safetySettings": SAFETY_SETTINGS,
        }

    def _post(self, body: dict[str, Any]) -> httpx.Response:
        url = f"{self.api_url}/{self.model}:generateContent"
        params = {"key": self.api_key}
        if self.http_client is not None:
            return self.http_client.post(url, params=params, json=body)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(url, params=params, json=body)

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        if not self.api_key:
            raise GeminiAPIError(500, "Gemini API key is not configured")

        body = self.build_request_body(messages)
        if stop:
            body["generationConfig"]["stopSequences"] = stop

        response = self._post(body)
        logger.debug("Gemini API response status: %s", response.status_code)
        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text}

        if response.is_error:
            error = data.get("error") if isinstance(data, dict) else None
            message = "Error from Gemini API"
            if isinstance(error, dict) and error.get("message"):
                message = error["message"]
            raise GeminiAPIError(response.status_code, message, data)

        generation = ChatGeneration(message=AIMessage(content=extract_answer(data)))
        return ChatResult(generations=[generation])


def extract_answer(data: dict[str, Any]) -> str:
    """Text of the first candidate, or the fixed apology when absent."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return NO_ANSWER_TEXT
    return text or NO_ANSWER_TEXT


def get_chat_model(api_key: Optional[str], **kwargs: Any) -> GeminiChat:
    """Return a GeminiChat configured with the default generation settings."""
    return GeminiChat(api_key=api_key, **kwargs)
