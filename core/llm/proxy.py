"""
Request handler for the ``gemini-faq`` serverless function.

The hosted function and the in-process direct-key mode share this handler,
so both produce the same response contract: ``{answer}`` on success and
``{error, details}`` with a non-2xx status on failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
from langchain_core.messages import HumanMessage

from core.constants import MIN_SUGGESTIONS
from core.llm.gemini import GeminiAPIError, GeminiChat
from core.llm.prompts import format_numbered_list, parse_suggestions

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}
JSON_HEADERS = {**CORS_HEADERS, "Content-Type": "application/json"}


@dataclass
class ProxyResponse:
    status: int
    body: Optional[dict[str, Any]] = None
    headers: dict[str, str] = field(default_factory=lambda: dict(JSON_HEADERS))

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _error(status: int, error: str, **extra: Any) -> ProxyResponse:
    return ProxyResponse(status=status, body={"error": error, **extra})


def handle_proxy_request(
    method: str,
    body: Any,
    chat_model: Optional[GeminiChat],
) -> ProxyResponse:
    """Answer one proxy call.

    Args:
        method: HTTP method of the incoming request.
        body: Decoded JSON body.
        chat_model: Model used to answer; ``None`` or a model without an API
            key yields a 500.
    """
    if method.upper() == "OPTIONS":
        return ProxyResponse(status=200, headers=dict(CORS_HEADERS))

    prompt = body.get("prompt") if isinstance(body, dict) else None
    if not prompt:
        logger.error("Missing prompt in request body")
        return _error(400, "Missing prompt in request body")

    if chat_model is None or not chat_model.api_key:
        logger.error("Gemini API key is not configured")
        return _error(
            500,
            "Gemini API key is not configured",
            message="Please add GEMINI_API_KEY to the function secrets",
        )

    logger.debug("Sending prompt to Gemini API: %s...", prompt[:100])
    try:
        result = chat_model.invoke([HumanMessage(content=prompt)])
    except GeminiAPIError as exc:
        logger.error("Gemini API error (%s): %s", exc.status_code, exc.message)
        return _error(exc.status_code, exc.message, details=exc.payload)
    except httpx.HTTPError as exc:
        logger.error("Gemini API unreachable: %s", exc)
        return _error(502, "Could not reach Gemini API", details=str(exc))

    answer = str(result.content)
    if body.get("isSuggestionRequest"):
        suggestions = parse_suggestions(answer)
        if len(suggestions) >= MIN_SUGGESTIONS:
            answer = format_numbered_list(suggestions)

    return ProxyResponse(status=200, body={"answer": answer})
