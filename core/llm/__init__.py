"""LLM package: Gemini chat model, proxy handler and client."""

from core.llm.client import DirectTransport, LLMClient, ProxyTransport
from core.llm.gemini import GeminiAPIError, GeminiChat, get_chat_model
from core.llm.proxy import ProxyResponse, handle_proxy_request

__all__ = [
    "DirectTransport",
    "GeminiAPIError",
    "GeminiChat",
    "LLMClient",
    "ProxyResponse",
    "ProxyTransport",
    "get_chat_model",
    "handle_proxy_request",
]
