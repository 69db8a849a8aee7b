"""Tests for the Gemini chat model and the proxy request handler."""

import json

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from core.llm.gemini import NO_ANSWER_TEXT, GeminiAPIError, GeminiChat, extract_answer
from core.llm.proxy import CORS_HEADERS, handle_proxy_request


def gemini_response(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def make_model(handler, api_key: str = "test-key") -> GeminiChat:
    return GeminiChat(
        api_key=api_key,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestGeminiChat:
    def test_request_shape(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = request.url
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_response("Hi there"))

        model = make_model(handler)
        result = model.invoke([SystemMessage(content="Be brief"), HumanMessage(content="Hello")])

        assert result.content == "Hi there"
        assert captured["url"].path.endswith("/gemini-1.5-flash:generateContent")
        assert captured["url"].params["key"] == "test-key"
        body = captured["body"]
        assert body["generationConfig"] == {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 4096,
        }
        assert [c["role"] for c in body["contents"]] == ["user", "user"]
        assert len(body["safetySettings"]) == 4
        assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_MEDIUM_AND_ABOVE"}

    def test_assistant_turns_use_model_role(self):
        model = GeminiChat(api_key="k")
        contents = model.build_request_body([HumanMessage(content="q"), AIMessage(content="a")])["contents"]
        assert [c["role"] for c in contents] == ["user", "model"]

    def test_upstream_error_is_raised(self):
        model = make_model(
            lambda request: httpx.Response(403, json={"error": {"message": "API key not valid"}})
        )

        with pytest.raises(GeminiAPIError) as excinfo:
            model.invoke([HumanMessage(content="Hello")])

        assert excinfo.value.status_code == 403
        assert excinfo.value.message == "API key not valid"

    def test_missing_candidates_returns_apology(self):
        assert extract_answer({}) == NO_ANSWER_TEXT
        assert extract_answer(gemini_response("")) == NO_ANSWER_TEXT


class TestProxyHandler:
    def test_options_returns_cors_headers_only(self):
        response = handle_proxy_request("OPTIONS", None, None)

        assert response.status == 200
        assert response.body is None
        assert response.headers == CORS_HEADERS

    def test_missing_prompt(self):
        response = handle_proxy_request("POST", {}, GeminiChat(api_key="k"))

        assert response.status == 400
        assert response.body == {"error": "Missing prompt in request body"}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_missing_key(self):
        response = handle_proxy_request("POST", {"prompt": "hi"}, GeminiChat(api_key=None))

        assert response.status == 500
        assert response.body["error"] == "Gemini API key is not configured"

    def test_success(self):
        model = make_model(lambda request: httpx.Response(200, json=gemini_response("42")))

        response = handle_proxy_request("POST", {"prompt": "meaning of life?"}, model)

        assert response.ok
        assert response.body == {"answer": "42"}

    def test_upstream_error_is_relayed(self):
        model = make_model(
            lambda request: httpx.Response(429, json={"error": {"message": "Quota exceeded"}})
        )

        response = handle_proxy_request("POST", {"prompt": "hi"}, model)

        assert response.status == 429
        assert response.body["error"] == "Quota exceeded"
        assert response.body["details"] == {"error": {"message": "Quota exceeded"}}

    def test_network_error_is_bad_gateway(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        response = handle_proxy_request("POST", {"prompt": "hi"}, make_model(handler))

        assert response.status == 502

    def test_suggestions_are_normalized(self):
        raw = "Sure! Here you go:\n1) First?\n2. Second?\n\n3. Third?\n3. Third?"
        model = make_model(lambda request: httpx.Response(200, json=gemini_response(raw)))

        response = handle_proxy_request(
            "POST", {"prompt": "suggest", "isSuggestionRequest": True}, model
        )

        assert response.body["answer"] == "1. First?\n2. Second?\n3. Third?"
