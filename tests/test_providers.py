import json

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage

from conftest import make_settings, mock_client
from jalsetu.providers import (
    EdenAIProvider,
    GeminiProvider,
    PerplexityProvider,
    ProviderErrorKind,
    ProviderRegistry,
    to_history,
)
from jalsetu.providers.base import FARMING_SYSTEM_PROMPT

HISTORY = to_history([
    ("user", "My wheat leaves are yellow"),
    ("assistant", "That can mean overwatering."),
    ("user", "The soil is soggy"),
    ("bot", "Skip the next irrigation cycle."),
])


def gemini_reply(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}]}


def perplexity_reply(text, citations=None):
    body = {
        "id": "cmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "llama-3.1-sonar-small-128k-online",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": "stop"}],
    }
    if citations is not None:
        body["citations"] = citations
    return body


def test_to_history_maps_roles_and_keeps_order():
    assert [type(turn) for turn in HISTORY] == [HumanMessage, AIMessage, HumanMessage, AIMessage]
    assert [turn.content for turn in HISTORY][0] == "My wheat leaves are yellow"


def test_to_history_rejects_unknown_role():
    with pytest.raises(ValueError):
        to_history([("system", "be nice")])


# Gemini

@pytest.mark.asyncio
async def test_gemini_first_turn_sends_system_instruction():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=gemini_reply("Water early in the morning."))

    provider = GeminiProvider("gkey", client=mock_client(handler))
    result = await provider.send(FARMING_SYSTEM_PROMPT, [], "When should I water?")

    assert result.ok
    assert result.text == "Water early in the morning."
    assert requests[0].headers["x-goog-api-key"] == "gkey"
    assert "gemini-1.5-pro:generateContent" in str(requests[0].url)
    payload = json.loads(requests[0].content)
    assert payload["systemInstruction"]["parts"][0]["text"] == FARMING_SYSTEM_PROMPT
    assert payload["contents"] == [{"role": "user", "parts": [{"text": "When should I water?"}]}]
    assert payload["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 800}


@pytest.mark.asyncio
async def test_gemini_follow_up_keeps_history_order_without_system_instruction():
    provider = GeminiProvider("gkey")
    payload = provider.build_payload(FARMING_SYSTEM_PROMPT, HISTORY, "What now?")

    assert "systemInstruction" not in payload
    assert [(c["role"], c["parts"][0]["text"]) for c in payload["contents"]] == [
        ("user", "My wheat leaves are yellow"),
        ("model", "That can mean overwatering."),
        ("user", "The soil is soggy"),
        ("model", "Skip the next irrigation cycle."),
        ("user", "What now?"),
    ]
    await provider.aclose()


@pytest.mark.asyncio
async def test_gemini_rate_limit():
    def handler(request):
        return httpx.Response(429, json={"error": {"code": 429, "status": "RESOURCE_EXHAUSTED", "message": "Resource has been exhausted"}})

    result = await GeminiProvider("gkey", client=mock_client(handler)).send(None, [], "hi")

    assert not result.ok
    assert result.kind == ProviderErrorKind.RATE_LIMIT
    assert result.status_code == 429
    assert "RESOURCE_EXHAUSTED" in result.message


@pytest.mark.asyncio
async def test_gemini_invalid_key_is_auth_failure():
    def handler(request):
        return httpx.Response(400, json={"error": {"code": 400, "status": "INVALID_ARGUMENT", "message": "API key not valid. Please pass a valid API key."}})

    result = await GeminiProvider("bad", client=mock_client(handler)).send(None, [], "hi")

    assert result.kind == ProviderErrorKind.AUTH_FAILURE


@pytest.mark.asyncio
async def test_missing_key_fails_without_http_call():
    def handler(request):
        raise AssertionError("no request expected")

    result = await GeminiProvider(None, client=mock_client(handler)).send(None, [], "hi")

    assert result.kind == ProviderErrorKind.AUTH_FAILURE
    assert result.message == "Gemini API key not configured"


@pytest.mark.asyncio
async def test_gemini_connection_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await GeminiProvider("gkey", client=mock_client(handler)).send(None, [], "hi")

    assert result.kind == ProviderErrorKind.TRANSIENT


@pytest.mark.asyncio
async def test_gemini_empty_completion_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"candidates": [], "promptFeedback": {"blockReason": "SAFETY"}})

    result = await GeminiProvider("gkey", client=mock_client(handler)).send(None, [], "hi")

    assert not result.ok
    assert result.kind == ProviderErrorKind.UNKNOWN


@pytest.mark.asyncio
async def test_gemini_non_json_error_body():
    def handler(request):
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    result = await GeminiProvider("gkey", client=mock_client(handler)).send(None, [], "hi")

    assert result.kind == ProviderErrorKind.TRANSIENT
    assert result.message.startswith("HTTP 502")


# Perplexity

@pytest.mark.asyncio
async def test_perplexity_sends_system_prompt_and_history_in_order():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=perplexity_reply("Let the field drain.", citations=["https://fao.org/drainage"]))

    provider = PerplexityProvider("pkey", http_client=mock_client(handler))
    result = await provider.send(FARMING_SYSTEM_PROMPT, HISTORY, "What now?")

    assert result.ok
    assert result.text == "Let the field drain."
    assert result.sources == ["https://fao.org/drainage"]

    assert str(requests[0].url) == "https://api.perplexity.ai/chat/completions"
    assert requests[0].headers["authorization"] == "Bearer pkey"
    body = json.loads(requests[0].content)
    assert [(m["role"], m["content"]) for m in body["messages"]] == [
        ("system", FARMING_SYSTEM_PROMPT),
        ("user", "My wheat leaves are yellow"),
        ("assistant", "That can mean overwatering."),
        ("user", "The soil is soggy"),
        ("assistant", "Skip the next irrigation cycle."),
        ("user", "What now?"),
    ]
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 500
    assert body["top_p"] == 0.9
    assert body["frequency_penalty"] == 0.5
    assert body["presence_penalty"] == 0.1


@pytest.mark.asyncio
async def test_perplexity_without_citations_has_no_sources():
    def handler(request):
        return httpx.Response(200, json=perplexity_reply("Mulch helps."))

    result = await PerplexityProvider("pkey", http_client=mock_client(handler)).send(None, [], "hi")

    assert result.ok
    assert result.sources == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code,expected", [
    (429, ProviderErrorKind.RATE_LIMIT),
    (401, ProviderErrorKind.AUTH_FAILURE),
    (500, ProviderErrorKind.TRANSIENT),
])
async def test_perplexity_status_errors(status_code, expected):
    def handler(request):
        return httpx.Response(status_code, json={"error": {"message": "nope", "type": "error"}})

    result = await PerplexityProvider("pkey", http_client=mock_client(handler)).send(None, [], "hi")

    assert result.kind == expected
    assert result.status_code == status_code


@pytest.mark.asyncio
async def test_perplexity_connection_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await PerplexityProvider("pkey", http_client=mock_client(handler)).send(None, [], "hi")

    assert result.kind == ProviderErrorKind.TRANSIENT


@pytest.mark.asyncio
async def test_perplexity_missing_key():
    result = await PerplexityProvider(None).send(None, [], "hi")

    assert result.kind == ProviderErrorKind.AUTH_FAILURE
    assert result.message == "Perplexity API key not configured"


# Eden AI

@pytest.mark.asyncio
async def test_edenai_request_and_reply():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"openai": {"status": "success", "generated_text": "Use drip irrigation."}})

    provider = EdenAIProvider("ekey", client=mock_client(handler))
    result = await provider.send(FARMING_SYSTEM_PROMPT, HISTORY[:2], "How do I save water?")

    assert result.ok
    assert result.text == "Use drip irrigation."
    assert requests[0].headers["authorization"] == "Bearer ekey"
    body = json.loads(requests[0].content)
    assert body["providers"] == ["openai"]
    assert body["text"] == "How do I save water?"
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 300
    assert [m["role"] for m in body["chat_history"]] == ["system", "user", "assistant", "user"]


@pytest.mark.asyncio
async def test_edenai_engine_failure_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"openai": {"status": "fail", "error": {"message": "Model overloaded"}}})

    result = await EdenAIProvider("ekey", client=mock_client(handler)).send(None, [], "hi")

    assert not result.ok
    assert result.kind == ProviderErrorKind.UNKNOWN


@pytest.mark.asyncio
async def test_edenai_missing_key_uses_display_name():
    result = await EdenAIProvider(None).send(None, [], "hi")

    assert result.message == "Eden AI API key not configured"


# Registry

def test_registry_builds_every_provider():
    registry = ProviderRegistry(make_settings(chat_provider="perplexity", eden_ai_api_key=None))

    assert registry.names == ["gemini", "perplexity", "edenai"]
    assert registry.default.name == "perplexity"
    assert registry.get("gemini").enabled
    assert not registry.get("edenai").enabled


def test_registry_unknown_provider():
    registry = ProviderRegistry(make_settings())

    with pytest.raises(KeyError):
        registry.get("ollama")
