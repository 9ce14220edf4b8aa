import random

import pytest
from fastapi.testclient import TestClient

from conftest import FakeDatabase, ScriptedProvider, make_settings
from jalsetu.api.dependencies import get_orchestrators
from jalsetu.api.main import create_app
from jalsetu.core.monitoring import metrics_collector
from jalsetu.database.operations import FarmRepository
from jalsetu.graph import HIGH_DEMAND_MESSAGE
from jalsetu.knowledge import KnowledgeBase
from jalsetu.providers import ProviderRegistry
from jalsetu.providers.base import ProviderCallError
from jalsetu.services.weather import WeatherService


def build_client(gemini=None, perplexity=None, edenai=None, **settings_overrides):
    settings = make_settings(**settings_overrides)
    providers = {
        "gemini": gemini or ScriptedProvider("gemini"),
        "perplexity": perplexity or ScriptedProvider("perplexity"),
        "edenai": edenai or ScriptedProvider("edenai"),
    }
    app = create_app(
        settings,
        registry=ProviderRegistry(settings, providers=providers),
        repository=FarmRepository(database=FakeDatabase()),
        weather=WeatherService(None),
        rng=random.Random(7),
        configure_logging=False,
    )
    return TestClient(app)


def test_chat_returns_provider_answer():
    client = build_client(gemini=ScriptedProvider("gemini", [("Irrigate in the early morning.", [])]))

    r = client.post("/api/chat", json={"message": "When should I irrigate?"})

    assert r.status_code == 200
    assert r.json() == {"response": "Irrigate in the early morning."}
    assert "X-Request-ID" in r.headers


def test_chat_uses_configured_default_provider():
    perplexity = ScriptedProvider("perplexity", [("Answer with citations.", ["https://icar.org.in"])])
    client = build_client(perplexity=perplexity, chat_provider="perplexity")

    r = client.post("/api/chat", json={"message": "Best crop for sandy soil?"})

    assert r.json() == {"response": "Answer with citations.", "sources": ["https://icar.org.in"]}
    assert len(perplexity.calls) == 1


def test_chat_passes_history_in_order():
    gemini = ScriptedProvider("gemini", [("ok", [])])
    client = build_client(gemini=gemini)

    client.post("/api/chat", json={
        "message": "and now?",
        "history": [
            {"role": "user", "content": "first"},
            {"role": "bot", "content": "second"},
            {"role": "assistant", "content": "third"},
        ],
    })

    history = gemini.calls[0]["history"]
    assert [(turn.type, turn.content) for turn in history] == [("human", "first"), ("ai", "second"), ("ai", "third")]


@pytest.mark.parametrize("body", [{}, {"message": None}, {"message": ""}, {"message": "   "}, {"history": []}])
def test_missing_message_is_rejected(body):
    client = build_client()

    r = client.post("/api/chat", json=body)

    assert r.status_code == 400
    assert r.json() == {"error": "Message is required"}


def test_missing_body_is_rejected():
    client = build_client()

    r = client.post("/api/chat")

    assert r.status_code == 400
    assert r.json() == {"error": "Message is required"}


def test_malformed_history_is_invalid_request():
    client = build_client()

    r = client.post("/api/chat", json={"message": "hi", "history": [{"role": "system", "content": "x"}]})

    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"


def test_rate_limited_reply():
    gemini = ScriptedProvider("gemini", [ProviderCallError("Resource has been exhausted (e.g. check quota).", status_code=429)])
    client = build_client(gemini=gemini)

    r = client.post("/api/chat", json={"message": "How much water does wheat need?"})

    assert r.status_code == 200
    assert r.json() == {"response": HIGH_DEMAND_MESSAGE, "rateLimited": True}


def test_auth_failure_reply_comes_from_knowledge_base():
    question = "How do I irrigate my rice field?"
    client = build_client(gemini=ScriptedProvider("gemini", api_key=None))

    r = client.post("/api/chat", json={"message": question})

    assert r.status_code == 200
    assert r.json() == {"response": KnowledgeBase().match(question), "apiKeyError": True}


def test_drought_question_with_rejected_key():
    gemini = ScriptedProvider("gemini", [ProviderCallError("API key not valid", status_code=403)])
    client = build_client(gemini=gemini)

    r = client.post("/api/chat", json={"message": "What about drought?", "history": []})

    body = r.json()
    assert body["apiKeyError"] is True
    assert body["response"].startswith("During drought, prioritize water for your most valuable crops.")


def test_transient_failure_reply_uses_fallback():
    gemini = ScriptedProvider("gemini", [ProviderCallError("Service Unavailable", status_code=503)])
    client = build_client(gemini=gemini)

    r = client.post("/api/chat", json={"message": "What pH is good for irrigation water?"})

    body = r.json()
    assert r.status_code == 200
    assert body["usedFallback"] is True
    assert "apiKeyError" not in body and "rateLimited" not in body


def test_specific_provider_endpoint():
    edenai = ScriptedProvider("edenai", [("From Eden.", [])])
    client = build_client(edenai=edenai)

    r = client.post("/api/chat/edenai", json={"message": "hello"})

    assert r.json() == {"response": "From Eden."}
    assert len(edenai.calls) == 1


def test_unknown_provider_is_404():
    client = build_client()

    r = client.post("/api/chat/ollama", json={"message": "hello"})

    assert r.status_code == 404
    assert r.json()["error"] == "Unknown chat provider: ollama"


def test_local_chat_never_calls_a_provider():
    gemini = ScriptedProvider("gemini")
    client = build_client(gemini=gemini)

    r = client.post("/api/chat/local", json={"message": "How can I save water during a drought?"})

    assert r.json() == {"response": KnowledgeBase().match("How can I save water during a drought?")}
    assert gemini.calls == []
    assert metrics_collector.chat_outcomes["local"]["fallback"] == 1


def test_local_chat_requires_message():
    client = build_client()

    r = client.post("/api/chat/local", json={"message": ""})

    assert r.status_code == 400


def test_unexpected_failure_returns_500():
    class ExplodingOrchestrator:
        provider_name = "gemini"

        async def respond(self, message, history=None):
            raise RuntimeError("boom")

    client = build_client()
    client.app.dependency_overrides[get_orchestrators] = lambda: {"gemini": ExplodingOrchestrator()}

    r = client.post("/api/chat", json={"message": "hello"})

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to process chat request", "message": "boom"}


def test_chat_outcomes_appear_in_metrics():
    client = build_client(gemini=ScriptedProvider("gemini", [("ok", [])]))

    client.post("/api/chat", json={"message": "hello"})
    metrics = client.get("/metrics").json()

    assert metrics["chat_outcomes"]["gemini"]["provider"] == 1


def test_root_and_test_endpoints():
    client = build_client()

    assert client.get("/").json()["message"] == "JalSetu API"
    assert client.get("/api/test").json() == {"message": "API is working"}


def test_health_reports_database_status():
    client = build_client()

    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["database_healthy"] is True


def test_health_degraded_without_database():
    settings = make_settings()
    providers = {name: ScriptedProvider(name) for name in ("gemini", "perplexity", "edenai")}
    app = create_app(
        settings,
        registry=ProviderRegistry(settings, providers=providers),
        repository=FarmRepository(database=FakeDatabase(ping_ok=False)),
        weather=WeatherService(None),
        configure_logging=False,
    )

    r = TestClient(app).get("/health")

    assert r.status_code == 200
    assert r.json()["status"] == "degraded"
    assert "Database connection failed" in r.json()["issues"]


def test_unknown_route_is_json_404():
    client = build_client()

    r = client.get("/api/nowhere")

    assert r.status_code == 404
    assert r.json()["error"] == "Not Found"
