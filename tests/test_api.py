import json

import httpx
import pytest
from fastapi.testclient import TestClient

from lexi_gateway.api.v1 import get_ai_client
from lexi_gateway.main import app
from lexi_gateway.providers.config import MappingAccessor
from lexi_gateway.services.client import AIClient

OPENAI = {"aiProvider": "openai", "openaiApiKey": "sk-test"}


@pytest.fixture
def upstream():
    """Подменяет AI клиент: upstream отвечает переданным handler'ом."""

    def install(handler, prefs: dict = OPENAI) -> TestClient:
        client = AIClient(MappingAccessor(prefs), transport=httpx.MockTransport(handler), chunk_delay=0)
        app.dependency_overrides[get_ai_client] = lambda: client
        return TestClient(app)

    yield install
    app.dependency_overrides.clear()


def _answer(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": text}}]})


def test_analyze_word(upstream) -> None:
    http = upstream(lambda r: _answer('{"word_type": "noun"}'))
    r = http.post("/v1/analyze/word", json={"word": "cat"})
    assert r.status_code == 200
    assert r.json() == {"word_type": "noun"}


def test_analyze_word_rejects_empty(upstream) -> None:
    http = upstream(lambda r: _answer("{}"))
    r = http.post("/v1/analyze/word", json={"word": ""})
    assert r.status_code == 422


def test_analyze_word_missing_key(upstream) -> None:
    http = upstream(lambda r: _answer("{}"), prefs={"aiProvider": "openai"})
    r = http.post("/v1/analyze/word", json={"word": "cat"})
    assert r.status_code == 500
    assert r.json()["error"]["code"] == "provider_not_configured"


def test_analyze_sentence_upstream_error(upstream) -> None:
    http = upstream(lambda r: httpx.Response(503, text="busy"))
    r = http.post("/v1/analyze/sentence", json={"sentence": "I has a cat."})
    assert r.status_code == 502
    assert r.json()["error"]["code"] == "upstream_5xx"


def test_analyze_sentence(upstream) -> None:
    http = upstream(lambda r: _answer('{"score": 6.0, "errors": []}'))
    r = http.post("/v1/analyze/sentence", json={"sentence": "I has a cat."})
    assert r.status_code == 200
    assert r.json() == {"score": 6.0, "errors": []}


def test_chat(upstream) -> None:
    http = upstream(lambda r: _answer(" Hello! "))
    r = http.post("/v1/chat", json={"message": "hi"})
    assert r.status_code == 200
    assert r.json() == {"content": "Hello!"}


def test_chat_stream_events(upstream) -> None:
    text = "A noun names a person, place or thing."
    http = upstream(lambda r: _answer(text))
    r = http.post("/v1/chat/stream", json={"message": "what is a noun?"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")

    frames = [line[len("data: "):] for line in r.text.split("\n") if line.startswith("data: ")]
    assert frames[-1] == "[DONE]"
    deltas = [json.loads(f)["delta"] for f in frames[:-1]]
    assert "".join(deltas) == text


def test_chat_stream_error_frame(upstream) -> None:
    http = upstream(lambda r: httpx.Response(401, text="bad key"))
    r = http.post("/v1/chat/stream", json={"message": "hi"})
    frames = [line[len("data: "):] for line in r.text.split("\n") if line.startswith("data: ")]
    assert json.loads(frames[0])["error"]["code"] == "upstream_4xx"
    assert frames[-1] == "[DONE]"


def test_models(upstream) -> None:
    http = upstream(lambda r: httpx.Response(200, json={"data": [{"id": "gpt-4o-mini"}]}))
    r = http.get("/v1/models")
    assert r.status_code == 200
    assert r.json() == {"models": ["gpt-4o-mini"]}


def test_models_invalid_key(upstream) -> None:
    http = upstream(lambda r: httpx.Response(401, text="unauthorized"))
    r = http.get("/v1/models")
    assert r.status_code == 502
    assert r.json()["error"]["code"] == "upstream_4xx"


def test_connection_reports_failure(upstream) -> None:
    http = upstream(lambda r: httpx.Response(401, text="unauthorized"))
    r = http.get("/v1/connection")
    assert r.status_code == 200
    assert r.json() == {"success": False, "message": "Invalid API key", "models": []}


def test_connection_ollama_local(upstream) -> None:
    http = upstream(
        lambda r: httpx.Response(200, json={"models": [{"name": "llama3.2:latest"}]}),
        prefs={"aiProvider": "ollama-local"},
    )
    r = http.get("/v1/connection")
    assert r.json() == {"success": True, "message": "Connection successful", "models": ["llama3.2:latest"]}
