import json

import pytest

from lexi_gateway import cli
from lexi_gateway.services.errors import ConfigurationError


class FakeClient:
    async def analyze_word(self, word: str) -> dict:
        return {"word": word, "word_type": "noun"}

    async def analyze_sentence(self, sentence: str, stream_preferred: bool = True) -> dict:
        return {"score": 10, "streamed": stream_preferred}

    async def chat(self, text: str, *, stream: bool = False, on_chunk=None) -> str:
        if stream:
            on_chunk("Hel", "Hel")
            on_chunk("lo", "Hello")
            return ""
        return "Hello"

    async def list_models(self) -> list[str]:
        return ["gpt-4o-mini", "gpt-4o"]


class BrokenClient:
    async def analyze_word(self, word: str) -> dict:
        raise ConfigurationError("Missing API key. Please configure your OpenAI API key in Settings.")


@pytest.fixture
def fake(monkeypatch):
    monkeypatch.setattr(cli, "_client", FakeClient)
    monkeypatch.setattr(cli, "configure_logging", lambda level=None: None)


def test_analyze_word(fake, capsys) -> None:
    assert cli.main(["analyze-word", "cat"]) == 0
    assert json.loads(capsys.readouterr().out) == {"word": "cat", "word_type": "noun"}


def test_analyze_sentence_no_stream(fake, capsys) -> None:
    assert cli.main(["analyze-sentence", "I has a cat.", "--no-stream"]) == 0
    assert json.loads(capsys.readouterr().out) == {"score": 10, "streamed": False}


def test_chat_stream_prints_deltas(fake, capsys) -> None:
    assert cli.main(["chat", "hi", "--stream"]) == 0
    assert capsys.readouterr().out == "Hello\n"


def test_models_one_per_line(fake, capsys) -> None:
    assert cli.main(["models"]) == 0
    assert capsys.readouterr().out == "gpt-4o-mini\ngpt-4o\n"


def test_client_error_exit_code(monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "_client", BrokenClient)
    monkeypatch.setattr(cli, "configure_logging", lambda level=None: None)
    assert cli.main(["analyze-word", "cat"]) == 1
    assert "Missing API key" in capsys.readouterr().err
