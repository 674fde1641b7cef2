"""Сборка запроса: URL эндпоинта, заголовки и тело chat-запроса по провайдеру."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypedDict
from urllib.parse import urljoin

from lexi_gateway.providers.config import OLLAMA_LOCAL, OPENAI, ProviderConfig
from lexi_gateway.services.errors import UsageError

DEFAULT_TEMPERATURE = 0.3

JSON_OBJECT_FORMAT = {"type": "json_object"}

ChunkSink = Callable[[str, str], None]


class ChatMessage(TypedDict):
    role: Literal["system", "user", "assistant"]
    content: str


def message(role: Literal["system", "user", "assistant"], content: str) -> ChatMessage:
    return {"role": role, "content": content}


@dataclass(frozen=True)
class CallOptions:
    """Опции одного вызова."""

    stream: bool = False
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int | None = None
    response_format: dict | None = None
    on_chunk: ChunkSink | None = None
    deadline: float | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.temperature <= 2:
            raise UsageError(f"temperature must be within [0, 2], got {self.temperature}")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise UsageError(f"max_tokens must be positive, got {self.max_tokens}")
        if self.deadline is not None and self.deadline <= 0:
            raise UsageError(f"deadline must be positive, got {self.deadline}")


def build_endpoint(config: ProviderConfig) -> str:
    """OpenAI-совместимые хосты: `/v1/chat/completions`, Ollama: `/api/chat`."""
    path = "/v1/chat/completions" if config.provider == OPENAI else "/api/chat"
    return urljoin(config.host, path)


def build_headers(config: ProviderConfig) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if config.api_key:
        headers["Authorization"] = f"Bearer {config.api_key}"
    return headers


def build_body(
    config: ProviderConfig,
    messages: Sequence[ChatMessage],
    options: CallOptions,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "model": config.model,
        "messages": [dict(m) for m in messages],
        "stream": options.stream,
        "temperature": options.temperature,
    }
    if options.max_tokens:
        body["max_tokens"] = options.max_tokens
    if options.response_format:
        body["response_format"] = options.response_format
    return body


def build_models_endpoint(config: ProviderConfig) -> str:
    """Список моделей: `/api/tags` у локальной Ollama, иначе `/v1/models`."""
    path = "/api/tags" if config.provider == OLLAMA_LOCAL else "/v1/models"
    return urljoin(config.host, path)
