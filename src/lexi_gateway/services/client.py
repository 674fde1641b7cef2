"""AI клиент: разбор слова, разбор предложения и чат через настроенного провайдера.

Каждый вызов заново резолвит провайдера из accessor'а, открывает свой HTTP клиент
внутри области дедлайна и освобождает оба на любом выходе. Дедлайны в секундах;
истечение даёт `RequestTimeoutError`, а не `TransportError`.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import AsyncIterator, Iterator, Sequence
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from lexi_gateway.metrics import call_latency_seconds, calls_total, stream_fallbacks_total
from lexi_gateway.providers.config import (
    OLLAMA_LOCAL,
    ConfigAccessor,
    ProviderConfig,
    ProviderConfigResolver,
)
from lexi_gateway.providers.request import (
    JSON_OBJECT_FORMAT,
    CallOptions,
    ChatMessage,
    ChunkSink,
    build_body,
    build_endpoint,
    build_headers,
    build_models_endpoint,
    message,
)
from lexi_gateway.providers.shapes import RAW_SNIPPET_LIMIT, model_names, normalize
from lexi_gateway.providers.streaming import decode_stream
from lexi_gateway.services.errors import (
    AIClientError,
    ConfigurationError,
    RequestTimeoutError,
    TransportError,
    UnrecognizedResponseShape,
    UsageError,
)
from lexi_gateway.services.extraction import extract_json
from lexi_gateway.services.prompts import (
    CHAT_SYSTEM_PROMPT,
    build_sentence_prompt,
    build_word_prompt,
)

log = structlog.get_logger()

WORD_DEADLINE_SECONDS = 30.0
SENTENCE_DEADLINE_SECONDS = 60.0
MODELS_DEADLINE_SECONDS = 10.0
LOCAL_MODELS_DEADLINE_SECONDS = 5.0
HTTP_TIMEOUT_SECONDS = 120.0

WORD_MAX_TOKENS = 500
SENTENCE_MAX_TOKENS = 2000

SIMULATED_CHUNK_SIZE = 10
SIMULATED_CHUNK_DELAY_SECONDS = 0.02

EVENT_STREAM = "text/event-stream"
NDJSON = "application/x-ndjson"


@dataclass(frozen=True)
class ConnectionStatus:
    """Результат проверки подключения к провайдеру."""

    success: bool
    message: str
    models: list[str] = field(default_factory=list)


def _require_api_key(config: ProviderConfig) -> None:
    if config.requires_api_key and not config.api_key:
        raise ConfigurationError(
            f"Missing API key. Please configure your {config.display_name} API key in Settings."
        )


def _is_stream_content_type(content_type: str) -> bool:
    return EVENT_STREAM in content_type or NDJSON in content_type


def _looks_like_sentence_analysis(body: Any) -> bool:
    return isinstance(body, dict) and ("score" in body or "errors" in body)


async def _check_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        await response.aread()
        body = response.text
    except httpx.HTTPError:
        body = ""
    raise TransportError(
        f"AI HTTP {response.status_code}: {body or response.reason_phrase}",
        status_code=response.status_code,
        body=body,
    )


async def _read_json(response: httpx.Response) -> Any:
    await response.aread()
    try:
        return response.json()
    except ValueError as exc:
        raise UnrecognizedResponseShape(
            "AI returned a non-JSON body", raw=response.text[:RAW_SNIPPET_LIMIT]
        ) from exc


@contextmanager
def _track(kind: str, provider: str) -> Iterator[None]:
    t0 = time.time()
    status = "failed"
    try:
        yield
        status = "succeeded"
    except RequestTimeoutError:
        status = "timeout"
        raise
    finally:
        calls_total.labels(kind=kind, provider=provider, status=status).inc()
        call_latency_seconds.labels(kind=kind, provider=provider).observe(time.time() - t0)


class AIClient:
    """Chat-completion клиент для Ollama Cloud, Ollama Local и OpenAI-совместимых хостов."""

    def __init__(
        self,
        accessor: ConfigAccessor,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        http_timeout: float = HTTP_TIMEOUT_SECONDS,
        word_deadline: float = WORD_DEADLINE_SECONDS,
        sentence_deadline: float = SENTENCE_DEADLINE_SECONDS,
        chat_deadline: float | None = None,
        models_deadline: float = MODELS_DEADLINE_SECONDS,
        local_models_deadline: float = LOCAL_MODELS_DEADLINE_SECONDS,
        chunk_size: int = SIMULATED_CHUNK_SIZE,
        chunk_delay: float = SIMULATED_CHUNK_DELAY_SECONDS,
    ) -> None:
        self._resolver = ProviderConfigResolver(accessor)
        self._transport = transport
        self._http_timeout = http_timeout
        self._word_deadline = word_deadline
        self._sentence_deadline = sentence_deadline
        self._chat_deadline = chat_deadline
        self._models_deadline = models_deadline
        self._local_models_deadline = local_models_deadline
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay

    @asynccontextmanager
    async def _http(self, deadline: float | None) -> AsyncIterator[httpx.AsyncClient]:
        """HTTP клиент, привязанный к одной области дедлайна."""
        try:
            async with asyncio.timeout(deadline):
                async with httpx.AsyncClient(
                    transport=self._transport,
                    timeout=httpx.Timeout(self._http_timeout),
                ) as client:
                    yield client
        except TimeoutError as exc:
            raise RequestTimeoutError(deadline) from exc
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(deadline) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"AI request failed: {exc}") from exc

    async def _complete(
        self,
        config: ProviderConfig,
        messages: Sequence[ChatMessage],
        options: CallOptions,
    ) -> Any:
        """Один запрос без стрима; возвращает JSON тела."""
        async with self._http(options.deadline) as client:
            response = await client.post(
                build_endpoint(config),
                headers=build_headers(config),
                json=build_body(config, messages, options),
            )
            await _check_status(response)
            return await _read_json(response)

    async def _stream(
        self,
        config: ProviderConfig,
        messages: Sequence[ChatMessage],
        options: CallOptions,
    ) -> str:
        """Один потоковый запрос; возвращает накопленный текст дельт."""
        async with self._http(options.deadline) as client:
            async with client.stream(
                "POST",
                build_endpoint(config),
                headers=build_headers(config),
                json=build_body(config, messages, options),
            ) as response:
                await _check_status(response)
                return await decode_stream(response.aiter_bytes(), options.on_chunk)

    async def analyze_word(self, word: str) -> Any:
        """Словарный разбор одного слова (JSON объект)."""
        config = self._resolver.resolve()
        with _track("word", config.provider):
            _require_api_key(config)
            messages = [message("user", build_word_prompt(word))]
            options = CallOptions(
                max_tokens=WORD_MAX_TOKENS,
                response_format=JSON_OBJECT_FORMAT,
                deadline=self._word_deadline,
            )
            body = await self._complete(config, messages, options)
            try:
                text = normalize(body)
            except UnrecognizedResponseShape:
                # В режиме json_object часть хостов отдаёт сам разбор вместо конверта.
                if not isinstance(body, dict):
                    raise
                text = json.dumps(body, ensure_ascii=False)
            return extract_json(text)

    async def analyze_sentence(
        self,
        sentence: str,
        stream_preferred: bool = True,
        on_chunk: ChunkSink | None = None,
    ) -> Any:
        """Оценка предложения (JSON объект).

        При ``stream_preferred`` ответ сначала стримится, сырые дельты уходят в
        ``on_chunk``. Любой сбой стрима перезапускает весь запрос без стрима;
        JSON разбирается один раз, из того текста, который дошёл.
        """
        config = self._resolver.resolve()
        with _track("sentence", config.provider):
            _require_api_key(config)
            messages = [message("user", build_sentence_prompt(sentence))]

            text = None
            if stream_preferred:
                try:
                    text = await self._stream(
                        config,
                        messages,
                        CallOptions(
                            stream=True,
                            max_tokens=SENTENCE_MAX_TOKENS,
                            response_format=JSON_OBJECT_FORMAT,
                            on_chunk=on_chunk,
                            deadline=self._sentence_deadline,
                        ),
                    )
                    if not text:
                        raise TransportError("streaming response carried no content")
                except Exception as e:
                    log.warning(
                        "stream_fallback",
                        kind="sentence",
                        provider=config.provider,
                        err=str(e),
                    )
                    stream_fallbacks_total.labels(kind="sentence", provider=config.provider).inc()
                    text = None

            if text is None:
                body = await self._complete(
                    config,
                    messages,
                    CallOptions(
                        max_tokens=SENTENCE_MAX_TOKENS,
                        response_format=JSON_OBJECT_FORMAT,
                        deadline=self._sentence_deadline,
                    ),
                )
                try:
                    text = normalize(body)
                except UnrecognizedResponseShape:
                    # В режиме json_object часть хостов отдаёт сам разбор.
                    if _looks_like_sentence_analysis(body):
                        return body
                    raise

            return extract_json(text)

    async def chat(
        self,
        text: str,
        *,
        stream: bool = False,
        on_chunk: ChunkSink | None = None,
    ) -> str:
        """Свободный чат с ассистентом.

        В режиме стрима текст доходит только через ``on_chunk``. Если хост ответил
        на потоковый запрос обычным JSON, текст проигрывается в ``on_chunk``
        кусками фиксированной длины и возвращается; настоящий стрим возвращает ``""``.
        """
        if stream and on_chunk is None:
            raise UsageError("on_chunk callback is required for streaming")

        config = self._resolver.resolve()
        with _track("chat", config.provider):
            _require_api_key(config)
            messages = [message("system", CHAT_SYSTEM_PROMPT), message("user", text)]
            options = CallOptions(stream=stream, on_chunk=on_chunk, deadline=self._chat_deadline)

            if not stream:
                body = await self._complete(config, messages, options)
                return normalize(body).strip()

            content = await self._chat_stream(config, messages, options)
            if content is None:
                return ""
            await self._replay(content, on_chunk)
            return content

    async def _chat_stream(
        self,
        config: ProviderConfig,
        messages: Sequence[ChatMessage],
        options: CallOptions,
    ) -> str | None:
        """Полный текст, если хост не стримил; None после настоящего стрима."""
        async with self._http(options.deadline) as client:
            async with client.stream(
                "POST",
                build_endpoint(config),
                headers=build_headers(config),
                json=build_body(config, messages, options),
            ) as response:
                await _check_status(response)
                content_type = response.headers.get("content-type", "")
                if not _is_stream_content_type(content_type):
                    log.info(
                        "simulated_stream",
                        provider=config.provider,
                        content_type=content_type,
                    )
                    return normalize(await _read_json(response))
                await decode_stream(response.aiter_bytes(), options.on_chunk)
                return None

    async def _replay(self, content: str, on_chunk: ChunkSink) -> None:
        accumulated = ""
        for i in range(0, len(content), self._chunk_size):
            if i:
                await asyncio.sleep(self._chunk_delay)
            piece = content[i:i + self._chunk_size]
            accumulated += piece
            on_chunk(piece, accumulated)

    async def list_models(self) -> list[str]:
        """Список моделей провайдера (`/v1/models` или `/api/tags` у локальной Ollama)."""
        config = self._resolver.resolve()
        local = config.provider == OLLAMA_LOCAL
        deadline = self._local_models_deadline if local else self._models_deadline
        with _track("models", config.provider):
            _require_api_key(config)
            async with self._http(deadline) as client:
                response = await client.get(
                    build_models_endpoint(config),
                    headers=build_headers(config),
                )
                if response.status_code == 401:
                    raise TransportError("Invalid API key", status_code=401, body=response.text)
                if local and not response.is_success:
                    raise TransportError(
                        "Cannot connect to local Ollama server",
                        status_code=response.status_code,
                        body=response.text,
                    )
                await _check_status(response)
                return model_names(await _read_json(response))

    async def check_connection(self) -> ConnectionStatus:
        """Проверка настроек: ошибки не бросаются, а возвращаются в статусе."""
        try:
            models = await self.list_models()
        except AIClientError as e:
            log.warning("connection_check_failed", err=str(e))
            return ConnectionStatus(success=False, message=str(e))
        return ConnectionStatus(success=True, message="Connection successful", models=models)
