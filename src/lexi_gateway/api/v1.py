"""v1 роутер: разбор слова/предложения, чат и список моделей."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from dataclasses import asdict

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from lexi_gateway.providers.config import SettingsAccessor
from lexi_gateway.services.client import AIClient
from lexi_gateway.services.errors import error_payload, map_client_exception
from lexi_gateway.settings import get_settings

router = APIRouter()
log = structlog.get_logger()


class WordRequest(BaseModel):
    word: str = Field(min_length=1)


class SentenceRequest(BaseModel):
    sentence: str = Field(min_length=1)
    stream: bool = False


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)


def get_ai_client() -> AIClient:
    """Клиент поверх настроек из окружения (в тестах подменяется)."""
    settings = get_settings()
    return AIClient(SettingsAccessor(settings), http_timeout=settings.http_timeout_seconds)


def _error_response(endpoint: str, exc: Exception) -> JSONResponse:
    pub = map_client_exception(exc)
    log.warning("ai_error", endpoint=endpoint, code=pub.code, err=str(exc))
    return JSONResponse(status_code=pub.status_code, content=error_payload(pub))


def _sse(data: dict) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.post("/analyze/word")
async def analyze_word(
    req: WordRequest,
    client: AIClient = Depends(get_ai_client),
):
    try:
        return await client.analyze_word(req.word)
    except Exception as e:
        return _error_response("analyze_word", e)


@router.post("/analyze/sentence")
async def analyze_sentence(
    req: SentenceRequest,
    client: AIClient = Depends(get_ai_client),
):
    try:
        return await client.analyze_sentence(req.sentence, stream_preferred=req.stream)
    except Exception as e:
        return _error_response("analyze_sentence", e)


@router.post("/chat")
async def chat(
    req: ChatRequest,
    client: AIClient = Depends(get_ai_client),
):
    try:
        content = await client.chat(req.message)
    except Exception as e:
        return _error_response("chat", e)
    return {"content": content}


@router.post("/chat/stream")
async def chat_stream(
    req: ChatRequest,
    client: AIClient = Depends(get_ai_client),
) -> StreamingResponse:
    """Дельты чата как server-sent events, в конце `data: [DONE]`."""
    queue: asyncio.Queue[str | None] = asyncio.Queue()

    def on_chunk(delta: str, accumulated: str) -> None:
        queue.put_nowait(_sse({"delta": delta}))

    async def run() -> None:
        try:
            await client.chat(req.message, stream=True, on_chunk=on_chunk)
        except Exception as e:
            pub = map_client_exception(e)
            log.warning("ai_error", endpoint="chat_stream", code=pub.code, err=str(e))
            queue.put_nowait(_sse(error_payload(pub)))
        finally:
            queue.put_nowait(None)

    async def events() -> AsyncIterator[str]:
        task = asyncio.create_task(run())
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield item
            yield "data: [DONE]\n\n"
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/models")
async def list_models(client: AIClient = Depends(get_ai_client)):
    try:
        models = await client.list_models()
    except Exception as e:
        return _error_response("models", e)
    return {"models": models}


@router.get("/connection")
async def check_connection(client: AIClient = Depends(get_ai_client)) -> dict:
    """Проверка настроек провайдера (для экрана настроек)."""
    status = await client.check_connection()
    return asdict(status)
