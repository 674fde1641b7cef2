"""Стратегии формы ответа: достаём текст ассистента из любого конверта провайдера.

Ollama отвечает `{"message": {"content": ...}}`, OpenAI-совместимые хосты
`{"choices": [{"message": {"content": ...}}]}` (или `delta` в стриме), а часть
прокси отдаёт голое поле `content` / `response` или просто строку. Стратегия
возвращает текст или `None`; побеждает первая непустая, поэтому новая форма
провайдера это ещё один элемент кортежа.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from typing import Any

from lexi_gateway.services.errors import UnrecognizedResponseShape

ShapeStrategy = Callable[[Any], "str | None"]

RAW_SNIPPET_LIMIT = 400


def _dig(data: Any, *path: str | int) -> Any:
    cur = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(cur, list) or len(cur) <= step:
                return None
        elif not isinstance(cur, dict):
            return None
        cur = cur[step] if isinstance(step, int) else cur.get(step)
    return cur


def _field(*path: str | int) -> ShapeStrategy:
    def strategy(data: Any) -> str | None:
        value = _dig(data, *path)
        return value if isinstance(value, str) else None

    strategy.__name__ = "field_" + "_".join(str(p) for p in path)
    return strategy


def raw_string(data: Any) -> str | None:
    return data if isinstance(data, str) else None


message_content = _field("message", "content")
choice_message_content = _field("choices", 0, "message", "content")
choice_delta_content = _field("choices", 0, "delta", "content")
bare_content = _field("content")
bare_response = _field("response")

# Полные (не потоковые) документы.
RESPONSE_SHAPES: tuple[ShapeStrategy, ...] = (
    message_content,
    choice_message_content,
    raw_string,
    bare_content,
    bare_response,
)

# Кадры стрима.
DELTA_SHAPES: tuple[ShapeStrategy, ...] = (
    message_content,
    choice_delta_content,
    bare_content,
    bare_response,
)


def first_text(data: Any, shapes: Sequence[ShapeStrategy]) -> str | None:
    for shape in shapes:
        text = shape(data)
        if text:
            return text
    return None


def raw_snippet(data: Any, limit: int = RAW_SNIPPET_LIMIT) -> str:
    try:
        raw = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    except (TypeError, ValueError):
        raw = repr(data)
    return raw[:limit]


def normalize(body: Any) -> str:
    """Текст ассистента из полного документа ответа."""
    text = first_text(body, RESPONSE_SHAPES)
    if text is None:
        raise UnrecognizedResponseShape(
            "AI returned unexpected response format", raw=raw_snippet(body)
        )
    return text


def model_names(body: Any) -> list[str]:
    """Имена моделей: `data[].id` (OpenAI-совместимые) или `models[].name` (Ollama `/api/tags`)."""
    names: list[str] = []
    if not isinstance(body, dict):
        return names
    for item in body.get("data") or []:
        if isinstance(item, dict) and isinstance(item.get("id"), str):
            names.append(item["id"])
    for item in body.get("models") or []:
        if isinstance(item, dict) and isinstance(item.get("name"), str):
            names.append(item["name"])
    return names
