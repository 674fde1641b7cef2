"""Достаём один JSON объект из свободного ответа модели.

Отрезок берётся от первой ``{`` до последней ``}``, поэтому текст или markdown
вокруг объекта не мешают. Два независимых объекта в одном ответе попадают в один
отрезок и не разбираются; промпты просят ровно один объект.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from lexi_gateway.services.errors import MalformedStructuredResponse

SNIPPET_LIMIT = 400

NO_OBJECT = "no_object"
INVALID_JSON = "invalid_json"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ExtractionResult:
    value: Any = None
    kind: str | None = None
    raw: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is None


def compact_snippet(text: str, limit: int = SNIPPET_LIMIT) -> str:
    return _WHITESPACE.sub(" ", text)[:limit]


def try_extract_json(text: str) -> ExtractionResult:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return ExtractionResult(kind=NO_OBJECT)

    span = text[start:end + 1]
    try:
        return ExtractionResult(value=json.loads(span))
    except ValueError:
        return ExtractionResult(kind=INVALID_JSON, raw=compact_snippet(span))


def extract_json(text: str) -> Any:
    result = try_extract_json(text)
    if result.kind == NO_OBJECT:
        raise MalformedStructuredResponse("no JSON object found")
    if result.kind == INVALID_JSON:
        raise MalformedStructuredResponse("AI response is not valid JSON", raw=result.raw)
    return result.value
