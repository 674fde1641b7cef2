"""Инкрементальный декодер потоковых ответов (строки `data: ...`)."""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterable
from dataclasses import dataclass
from typing import Any

from lexi_gateway.providers.request import ChunkSink
from lexi_gateway.providers.shapes import DELTA_SHAPES, first_text

DATA_PREFIX = "data: "
DONE_LINE = "data: [DONE]"


@dataclass(frozen=True)
class StreamFrame:
    payload: Any
    delta: str


class StreamDecoder:
    """Собирает кадры поверх произвольных границ чтения и отдаёт дельты текста.

    Байты идут через инкрементальный UTF-8 декодер: code point, разрезанный между
    двумя чтениями, ждёт своего окончания. Текст копится в буфере; обрабатываются
    только строки, закрытые `\\n`, хвост остаётся до следующего чтения.
    Строки без префикса `data: ` (keep-alive, комментарии) пропускаются.
    """

    def __init__(self, on_chunk: ChunkSink | None = None) -> None:
        self._on_chunk = on_chunk
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.accumulated = ""

    def feed(self, chunk: bytes | str) -> list[str]:
        """Обрабатывает одно чтение; возвращает выданные для него дельты."""
        if isinstance(chunk, bytes):
            text = self._decoder.decode(chunk)
        else:
            text = chunk
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")

        deltas = []
        for line in lines:
            line = line.strip()
            if line == DONE_LINE:
                # Не все провайдеры его шлют; внешний цикл чтения продолжается.
                break
            frame = self._parse(line)
            if frame is None or not frame.delta:
                continue
            self.accumulated += frame.delta
            deltas.append(frame.delta)
            if self._on_chunk is not None:
                self._on_chunk(frame.delta, self.accumulated)
        return deltas

    def close(self) -> str:
        """Конец потока: недописанная последняя строка отбрасывается."""
        self._decoder.decode(b"", final=True)
        self._buffer = ""
        return self.accumulated

    def _parse(self, line: str) -> StreamFrame | None:
        if not line.startswith(DATA_PREFIX):
            return None
        try:
            payload = json.loads(line[len(DATA_PREFIX):])
        except ValueError:
            return None
        return StreamFrame(payload=payload, delta=first_text(payload, DELTA_SHAPES) or "")


async def decode_stream(chunks: AsyncIterable[bytes], on_chunk: ChunkSink | None = None) -> str:
    """Прогоняет декодер по асинхронному источнику байтов, возвращает накопленный текст."""
    decoder = StreamDecoder(on_chunk)
    async for chunk in chunks:
        decoder.feed(chunk)
    return decoder.close()
