"""Таксономия ошибок клиента и её отображение в стабильные публичные ошибки."""

from __future__ import annotations

from dataclasses import dataclass


class AIClientError(Exception):
    """Базовый класс всех ошибок AI клиента."""


class ConfigurationError(AIClientError):
    """Провайдер не настроен (например, нет API ключа)."""


class UsageError(AIClientError):
    """Нарушен контракт вызова (например, стрим чата без приёмника)."""


class TransportError(AIClientError):
    """Сетевая ошибка или не-2xx статус upstream."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RequestTimeoutError(AIClientError, TimeoutError):
    """Дедлайн вызова истёк раньше ответа upstream."""

    def __init__(self, deadline: float | None = None) -> None:
        if deadline is None:
            message = "AI request timed out"
        else:
            message = f"AI request timed out after {deadline:g} seconds"
        super().__init__(message)
        self.deadline = deadline


class MalformedStructuredResponse(AIClientError):
    """В ответе модели нет разбираемого JSON объекта."""

    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class UnrecognizedResponseShape(AIClientError):
    """В теле ответа нет ни одного известного поля с текстом."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


@dataclass(frozen=True)
class PublicError:
    """Публичная ошибка для ответа клиенту."""

    status_code: int
    code: str
    message: str
    type: str = "gateway_error"


def map_client_exception(exc: Exception) -> PublicError:
    """Преобразует исключение в стабильный публичный формат (без утечек деталей upstream)."""
    if isinstance(exc, UsageError):
        return PublicError(
            status_code=400,
            code="invalid_request",
            message=str(exc),
            type="invalid_request_error",
        )

    if isinstance(exc, ConfigurationError):
        return PublicError(
            status_code=500,
            code="provider_not_configured",
            message=str(exc),
        )

    if isinstance(exc, RequestTimeoutError):
        return PublicError(
            status_code=504,
            code="upstream_timeout",
            message="Upstream did not answer in time",
            type="upstream_error",
        )

    if isinstance(exc, TransportError):
        sc = exc.status_code
        if sc is None:
            return PublicError(
                status_code=502,
                code="upstream_unreachable",
                message="Could not connect to upstream",
                type="upstream_error",
            )
        group = "upstream_4xx" if 400 <= sc < 500 else "upstream_5xx" if sc >= 500 else "upstream_error"
        return PublicError(
            status_code=502,
            code=group,
            message=f"Upstream returned {sc}",
            type="upstream_error",
        )

    if isinstance(exc, MalformedStructuredResponse):
        return PublicError(
            status_code=502,
            code="malformed_response",
            message="Model answer did not contain valid JSON",
            type="upstream_error",
        )

    if isinstance(exc, UnrecognizedResponseShape):
        return PublicError(
            status_code=502,
            code="unrecognized_response",
            message="Upstream returned an unexpected response format",
            type="upstream_error",
        )

    return PublicError(
        status_code=502,
        code="provider_error",
        message="Provider error",
    )


def error_payload(err: PublicError) -> dict:
    """Формирует JSON `{error:{...}}` для клиента."""
    return {"error": {"code": err.code, "message": err.message, "type": err.type}}
