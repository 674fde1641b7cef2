"""Резолв активного провайдера через accessor пользовательских настроек."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import urlparse

import structlog

from lexi_gateway.settings import Settings

log = structlog.get_logger()

OLLAMA_CLOUD = "ollama-cloud"
OLLAMA_LOCAL = "ollama-local"
OPENAI = "openai"

PROVIDERS = (OLLAMA_CLOUD, OLLAMA_LOCAL, OPENAI)

DEFAULT_PROVIDER = OLLAMA_CLOUD
OLLAMA_CLOUD_HOST = "https://ollama.com"
OLLAMA_CLOUD_MODEL = "gpt-oss:20b-cloud"
OLLAMA_LOCAL_HOST = "http://localhost:11434"
OLLAMA_LOCAL_MODEL = "llama3.2:latest"
OPENAI_HOST = "https://api.openai.com"
OPENAI_MODEL = "gpt-4o-mini"


class ConfigAccessor(Protocol):
    """Чтение настроек по ключу с дефолтом (только чтение)."""

    def get(self, key: str, default: Any = None) -> Any: ...


class MappingAccessor:
    """Accessor поверх обычного словаря (настройки, тестовые данные)."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)


# camelCase ключ настроек -> атрибут Settings
_SETTINGS_KEYS = {
    "aiProvider": "ai_provider",
    "ollamaCloudApiKey": "ollama_cloud_api_key",
    "ollamaCloudModel": "ollama_cloud_model",
    "openaiEndpoint": "openai_endpoint",
    "openaiApiKey": "openai_api_key",
    "openaiModel": "openai_model",
    "ollamaLocalHost": "ollama_local_host",
    "ollamaLocalModel": "ollama_local_model",
}


class SettingsAccessor:
    """Accessor, читающий ключи настроек из `Settings` (env + `.env`)."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def get(self, key: str, default: Any = None) -> Any:
        attr = _SETTINGS_KEYS.get(key)
        if attr is None:
            return default
        value = getattr(self._settings, attr, None)
        return default if value is None else value


@dataclass(frozen=True)
class ProviderConfig:
    """Провайдер и его реквизиты на один вызов."""

    provider: str
    host: str
    api_key: str
    model: str

    @property
    def requires_api_key(self) -> bool:
        return self.provider != OLLAMA_LOCAL

    @property
    def display_name(self) -> str:
        return {OPENAI: "OpenAI", OLLAMA_LOCAL: "Ollama Local"}.get(self.provider, "Ollama Cloud")

    def __repr__(self) -> str:
        key = "***" if self.api_key else ""
        return (
            f"ProviderConfig(provider={self.provider!r}, host={self.host!r}, "
            f"api_key={key!r}, model={self.model!r})"
        )


def is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ProviderConfigResolver:
    """Собирает `ProviderConfig` из accessor. Не падает и ничего не пишет."""

    def __init__(self, accessor: ConfigAccessor) -> None:
        self._accessor = accessor

    def _text(self, key: str, default: str) -> str:
        value = self._accessor.get(key, default)
        if value is None:
            return default
        value = str(value).strip()
        return value or default

    def _host(self, provider: str, key: str, default: str) -> str:
        host = self._text(key, default)
        if not is_absolute_url(host):
            log.warning("invalid_provider_host", provider=provider, host=host, fallback=default)
            return default
        return host

    def _ollama_cloud(self) -> ProviderConfig:
        return ProviderConfig(
            provider=OLLAMA_CLOUD,
            host=OLLAMA_CLOUD_HOST,
            api_key=self._text("ollamaCloudApiKey", ""),
            model=self._text("ollamaCloudModel", OLLAMA_CLOUD_MODEL),
        )

    def _ollama_local(self) -> ProviderConfig:
        return ProviderConfig(
            provider=OLLAMA_LOCAL,
            host=self._host(OLLAMA_LOCAL, "ollamaLocalHost", OLLAMA_LOCAL_HOST),
            api_key="",
            model=self._text("ollamaLocalModel", OLLAMA_LOCAL_MODEL),
        )

    def _openai(self) -> ProviderConfig:
        return ProviderConfig(
            provider=OPENAI,
            host=self._host(OPENAI, "openaiEndpoint", OPENAI_HOST),
            api_key=self._text("openaiApiKey", ""),
            model=self._text("openaiModel", OPENAI_MODEL),
        )

    def resolve(self) -> ProviderConfig:
        provider = self._text("aiProvider", DEFAULT_PROVIDER)
        if provider == OLLAMA_LOCAL:
            return self._ollama_local()
        if provider == OPENAI:
            return self._openai()
        if provider != OLLAMA_CLOUD:
            log.warning("unknown_provider", provider=provider, fallback=DEFAULT_PROVIDER)
        return self._ollama_cloud()
