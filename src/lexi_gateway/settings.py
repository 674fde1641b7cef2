"""Настройки приложения (env + `.env`)."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic-настройки: параметры процесса и ключи AI настроек пользователя."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = Field(default="local", validation_alias="APP_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    http_timeout_seconds: float = Field(default=120.0, validation_alias="HTTP_TIMEOUT_SECONDS")

    # Пустые значения допустимы: резолвер подставит дефолты провайдера.
    ai_provider: str | None = Field(default=None, validation_alias="AI_PROVIDER")
    ollama_cloud_api_key: str | None = Field(default=None, validation_alias="OLLAMA_CLOUD_API_KEY")
    ollama_cloud_model: str | None = Field(default=None, validation_alias="OLLAMA_CLOUD_MODEL")
    openai_endpoint: str | None = Field(default=None, validation_alias="OPENAI_ENDPOINT")
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_model: str | None = Field(default=None, validation_alias="OPENAI_MODEL")
    ollama_local_host: str | None = Field(default=None, validation_alias="OLLAMA_LOCAL_HOST")
    ollama_local_model: str | None = Field(default=None, validation_alias="OLLAMA_LOCAL_MODEL")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Ленивая загрузка настроек (один раз на процесс)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
