from structlog.testing import capture_logs

from lexi_gateway.providers.config import (
    MappingAccessor,
    ProviderConfigResolver,
    SettingsAccessor,
)
from lexi_gateway.settings import Settings


def _resolve(values: dict):
    return ProviderConfigResolver(MappingAccessor(values)).resolve()


def test_defaults_to_ollama_cloud() -> None:
    cfg = _resolve({})
    assert cfg.provider == "ollama-cloud"
    assert cfg.host == "https://ollama.com"
    assert cfg.api_key == ""
    assert cfg.model == "gpt-oss:20b-cloud"
    assert cfg.requires_api_key


def test_ollama_local_never_carries_a_key() -> None:
    cfg = _resolve(
        {
            "aiProvider": "ollama-local",
            "ollamaLocalHost": "http://10.0.0.5:11434",
            "ollamaLocalModel": "qwen2.5:7b",
            "ollamaCloudApiKey": "cloud-secret",
        }
    )
    assert cfg.provider == "ollama-local"
    assert cfg.host == "http://10.0.0.5:11434"
    assert cfg.api_key == ""
    assert cfg.model == "qwen2.5:7b"
    assert not cfg.requires_api_key


def test_openai_fields_and_empty_value_fallbacks() -> None:
    cfg = _resolve(
        {
            "aiProvider": "openai",
            "openaiEndpoint": "",
            "openaiApiKey": "sk-test",
            "openaiModel": "  ",
        }
    )
    assert cfg.provider == "openai"
    assert cfg.host == "https://api.openai.com"
    assert cfg.api_key == "sk-test"
    assert cfg.model == "gpt-4o-mini"


def test_unknown_provider_falls_back_to_ollama_cloud() -> None:
    cfg = _resolve({"aiProvider": "anthropic", "ollamaCloudApiKey": "k"})
    assert cfg.provider == "ollama-cloud"
    assert cfg.api_key == "k"


def test_unknown_provider_is_logged() -> None:
    with capture_logs() as logs:
        _resolve({"aiProvider": "anthropic"})

    (entry,) = [e for e in logs if e["event"] == "unknown_provider"]
    assert entry["log_level"] == "warning"
    assert entry["provider"] == "anthropic"
    assert entry["fallback"] == "ollama-cloud"


def test_provider_id_is_case_sensitive() -> None:
    with capture_logs() as logs:
        cfg = _resolve({"aiProvider": "OpenAI", "openaiApiKey": "sk-test"})

    assert cfg.provider == "ollama-cloud"
    assert cfg.api_key == ""
    assert [e["provider"] for e in logs if e["event"] == "unknown_provider"] == ["OpenAI"]


def test_provider_id_is_trimmed() -> None:
    assert _resolve({"aiProvider": "  openai "}).provider == "openai"


def test_relative_host_falls_back_to_default() -> None:
    cfg = _resolve({"aiProvider": "ollama-local", "ollamaLocalHost": "localhost:11434"})
    assert cfg.host == "http://localhost:11434"


def test_repr_hides_api_key() -> None:
    cfg = _resolve({"aiProvider": "openai", "openaiApiKey": "sk-very-secret"})
    assert "sk-very-secret" not in repr(cfg)


def test_settings_accessor_reads_preference_keys() -> None:
    settings = Settings(AI_PROVIDER="openai", OPENAI_API_KEY="sk-env", OPENAI_MODEL="gpt-4.1-mini")
    cfg = ProviderConfigResolver(SettingsAccessor(settings)).resolve()
    assert cfg.provider == "openai"
    assert cfg.api_key == "sk-env"
    assert cfg.model == "gpt-4.1-mini"


def test_settings_accessor_unknown_key_returns_default() -> None:
    accessor = SettingsAccessor(Settings())
    assert accessor.get("theme", "system") == "system"
