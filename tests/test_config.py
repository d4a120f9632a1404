"""
Configuration loading tests.
"""
import pytest

from gateway.config import GatewayConfig
from suggestion_pipeline.config import PipelineConfig

PIPELINE_VARS = [
    "OPENAI_BASE_URL", "QUALITY_MODE", "PROMPT_PROFILE", "COMPLETION_TIMEOUT_MS",
    "DEDUP_TTL_MS", "FINGERPRINT_PREFIX_CHARS", "MAX_HISTORY", "PROMPT_HISTORY_TURNS",
    "DELTA_PACING_MS",
]
GATEWAY_VARS = [
    "HOST", "PORT", "SUPABASE_URL", "SUPABASE_SERVICE_KEY", "ALLOW_DEMO",
    "GATE_MIN_CONFIDENCE", "GATE_MIN_BUFFER_CHARS", "GATE_DEBOUNCE_MS",
    "GATE_BUFFER_MAX_CHARS", "GATE_BUFFER_KEEP_CHARS", "CONTEXT_CHARS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in PIPELINE_VARS + GATEWAY_VARS:
        monkeypatch.delenv(var, raising=False)


def test_pipeline_config_defaults(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    config = PipelineConfig.from_env()

    assert config.openai_api_key == "sk-test"
    assert config.openai_base_url is None
    assert config.quality_mode == "balanced"
    assert config.prompt_profile == "default"
    assert config.completion_timeout_ms == 8000
    assert config.dedup_ttl_ms == 30000
    assert config.fingerprint_prefix_chars == 60
    assert config.max_history == 10
    assert config.prompt_history_turns == 6
    assert config.delta_pacing_ms == 50


def test_pipeline_config_from_env_all_fields(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:11434/v1")
    monkeypatch.setenv("QUALITY_MODE", " Premium ")
    monkeypatch.setenv("PROMPT_PROFILE", "saas")
    monkeypatch.setenv("COMPLETION_TIMEOUT_MS", "5000  # shorter in staging")
    monkeypatch.setenv("DEDUP_TTL_MS", "10000")
    monkeypatch.setenv("MAX_HISTORY", "4")
    monkeypatch.setenv("DELTA_PACING_MS", "0")

    config = PipelineConfig.from_env()

    assert config.openai_base_url == "http://localhost:11434/v1"
    assert config.quality_mode == "premium"
    assert config.prompt_profile == "saas"
    assert config.completion_timeout_ms == 5000
    assert config.dedup_ttl_ms == 10000
    assert config.max_history == 4
    assert config.delta_pacing_ms == 0


def test_pipeline_config_invalid_int_uses_default(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("COMPLETION_TIMEOUT_MS", "soon")

    assert PipelineConfig.from_env().completion_timeout_ms == 8000


def test_pipeline_config_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(KeyError):
        PipelineConfig.from_env()


def test_gateway_config_defaults():
    config = GatewayConfig.from_env()

    assert config.port == 8080
    assert config.allow_demo is True
    assert config.supabase_enabled is False
    assert config.gate.min_confidence == 0.7
    assert config.gate.min_buffer_chars == 50
    assert config.gate.debounce_ms == 3000
    assert config.gate.buffer_max_chars == 1000
    assert config.gate.buffer_keep_chars == 800
    assert config.context_chars == 500


def test_gateway_config_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")
    monkeypatch.setenv("ALLOW_DEMO", "false")
    monkeypatch.setenv("GATE_MIN_CONFIDENCE", "0.5")
    monkeypatch.setenv("GATE_DEBOUNCE_MS", "1000")

    config = GatewayConfig.from_env()

    assert config.port == 9000
    assert config.supabase_enabled is True
    assert config.allow_demo is False
    assert config.gate.min_confidence == 0.5
    assert config.gate.debounce_ms == 1000
