"""
Configuration management for the gateway.
Loads from environment variables with sensible defaults.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from suggestion_pipeline.config import _parse_int_env
from suggestion_pipeline.gate import GateConfig


def load_local_env() -> None:
    """Load .env_local / .env.local from the repository root (never overrides)."""
    root = Path(__file__).parent.parent
    for name in (".env_local", ".env.local"):
        p = root / name
        if p.exists():
            load_dotenv(p, override=False)


def _parse_float_env(key: str, default: float) -> float:
    value = (os.environ.get(key) or "").split("#")[0].strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class GatewayConfig:
    """Gateway configuration."""

    host: str = "0.0.0.0"
    port: int = 8080

    # Event store and identity provider; both optional (in-memory / demo otherwise)
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None

    # Accept connections without a token as demo sessions
    allow_demo: bool = True

    # Transcript gate
    gate: GateConfig = field(default_factory=GateConfig)

    # Transcript tail stored with each persisted suggestion
    context_chars: int = 500

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        load_local_env()
        return cls(
            host=os.environ.get("HOST", "0.0.0.0"),
            port=_parse_int_env("PORT", default=8080),
            supabase_url=os.environ.get("SUPABASE_URL") or None,
            supabase_service_key=os.environ.get("SUPABASE_SERVICE_KEY") or None,
            allow_demo=os.environ.get("ALLOW_DEMO", "true").strip().lower() in ("1", "true", "yes"),
            gate=GateConfig(
                min_confidence=_parse_float_env("GATE_MIN_CONFIDENCE", 0.7),
                min_buffer_chars=_parse_int_env("GATE_MIN_BUFFER_CHARS", default=50),
                debounce_ms=_parse_int_env("GATE_DEBOUNCE_MS", default=3000),
                buffer_max_chars=_parse_int_env("GATE_BUFFER_MAX_CHARS", default=1000),
                buffer_keep_chars=_parse_int_env("GATE_BUFFER_KEEP_CHARS", default=800),
            ),
            context_chars=_parse_int_env("CONTEXT_CHARS", default=500),
        )


def get_config() -> GatewayConfig:
    """Get or create global config instance."""
    global _config
    if _config is None:
        _config = GatewayConfig.from_env()
    return _config


# Global config instance (lazy loaded)
_config: Optional[GatewayConfig] = None
