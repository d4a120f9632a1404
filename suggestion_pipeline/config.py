"""
Suggestion pipeline configuration.

Loads model credentials and pipeline tuning from environment variables.
"""
import os
from dataclasses import dataclass
from typing import Optional


def _parse_int_env(key: str, default: int) -> int:
    """
    Parse integer environment variable, stripping comments and whitespace.

    Handles cases like:
    - "8000  # comment" -> 8000
    - "8000" -> 8000
    - None -> default
    """
    value = os.environ.get(key)
    if not value:
        return default

    if "#" in value:
        value = value.split("#")[0]

    value = value.strip()

    if not value:
        return default

    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class PipelineConfig:
    """Suggestion pipeline configuration."""

    # OpenAI-compatible completion service
    openai_api_key: str
    openai_base_url: Optional[str] = None

    # Quality tier: "fast" | "balanced" | "premium"
    quality_mode: str = "balanced"

    # Prompt profile name (see suggestion_pipeline/profiles)
    prompt_profile: str = "default"

    # Hard bound on one completion call
    completion_timeout_ms: int = 8000

    # Dedup cache
    dedup_ttl_ms: int = 30000
    fingerprint_prefix_chars: int = 60

    # History: buffer keeps 2 x max_history turns, prompt sees the last N
    max_history: int = 10
    prompt_history_turns: int = 6

    # Gap between suggestion.delta messages
    delta_pacing_ms: int = 50

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Load configuration from environment variables."""
        return cls(
            openai_api_key=os.environ["OPENAI_API_KEY"],
            openai_base_url=os.environ.get("OPENAI_BASE_URL") or None,
            quality_mode=os.environ.get("QUALITY_MODE", "balanced").strip().lower(),
            prompt_profile=os.environ.get("PROMPT_PROFILE", "default"),
            completion_timeout_ms=_parse_int_env("COMPLETION_TIMEOUT_MS", default=8000),
            dedup_ttl_ms=_parse_int_env("DEDUP_TTL_MS", default=30000),
            fingerprint_prefix_chars=_parse_int_env("FINGERPRINT_PREFIX_CHARS", default=60),
            max_history=_parse_int_env("MAX_HISTORY", default=10),
            prompt_history_turns=_parse_int_env("PROMPT_HISTORY_TURNS", default=6),
            delta_pacing_ms=_parse_int_env("DELTA_PACING_MS", default=50),
        )


def get_config() -> PipelineConfig:
    """Get or create global config instance."""
    global _config
    if _config is None:
        _config = PipelineConfig.from_env()
    return _config


# Global config instance (lazy loaded)
_config: Optional[PipelineConfig] = None
