"""
Quality presets: named tiers controlling model choice and generation parameters.

The table is process-wide and immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from logging_setup import Component, get_logger

logger = get_logger(Component.COMPLETION)


@dataclass(frozen=True)
class QualityPreset:
    name: str
    model_id: str
    temperature: float
    max_tokens: int
    presence_penalty: float
    frequency_penalty: float


QUALITY_PRESETS: Mapping[str, QualityPreset] = MappingProxyType({
    "fast": QualityPreset(
        name="fast",
        model_id="gpt-4o-mini",
        temperature=0.7,
        max_tokens=200,
        presence_penalty=0.3,
        frequency_penalty=0.3,
    ),
    "balanced": QualityPreset(
        name="balanced",
        model_id="gpt-4o-mini",
        temperature=0.8,
        max_tokens=250,
        presence_penalty=0.4,
        frequency_penalty=0.4,
    ),
    "premium": QualityPreset(
        name="premium",
        model_id="gpt-4o",
        temperature=0.9,
        max_tokens=300,
        presence_penalty=0.5,
        frequency_penalty=0.5,
    ),
})

DEFAULT_PRESET = "balanced"


def get_preset(name: Optional[str] = None) -> QualityPreset:
    """Resolve a preset by name; unknown or missing names fall back to balanced."""
    key = (name or DEFAULT_PRESET).strip().lower()
    preset = QUALITY_PRESETS.get(key)
    if preset is None:
        logger.warning("Unknown quality mode, using default", quality_mode=name, default=DEFAULT_PRESET)
        return QUALITY_PRESETS[DEFAULT_PRESET]
    return preset
