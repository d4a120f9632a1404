"""
Completion invoker.

Issues exactly one completion request per suggestion cycle, bounded by a hard
timeout, and turns the model's text into a validated structured result.

Timeout handling: the request runs as a task under asyncio.wait_for. When the
timer wins, the task is cancelled and CompletionTimeout is raised, so a late
response can never be delivered after the timeout has been reported. No
retries are performed, neither here nor in the client (max_retries=0).
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, ValidationError

from logging_setup import Component, get_logger

from .errors import CompletionServiceError, CompletionTimeout, MalformedModelOutput, PipelineError
from .models import (
    DEFAULT_CATEGORY,
    DEFAULT_INTENT,
    DEFAULT_LANGUAGE,
    Category,
    Intent,
    Suggestion,
)
from .presets import QualityPreset

logger = get_logger(Component.COMPLETION)


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    messages: Sequence[Dict[str, str]]
    temperature: float
    max_tokens: int
    presence_penalty: float
    frequency_penalty: float

    @classmethod
    def from_preset(cls, preset: QualityPreset, messages: Sequence[Dict[str, str]]) -> "CompletionRequest":
        return cls(
            model=preset.model_id,
            messages=messages,
            temperature=preset.temperature,
            max_tokens=preset.max_tokens,
            presence_penalty=preset.presence_penalty,
            frequency_penalty=preset.frequency_penalty,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": list(self.messages),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
            "response_format": {"type": "json_object"},
        }


class CompletionClient(Protocol):
    """Completion service boundary: one structured text payload per call."""

    async def complete(self, request: CompletionRequest) -> str: ...


class OpenAICompletionClient:
    """OpenAI chat-completions client in JSON-object mode."""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        *,
        client: Optional[AsyncOpenAI] = None,
    ):
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    async def complete(self, request: CompletionRequest) -> str:
        t_start = time.perf_counter()
        response = await self._client.chat.completions.create(**request.to_payload())
        usage = getattr(response, "usage", None)
        logger.debug(
            "Completion response received",
            model=request.model,
            tokens_used=getattr(usage, "total_tokens", None),
            latency_ms=int((time.perf_counter() - t_start) * 1000),
        )
        if not response.choices:
            return "{}"
        return response.choices[0].message.content or "{}"

    async def aclose(self) -> None:
        await self._client.close()


class ModelOutput(BaseModel):
    """Structured model result; every field is optional until defaulting."""

    model_config = ConfigDict(extra="ignore")

    category: Optional[str] = None
    suggestion: Optional[str] = None
    intent: Optional[str] = None
    language: Optional[str] = None


def parse_model_output(raw: str) -> ModelOutput:
    """Parse the model's text. Anything but a JSON object of strings is malformed."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedModelOutput(raw, reason="invalid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedModelOutput(raw, reason="expected a JSON object")
    try:
        return ModelOutput.model_validate(data)
    except ValidationError as exc:
        raise MalformedModelOutput(raw, reason="unexpected field types") from exc


_CATEGORIES = frozenset(c.value for c in Category)
_INTENTS = frozenset(i.value for i in Intent)


def _normalize_choice(value: Optional[str], allowed: frozenset, default: str, field: str) -> str:
    candidate = (value or "").strip().lower()
    if candidate in allowed:
        return candidate
    if candidate:
        logger.warning(
            "Unrecognised value from model, using default",
            field=field,
            value=value,
            default=default,
        )
    return default


def resolve_suggestion(output: ModelOutput, suggestion_id: str) -> Optional[Suggestion]:
    """
    Apply the defaulting policy in one step.

    Returns None when the suggestion text is missing or blank (the suppressed
    outcome). Whitespace in the text is collapsed to single spaces.
    """
    text = " ".join((output.suggestion or "").split())
    if not text:
        return None
    return Suggestion(
        id=suggestion_id,
        category=_normalize_choice(output.category, _CATEGORIES, DEFAULT_CATEGORY.value, "category"),
        intent=_normalize_choice(output.intent, _INTENTS, DEFAULT_INTENT.value, "intent"),
        language=(output.language or "").strip() or DEFAULT_LANGUAGE,
        text=text,
    )


class CompletionInvoker:
    def __init__(self, client: CompletionClient, timeout_ms: int = 8000):
        self.client = client
        self.timeout_ms = timeout_ms

    async def invoke(
        self,
        messages: List[Dict[str, str]],
        preset: QualityPreset,
    ) -> ModelOutput:
        """
        Run one completion request against the timeout.

        Raises:
            CompletionTimeout: the timer won; the request task was cancelled
            MalformedModelOutput: the response was not a structured object
            CompletionServiceError: the service call itself failed
        """
        request = CompletionRequest.from_preset(preset, messages)
        try:
            raw = await asyncio.wait_for(
                self.client.complete(request),
                timeout=self.timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            raise CompletionTimeout(self.timeout_ms) from None
        except PipelineError:
            raise
        except Exception as exc:
            raise CompletionServiceError(str(exc) or type(exc).__name__, original=exc) from exc

        return parse_model_output(raw)
