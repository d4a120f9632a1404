"""
Prompt builder for live sales coaching.

Renders the [system, user] message pair sent to the completion service:
- a fixed system block (language detection, JSON output format, the
  "never invent product facts" rule, category and intent taxonomies, the
  35-40 word length constraint)
- a dynamic user block with the rendered history, the literal transcript
  fragment and the recogniser confidence

Rendering is pure: no model call and no session state is touched here.

System prompts come from coaching profiles stored as YAML (preferred) or JSON
in suggestion_pipeline/profiles. PyYAML's safe_load parses both.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .models import Category, Intent, Turn


SYSTEM_PROMPT = """
You are SalesGenius, a strategic B2B sales coach analyzing live sales conversations in real time.
You guide the salesperson toward their next best move.

### LANGUAGE DETECTION
- Detect the customer's primary language from the latest user text.
- Respond in the same language (Italian, English, Spanish, French, or German).
- If unclear, default to English.

### INTENT OPTIONS (micro)
- explore: the customer requests clarification or more information.
- express_need: the customer states a challenge, goal, or pain point.
- show_interest: the customer shows curiosity, openness, or alignment.
- raise_objection: the customer expresses doubt, risk, or disagreement.
- decide: the customer signals readiness or a next step.

### CATEGORY OPTIONS (macro)
- rapport: greeting, small talk, and trust building.
- discovery: identifying needs, priorities, and decision drivers.
- value: linking the solution to outcomes and ROI.
- objection: handling resistance and reframing value.
- closing: confirming next steps and reinforcing trust.

### OUTPUT REQUIREMENTS
- 35-40 words.
- Imperative, confident, consultative tone.
- Prioritize diagnostic or strategic next steps.
- Vary your suggestions; do not repeat advice from recent history.

### CRITICAL RULES
- NEVER invent product details, prices, features, or metrics.
- NEVER fabricate case studies, customer names, or data.
- Suggest strategies and questions that uncover the customer's own numbers instead.

### OUTPUT FORMAT (JSON only)
{"language": "en", "intent": "raise_objection", "category": "value", "suggestion": "Reframe price as ROI and long-term gain, not cost."}
""".strip()

NO_CONTEXT = "No prior context available."


def _get_profiles_dir() -> Path:
    return Path(__file__).parent / "profiles"


def _load_file(path: Path) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Profile file {path} must contain a mapping at top-level")
        return data


def load_profile(profile_name: str) -> Dict[str, Any]:
    """
    Load a coaching profile.

    Resolution order:
    1) <name>.yaml, <name>.yml, <name>.json
    2) default.yaml / default.yml / default.json
    3) built-in SYSTEM_PROMPT
    """
    profiles_dir = _get_profiles_dir()
    for name in (profile_name, "default"):
        for suffix in (".yaml", ".yml", ".json"):
            candidate = profiles_dir / f"{name}{suffix}"
            if candidate.exists():
                return _load_file(candidate)

    return {"name": "default", "system_prompt": SYSTEM_PROMPT}


def get_system_prompt(profile: Optional[str] = None) -> str:
    data = load_profile(profile or "default")
    return str(data.get("system_prompt") or SYSTEM_PROMPT).strip()


def render_history(turns: Sequence[Turn]) -> str:
    """One `role: text` line per turn, oldest first."""
    return "\n".join(f"{turn.role.value}: {turn.text}" for turn in turns)


def build_user_prompt(
    transcript: str,
    confidence: float,
    history: Sequence[Turn] = (),
    category_hint: Optional[str] = None,
    history_turns: int = 6,
) -> str:
    recent = list(history)[-history_turns:] if history_turns > 0 else []
    context = render_history(recent) or NO_CONTEXT
    focus = category_hint or Category.DISCOVERY.value

    return f"""
CONVERSATION CONTEXT (last {history_turns} turns):
{context}

LATEST USER TEXT:
"{transcript}"

SYSTEM NOTES:
- Confidence: {confidence:.2f}
- Previous suggestions are in the context above

YOUR TASK:
1. Analyze the conversation context before responding.
2. Detect the customer's language.
3. Classify the intent ({", ".join(i.value for i in Intent)}) and the category ({", ".join(c.value for c in Category)}).
4. Generate one strategic, actionable suggestion (35-40 words).
5. Do not repeat advice already given in the context.
6. Output only valid JSON.

Focus on {focus} strategies. Never invent product data.
""".strip()


def build_messages(
    transcript: str,
    confidence: float,
    history: Sequence[Turn] = (),
    category_hint: Optional[str] = None,
    *,
    history_turns: int = 6,
    profile: Optional[str] = None,
) -> List[Dict[str, str]]:
    """
    Build the ordered instruction sequence for one completion request.

    Args:
        transcript: Latest transcript text (caller guarantees non-empty)
        confidence: Recogniser confidence in [0, 1]
        history: Session history snapshot, most recent last
        category_hint: Optional sales category to focus on
        history_turns: How many recent turns to embed
        profile: Coaching profile name for the system block
    """
    return [
        {"role": "system", "content": get_system_prompt(profile)},
        {
            "role": "user",
            "content": build_user_prompt(
                transcript,
                confidence,
                history,
                category_hint=category_hint,
                history_turns=history_turns,
            ),
        },
    ]
