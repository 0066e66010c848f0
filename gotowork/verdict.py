"""Extract a ``{"should_continue": bool}`` verdict from free-form model output."""

import json
import re

_THINKING_TAGS = ("think", "thinking", "reasoning", "thought", "reflection")
_THINKING_BLOCK = re.compile(
    r"<(%s)>.*?</\1>" % "|".join(_THINKING_TAGS),
    re.IGNORECASE | re.DOTALL,
)


def strip_thinking(text: str) -> str:
    """Remove <think>...</think> style reasoning blocks some models emit."""
    return _THINKING_BLOCK.sub("", text).strip()


def last_json_object(text: str) -> str | None:
    """Return the last balanced {...} span in text, or None."""
    depth = 0
    end: int | None = None
    for i in range(len(text) - 1, -1, -1):
        char = text[i]
        if char == "}":
            if depth == 0:
                end = i + 1
            depth += 1
        elif char == "{" and end is not None:
            depth -= 1
            if depth == 0:
                return text[i:end]
    return None


def _load(candidate: str | None) -> dict | None:
    if not candidate:
        return None
    try:
        obj = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if isinstance(obj, dict) and isinstance(obj.get("should_continue"), bool):
        return obj
    return None


def parse_verdict(content: str) -> dict | None:
    """Parse a model reply into a verdict dict, or None if it carries none.

    Tries, in order: the reply as-is, the reply with reasoning blocks
    removed, the last JSON object of the cleaned reply, and the last JSON
    object of the original reply.
    """
    cleaned = strip_thinking(content)
    for candidate in (
        content.strip(),
        cleaned,
        last_json_object(cleaned),
        last_json_object(content),
    ):
        verdict = _load(candidate)
        if verdict is not None:
            return verdict
    return None
