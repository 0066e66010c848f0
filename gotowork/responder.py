"""Render a Decision into the hook response the caller expects on stdout."""

import json
from typing import TextIO

from gotowork.models import Decision


def render(decision: Decision) -> dict:
    """Empty object allows the stop; a block carries the reason shown to the agent."""
    if not decision.should_continue:
        return {}
    return {"decision": "block", "reason": decision.reason}


def emit(decision: Decision, stream: TextIO) -> None:
    stream.write(json.dumps(render(decision), ensure_ascii=False) + "\n")
    stream.flush()
