"""Tests for gotowork/responder.py."""

import io
import json

from gotowork.models import Decision
from gotowork.responder import emit, render


def test_stop_renders_empty_object():
    assert render(Decision(False, 0, "Turn ended cleanly")) == {}


def test_continue_renders_block_with_reason():
    assert render(Decision(True, 30, "Transient API error: HTTP 529")) == {
        "decision": "block",
        "reason": "Transient API error: HTTP 529",
    }


def test_emit_writes_single_json_line():
    stream = io.StringIO()
    emit(Decision(True, 0, "Output truncated (max_tokens)"), stream)
    output = stream.getvalue()
    assert output.endswith("\n")
    assert output.count("\n") == 1
    assert json.loads(output)["decision"] == "block"


def test_emit_keeps_unicode():
    stream = io.StringIO()
    emit(Decision(True, 0, "AI: 任务未完成"), stream)
    assert "任务未完成" in stream.getvalue()
