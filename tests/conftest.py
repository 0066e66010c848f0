"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, EndpointConfig, ProviderConfig
from gotowork.models import ConversationRecord, HookEvent, ProviderVote, RecordError
from gotowork.providers.base import AIProvider


def user(content: str) -> dict:
    return {"type": "user", "message": {"role": "user", "content": content}}


def assistant(text: str, stop_reason: str | None = None) -> dict:
    return {
        "type": "assistant",
        "message": {
            "role": "assistant",
            "content": [{"type": "text", "text": text}],
            "stop_reason": stop_reason,
        },
    }


def api_error(error_type: str, status_code: int | None = None, message: str = "") -> dict:
    error: dict = {"type": error_type, "message": message}
    if status_code is not None:
        error["status_code"] = status_code
    return {"type": "assistant", "isApiErrorMessage": True, "error": error,
            "message": {"role": "assistant", "content": message}}


def record(
    content: str = "",
    role: str = "assistant",
    stop_reason: str | None = None,
    error: RecordError | None = None,
    raw: str | None = None,
) -> ConversationRecord:
    return ConversationRecord(
        role=role,
        content=content,
        stop_reason=stop_reason,
        error=error,
        raw=raw if raw is not None else json.dumps({"role": role, "content": content}),
    )


@pytest.fixture
def write_transcript(tmp_path: Path):
    """Write JSON-lines entries to a transcript file and return its path."""

    def _write(entries: list[dict | str], name: str = "session.jsonl", trailing_newline: bool = True) -> Path:
        lines = [e if isinstance(e, str) else json.dumps(e) for e in entries]
        text = "\n".join(lines) + ("\n" if trailing_newline else "")
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_endpoint() -> EndpointConfig:
    return EndpointConfig(
        provider="openai",
        api_base="https://api.example.com/v1",
        api_key="sk-test",
        model="gpt-4o-mini",
        timeout_sec=30,
    )


@pytest.fixture
def sample_app_config(tmp_path: Path) -> AppConfig:
    provider = ProviderConfig(
        name="openai",
        api_base="https://api.example.com/v1",
        api_key="sk-test",
        models=("gpt-4o-mini", "gpt-4o"),
        timeout_sec=30,
    )
    return AppConfig(
        providers=(provider,),
        source_path=tmp_path / "config.yaml",
        available_providers=frozenset({"openai"}),
    )


@pytest.fixture
def sample_event() -> HookEvent:
    return HookEvent(session_id="abc123", transcript_path="/tmp/session.jsonl")


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", should_continue: bool = True, rationale: str = "Mock reason") -> None:
        self._name = provider_name
        self._should_continue = should_continue
        self._rationale = rationale
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because judge is defined in the class body below.
        self.judge = AsyncMock(  # type: ignore[assignment]
            return_value=ProviderVote(
                provider_id=provider_name,
                model_id="mock-model",
                should_continue=should_continue,
                rationale=rationale,
                latency_sec=0.1,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def judge(self, system_prompt: str, transcript_text: str) -> ProviderVote:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ProviderVote(self._name, "mock-model", self._should_continue, self._rationale, 0.1)


def vote(should_continue: bool, name: str = "mock", rationale: str | None = None) -> ProviderVote:
    return ProviderVote(provider_id=name, model_id="mock-model", should_continue=should_continue, rationale=rationale)
