"""Pure dataclasses for the stop-hook decision pipeline. No logic, no deps."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class HookEvent:
    session_id: str
    transcript_path: str | None
    loop_guard_active: bool = False  # "stop_hook_active" in the caller's payload
    cwd: str | None = None
    hook_event_name: str | None = None


@dataclass(frozen=True)
class RecordError:
    type: str
    status_code: int | None = None
    message: str = ""


@dataclass(frozen=True)
class ConversationRecord:
    role: str              # "user", "assistant", "system", "error", ...
    content: str
    stop_reason: str | None = None
    error: RecordError | None = None
    timestamp: str | None = None
    raw: str = ""          # original JSON line


class SignalKind(Enum):
    FATAL = "fatal"
    RETRYABLE = "retryable"
    NORMAL = "normal"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorSignal:
    kind: SignalKind
    reason: str = ""
    skip_wait: bool = False  # output truncation: nothing upstream needs time to recover


@dataclass(frozen=True)
class ProviderVote:
    provider_id: str
    model_id: str
    should_continue: bool
    rationale: str | None = None
    latency_sec: float = 0.0


@dataclass(frozen=True)
class Decision:
    should_continue: bool
    wait_seconds: int
    reason: str
