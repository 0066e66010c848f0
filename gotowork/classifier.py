"""Priority-ordered error classifier over the most recent transcript records.

Each detector is a pure function ``records -> ErrorSignal | None``; the first
one that returns a signal wins. Detectors further down the chain match more
loosely, so they look at fewer records.
"""

import logging
import re
from collections.abc import Callable

from gotowork.models import ConversationRecord, ErrorSignal, SignalKind

logger = logging.getLogger(__name__)

CLEAN_END_STOP_REASON = "end_turn"

STRUCTURED_WINDOW = 5
RAW_TEXT_WINDOW = 8

FATAL_ERROR_TYPES = frozenset({
    "context_length_exceeded",
    "model_context_window_exceeded",
    "prompt_too_long",
    "insufficient_quota",
    "billing_error",
    "credit_balance_too_low",
    "spending_limit_exceeded",
})
FATAL_STOP_REASONS = frozenset({"model_context_window_exceeded"})
FATAL_PHRASES = (
    "prompt is too long",
    "maximum context length",
    "context length exceeded",
    "context_length_exceeded",
    "credit balance is too low",
    "spending limit",
    "cost limit",
)

RETRYABLE_ERROR_TYPES = frozenset({
    "rate_limit_error",
    "rate_limit_exceeded",
    "overloaded_error",
    "resource_exhausted",
    "quota_exceeded",
    "unavailable",
    "service_unavailable",
})
TRUNCATION_MARKERS = frozenset({"max_tokens", "max_output_tokens", "output_truncated"})
RETRYABLE_STATUS_CODES = frozenset({429, 503, 529})

RETRYABLE_PHRASES = (
    "rate limit",
    "rate_limit",
    "overloaded",
    "resource_exhausted",
    "service unavailable",
    "api error: 429",
    "api error: 503",
    "api error: 529",
    "econnreset",
    "socket hang up",
    "fetch failed",
    "request timed out",
)
TRUNCATION_PHRASES = (
    "max_tokens",
    "output token maximum",
    "response was truncated",
)

_STATUS_IN_TEXT = re.compile(r"\b(429|503|529)\b")

Detector = Callable[[list[ConversationRecord]], ErrorSignal | None]


def _is_error_bearing(record: ConversationRecord) -> bool:
    return (
        record.error is not None
        or record.role == "error"
        or record.content.lstrip().startswith("API Error")
    )


def _check_fatal(records: list[ConversationRecord]) -> ErrorSignal | None:
    for record in reversed(records):
        if record.error is not None and record.error.type.lower() in FATAL_ERROR_TYPES:
            return ErrorSignal(SignalKind.FATAL, f"Unrecoverable error: {record.error.type}")
        if record.stop_reason in FATAL_STOP_REASONS:
            return ErrorSignal(SignalKind.FATAL, f"Unrecoverable stop: {record.stop_reason}")
        if _is_error_bearing(record):
            text = " ".join(
                filter(None, [record.content, record.error.message if record.error else ""])
            ).lower()
            for phrase in FATAL_PHRASES:
                if phrase in text:
                    return ErrorSignal(SignalKind.FATAL, f"Unrecoverable error: {phrase}")
    return None


def _check_boundary(records: list[ConversationRecord]) -> ErrorSignal | None:
    if records[-1].stop_reason == CLEAN_END_STOP_REASON:
        return ErrorSignal(SignalKind.NORMAL, "Turn ended cleanly")
    return None


def _check_structured(records: list[ConversationRecord]) -> ErrorSignal | None:
    for record in reversed(records[-STRUCTURED_WINDOW:]):
        error_type = record.error.type.lower() if record.error is not None else ""
        if error_type in TRUNCATION_MARKERS or record.stop_reason in TRUNCATION_MARKERS:
            return ErrorSignal(
                SignalKind.RETRYABLE,
                f"Output truncated ({error_type or record.stop_reason})",
                skip_wait=True,
            )
        if error_type in RETRYABLE_ERROR_TYPES:
            return ErrorSignal(SignalKind.RETRYABLE, f"Transient API error: {record.error.type}")
    return None


def _check_http_status(records: list[ConversationRecord]) -> ErrorSignal | None:
    for record in reversed(records[-STRUCTURED_WINDOW:]):
        if record.error is None:
            continue
        status = record.error.status_code
        if status is None:
            match = _STATUS_IN_TEXT.search(record.error.message)
            status = int(match.group(1)) if match else None
        if status in RETRYABLE_STATUS_CODES:
            return ErrorSignal(SignalKind.RETRYABLE, f"Transient API error: HTTP {status}")
    return None


def _raw_error_text(record: ConversationRecord) -> str:
    """Text the raw-text fallback may search, or "" for conversational records."""
    if _is_error_bearing(record):
        return f"{record.content}\n{record.raw}".lower()
    # System and progress lines carry their text only in the raw JSON
    if record.role not in ("user", "assistant") and not record.content.strip():
        return record.raw.lower()
    return ""


def _check_raw_text(records: list[ConversationRecord]) -> ErrorSignal | None:
    # Structured errors already had their say; raw matching would only add noise
    if any(r.error is not None for r in records[-STRUCTURED_WINDOW:]):
        return None
    for record in reversed(records[-RAW_TEXT_WINDOW:]):
        text = _raw_error_text(record)
        if not text:
            continue
        for phrase in TRUNCATION_PHRASES:
            if phrase in text:
                return ErrorSignal(SignalKind.RETRYABLE, f"Output truncated ({phrase})", skip_wait=True)
        for phrase in RETRYABLE_PHRASES:
            if phrase in text:
                return ErrorSignal(SignalKind.RETRYABLE, f"Transient API error: {phrase}")
    return None


DETECTORS: tuple[Detector, ...] = (
    _check_fatal,
    _check_boundary,
    _check_structured,
    _check_http_status,
    _check_raw_text,
)


def classify(
    records: list[ConversationRecord],
    detectors: tuple[Detector, ...] = DETECTORS,
) -> ErrorSignal:
    """Run the detector chain and return the first signal, or UNKNOWN."""
    if not records:
        return ErrorSignal(SignalKind.UNKNOWN, "Empty transcript")
    for detector in detectors:
        signal = detector(records)
        if signal is not None:
            logger.debug("%s -> %s (%s)", detector.__name__, signal.kind.value, signal.reason)
            return signal
    return ErrorSignal(SignalKind.UNKNOWN, "No known error pattern")
