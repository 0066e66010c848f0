"""Bounded transcript tail reading and record normalisation."""

import json
import logging
import re
from pathlib import Path

from config.config_loader import DEFAULT_MAX_RECORDS, DEFAULT_TAIL_BYTES, expand_path
from gotowork.models import ConversationRecord, RecordError

logger = logging.getLogger(__name__)

_API_ERROR_STATUS = re.compile(r"API Error:\s*(\d{3})\b")


class TranscriptUnreadable(Exception):
    """Raised when the transcript path does not exist or cannot be read."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


def _block_text(block: object) -> str:
    if isinstance(block, str):
        return block
    if not isinstance(block, dict):
        return ""
    block_type = block.get("type")
    if block_type == "text":
        return str(block.get("text", ""))
    if block_type == "tool_use":
        return f"[tool_use: {block.get('name', '?')}]"
    if block_type == "tool_result":
        return _content_text(block.get("content", ""))
    # thinking, image, and anything newer carry nothing worth classifying
    return ""


def _content_text(content: object) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(t for t in (_block_text(b) for b in content) if t)
    return ""


def _status_code(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _parse_error(obj: dict, content: str) -> RecordError | None:
    error = obj.get("error")
    if isinstance(error, dict):
        # {"error": {"error": {"type": ...}}} is how some SDKs wrap API errors
        inner = error.get("error")
        if isinstance(inner, dict) and "type" in inner and "type" not in error:
            error = {**inner, **{k: v for k, v in error.items() if k != "error"}}
        return RecordError(
            type=str(error.get("type") or error.get("code") or "error"),
            status_code=_status_code(error.get("status_code", error.get("status"))),
            message=str(error.get("message", "")),
        )
    if isinstance(error, str) and error:
        return RecordError(
            type=error,
            status_code=_status_code(obj.get("status_code")),
            message=content,
        )
    if obj.get("isApiErrorMessage") or obj.get("type") == "error":
        match = _API_ERROR_STATUS.search(content)
        return RecordError(
            type="api_error",
            status_code=_status_code(obj.get("status_code")) or (int(match.group(1)) if match else None),
            message=content,
        )
    return None


def parse_record(line: str) -> ConversationRecord | None:
    """Normalise one transcript line. Returns None for lines that are not JSON objects.

    Accepts both the flat shape ({role, content, stop_reason, error}) and
    the Claude Code shape ({type, message: {role, content, stop_reason}}).
    """
    try:
        obj = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(obj, dict):
        return None

    message = obj.get("message")
    if not isinstance(message, dict):
        message = {}

    role = message.get("role") or obj.get("role") or obj.get("type") or "unknown"
    content = _content_text(message["content"] if "content" in message else obj.get("content", ""))
    stop_reason = message.get("stop_reason") or obj.get("stop_reason")

    return ConversationRecord(
        role=str(role),
        content=content,
        stop_reason=str(stop_reason) if stop_reason else None,
        error=_parse_error(obj, content),
        timestamp=str(obj["timestamp"]) if obj.get("timestamp") else None,
        raw=line,
    )


def read_transcript_tail(
    path: str | Path,
    tail_bytes: int = DEFAULT_TAIL_BYTES,
    max_records: int = DEFAULT_MAX_RECORDS,
) -> list[ConversationRecord]:
    """Return the last max_records records found in the last tail_bytes of the file.

    The first line of a mid-file window and an unterminated final line are
    both partial and dropped. Lines that do not parse are skipped.

    Raises:
        TranscriptUnreadable: If the file is missing or cannot be read.
    """
    transcript = expand_path(path)
    try:
        with transcript.open("rb") as f:
            size = f.seek(0, 2)
            start = max(0, size - tail_bytes)
            f.seek(start)
            # Only the window sized above, even if the file grows meanwhile
            data = f.read(size - start)
    except OSError as exc:
        raise TranscriptUnreadable(transcript, exc.strerror or str(exc)) from exc

    lines = data.decode("utf-8", errors="replace").split("\n")
    # Last element is "" when the file ends with a newline, else a partial write
    lines = lines[:-1]
    if start > 0 and lines:
        lines = lines[1:]

    records: list[ConversationRecord] = []
    skipped = 0
    for line in lines:
        line = line.strip()
        if not line:
            continue
        record = parse_record(line)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.debug("Skipped %d unparseable transcript lines in %s", skipped, transcript)
    logger.debug("Read %d records from last %d bytes of %s", len(records), size - start, transcript)
    return records[-max_records:]


def format_transcript(records: list[ConversationRecord], max_records: int = DEFAULT_MAX_RECORDS) -> str:
    """Render the most recent records as plain text for provider prompts."""
    parts: list[str] = []
    for record in records[-max_records:]:
        if record.error is not None:
            status = f" ({record.error.status_code})" if record.error.status_code else ""
            detail = f" {record.error.message}" if record.error.message else ""
            parts.append(f"[Error: {record.error.type}{status}{detail}]")
            continue
        if record.role == "user" and record.content:
            parts.append(f"User: {record.content}")
        elif record.role == "assistant":
            if record.content:
                parts.append(f"Assistant: {record.content}")
            if record.stop_reason:
                parts.append(f"[stop_reason: {record.stop_reason}]")
    return "\n".join(parts)
