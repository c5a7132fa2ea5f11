"""
Read normalized event batches and write reports as JSON.

The batch document is the boundary between the log parsers (which know
about Claude JSONL files, `git log --numstat` output and shell history
formats) and the engine, which only sees normalized records:

    {
      "shell_commands": [{"text": "cargo build", "timestamp": "2026-02-17T10:00:00Z"}],
      "conversations": [{"id": "...", "start": "...", "end": "...",
                         "message_count": 12, "tool_use_count": 6,
                         "project_path": "/home/bob/proj"}],
      "commits": [{"hash": "...", "timestamp": "...", "insertions": 10,
                   "deletions": 2, "files_changed": 1,
                   "language_breakdown": {"Rust": 12}}]
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .events import AIConversation, Commit, ShellCommand, ensure_utc

logger = logging.getLogger(__name__)


class BatchFormatError(ValueError):
    """A batch document could not be turned into events."""


@dataclass
class EventBatch:
    """The three normalized streams of one analysis run, each sorted by time."""

    shell_commands: list[ShellCommand] = field(default_factory=list)
    conversations: list[AIConversation] = field(default_factory=list)
    commits: list[Commit] = field(default_factory=list)


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing Z and naive values mean UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"expected ISO-8601 string, got {value!r}")
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _shell_command(raw: dict) -> ShellCommand:
    ts = raw.get("timestamp")
    return ShellCommand.from_text(raw["text"], parse_timestamp(ts) if ts else None)


def _conversation(raw: dict) -> AIConversation:
    return AIConversation(
        id=str(raw["id"]),
        start=parse_timestamp(raw["start"]),
        end=parse_timestamp(raw["end"]),
        message_count=int(raw.get("message_count", 0)),
        tool_use_count=int(raw.get("tool_use_count", 0)),
        project_path=raw.get("project_path", ""),
    )


def _commit(raw: dict) -> Commit:
    return Commit(
        hash=str(raw["hash"]),
        timestamp=parse_timestamp(raw["timestamp"]),
        insertions=int(raw.get("insertions", 0)),
        deletions=int(raw.get("deletions", 0)),
        files_changed=int(raw.get("files_changed", 0)),
        language_breakdown={
            str(lang): int(lines) for lang, lines in (raw.get("language_breakdown") or {}).items()
        },
        author=raw.get("author", ""),
        message=raw.get("message", ""),
    )


def _parse_stream(data: dict, key: str, parse) -> list:
    records = data.get(key) or []
    if not isinstance(records, list):
        raise BatchFormatError(f"{key}: expected a list, got {type(records).__name__}")
    parsed = []
    for idx, raw in enumerate(records):
        try:
            parsed.append(parse(raw))
        except (KeyError, TypeError, ValueError) as e:
            raise BatchFormatError(f"{key}[{idx}]: {e}") from e
    return parsed


def batch_from_dict(data: dict) -> EventBatch:
    """
    Build an EventBatch from a decoded batch document.

    Streams are sorted by time; commands without a timestamp keep their
    position relative to each other.

    Raises:
        BatchFormatError: If a stream or record is malformed
    """
    if not isinstance(data, dict):
        raise BatchFormatError(f"expected a JSON object, got {type(data).__name__}")

    commands = _parse_stream(data, "shell_commands", _shell_command)
    conversations = _parse_stream(data, "conversations", _conversation)
    commits = _parse_stream(data, "commits", _commit)

    # Untimestamped shell history stays in file order.
    if all(c.timestamp is not None for c in commands):
        commands.sort(key=lambda c: c.timestamp)
    conversations.sort(key=lambda c: c.start)
    commits.sort(key=lambda c: c.timestamp)

    logger.debug(
        "Loaded batch: %d commands, %d conversations, %d commits",
        len(commands),
        len(conversations),
        len(commits),
    )
    return EventBatch(shell_commands=commands, conversations=conversations, commits=commits)


def load_batch(path: Path) -> EventBatch:
    """Load a batch document from a JSON file."""
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise BatchFormatError(f"{path}: invalid JSON: {e}") from e
    return batch_from_dict(data)


def to_jsonable(obj: Any) -> Any:
    """Convert report objects to JSON-compatible data.

    Dataclass fields become dicts, enums their values, datetimes ISO strings.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def dump_report(report: Any, path: Optional[Path] = None, indent: int = 2) -> str:
    """Serialize a report to JSON, optionally writing it to a file."""
    text = json.dumps(to_jsonable(report), indent=indent)
    if path is not None:
        path.write_text(text + "\n")
    return text
