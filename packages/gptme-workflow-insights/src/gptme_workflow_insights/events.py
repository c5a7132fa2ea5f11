"""
Normalized event records consumed by the correlation engine.

Shell commands, AI conversations and commits are produced by external
parsers and handed over already sorted by time. Struggle episodes are
created by the struggle detector. None of these records are mutated after
construction; everything the engine derives lives in separate report types.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

# Case-sensitive substrings that mark a command line as likely failing.
ERROR_LIKE_PATTERNS: tuple[str, ...] = (
    "npm ERR",
    "error:",
    "Error:",
    "ERROR:",
    "fatal:",
    "FAILED",
    "failed",
    "cargo build",  # usually followed by errors in the next command
    "cargo test",
    "npm install",
    "permission denied",
    "command not found",
    "No such file",
    "cannot find",
)


def is_error_like(text: str, patterns: tuple[str, ...] = ERROR_LIKE_PATTERNS) -> bool:
    """Check whether a command line matches any of the error-like patterns."""
    return any(pattern in text for pattern in patterns)


def ensure_utc(ts: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


class StruggleKind(Enum):
    """What a struggle episode was mostly about."""

    BUILD_FAILURES = "build_failures"
    GIT_CONFLICTS = "git_conflicts"
    PERMISSION_ERRORS = "permission_errors"
    DEPENDENCY_ISSUES = "dependency_issues"
    TEST_FAILURES = "test_failures"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ShellCommand:
    """A single shell history entry.

    `base_command` and `is_error_like` are derived from `text` at construction
    unless given explicitly, and never re-evaluated. Timestamps are stored in UTC.
    """

    text: str
    timestamp: Optional[datetime] = None
    base_command: str = ""
    is_error_like: Optional[bool] = None

    def __post_init__(self) -> None:
        if self.timestamp is not None:
            object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        if not self.base_command:
            words = self.text.split()
            object.__setattr__(self, "base_command", words[0] if words else "")
        if self.is_error_like is None:
            object.__setattr__(self, "is_error_like", is_error_like(self.text))

    @classmethod
    def from_text(
        cls,
        text: str,
        timestamp: Optional[datetime] = None,
        patterns: tuple[str, ...] = ERROR_LIKE_PATTERNS,
    ) -> "ShellCommand":
        text = text.strip()
        return cls(text=text, timestamp=timestamp, is_error_like=is_error_like(text, patterns))


@dataclass(frozen=True)
class StruggleEpisode:
    """A maximal run of struggle-like shell commands.

    Attributes:
        start_timestamp: Time of the first command, or the reference time of
            the detection run when that command had no timestamp.
        commands: The commands of the run, in order.
        retries: Number of commands in the run.
        duration_minutes: Fixed per-command estimate, not measured.
        eventually_succeeded: False when the run reached the end of the stream.
        kind: Struggle classification.
        is_estimated: True when `start_timestamp` was substituted.
    """

    start_timestamp: datetime
    commands: tuple[ShellCommand, ...]
    retries: int
    duration_minutes: float
    eventually_succeeded: bool
    kind: StruggleKind = StruggleKind.UNKNOWN
    is_estimated: bool = False

    @property
    def texts(self) -> list[str]:
        return [c.text for c in self.commands]


@dataclass(frozen=True)
class AIConversation:
    """An AI assistant conversation, treated as the closed interval [start, end] in UTC."""

    id: str
    start: datetime
    end: datetime
    message_count: int = 0
    tool_use_count: int = 0
    project_path: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if self.end < self.start:
            raise ValueError(
                f"Conversation {self.id!r} ends before it starts ({self.end} < {self.start})"
            )

    @property
    def duration_minutes(self) -> float:
        return minutes_between(self.start, self.end)


@dataclass(frozen=True)
class Commit:
    """A point-in-time commit with its diff stats, timestamped in UTC."""

    hash: str
    timestamp: datetime
    insertions: int = 0
    deletions: int = 0
    files_changed: int = 0
    language_breakdown: dict[str, int] = field(default_factory=dict)  # language -> lines
    author: str = ""
    message: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))

    @property
    def lines_changed(self) -> int:
        return self.insertions + self.deletions
