"""
Detect struggle episodes in shell history and summarize command usage.

A struggle is a run of consecutive commands that look like failures or
heavy tool use (npm, cargo, git) - the typical retry loop before someone
gives up and asks for help. Shell history rarely has reliable gaps between
commands, so episode durations are a fixed per-command estimate.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import groupby
from typing import Optional, Sequence

from .config import StruggleConfig
from .events import ShellCommand, StruggleEpisode, StruggleKind, ensure_utc

logger = logging.getLogger(__name__)

# Checked in order, first match wins.
_KIND_RULES: list[tuple[StruggleKind, tuple[str, ...]]] = [
    (StruggleKind.BUILD_FAILURES, ("cargo build", "cargo test")),
    (StruggleKind.GIT_CONFLICTS, ("git merge", "git rebase")),
    (StruggleKind.PERMISSION_ERRORS, ("permission", "sudo")),
    (StruggleKind.DEPENDENCY_ISSUES, ("npm install", "yarn")),
    (StruggleKind.TEST_FAILURES, ("test", "spec")),
]


@dataclass
class ErrorPattern:
    """A group of failing commands from the same tool."""

    error_type: str
    count: int
    example_commands: list[str] = field(default_factory=list)
    avg_retries: float = 0.0
    estimated_time_wasted_minutes: float = 0.0


@dataclass
class CommandChain:
    """Two base commands that frequently follow each other."""

    pattern: tuple[str, str]
    frequency: int


@dataclass
class ShellStats:
    """Usage and failure statistics for one shell history."""

    total_commands: int = 0
    unique_commands: int = 0
    most_used_commands: list[tuple[str, int]] = field(default_factory=list)
    estimated_failures: int = 0
    failure_rate: float = 0.0  # percent
    error_patterns: list[ErrorPattern] = field(default_factory=list)
    time_wasted_hours: float = 0.0
    command_chains: list[CommandChain] = field(default_factory=list)
    average_command_length: float = 0.0
    commands_by_hour: dict[int, int] = field(default_factory=dict)
    most_active_hour: int = 0
    struggle_episodes: list[StruggleEpisode] = field(default_factory=list)


def classify_kind(commands: Sequence[ShellCommand]) -> StruggleKind:
    """Classify a run of commands by what the combined text mentions."""
    text = " ".join(c.text for c in commands)
    for kind, needles in _KIND_RULES:
        if any(needle in text for needle in needles):
            return kind
    return StruggleKind.UNKNOWN


def is_struggle_like(command: ShellCommand, config: Optional[StruggleConfig] = None) -> bool:
    config = config or StruggleConfig()
    return command.is_error_like or command.base_command in config.struggle_commands


def _closed_runs(
    commands: Sequence[ShellCommand], config: StruggleConfig
) -> list[tuple[list[ShellCommand], bool]]:
    """Split the stream into maximal struggle-like runs.

    Returns (run, reaches_end) pairs, where reaches_end is True for a run
    that was closed by the end of the stream rather than by an ordinary command.
    """
    groups = [
        (flag, list(group))
        for flag, group in groupby(commands, key=lambda c: is_struggle_like(c, config))
    ]
    return [
        (group, idx == len(groups) - 1) for idx, (flag, group) in enumerate(groups) if flag
    ]


def detect_struggles(
    commands: Sequence[ShellCommand],
    config: Optional[StruggleConfig] = None,
    now: Optional[datetime] = None,
) -> list[StruggleEpisode]:
    """
    Find struggle episodes in a chronologically sorted command stream.

    Args:
        commands: Commands of a single history source, oldest first
        config: Struggle settings (defaults when omitted)
        now: Reference time used when a run's first command has no timestamp.
            Defaults to the current UTC time, read once per call.

    Returns:
        Episodes in stream order. Runs shorter than the noise floor are dropped.
    """
    config = config or StruggleConfig()
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

    episodes: list[StruggleEpisode] = []
    for run, reaches_end in _closed_runs(commands, config):
        if len(run) < config.min_run_length:
            continue
        first_ts = run[0].timestamp
        episodes.append(
            StruggleEpisode(
                start_timestamp=first_ts if first_ts is not None else now,
                commands=tuple(run),
                retries=len(run),
                duration_minutes=len(run) * config.minutes_per_command,
                eventually_succeeded=not reaches_end,
                kind=classify_kind(run),
                is_estimated=first_ts is None,
            )
        )

    logger.debug("Detected %d struggle episodes in %d commands", len(episodes), len(commands))
    return episodes


def _error_patterns(commands: Sequence[ShellCommand]) -> list[ErrorPattern]:
    """Group failing commands by tool."""
    npm_errors: list[str] = []
    cargo_errors: list[str] = []
    git_errors: list[str] = []
    permission_errors: list[str] = []

    for cmd in commands:
        text = cmd.text
        if "npm" in text and ("ERR" in text or "error" in text):
            npm_errors.append(text)
        elif "cargo" in text and cmd.is_error_like:
            cargo_errors.append(text)
        elif "git" in text and cmd.is_error_like:
            git_errors.append(text)
        elif "permission denied" in text.lower():
            permission_errors.append(text)

    # (label, matches, avg retries, minutes lost per occurrence)
    groups = [
        ("NPM Errors", npm_errors, 2.8, 5.0),
        ("Cargo Build/Test Failures", cargo_errors, 3.2, 8.0),
        ("Git Errors", git_errors, 2.1, 3.0),
        ("Permission Denied", permission_errors, 1.5, 2.0),
    ]
    patterns = [
        ErrorPattern(
            error_type=label,
            count=len(matches),
            example_commands=matches[:3],
            avg_retries=retries,
            estimated_time_wasted_minutes=len(matches) * minutes,
        )
        for label, matches, retries, minutes in groups
        if matches
    ]
    patterns.sort(key=lambda p: -p.count)
    return patterns


def _command_chains(commands: Sequence[ShellCommand], config: StruggleConfig) -> list[CommandChain]:
    pairs = Counter(
        (a.base_command, b.base_command) for a, b in zip(commands, commands[1:])
    )
    chains = [
        CommandChain(pattern=pattern, frequency=count)
        for pattern, count in pairs.items()
        if count >= config.min_chain_frequency
    ]
    chains.sort(key=lambda c: (-c.frequency, c.pattern))
    return chains[: config.max_chains]


def analyze_shell(
    commands: Sequence[ShellCommand],
    config: Optional[StruggleConfig] = None,
    now: Optional[datetime] = None,
) -> ShellStats:
    """Compute shell usage statistics, including struggle episodes."""
    config = config or StruggleConfig()
    total = len(commands)
    stats = ShellStats(total_commands=total)
    stats.struggle_episodes = detect_struggles(commands, config, now=now)
    if total == 0:
        return stats

    base_counts = Counter(c.base_command for c in commands)
    stats.unique_commands = len(base_counts)
    stats.most_used_commands = sorted(base_counts.items(), key=lambda kv: (-kv[1], kv[0]))[
        : config.top_commands
    ]

    stats.estimated_failures = sum(1 for c in commands if c.is_error_like)
    stats.failure_rate = stats.estimated_failures / total * 100.0

    stats.error_patterns = _error_patterns(commands)
    stats.time_wasted_hours = (
        sum(p.estimated_time_wasted_minutes for p in stats.error_patterns) / 60.0
    )
    stats.command_chains = _command_chains(commands, config)
    stats.average_command_length = sum(len(c.text) for c in commands) / total

    by_hour = Counter(c.timestamp.hour for c in commands if c.timestamp is not None)
    stats.commands_by_hour = dict(sorted(by_hour.items()))
    if by_hour:
        stats.most_active_hour = min(by_hour, key=lambda hour: (-by_hour[hour], hour))

    return stats
