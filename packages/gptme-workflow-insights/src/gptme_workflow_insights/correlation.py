"""
Correlate struggles, AI conversations and commits into workflow patterns.

Everything here is built on one primitive, the forward-window join: for an
anchor instant `a`, pick the chronologically first candidate `b` with
`a < b <= a + window`. Links only ever point forward in time and only one
hop; longer chains (struggle -> conversation -> commit) are built by
chaining joins.
"""

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional, Sequence, TypeVar

from .config import CorrelationConfig
from .events import AIConversation, Commit, StruggleEpisode, StruggleKind, minutes_between

logger = logging.getLogger(__name__)

A = TypeVar("A")
B = TypeVar("B")


class WorkflowPatternKind(Enum):
    """Workflow archetypes."""

    SHELL_ERROR_TO_CLAUDE_HELP = "shell_error_to_claude_help"
    CLAUDE_HELP_TO_COMMIT = "claude_help_to_commit"
    FULL_CYCLE = "full_cycle"
    GIT_CONFLICT_RESOLUTION = "git_conflict_resolution"
    BUILD_FAILURE_RECOVERY = "build_failure_recovery"
    QUICK_FIX = "quick_fix"


@dataclass
class WorkflowExample:
    """One matched instance of a workflow pattern."""

    timestamp: datetime
    trigger_description: str
    outcome_description: str
    duration_minutes: float


@dataclass
class WorkflowPattern:
    """Aggregate of all matches of one workflow archetype."""

    kind: WorkflowPatternKind
    occurrences: int = 0
    avg_resolution_minutes: float = 0.0
    success_rate: float = 0.0  # percent
    examples: list[WorkflowExample] = field(default_factory=list)


@dataclass
class WorkflowCorrelation:
    """All workflow patterns found in one batch."""

    patterns: list[WorkflowPattern] = field(default_factory=list)
    total_workflows: int = 0
    total_struggles: int = 0
    ai_helpfulness_rate: float = 0.0  # percent of struggles resolved by a full cycle
    struggle_to_ai_instances: int = 0
    ai_to_commit_instances: int = 0
    full_cycle_instances: int = 0

    def pattern(self, kind: WorkflowPatternKind) -> Optional[WorkflowPattern]:
        """Get the pattern of a kind, or None if it never occurred."""
        for p in self.patterns:
            if p.kind == kind:
                return p
        return None


def forward_window_join(
    anchors: Sequence[A],
    candidates: Sequence[B],
    window: timedelta,
    anchor_time: Callable[[A], datetime],
    candidate_time: Callable[[B], datetime],
) -> list[Optional[int]]:
    """
    Match each anchor with the first candidate strictly after it, within the window.

    Anchors and candidates are swept in time order with two pointers, so the
    cost is dominated by sorting. Candidates with equal timestamps keep their
    input order, which makes "first in chronological order" deterministic.
    Candidates are not consumed: several anchors may match the same one.

    Args:
        anchors: Events to match from
        candidates: Events to match to
        window: Maximum forward gap (inclusive)
        anchor_time: Instant of an anchor (e.g. conversation end)
        candidate_time: Instant of a candidate (e.g. commit timestamp)

    Returns:
        For each anchor (in input order), the index into `candidates` of its
        match, or None.
    """
    anchor_order = sorted(range(len(anchors)), key=lambda i: anchor_time(anchors[i]))
    cand_order = sorted(range(len(candidates)), key=lambda j: candidate_time(candidates[j]))
    cand_times = [candidate_time(candidates[j]) for j in cand_order]

    matches: list[Optional[int]] = [None] * len(anchors)
    p = 0
    for i in anchor_order:
        a = anchor_time(anchors[i])
        while p < len(cand_times) and cand_times[p] <= a:
            p += 1
        if p < len(cand_times) and cand_times[p] <= a + window:
            matches[i] = cand_order[p]
    return matches


def _session_ranges(
    conversations: Sequence[AIConversation],
    commits: Sequence[Commit],
    window: timedelta,
) -> tuple[list[Commit], list[range]]:
    """Sort commits and locate `[start, end + window]` of every conversation in them."""
    ordered_commits = sorted(commits, key=lambda c: c.timestamp)
    times = [c.timestamp for c in ordered_commits]
    ranges = [
        range(bisect_left(times, conv.start), bisect_right(times, conv.end + window))
        for conv in conversations
    ]
    return ordered_commits, ranges


def correlate_session_commits(
    conversations: Sequence[AIConversation],
    commits: Sequence[Commit],
    window: timedelta,
) -> list[list[Commit]]:
    """
    Find the commits made during or shortly after each conversation.

    A commit correlates to a conversation when it falls in
    `[conversation.start, conversation.end + window]`. Overlapping
    conversations all see the commits in their window.

    Returns:
        Commits per conversation (in input order), each list sorted by time.
    """
    ordered_commits, ranges = _session_ranges(conversations, commits, window)
    return [[ordered_commits[j] for j in r] for r in ranges]


def assign_session_commits(
    conversations: Sequence[AIConversation],
    commits: Sequence[Commit],
    window: timedelta,
) -> list[list[Commit]]:
    """
    Like `correlate_session_commits`, but every commit has a single owner.

    Overlapping windows are resolved in favour of the conversation that
    started first, so totals built from the owned commits count each commit
    once.

    Returns:
        Owned commits per conversation (in input order), each list sorted by time.
    """
    ordered_commits, ranges = _session_ranges(conversations, commits, window)
    claimed = [False] * len(ordered_commits)

    owned: list[list[Commit]] = [[] for _ in conversations]
    for i in sorted(range(len(conversations)), key=lambda i: conversations[i].start):
        for j in ranges[i]:
            if not claimed[j]:
                claimed[j] = True
                owned[i].append(ordered_commits[j])
    return owned


def _build_pattern(
    kind: WorkflowPatternKind,
    examples: list[WorkflowExample],
    max_examples: int,
    success_rate: Optional[float] = None,
    success_outcomes: tuple[str, ...] = (),
) -> WorkflowPattern:
    """Summarize matched examples.

    With no fixed `success_rate`, the rate is the share of examples whose
    outcome is one of `success_outcomes`.
    """
    count = len(examples)
    avg = sum(e.duration_minutes for e in examples) / count if count else 0.0
    if success_rate is None:
        successes = sum(1 for e in examples if e.outcome_description in success_outcomes)
        success_rate = successes / max(count, 1) * 100.0
    return WorkflowPattern(
        kind=kind,
        occurrences=count,
        avg_resolution_minutes=avg,
        success_rate=success_rate,
        examples=examples[:max_examples],
    )


class WorkflowCorrelator:
    """Join struggles, conversations and commits into workflow patterns."""

    def __init__(
        self,
        struggles: Sequence[StruggleEpisode],
        conversations: Sequence[AIConversation],
        commits: Sequence[Commit],
        config: Optional[CorrelationConfig] = None,
    ):
        self.struggles = list(struggles)
        self.conversations = list(conversations)
        self.commits = list(commits)
        self.config = config or CorrelationConfig()

        window = self.config.window
        # struggle start -> conversation start
        self._struggle_to_conv = forward_window_join(
            self.struggles,
            self.conversations,
            window,
            lambda s: s.start_timestamp,
            lambda c: c.start,
        )
        # conversation end -> commit
        self._conv_to_commit = forward_window_join(
            self.conversations,
            self.commits,
            window,
            lambda c: c.end,
            lambda c: c.timestamp,
        )

    def _struggle_help(
        self,
        trigger: Callable[[StruggleEpisode], str],
        outcome: Callable[[StruggleEpisode], str],
        only: Optional[StruggleKind] = None,
    ) -> list[WorkflowExample]:
        examples = []
        for struggle, conv_idx in zip(self.struggles, self._struggle_to_conv):
            if conv_idx is None or (only is not None and struggle.kind != only):
                continue
            conv = self.conversations[conv_idx]
            examples.append(
                WorkflowExample(
                    timestamp=struggle.start_timestamp,
                    trigger_description=trigger(struggle),
                    outcome_description=outcome(struggle),
                    duration_minutes=minutes_between(struggle.start_timestamp, conv.start),
                )
            )
        return examples

    def shell_error_to_claude_help(self) -> WorkflowPattern:
        examples = self._struggle_help(
            trigger=lambda s: f"Struggle: {s.retries} retries",
            outcome=lambda s: "Resolved" if s.eventually_succeeded else "Partial",
        )
        return _build_pattern(
            WorkflowPatternKind.SHELL_ERROR_TO_CLAUDE_HELP,
            examples,
            self.config.max_examples,
            success_outcomes=("Resolved",),
        )

    def claude_help_to_commit(self) -> WorkflowPattern:
        examples = []
        for conv, commit_idx in zip(self.conversations, self._conv_to_commit):
            if commit_idx is None:
                continue
            commit = self.commits[commit_idx]
            examples.append(
                WorkflowExample(
                    timestamp=conv.start,
                    trigger_description=f"Claude help: {conv.message_count} messages",
                    outcome_description="Commit created",
                    duration_minutes=minutes_between(conv.start, commit.timestamp),
                )
            )
        return _build_pattern(
            WorkflowPatternKind.CLAUDE_HELP_TO_COMMIT,
            examples,
            self.config.max_examples,
            success_outcomes=("Commit created",),
        )

    def full_cycle(self) -> WorkflowPattern:
        """Struggle -> conversation -> commit, timed end to end."""
        examples = []
        for struggle, conv_idx in zip(self.struggles, self._struggle_to_conv):
            if conv_idx is None:
                continue
            commit_idx = self._conv_to_commit[conv_idx]
            if commit_idx is None:
                continue
            commit = self.commits[commit_idx]
            examples.append(
                WorkflowExample(
                    timestamp=struggle.start_timestamp,
                    trigger_description="Struggle -> Claude -> Commit",
                    outcome_description="Full resolution",
                    duration_minutes=minutes_between(struggle.start_timestamp, commit.timestamp),
                )
            )
        return _build_pattern(
            WorkflowPatternKind.FULL_CYCLE,
            examples,
            self.config.max_examples,
            success_outcomes=("Full resolution",),
        )

    def git_conflict_resolution(self) -> WorkflowPattern:
        examples = self._struggle_help(
            trigger=lambda s: "Git conflict",
            outcome=lambda s: "Resolved",
            only=StruggleKind.GIT_CONFLICTS,
        )
        return _build_pattern(
            WorkflowPatternKind.GIT_CONFLICT_RESOLUTION,
            examples,
            self.config.max_examples,
            success_rate=self.config.git_conflict_success_rate,
        )

    def build_failure_recovery(self) -> WorkflowPattern:
        examples = self._struggle_help(
            trigger=lambda s: "Build failure",
            outcome=lambda s: "Fixed",
            only=StruggleKind.BUILD_FAILURES,
        )
        return _build_pattern(
            WorkflowPatternKind.BUILD_FAILURE_RECOVERY,
            examples,
            self.config.max_examples,
            success_rate=self.config.build_failure_success_rate,
        )

    def quick_fix(self) -> WorkflowPattern:
        """Conversation followed by a commit within the short quick-fix window."""
        matches = forward_window_join(
            self.conversations,
            self.commits,
            self.config.quick_fix_window,
            lambda c: c.end,
            lambda c: c.timestamp,
        )
        examples = []
        for conv, commit_idx in zip(self.conversations, matches):
            if commit_idx is None:
                continue
            commit = self.commits[commit_idx]
            examples.append(
                WorkflowExample(
                    timestamp=conv.start,
                    trigger_description="Quick question",
                    outcome_description="Immediate commit",
                    duration_minutes=minutes_between(conv.start, commit.timestamp),
                )
            )
        return _build_pattern(
            WorkflowPatternKind.QUICK_FIX,
            examples,
            self.config.max_examples,
            success_rate=self.config.quick_fix_success_rate,
        )

    def analyze(self) -> WorkflowCorrelation:
        """Run all joins and summarize them."""
        all_patterns = [
            self.shell_error_to_claude_help(),
            self.claude_help_to_commit(),
            self.full_cycle(),
            self.git_conflict_resolution(),
            self.build_failure_recovery(),
            self.quick_fix(),
        ]
        by_kind = {p.kind: p for p in all_patterns}
        full_cycles = by_kind[WorkflowPatternKind.FULL_CYCLE].occurrences
        total_struggles = len(self.struggles)

        result = WorkflowCorrelation(
            patterns=[p for p in all_patterns if p.occurrences > 0],
            total_workflows=sum(p.occurrences for p in all_patterns),
            total_struggles=total_struggles,
            ai_helpfulness_rate=(
                full_cycles / total_struggles * 100.0 if total_struggles else 0.0
            ),
            struggle_to_ai_instances=by_kind[
                WorkflowPatternKind.SHELL_ERROR_TO_CLAUDE_HELP
            ].occurrences,
            ai_to_commit_instances=by_kind[WorkflowPatternKind.CLAUDE_HELP_TO_COMMIT].occurrences,
            full_cycle_instances=full_cycles,
        )
        logger.debug(
            "Correlated %d workflows (%d full cycles) from %d struggles, "
            "%d conversations, %d commits",
            result.total_workflows,
            full_cycles,
            total_struggles,
            len(self.conversations),
            len(self.commits),
        )
        return result


def correlate_workflows(
    struggles: Sequence[StruggleEpisode],
    conversations: Sequence[AIConversation],
    commits: Sequence[Commit],
    config: Optional[CorrelationConfig] = None,
) -> WorkflowCorrelation:
    """Convenience wrapper around `WorkflowCorrelator.analyze`."""
    return WorkflowCorrelator(struggles, conversations, commits, config).analyze()
