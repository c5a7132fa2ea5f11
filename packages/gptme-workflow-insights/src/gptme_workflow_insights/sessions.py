"""
Label AI-assisted sessions with a pair-programming archetype.

A session is one AI conversation plus the commits made while it was open or
within the correlation window after it ended. Overlapping sessions may share
commits; each commit is owned by only one of them for aggregate totals.
The label is decided by a fixed priority table: the most specific shapes
("obviously pasted", "obviously trivial") are tested before the broad
volume heuristics.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Optional, Sequence

from .config import SessionClassifierConfig
from .correlation import assign_session_commits, correlate_session_commits
from .events import AIConversation, Commit

logger = logging.getLogger(__name__)


class SessionArchetype(Enum):
    """Pair-programming session archetypes."""

    INTENSE_COLLABORATION = "intense_collaboration"  # many commits while talking
    CLAUDE_GUIDED_REFACTOR = "claude_guided_refactor"  # large, deletion-heavy changes
    QUICK_FIX = "quick_fix"  # single small commit
    LEARNING_SESSION = "learning_session"  # conversation without commits
    COPY_PASTE_FROM_CLAUDE = "copy_paste_from_claude"  # big commit right after a short chat


@dataclass
class AISession:
    """A conversation together with its correlated commits.

    `commits` are all commits in the session window and decide the archetype.
    `owned_commits` is the subset this session owns when windows overlap
    (all of `commits` unless given).
    """

    conversation: AIConversation
    commits: list[Commit] = field(default_factory=list)
    archetype: SessionArchetype = SessionArchetype.LEARNING_SESSION
    owned_commits: Optional[list[Commit]] = None

    def __post_init__(self) -> None:
        if self.owned_commits is None:
            self.owned_commits = list(self.commits)

    @property
    def lines_added(self) -> int:
        return sum(c.insertions for c in self.commits)

    @property
    def lines_deleted(self) -> int:
        return sum(c.deletions for c in self.commits)

    @property
    def total_lines(self) -> int:
        return self.lines_added + self.lines_deleted

    @property
    def files_changed(self) -> int:
        return sum(c.files_changed for c in self.commits)

    @property
    def languages(self) -> list[str]:
        """Languages touched by any commit of the session, sorted."""
        return sorted({lang for c in self.commits for lang in c.language_breakdown})

    @property
    def owned_languages(self) -> list[str]:
        return sorted({lang for c in self.owned_commits or () for lang in c.language_breakdown})

    @property
    def duration_minutes(self) -> float:
        return self.conversation.duration_minutes

    @property
    def has_commits(self) -> bool:
        return bool(self.commits)

    @property
    def owns_commits(self) -> bool:
        return bool(self.owned_commits)


def classify_session(
    conversation: AIConversation,
    commits: Sequence[Commit],
    config: Optional[SessionClassifierConfig] = None,
) -> SessionArchetype:
    """
    Pick the archetype of a session. First matching rule wins.

    Args:
        conversation: The AI conversation
        commits: Commits correlated to it
        config: Classifier thresholds (defaults when omitted)

    Returns:
        The session archetype; LEARNING_SESSION when there are no commits.
    """
    config = config or SessionClassifierConfig()
    if not commits:
        return SessionArchetype.LEARNING_SESSION

    count = len(commits)
    total_lines = sum(c.insertions + c.deletions for c in commits)
    deletions = sum(c.deletions for c in commits)

    if (
        count == 1
        and conversation.duration_minutes < config.copy_paste_max_minutes
        and total_lines > config.copy_paste_min_lines
    ):
        return SessionArchetype.COPY_PASTE_FROM_CLAUDE

    if (
        count >= config.intense_min_commits
        and conversation.tool_use_count >= config.intense_min_tool_uses
    ):
        return SessionArchetype.INTENSE_COLLABORATION

    deletion_ratio = deletions / total_lines if total_lines else 0.0
    if deletion_ratio > config.refactor_deletion_ratio and total_lines > config.refactor_min_lines:
        return SessionArchetype.CLAUDE_GUIDED_REFACTOR

    if count == 1 and total_lines < config.quick_fix_max_lines:
        return SessionArchetype.QUICK_FIX

    return SessionArchetype.INTENSE_COLLABORATION


def build_sessions(
    conversations: Sequence[AIConversation],
    commits: Sequence[Commit],
    window: timedelta,
    config: Optional[SessionClassifierConfig] = None,
) -> list[AISession]:
    """Correlate commits to every conversation and classify each session.

    Returns one session per conversation, in input order.
    """
    correlated = correlate_session_commits(conversations, commits, window)
    owned = assign_session_commits(conversations, commits, window)
    sessions = [
        AISession(
            conversation=conv,
            commits=conv_commits,
            archetype=classify_session(conv, conv_commits, config),
            owned_commits=conv_owned,
        )
        for conv, conv_commits, conv_owned in zip(conversations, correlated, owned)
    ]
    logger.debug(
        "Classified %d sessions (%d with commits)",
        len(sessions),
        sum(1 for s in sessions if s.has_commits),
    )
    return sessions
