"""
Aggregate AI-assisted sessions and commits into productivity metrics.

Compares commit velocity inside AI sessions with velocity outside them,
tracks how AI dependency evolves month by month, and finds the languages and
hours where AI help is used most. Every aggregate counts the commits a
session owns, so commits shared by overlapping sessions are counted once.
Ties are broken explicitly (alphabetically for languages, lowest hour for
hours) so reports are reproducible.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Sequence

from .events import Commit
from .sessions import AISession, SessionArchetype

logger = logging.getLogger(__name__)

UNKNOWN_LANGUAGE = "Unknown"


@dataclass
class MonthlyDependency:
    """AI-assisted vs. solo commits for one calendar month."""

    month: str  # YYYY-MM
    ai_assisted_commits: int = 0
    solo_commits: int = 0
    dependency_pct: float = 0.0


@dataclass
class AIImpactReport:
    """How AI sessions relate to commit output."""

    total_sessions: int = 0  # sessions that own at least one commit
    conversation_count: int = 0
    ai_assisted_commits: int = 0
    solo_commits: int = 0
    ai_assistance_rate: float = 0.0

    ai_velocity: float = 0.0  # commits per hour
    solo_velocity: float = 0.0
    velocity_improvement: float = 0.0  # percent, never negative

    lines_written_with_ai: int = 0
    lines_written_solo: int = 0
    ai_contribution_percentage: float = 0.0

    avg_files_per_commit_with_ai: float = 0.0
    avg_files_per_commit_solo: float = 0.0

    most_ai_assisted_language: str = UNKNOWN_LANGUAGE
    most_productive_hour: int = 0
    learning_curve: list[MonthlyDependency] = field(default_factory=list)

    archetype_counts: dict[str, int] = field(default_factory=dict)
    refactor_sessions: int = 0
    copy_paste_incidents: int = 0
    deep_collaboration_count: int = 0


def _pct(part: float, whole: float) -> float:
    return part / whole * 100.0 if whole else 0.0


def calculate_velocities(
    sessions: Sequence[AISession], solo_commits: Sequence[Commit]
) -> tuple[float, float]:
    """
    Commits per hour with and without AI.

    AI velocity divides the commits owned by sessions by the total session
    time (at least 0.1h). Solo velocity divides solo commits by the span
    between the first and last of them (at least 1h), and is 0 with fewer
    than two solo commits.
    """
    pair_sessions = [s for s in sessions if s.owns_commits]
    ai_hours = sum(s.duration_minutes for s in pair_sessions) / 60.0
    ai_commits = sum(len(s.owned_commits) for s in pair_sessions)
    ai_velocity = ai_commits / max(ai_hours, 0.1)

    if len(solo_commits) < 2:
        return ai_velocity, 0.0
    timestamps = [c.timestamp for c in solo_commits]
    span_hours = (max(timestamps) - min(timestamps)).total_seconds() / 3600.0
    return ai_velocity, len(solo_commits) / max(span_hours, 1.0)


def velocity_improvement(ai_velocity: float, solo_velocity: float) -> float:
    """Percent speed-up with AI, floored at 0. Without a solo baseline there is none."""
    if solo_velocity <= 0:
        return 0.0
    return max((ai_velocity - solo_velocity) / solo_velocity * 100.0, 0.0)


def most_ai_assisted_language(sessions: Sequence[AISession]) -> str:
    """Language touched by the most AI sessions (not the most lines)."""
    counts = Counter(lang for s in sessions for lang in s.owned_languages)
    if not counts:
        return UNKNOWN_LANGUAGE
    return min(counts, key=lambda lang: (-counts[lang], lang))


def most_productive_hour(sessions: Sequence[AISession]) -> int:
    """Hour of day whose sessions produced the most commits."""
    by_hour: Counter[int] = Counter()
    for s in sessions:
        if s.owns_commits:
            by_hour[s.conversation.start.hour] += len(s.owned_commits)
    if not by_hour:
        return 0
    return min(by_hour, key=lambda hour: (-by_hour[hour], hour))


def learning_curve(
    sessions: Sequence[AISession], solo_commits: Sequence[Commit]
) -> list[MonthlyDependency]:
    """Monthly AI dependency, oldest month first.

    AI-assisted commits are counted in the month their session started,
    solo commits in their own month.
    """
    months: dict[str, MonthlyDependency] = {}
    for s in sessions:
        if not s.owns_commits:
            continue
        key = s.conversation.start.strftime("%Y-%m")
        months.setdefault(key, MonthlyDependency(month=key)).ai_assisted_commits += len(
            s.owned_commits
        )
    for commit in solo_commits:
        key = commit.timestamp.strftime("%Y-%m")
        months.setdefault(key, MonthlyDependency(month=key)).solo_commits += 1
    curve = [months[key] for key in sorted(months)]
    for row in curve:
        total = row.ai_assisted_commits + row.solo_commits
        row.dependency_pct = _pct(row.ai_assisted_commits, total)
    return curve


def compute_ai_impact(sessions: Sequence[AISession], commits: Sequence[Commit]) -> AIImpactReport:
    """
    Aggregate classified sessions and the full commit stream.

    Args:
        sessions: Every classified session, including ones without commits
        commits: All commits of the batch

    Returns:
        AIImpactReport for the batch
    """
    pair_sessions = [s for s in sessions if s.owns_commits]
    ai_owned = [c for s in pair_sessions for c in s.owned_commits]
    ai_hashes = {c.hash for c in ai_owned}
    solo = sorted((c for c in commits if c.hash not in ai_hashes), key=lambda c: c.timestamp)

    ai_commits = len(ai_owned)
    ai_velocity, solo_velocity = calculate_velocities(pair_sessions, solo)
    ai_lines = sum(c.lines_changed for c in ai_owned)
    solo_lines = sum(c.lines_changed for c in solo)
    ai_files = sum(c.files_changed for c in ai_owned)
    solo_files = sum(c.files_changed for c in solo)

    archetypes = Counter(s.archetype for s in sessions)

    report = AIImpactReport(
        total_sessions=len(pair_sessions),
        conversation_count=len(sessions),
        ai_assisted_commits=ai_commits,
        solo_commits=len(solo),
        ai_assistance_rate=_pct(ai_commits, ai_commits + len(solo)),
        ai_velocity=ai_velocity,
        solo_velocity=solo_velocity,
        velocity_improvement=velocity_improvement(ai_velocity, solo_velocity),
        lines_written_with_ai=ai_lines,
        lines_written_solo=solo_lines,
        ai_contribution_percentage=_pct(ai_lines, ai_lines + solo_lines),
        avg_files_per_commit_with_ai=ai_files / ai_commits if ai_commits else 0.0,
        avg_files_per_commit_solo=solo_files / len(solo) if solo else 0.0,
        most_ai_assisted_language=most_ai_assisted_language(pair_sessions),
        most_productive_hour=most_productive_hour(pair_sessions),
        learning_curve=learning_curve(pair_sessions, solo),
        archetype_counts={a.value: archetypes.get(a, 0) for a in SessionArchetype},
        refactor_sessions=archetypes.get(SessionArchetype.CLAUDE_GUIDED_REFACTOR, 0),
        copy_paste_incidents=archetypes.get(SessionArchetype.COPY_PASTE_FROM_CLAUDE, 0),
        deep_collaboration_count=archetypes.get(SessionArchetype.INTENSE_COLLABORATION, 0),
    )
    logger.debug(
        "AI impact: %d AI-assisted commits, %d solo, %.2f vs %.2f commits/h",
        ai_commits,
        len(solo),
        ai_velocity,
        solo_velocity,
    )
    return report
