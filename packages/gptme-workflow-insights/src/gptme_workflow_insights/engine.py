"""
Run the full correlation pipeline over one batch of events.

Shell analysis and session classification only read their own streams, so
they run concurrently; the workflow correlator waits for both, then metrics
and scoring run last. Output is recomputed on every call.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from .batch import EventBatch, dump_report, to_jsonable
from .config import InsightsConfig
from .correlation import WorkflowCorrelation, WorkflowCorrelator
from .events import AIConversation, Commit, ShellCommand, ensure_utc
from .metrics import AIImpactReport, compute_ai_impact
from .scoring import ProductivityScore, Recommendation, build_recommendations, score_productivity
from .sessions import AISession, build_sessions
from .struggles import ShellStats, analyze_shell

logger = logging.getLogger(__name__)


@dataclass
class InsightsReport:
    """Everything the engine derives from one batch."""

    generated_at: datetime
    workflows: WorkflowCorrelation
    sessions: list[AISession]
    ai_impact: AIImpactReport
    shell: ShellStats
    score: ProductivityScore
    recommendations: list[Recommendation] = field(default_factory=list)

    @property
    def ai_helpfulness_rate(self) -> float:
        return self.workflows.ai_helpfulness_rate

    @property
    def velocity(self) -> tuple[float, float]:
        """(AI velocity, solo velocity) in commits per hour."""
        return self.ai_impact.ai_velocity, self.ai_impact.solo_velocity

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)

    def to_json(self, indent: int = 2) -> str:
        return dump_report(self, indent=indent)


def analyze(
    commands: Sequence[ShellCommand],
    conversations: Sequence[AIConversation],
    commits: Sequence[Commit],
    config: Optional[InsightsConfig] = None,
    now: Optional[datetime] = None,
) -> InsightsReport:
    """
    Correlate shell history, AI conversations and commits.

    Args:
        commands: Shell commands of one history source, oldest first
        conversations: AI conversations, sorted by start
        commits: Commits, sorted by timestamp
        config: Engine configuration (defaults when omitted)
        now: Reference time substituted for missing command timestamps and
            stamped on the report. Defaults to the current UTC time.

    Returns:
        InsightsReport for the batch
    """
    config = config or InsightsConfig()
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    window = config.correlation.window

    def run_shell() -> ShellStats:
        return analyze_shell(commands, config.struggles, now=now)

    def run_sessions() -> list[AISession]:
        return build_sessions(conversations, commits, window, config.sessions)

    if config.engine.max_workers > 1:
        with ThreadPoolExecutor(max_workers=config.engine.max_workers) as executor:
            shell_future = executor.submit(run_shell)
            sessions_future = executor.submit(run_sessions)
            shell = shell_future.result()
            sessions = sessions_future.result()
    else:
        shell = run_shell()
        sessions = run_sessions()

    workflows = WorkflowCorrelator(
        shell.struggle_episodes, conversations, commits, config.correlation
    ).analyze()
    ai_impact = compute_ai_impact(sessions, commits)
    score = score_productivity(ai_impact, shell, workflows, config.scoring)
    recommendations = build_recommendations(ai_impact, shell, workflows, score)

    logger.info(
        "Analyzed %d commands, %d conversations, %d commits: score %.1f (%s)",
        len(commands),
        len(conversations),
        len(commits),
        score.overall,
        score.grade,
    )
    return InsightsReport(
        generated_at=now,
        workflows=workflows,
        sessions=sessions,
        ai_impact=ai_impact,
        shell=shell,
        score=score,
        recommendations=recommendations,
    )


def analyze_batch(
    batch: EventBatch,
    config: Optional[InsightsConfig] = None,
    now: Optional[datetime] = None,
) -> InsightsReport:
    """Analyze a loaded EventBatch."""
    return analyze(batch.shell_commands, batch.conversations, batch.commits, config, now=now)
