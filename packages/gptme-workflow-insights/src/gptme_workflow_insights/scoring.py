"""
Combine AI impact, shell efficiency and workflow correlation into one score.

Three 0-100 sub-scores are weighted into an overall score with a letter
grade, and the same inputs drive a short list of prioritized
recommendations.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import ScoringConfig
from .correlation import WorkflowCorrelation
from .metrics import AIImpactReport
from .struggles import ShellStats


class Priority(Enum):
    """Recommendation priority, most urgent first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_PRIORITY_ORDER = {p: i for i, p in enumerate(Priority)}


@dataclass
class ProductivityScore:
    overall: float
    ai_effectiveness: float
    shell_efficiency: float
    workflow_quality: float
    grade: str


@dataclass
class Recommendation:
    """An actionable suggestion derived from the scores."""

    priority: Priority
    category: str
    issue: str
    action: str
    potential_impact: str


def ai_effectiveness(
    ai_assisted_commits: int,
    velocity_improvement_pct: float,
    copy_paste_incidents: int,
    config: Optional[ScoringConfig] = None,
) -> float:
    """Velocity gain (up to 50) plus code quality (10, 30 or 50)."""
    config = config or ScoringConfig()
    if ai_assisted_commits <= 0:
        return 0.0
    velocity_component = min(velocity_improvement_pct / 100.0 * 50.0, 50.0)
    ratio = copy_paste_incidents / ai_assisted_commits
    if ratio < config.copy_paste_good_ratio:
        quality_component = 50.0
    elif ratio < config.copy_paste_fair_ratio:
        quality_component = 30.0
    else:
        quality_component = 10.0
    return velocity_component + quality_component


def shell_efficiency(
    failure_rate_pct: float, struggle_count: int, config: Optional[ScoringConfig] = None
) -> float:
    """100 minus failure and struggle penalties, floored at 0."""
    config = config or ScoringConfig()
    failure_penalty = failure_rate_pct * config.failure_penalty_factor
    struggle_penalty = min(struggle_count * config.struggle_penalty, config.max_struggle_penalty)
    return max(100.0 - failure_penalty - struggle_penalty, 0.0)


def workflow_quality(
    total_workflows: int,
    ai_helpfulness_rate: float,
    full_cycle_instances: int,
    config: Optional[ScoringConfig] = None,
) -> float:
    config = config or ScoringConfig()
    if total_workflows <= 0:
        return config.no_workflow_quality
    helpfulness_component = min(ai_helpfulness_rate / 100.0 * 60.0, 60.0)
    pattern_component = 40.0 if full_cycle_instances > config.full_cycle_bonus_threshold else 20.0
    return helpfulness_component + pattern_component


def letter_grade(overall: float, config: Optional[ScoringConfig] = None) -> str:
    config = config or ScoringConfig()
    for minimum, grade in config.grade_bands:
        if overall >= minimum:
            return grade
    return config.fallback_grade


def score_productivity(
    ai: AIImpactReport,
    shell: ShellStats,
    workflows: WorkflowCorrelation,
    config: Optional[ScoringConfig] = None,
) -> ProductivityScore:
    """
    Compute the weighted productivity score.

    Args:
        ai: AI impact metrics
        shell: Shell statistics (failure rate, struggle episodes)
        workflows: Workflow correlation results
        config: Weights and thresholds (defaults when omitted)

    Returns:
        ProductivityScore with every component in [0, 100]
    """
    config = config or ScoringConfig()
    ai_score = ai_effectiveness(
        ai.ai_assisted_commits, ai.velocity_improvement, ai.copy_paste_incidents, config
    )
    shell_score = shell_efficiency(shell.failure_rate, len(shell.struggle_episodes), config)
    workflow_score = workflow_quality(
        workflows.total_workflows,
        workflows.ai_helpfulness_rate,
        workflows.full_cycle_instances,
        config,
    )
    overall = (
        ai_score * config.ai_weight
        + shell_score * config.shell_weight
        + workflow_score * config.workflow_weight
    )
    overall = min(max(overall, 0.0), 100.0)
    return ProductivityScore(
        overall=overall,
        ai_effectiveness=ai_score,
        shell_efficiency=shell_score,
        workflow_quality=workflow_score,
        grade=letter_grade(overall, config),
    )


def build_recommendations(
    ai: AIImpactReport,
    shell: ShellStats,
    workflows: WorkflowCorrelation,
    score: ProductivityScore,
) -> list[Recommendation]:
    """Suggest next steps, most urgent first."""
    recommendations: list[Recommendation] = []

    if ai.copy_paste_incidents > 20:
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Code Quality",
                issue=f"Detected {ai.copy_paste_incidents} copy-paste incidents from Claude",
                action=(
                    "Take time to understand code before committing. "
                    "Ask Claude to explain complex parts."
                ),
                potential_impact="Fewer bugs, better understanding of the code",
            )
        )

    if ai.velocity_improvement > 30.0:
        recommendations.append(
            Recommendation(
                priority=Priority.LOW,
                category="AI Usage",
                issue=f"You're {ai.velocity_improvement:.1f}% faster with AI",
                action=(
                    "Keep using AI for complex tasks. "
                    "Consider sharing your workflow with the team."
                ),
                potential_impact="Team velocity could improve similarly",
            )
        )

    if shell.failure_rate > 20.0:
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Shell Efficiency",
                issue=f"High command failure rate: {shell.failure_rate:.1f}%",
                action=(
                    "Use shell history search and aliases for common commands. "
                    "Ask AI to debug errors sooner."
                ),
                potential_impact=f"Save ~{shell.time_wasted_hours:.1f} hours",
            )
        )

    if len(shell.struggle_episodes) > 50:
        recommendations.append(
            Recommendation(
                priority=Priority.MEDIUM,
                category="Workflow",
                issue=(
                    f"Detected {len(shell.struggle_episodes)} struggle sessions "
                    "(multiple retries)"
                ),
                action="Ask for help earlier when stuck instead of retrying the same command.",
                potential_impact="Less frustration, faster resolution",
            )
        )

    if workflows.total_struggles and workflows.ai_helpfulness_rate < 50.0:
        recommendations.append(
            Recommendation(
                priority=Priority.MEDIUM,
                category="AI Effectiveness",
                issue=f"AI only resolves {workflows.ai_helpfulness_rate:.1f}% of struggles",
                action=(
                    "Give Claude more context: error messages, relevant code "
                    "and what you've tried."
                ),
                potential_impact="Higher share of struggles resolved with AI help",
            )
        )

    if score.shell_efficiency < 60.0:
        recommendations.append(
            Recommendation(
                priority=Priority.CRITICAL,
                category="Productivity",
                issue=f"Low shell efficiency score: {score.shell_efficiency:.1f}/100",
                action="Reduce context switching and work in focused blocks with regular breaks.",
                potential_impact="Fewer failed commands and retries",
            )
        )

    recommendations.sort(key=lambda r: _PRIORITY_ORDER[r.priority])
    return recommendations
