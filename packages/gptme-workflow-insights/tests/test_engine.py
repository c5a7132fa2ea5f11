"""End-to-end tests for the analysis pipeline."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from gptme_workflow_insights import InsightsConfig, analyze, analyze_batch
from gptme_workflow_insights.batch import batch_from_dict
from gptme_workflow_insights.correlation import WorkflowPatternKind
from gptme_workflow_insights.events import AIConversation, Commit, ShellCommand, StruggleKind
from gptme_workflow_insights.scoring import Priority
from gptme_workflow_insights.sessions import SessionArchetype

SCENARIO_START = datetime(2026, 2, 17, 10, 0, tzinfo=timezone.utc)
SCENARIO_NOW = datetime(2026, 2, 18, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def report(scenario_data):
    return analyze_batch(batch_from_dict(scenario_data), now=SCENARIO_NOW)


def test_struggle_detected(report):
    [episode] = report.shell.struggle_episodes
    assert episode.kind == StruggleKind.BUILD_FAILURES
    assert episode.start_timestamp == SCENARIO_START
    assert episode.eventually_succeeded is True
    assert report.shell.failure_rate == pytest.approx(60.0)


def test_session_is_intense_collaboration(report):
    [session] = report.sessions
    assert session.archetype == SessionArchetype.INTENSE_COLLABORATION
    assert len(session.commits) == 4
    assert session.total_lines == 120


def test_workflow_patterns(report):
    workflows = report.workflows
    build = workflows.pattern(WorkflowPatternKind.BUILD_FAILURE_RECOVERY)
    full = workflows.pattern(WorkflowPatternKind.FULL_CYCLE)
    assert build is not None and build.occurrences == 1
    assert full is not None and full.occurrences == 1
    assert full.examples[0].duration_minutes == pytest.approx(35.0)
    assert workflows.pattern(WorkflowPatternKind.GIT_CONFLICT_RESOLUTION) is None
    assert workflows.total_workflows == 5
    assert report.ai_helpfulness_rate == 100.0


def test_metrics_and_score(report):
    assert report.ai_impact.ai_assisted_commits == 4
    assert report.ai_impact.solo_commits == 0
    assert report.velocity == (pytest.approx(12.0), 0.0)
    assert report.ai_impact.most_ai_assisted_language == "Rust"
    assert report.ai_impact.most_productive_hour == 10

    score = report.score
    assert score.ai_effectiveness == pytest.approx(50.0)
    assert score.shell_efficiency == pytest.approx(68.0)
    assert score.workflow_quality == pytest.approx(80.0)
    assert score.overall == pytest.approx(64.4)
    assert score.grade == "C+"
    assert [r.priority for r in report.recommendations] == [Priority.HIGH]


def test_report_is_json_serializable(report):
    data = json.loads(report.to_json())
    assert data["generated_at"] == "2026-02-18T00:00:00+00:00"
    assert data["score"]["grade"] == "C+"
    assert data["sessions"][0]["archetype"] == "intense_collaboration"
    assert data["workflows"]["patterns"][0]["kind"] == "shell_error_to_claude_help"
    assert report.to_dict() == data


def test_deterministic_and_worker_independent(scenario_data):
    batch = batch_from_dict(scenario_data)
    parallel = analyze_batch(batch, now=SCENARIO_NOW)
    again = analyze_batch(batch, now=SCENARIO_NOW)
    inline = analyze_batch(
        batch, InsightsConfig.from_dict({"engine": {"max_workers": 1}}), now=SCENARIO_NOW
    )
    assert parallel.to_dict() == again.to_dict() == inline.to_dict()


def test_inputs_not_mutated(scenario_data):
    batch = batch_from_dict(scenario_data)
    before = (list(batch.shell_commands), list(batch.conversations), list(batch.commits))
    analyze_batch(batch, now=SCENARIO_NOW)
    assert (batch.shell_commands, batch.conversations, batch.commits) == before


def test_empty_batch():
    report = analyze([], [], [], now=SCENARIO_NOW)
    assert report.workflows.patterns == []
    assert report.sessions == []
    assert report.score.overall == pytest.approx(45.0)
    assert report.score.grade == "D"
    assert report.recommendations == []


def test_missing_timestamps_use_reference_time():
    commands = [ShellCommand.from_text("git pull") for _ in range(3)]
    report = analyze(commands, [], [], now=SCENARIO_NOW)
    [episode] = report.shell.struggle_episodes
    assert episode.start_timestamp == SCENARIO_NOW
    assert episode.is_estimated
    assert report.generated_at == SCENARIO_NOW


def test_naive_timestamps_throughout():
    start = datetime(2026, 2, 17, 10, 0)
    commands = [
        ShellCommand.from_text("cargo build", start + timedelta(minutes=i)) for i in range(3)
    ]
    conv = AIConversation(
        id="c", start=start + timedelta(minutes=10), end=start + timedelta(minutes=20)
    )
    commit = Commit(hash="abc", timestamp=start + timedelta(minutes=25), insertions=5)
    report = analyze(commands, [conv], [commit], now=datetime(2026, 2, 18))
    assert report.ai_helpfulness_rate == 100.0
    assert report.generated_at == SCENARIO_NOW


def test_untimestamped_commands_with_naive_events():
    commands = [ShellCommand("git pull") for _ in range(3)]
    conv = AIConversation(
        id="c", start=datetime(2026, 2, 17, 23, 0), end=datetime(2026, 2, 17, 23, 30)
    )
    report = analyze(commands, [conv], [], now=datetime(2026, 2, 17, 22, 30))
    [episode] = report.shell.struggle_episodes
    assert episode.is_estimated
    assert report.workflows.struggle_to_ai_instances == 1
