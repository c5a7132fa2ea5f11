"""Tests for AI impact metrics."""

from datetime import datetime, timedelta, timezone

import pytest

from gptme_workflow_insights.events import AIConversation, Commit
from gptme_workflow_insights.metrics import (
    UNKNOWN_LANGUAGE,
    calculate_velocities,
    compute_ai_impact,
    learning_curve,
    most_ai_assisted_language,
    most_productive_hour,
    velocity_improvement,
)
from gptme_workflow_insights.sessions import AISession, SessionArchetype, build_sessions

T0 = datetime(2026, 2, 17, 10, 0, tzinfo=timezone.utc)


def _commit(at: datetime, hash: str, lines: int = 10, languages: dict | None = None):
    return Commit(
        hash=hash,
        timestamp=at,
        insertions=lines,
        files_changed=1,
        language_breakdown=languages or {},
    )


def _session(
    start: datetime,
    minutes: float,
    commits: list[Commit],
    archetype=SessionArchetype.INTENSE_COLLABORATION,
    id: str = "c",
) -> AISession:
    conv = AIConversation(id=id, start=start, end=start + timedelta(minutes=minutes))
    if not commits:
        archetype = SessionArchetype.LEARNING_SESSION
    return AISession(conversation=conv, commits=commits, archetype=archetype)


class TestVelocity:
    def test_ai_and_solo_velocity(self):
        session = _session(
            T0, 60, [_commit(T0 + timedelta(minutes=i * 10), f"a{i}") for i in range(3)]
        )
        solo = [_commit(T0, "s1"), _commit(T0 + timedelta(hours=4), "s2")]
        ai, solo_v = calculate_velocities([session], solo)
        assert ai == pytest.approx(3.0)
        assert solo_v == pytest.approx(0.5)
        assert velocity_improvement(ai, solo_v) == pytest.approx(500.0)

    def test_short_sessions_use_minimum_duration(self):
        session = _session(T0, 0, [_commit(T0, "a")])
        ai, _ = calculate_velocities([session], [])
        assert ai == pytest.approx(10.0)

    def test_solo_span_at_least_one_hour(self):
        solo = [_commit(T0, "s1"), _commit(T0 + timedelta(minutes=10), "s2")]
        _, solo_v = calculate_velocities([], solo)
        assert solo_v == pytest.approx(2.0)

    def test_no_solo_baseline(self):
        _, solo_v = calculate_velocities([], [_commit(T0, "s1")])
        assert solo_v == 0.0
        assert velocity_improvement(5.0, 0.0) == 0.0

    def test_improvement_never_negative(self):
        assert velocity_improvement(1.0, 2.0) == 0.0


class TestRankings:
    def test_language_counted_per_session_with_alphabetical_ties(self):
        sessions = [
            _session(T0, 30, [_commit(T0, "a", languages={"Rust": 500})]),
            _session(T0, 30, [_commit(T0, "b", languages={"Go": 1})]),
        ]
        assert most_ai_assisted_language(sessions) == "Go"
        sessions.append(_session(T0, 30, [_commit(T0, "c", languages={"Rust": 1})]))
        assert most_ai_assisted_language(sessions) == "Rust"

    def test_language_unknown_without_sessions(self):
        assert most_ai_assisted_language([]) == UNKNOWN_LANGUAGE
        assert most_ai_assisted_language([_session(T0, 30, [])]) == UNKNOWN_LANGUAGE

    def test_most_productive_hour(self):
        nine = T0.replace(hour=9)
        two_pm = T0.replace(hour=14)
        sessions = [
            _session(nine, 30, [_commit(nine, "a")]),
            _session(two_pm, 30, [_commit(two_pm, h) for h in ("b", "c", "d")]),
        ]
        assert most_productive_hour(sessions) == 14

    def test_most_productive_hour_ties_pick_lowest(self):
        sessions = [
            _session(T0.replace(hour=16), 30, [_commit(T0, "a")]),
            _session(T0.replace(hour=8), 30, [_commit(T0, "b")]),
        ]
        assert most_productive_hour(sessions) == 8
        assert most_productive_hour([]) == 0


class TestLearningCurve:
    def test_ai_only_and_solo_only_months(self):
        jan = datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)
        feb = datetime(2026, 2, 3, 10, 0, tzinfo=timezone.utc)
        sessions = [_session(jan, 30, [_commit(jan, "a"), _commit(jan, "b")])]
        curve = learning_curve(sessions, [_commit(feb, "s")])
        assert [row.month for row in curve] == ["2026-01", "2026-02"]
        assert curve[0].dependency_pct == 100.0
        assert curve[0].ai_assisted_commits == 2
        assert curve[1].dependency_pct == 0.0
        assert curve[1].solo_commits == 1

    def test_ai_commits_count_in_session_start_month(self):
        start = datetime(2026, 1, 31, 23, 30, tzinfo=timezone.utc)
        commit = _commit(datetime(2026, 2, 1, 0, 15, tzinfo=timezone.utc), "a")
        curve = learning_curve([_session(start, 30, [commit])], [])
        assert [row.month for row in curve] == ["2026-01"]


class TestComputeAIImpact:
    def test_report(self):
        start = datetime(2026, 1, 31, 23, 30, tzinfo=timezone.utc)
        a = _commit(datetime(2026, 2, 1, 0, 15, tzinfo=timezone.utc), "a", languages={"Rust": 10})
        b = _commit(
            datetime(2026, 2, 1, 0, 20, tzinfo=timezone.utc), "b", languages={"Python": 10}
        )
        solo = [
            _commit(datetime(2026, 2, 5, 9, 0, tzinfo=timezone.utc), "s1", lines=5),
            _commit(datetime(2026, 2, 5, 13, 0, tzinfo=timezone.utc), "s2", lines=5),
        ]
        sessions = [
            _session(start, 60, [a, b]),
            _session(datetime(2026, 2, 10, 14, 0, tzinfo=timezone.utc), 30, [], id="learn"),
        ]
        report = compute_ai_impact(sessions, [a, b, *solo])

        assert report.total_sessions == 1
        assert report.conversation_count == 2
        assert report.ai_assisted_commits == 2
        assert report.solo_commits == 2
        assert report.ai_assistance_rate == pytest.approx(50.0)
        assert report.ai_velocity == pytest.approx(2.0)
        assert report.solo_velocity == pytest.approx(0.5)
        assert report.velocity_improvement == pytest.approx(300.0)
        assert report.lines_written_with_ai == 20
        assert report.lines_written_solo == 10
        assert report.ai_contribution_percentage == pytest.approx(200 / 3)
        assert report.avg_files_per_commit_with_ai == 1.0
        assert report.most_ai_assisted_language == "Python"
        assert report.most_productive_hour == 23
        assert [row.month for row in report.learning_curve] == ["2026-01", "2026-02"]
        assert report.deep_collaboration_count == 1
        assert report.archetype_counts == {
            "intense_collaboration": 1,
            "claude_guided_refactor": 0,
            "quick_fix": 0,
            "learning_session": 1,
            "copy_paste_from_claude": 0,
        }

    def test_only_solo_commits(self):
        commits = [_commit(T0, "s1"), _commit(T0 + timedelta(hours=2), "s2")]
        report = compute_ai_impact([], commits)
        assert report.ai_assisted_commits == 0
        assert report.solo_velocity == pytest.approx(1.0)
        assert report.velocity_improvement == 0.0
        assert report.ai_assistance_rate == 0.0
        assert report.most_ai_assisted_language == UNKNOWN_LANGUAGE

    def test_empty(self):
        report = compute_ai_impact([], [])
        assert report.total_sessions == 0
        assert report.learning_curve == []
        assert sum(report.archetype_counts.values()) == 0

    def test_overlapping_sessions_count_commits_once(self):
        a = AIConversation(id="a", start=T0, end=T0 + timedelta(minutes=30), tool_use_count=6)
        b = AIConversation(
            id="b",
            start=T0 + timedelta(minutes=20),
            end=T0 + timedelta(minutes=40),
            tool_use_count=6,
        )
        commits = [
            _commit(T0 + timedelta(minutes=45 + i), f"c{i}", languages={"Go": 10})
            for i in range(3)
        ]
        sessions = build_sessions([a, b], commits, timedelta(hours=2))
        report = compute_ai_impact(sessions, commits)
        assert report.ai_assisted_commits == 3
        assert report.solo_commits == 0
        assert report.lines_written_with_ai == 30
        assert report.total_sessions == 1
        assert report.deep_collaboration_count == 2
        assert [row.ai_assisted_commits for row in report.learning_curve] == [3]
