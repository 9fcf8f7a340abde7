"""Tests for the plain-text digest generator."""

from datetime import datetime, timedelta, timezone

import pytest

from vibe_check.core.engine import VibeEngine
from vibe_check.core.models import (
    AlertSeverity,
    InterventionType,
    RecordResult,
    RegressionAlert,
    RegressionAnalysis,
    SynthesisResult,
    TrendDirection,
    VibeReport,
    WeeklyRetro,
)
from vibe_check.core.storage import VibeStorage
from vibe_check.insights.generator import DigestGenerator
from vibe_check.insights.trends import build_trends, recovery_trends
from vibe_check.learning.lessons import create_lessons_database, surface_lessons
from vibe_check.learning.pattern_memory import update_pattern_memory
from vibe_check.learning.synthesis import synthesize_lessons


@pytest.fixture
def generator():
    return DigestGenerator()


@pytest.fixture
def report(tmp_path, make_commit):
    engine = VibeEngine(storage=VibeStorage(tmp_path))
    commits = [
        make_commit(0, "feat(auth): login"),
        make_commit(5, "fix(auth): token"),
        make_commit(10, "fix(auth): token again"),
        make_commit(15, "fix(auth): token once more"),
    ]
    return engine.analyze_commits(commits)


class TestFormatReport:
    def test_empty(self, generator):
        text = generator.format_report(VibeReport(period_start=None, period_end=None))
        assert "No commits found" in text

    def test_sections(self, generator, report):
        text = generator.format_report(report)
        assert "vibe-check Report" in text
        assert "Iteration Velocity" in text
        assert "Flow Efficiency" in text
        assert "Secrets & Auth" in text
        assert "vibe-check intervene" in text

    def test_recommendation_shown(self, generator, report):
        text = generator.format_report(report, InterventionType.TRACER_TEST)
        assert "What worked before: Tracer Test" in text

    def test_duplicate_notice(self, generator, report):
        report.record = RecordResult(record=None, reward_units=0, is_duplicate=True)
        assert "already recorded" in generator.format_report(report)

    def test_reward_notice(self, generator, report):
        report.record = RecordResult(record=None, reward_units=75, is_duplicate=False)
        assert "Reward: 75 units" in generator.format_report(report)


class TestFormatSessions:
    def test_empty(self, generator):
        assert "No sessions found" in generator.format_sessions([])

    def test_lists_sessions(self, generator, report):
        text = generator.format_sessions(report.sessions)
        assert "1 sessions" in text
        assert "1 spiral(s)" in text
        assert "auth" in text


class TestFormatTrends:
    def test_empty(self, generator):
        text = generator.format_trends(build_trends([]), RegressionAnalysis(), [])
        assert "No stored sessions yet" in text

    def test_with_alerts_and_recovery(self, generator, make_stored_session):
        sessions = [
            make_stored_session(day=d, spiral_count=1, spiral_components=["auth"], spiral_minutes=[m])
            for d, m in ((0, 40), (7, 40), (8, 5))
        ]
        alert = RegressionAlert(
            type="spiral_increase",
            severity=AlertSeverity.CRITICAL,
            message="Spiral rate increased 200% after previous improvement",
            metric="spiral_rate",
            current_value=0.3,
            baseline_value=0.1,
            change_percent=200,
            period="2024-03-11",
            recommendation="Consider adding tracer tests.",
        )
        regression = RegressionAnalysis(has_regression=True, alerts=[alert], summary="1 critical")
        recovery = recovery_trends(sessions)
        assert recovery[0].direction == TrendDirection.STABLE

        text = generator.format_trends(build_trends(sessions), regression, recovery)
        assert "2024-03-04" in text
        assert "2024-03" in text
        assert "Week over week" in text
        assert "!! Spiral rate increased 200%" in text
        assert "Recovery time by component" in text


class TestFormatLessons:
    def test_empty(self, generator):
        assert "No lessons yet" in generator.format_lessons([])

    def test_retro(self, generator, make_chain, tmp_path):
        now = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)
        memory = update_pattern_memory(None, [make_chain(), make_chain(component="vault")])
        db, result = synthesize_lessons(create_lessons_database(now), memory, now=now)
        profile = VibeStorage(tmp_path).load_profile()
        profile.pattern_memory = memory

        text = generator.format_retro(result, db, profile)
        assert "vibe-check Retrospective" in text
        assert "1 created, 0 updated" in text
        assert "Secrets & Auth causes recurring spirals" in text

        listing = generator.format_lessons(db.lessons)
        assert listing.strip().startswith("1. [")

    def test_retro_nothing_changed(self, generator, tmp_path):
        profile = VibeStorage(tmp_path).load_profile()
        db = create_lessons_database()
        text = generator.format_retro(SynthesisResult(), db, profile)
        assert "0 active lessons, none changed" in text


class TestScoreBar:
    @pytest.mark.parametrize("score,filled", [(0, 0), (50, 10), (100, 20), (150, 20), (-5, 0)])
    def test_bar(self, generator, score, filled):
        bar = generator._score_bar(score)
        assert bar.count("#") == filled
        assert len(bar) == 22


class TestSurfacedAndWeekly:
    def test_report_shows_surfaced_lessons(self, generator, report, make_chain):
        now = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)
        memory = update_pattern_memory(None, [make_chain(), make_chain(component="vault")])
        db, _ = synthesize_lessons(create_lessons_database(now), memory, now=now)
        report.lessons = surface_lessons(db, "SECRETS_AUTH", now)

        text = generator.format_report(report)
        assert "Lessons from past spirals" in text
        assert "LESSON: Secrets & Auth causes recurring spirals" in text
        assert "You've seen Secrets & Auth 2 times before" in text
        assert "vibe-check lessons --pattern SECRETS_AUTH" in text

    def test_report_without_lessons(self, generator, report):
        assert "Lessons from past spirals" not in generator.format_report(report)

    def test_retro_with_weekly_summary(self, generator, tmp_path):
        now = datetime(2024, 3, 11, 12, 0, tzinfo=timezone.utc)
        weekly = WeeklyRetro(
            period_start=now - timedelta(days=7),
            period_end=now,
            session_count=3,
            commit_count=21,
            spiral_count=1,
            avg_score=72,
            key_insight="Secrets & Auth is your main spiral trigger (2 occurrences)",
            trust_pass_rate_change=-4,
            spiral_rate_change=50,
        )
        profile = VibeStorage(tmp_path).load_profile()
        text = generator.format_retro(SynthesisResult(), create_lessons_database(), profile, weekly)
        assert "This Week (2024-03-04 to 2024-03-11)" in text
        assert "3 analyses, 21 commits, 1 spirals, avg score 72%" in text
        assert "Trust Pass Rate: -4%" in text
        assert "Spiral Reduction: +50%" in text
        assert "Key insight: Secrets & Auth" in text
        assert "vibe-check Retrospective" in text
