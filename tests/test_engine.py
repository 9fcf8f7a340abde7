"""End-to-end tests for VibeEngine with an in-memory commit reader."""

from datetime import date, timedelta

import pytest

from vibe_check.config.schema import VibeConfig
from vibe_check.core.engine import VibeEngine, update_profile_stats
from vibe_check.core.models import InterventionType, ProfileStats, TrendDirection
from vibe_check.core.storage import VibeStorage
from vibe_check.readers.base_reader import BaseCommitReader

DAY = 24 * 60


class FakeReader(BaseCommitReader):
    def __init__(self, commits=None):
        self.commits = list(commits or [])

    def get_source_name(self):
        return "fake"

    def is_available(self):
        return True

    def read_commits(self, since=None, until=None):
        return list(self.commits)


def _spiral_window(make_commit, offset=0):
    return [
        make_commit(offset, "feat(auth): login form"),
        make_commit(offset + 5, "fix(auth): token refresh"),
        make_commit(offset + 10, "fix(auth): token expiry"),
        make_commit(offset + 15, "fix(auth): token again"),
        make_commit(offset + 30, "feat(ui): dashboard"),
    ]


@pytest.fixture
def storage(tmp_path):
    return VibeStorage(data_dir=tmp_path / "home")


@pytest.fixture
def repo(tmp_path):
    return tmp_path / "repo"


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def engine(storage, reader):
    return VibeEngine(storage=storage, reader=reader)


class TestAnalyze:
    def test_report(self, engine, reader, repo, make_commit):
        reader.commits = _spiral_window(make_commit)
        report = engine.analyze(repo, record=False)
        assert report.commit_count == 5
        assert report.fix_count == 3
        assert len(report.sessions) == 1
        assert [c.component for c in report.spirals] == ["auth"]
        assert report.pattern_summary == {"SECRETS_AUTH": 3}
        assert report.record is None

    def test_no_record_writes_nothing(self, engine, reader, repo, storage, make_commit):
        reader.commits = _spiral_window(make_commit)
        engine.analyze(repo, record=False)
        assert not (repo / ".vibe-check").exists()
        assert not storage.profile_path.exists()

    def test_records_once(self, engine, reader, repo, storage, make_commit):
        reader.commits = _spiral_window(make_commit)
        first = engine.analyze(repo, record=True)
        assert not first.record.is_duplicate
        assert first.record.reward_units > 0

        second = engine.analyze(repo, record=True)
        assert second.record.is_duplicate
        assert second.record.reward_units == 0

        profile = storage.load_profile()
        assert profile.stats.total_sessions == 1
        assert profile.stats.total_spirals_detected == 1
        assert profile.pattern_memory.total_spirals == 1
        assert len(storage.read_spiral_history().items) == 1

        store = storage.load_repo_store(repo)
        assert len(store.sessions) == 1
        assert len(store.records) == 1
        assert store.last_commit_hash == reader.commits[-1].hash
        assert len(storage.read_commit_log(repo)) == 5

    def test_empty_window(self, engine, reader, repo):
        report = engine.analyze(repo, record=True)
        assert report.commit_count == 0
        assert report.record is None
        assert not (repo / ".vibe-check").exists()

    def test_sessions_split_by_gap(self, storage, reader, repo, make_commit):
        engine = VibeEngine(storage=storage, reader=reader, config=VibeConfig(gap_minutes=60))
        reader.commits = [make_commit(0), make_commit(30), make_commit(200)]
        sessions = engine.get_sessions(repo)
        assert [s.commit_count for s in sessions] == [2, 1]


class TestInterventions:
    def test_fills_details_from_spiral_history(self, engine, reader, repo, storage, make_commit):
        reader.commits = _spiral_window(make_commit)
        engine.analyze(repo, record=True)

        record = engine.record_intervention(InterventionType.TRACER_TEST, today=date(2024, 3, 4))
        assert record.spiral_pattern == "SECRETS_AUTH"
        assert record.spiral_component == "auth"
        assert record.spiral_duration == 10
        assert storage.read_spiral_history().items[0]["resolution"] == "TRACER_TEST"
        assert storage.read_intervention_log() == [record]
        assert engine.recommend("SECRETS_AUTH") == InterventionType.TRACER_TEST

    def test_without_history(self, engine):
        record = engine.record_intervention(InterventionType.BREAK, pattern="OTHER", duration=5)
        assert record.spiral_component is None
        assert record.spiral_duration == 5
        assert engine.get_profile().intervention_memory.total_interventions == 1


class TestRetrospective:
    def test_lesson_lifecycle(self, engine, reader, repo, make_commit):
        for day in (0, 3):
            reader.commits = _spiral_window(make_commit, offset=day * DAY)
            engine.analyze(repo, record=True)

        result, db, profile = engine.retrospective()
        assert [lesson.pattern for lesson in result.created] == ["SECRETS_AUTH"]
        assert profile.pattern_memory.pattern_counts["SECRETS_AUTH"] == 2

        lessons = engine.list_lessons()
        assert len(lessons) == 1
        lesson_id = lessons[0].id

        applied = engine.apply_lesson(lesson_id, 90)
        assert applied.applied
        assert engine.dismiss_lesson(lesson_id).dismissed
        assert engine.list_lessons() == []
        assert len(engine.list_lessons(include_dismissed=True)) == 1

    def test_lessons_surfaced_when_pattern_spirals_again(self, engine, reader, repo, make_commit):
        reader.commits = _spiral_window(make_commit)
        assert engine.analyze(repo, record=True).lessons == []
        reader.commits = _spiral_window(make_commit, offset=3 * DAY)
        engine.analyze(repo, record=True)
        engine.retrospective()

        reader.commits = _spiral_window(make_commit, offset=6 * DAY)
        report = engine.analyze(repo, record=False)
        assert [s.lesson.pattern for s in report.lessons] == ["SECRETS_AUTH"]
        assert report.to_dict()["lessons"][0]["pattern"] == "SECRETS_AUTH"

    def test_no_lessons_surfaced_without_spirals(self, engine, reader, repo, make_commit):
        reader.commits = [make_commit(0, "feat: a"), make_commit(10, "feat: b")]
        assert engine.analyze(repo, record=False).lessons == []

    def test_weekly_retro_reads_recorded_analyses(self, engine, reader, repo, make_commit):
        for day in (0, 3):
            reader.commits = _spiral_window(make_commit, offset=day * DAY)
            engine.analyze(repo, record=True)

        weekly = engine.weekly_retro(repo)
        assert weekly.session_count == 2
        assert weekly.commit_count == 10
        assert weekly.spiral_count == 2
        assert weekly.spiral_rate_change is None
        assert weekly.top_pattern == "SECRETS_AUTH"

    def test_unknown_lesson(self, engine):
        with pytest.raises(ValueError):
            engine.dismiss_lesson("lesson-missing")


class TestTrendsAndStatus:
    def test_trends_from_stored_sessions(self, engine, reader, repo, make_commit):
        for day in (0, 1, 8):
            reader.commits = _spiral_window(make_commit, offset=day * DAY)
            engine.analyze(repo, record=True)

        trends, regression, recovery = engine.get_trends(repo)
        assert [w.session_count for w in trends.weekly] == [2, 1]
        assert regression.summary.startswith("Not enough data")
        assert recovery[0].component == "auth"
        assert recovery[0].direction == TrendDirection.STABLE

    def test_status(self, engine, repo):
        status = engine.get_status(repo)
        assert status["reader"] == {"source": "fake", "available": True}
        assert status["stored_sessions"] == 0
        assert status["config"]["gap_minutes"] == VibeConfig().gap_minutes


def test_update_profile_stats():
    stats = update_profile_stats(ProfileStats(), score=80, commit_count=10, spiral_count=0)
    stats = update_profile_stats(stats, score=60, commit_count=5, spiral_count=2)
    assert stats.total_sessions == 2
    assert stats.avg_score == 70.0
    assert stats.best_score == 80
    assert stats.spiral_free_sessions == 1
    assert stats.total_commits_analyzed == 15
    assert stats.total_spirals_detected == 2
