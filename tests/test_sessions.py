"""Tests for session segmentation, active hours and flow-state detection."""

import random

import pytest

from vibe_check.analyzers.sessions import (
    active_hours,
    compute_session_stats,
    detect_flow_state,
    segment_sessions,
    sort_commits,
)


class TestSegmentSessions:
    def test_empty_input(self):
        result = segment_sessions([])
        assert result.sessions == []
        assert result.stats.total_sessions == 0
        assert result.range_start is None

    def test_gap_splits_sessions(self, make_commit):
        commits = [make_commit(0), make_commit(30), make_commit(200), make_commit(210)]
        result = segment_sessions(commits, gap_minutes=90)
        assert [s.commit_count for s in result.sessions] == [2, 2]
        assert [s.session_id for s in result.sessions] == [1, 2]

    def test_gap_equal_to_threshold_stays_in_session(self, make_commit):
        commits = [make_commit(0), make_commit(90)]
        assert len(segment_sessions(commits, gap_minutes=90).sessions) == 1

    def test_gap_just_over_threshold_splits(self, make_commit):
        commits = [make_commit(0), make_commit(91)]
        assert len(segment_sessions(commits, gap_minutes=90).sessions) == 2

    def test_duration_and_bounds(self, make_commit):
        commits = [make_commit(0), make_commit(45), make_commit(75)]
        session = segment_sessions(commits).sessions[0]
        assert session.duration_minutes == 75.0
        assert session.start == commits[0].timestamp
        assert session.end == commits[-1].timestamp

    def test_order_independent(self, make_commit):
        commits = [make_commit(m) for m in (0, 10, 20, 150, 160, 400)]
        shuffled = list(commits)
        random.Random(7).shuffle(shuffled)
        a = segment_sessions(commits)
        b = segment_sessions(shuffled)
        assert [[c.hash for c in s.commits] for s in a.sessions] == \
            [[c.hash for c in s.commits] for s in b.sessions]

    def test_lower_gap_never_fewer_sessions(self, make_commit):
        commits = [make_commit(m) for m in (0, 20, 65, 130, 140, 300, 305)]
        counts = [len(segment_sessions(commits, gap).sessions) for gap in (10, 30, 60, 90, 180)]
        assert counts == sorted(counts, reverse=True)

    def test_every_commit_in_exactly_one_session(self, make_commit):
        commits = [make_commit(m) for m in (0, 5, 100, 300, 301)]
        result = segment_sessions(commits)
        hashes = [c.hash for s in result.sessions for c in s.commits]
        assert sorted(hashes) == sorted(c.hash for c in commits)

    def test_non_positive_gap_rejected(self, make_commit):
        with pytest.raises(ValueError, match="gap_minutes"):
            segment_sessions([make_commit(0)], gap_minutes=0)

    def test_ties_broken_by_hash(self, make_commit):
        b = make_commit(0, hash="bbb")
        a = make_commit(0, hash="aaa")
        assert [c.hash for c in sort_commits([b, a])] == ["aaa", "bbb"]


class TestSessionStats:
    def test_stats(self, make_commit):
        commits = [make_commit(0), make_commit(30), make_commit(200), make_commit(220), make_commit(230)]
        stats = segment_sessions(commits).stats
        assert stats.total_sessions == 2
        assert stats.total_commits == 5
        assert stats.avg_commits_per_session == 2.5
        assert stats.longest_session_minutes == 30.0
        assert stats.shortest_session_minutes == 30.0

    def test_empty_stats(self):
        assert compute_session_stats([]).total_sessions == 0


class TestActiveHours:
    def test_empty(self):
        assert active_hours([]) == 0.0

    def test_span_sum(self, make_commit):
        commits = [make_commit(m) for m in range(0, 121, 12)]  # 11 commits over 2h
        assert active_hours(commits) == pytest.approx(2.0)

    def test_per_commit_floor(self, make_commit):
        commits = [make_commit(0), make_commit(1)]
        assert active_hours(commits) == pytest.approx(20 / 60)

    def test_idle_gaps_excluded(self, make_commit):
        commits = [make_commit(m) for m in (0, 60, 300, 360)]
        # two sessions of 60 min each, floor 40 min
        assert active_hours(commits) == pytest.approx(2.0)


class TestFlowState:
    def _session(self, commits):
        return segment_sessions(commits).sessions[0]

    def test_steady_feature_work_is_flow(self, make_commit):
        commits = [make_commit(m, "feat: step") for m in (0, 10, 20, 30, 40, 50)]
        assert detect_flow_state(self._session(commits)) is True

    def test_too_short(self, make_commit):
        commits = [make_commit(m, "feat: step") for m in (0, 5, 10, 15, 20, 25)]
        assert detect_flow_state(self._session(commits)) is False

    def test_too_many_fixes(self, make_commit):
        commits = [make_commit(m, "fix: step") for m in (0, 10, 20, 30, 40, 50)]
        assert detect_flow_state(self._session(commits)) is False

    def test_internal_gap_breaks_flow(self, make_commit):
        commits = [make_commit(m, "feat: step") for m in (0, 5, 10, 15, 20, 60)]
        assert detect_flow_state(self._session(commits)) is False
