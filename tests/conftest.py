"""Shared test fixtures for vibe-check."""

from datetime import datetime, timezone, timedelta

import pytest

from vibe_check.core.models import (
    Commit,
    FixChain,
    PatternCategory,
    Rating,
    SessionRecord,
    StoredSession,
)
from vibe_check.readers.git_reader import parse_commit_message


@pytest.fixture
def t0():
    """A fixed Monday morning so week bucketing is predictable."""
    return datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_commit(t0):
    """Factory for Commit objects. ``minutes`` is an offset from t0."""
    counter = {"n": 0}

    def _make(
        minutes=0,
        message="feat: add widget",
        type=None,
        scope=None,
        files=(),
        lines_added=0,
        lines_deleted=0,
        hash=None,
        author="dev",
    ):
        counter["n"] += 1
        parsed_type, parsed_scope = parse_commit_message(message)
        if type is None:
            type = parsed_type
        if scope is None:
            scope = parsed_scope
        return Commit(
            hash=hash or f"c{counter['n']:06d}",
            timestamp=t0 + timedelta(minutes=minutes),
            author=author,
            message=message,
            type=type,
            scope=scope,
            files=tuple(files),
            lines_added=lines_added,
            lines_deleted=lines_deleted,
        )

    return _make


@pytest.fixture
def make_chain(t0):
    """Factory for FixChain objects."""

    def _make(
        component="auth",
        commit_count=3,
        duration_minutes=20,
        pattern=PatternCategory.SECRETS_AUTH,
        is_spiral=None,
        start=None,
    ):
        first = start or t0
        return FixChain(
            component=component,
            commit_count=commit_count,
            duration_minutes=duration_minutes,
            pattern=pattern,
            is_spiral=commit_count >= 3 if is_spiral is None else is_spiral,
            first_commit=first,
            last_commit=first + timedelta(minutes=duration_minutes),
            commit_hashes=[f"h{i}" for i in range(commit_count)],
        )

    return _make


@pytest.fixture
def make_stored_session(t0):
    """Factory for StoredSession objects. ``day`` is an offset from t0."""
    counter = {"n": 0}

    def _make(
        day=0,
        duration_minutes=60.0,
        commit_count=5,
        score=80,
        flow_state=False,
        spiral_count=0,
        spiral_components=None,
        spiral_minutes=None,
        velocity=3.0,
        commit_hashes=None,
    ):
        counter["n"] += 1
        start = t0 + timedelta(days=day)
        components = spiral_components or []
        return StoredSession(
            id=f"s{counter['n']}",
            date=start.date().isoformat(),
            start=start,
            end=start + timedelta(minutes=duration_minutes),
            duration_minutes=duration_minutes,
            commit_count=commit_count,
            commit_hashes=commit_hashes or [f"s{counter['n']}-{i}" for i in range(commit_count)],
            rating=Rating.HIGH,
            score=score,
            velocity=velocity,
            flow_state=flow_state,
            spiral_count=spiral_count,
            spiral_components=components,
            spiral_minutes=spiral_minutes if spiral_minutes is not None else [20] * len(components),
        )

    return _make


@pytest.fixture
def make_record(t0):
    """Factory for SessionRecord objects covering [from, to) in hours from t0."""

    def _make(from_hours=0.0, to_hours=1.0, score=70, rating=Rating.HIGH, timestamp=None):
        return SessionRecord(
            date=t0.date().isoformat(),
            timestamp=timestamp or t0 + timedelta(hours=to_hours),
            score=score,
            rating=rating,
            commits=5,
            spirals=0,
            reward_units=75,
            period_from=t0 + timedelta(hours=from_hours),
            period_to=t0 + timedelta(hours=to_hours),
        )

    return _make
