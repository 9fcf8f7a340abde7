"""
Session Segmenter

Clusters a commit stream into work sessions. A new session starts whenever the
gap since the previous commit exceeds the threshold (default 90 minutes), so a
lower threshold never yields fewer sessions than a higher one.

Also computes active hours (the sum of session spans, with a per-commit floor)
and detects flow states: long, steady runs of non-fix work.
"""

import logging
import statistics
from datetime import timedelta
from typing import List, Sequence

from vibe_check.config.defaults import (
    DEFAULT_GAP_MINUTES,
    FLOW_MAX_GAP_MINUTES,
    FLOW_MIN_COMMITS,
    FLOW_MIN_DURATION_MINUTES,
    MIN_MINUTES_PER_COMMIT,
)
from vibe_check.core.models import Commit, SegmentationResult, Session, SessionStats

logger = logging.getLogger(__name__)


def sort_commits(commits: Sequence[Commit]) -> List[Commit]:
    """Chronological order, ties broken by hash so the result is deterministic."""
    return sorted(commits, key=lambda c: (c.timestamp, c.hash))


def _minutes(delta: timedelta) -> float:
    return delta.total_seconds() / 60.0


def split_into_sessions(
    commits: Sequence[Commit],
    gap_minutes: float = DEFAULT_GAP_MINUTES,
) -> List[List[Commit]]:
    """Partition commits into runs with no internal gap above ``gap_minutes``."""
    groups: List[List[Commit]] = []
    for commit in sort_commits(commits):
        if groups and _minutes(commit.timestamp - groups[-1][-1].timestamp) <= gap_minutes:
            groups[-1].append(commit)
        else:
            groups.append([commit])
    return groups


def segment_sessions(
    commits: Sequence[Commit],
    gap_minutes: float = DEFAULT_GAP_MINUTES,
) -> SegmentationResult:
    """Segment commits into Sessions and summarize them.

    Input order does not matter; commits are sorted first.

    Args:
        commits: Commits in any order.
        gap_minutes: Idle time (minutes) that closes a session.

    Returns:
        SegmentationResult with 1-based session ids and summary stats.
    """
    if gap_minutes <= 0:
        raise ValueError(f"gap_minutes must be positive, got {gap_minutes}")

    sessions = []
    for index, group in enumerate(split_into_sessions(commits, gap_minutes), start=1):
        start, end = group[0].timestamp, group[-1].timestamp
        sessions.append(Session(
            session_id=index,
            commits=group,
            start=start,
            end=end,
            duration_minutes=round(_minutes(end - start), 1),
        ))

    logger.debug("Segmented %d commits into %d sessions (gap=%s min)",
                 len(commits), len(sessions), gap_minutes)

    return SegmentationResult(
        sessions=sessions,
        stats=compute_session_stats(sessions),
        range_start=sessions[0].start if sessions else None,
        range_end=sessions[-1].end if sessions else None,
    )


def compute_session_stats(sessions: Sequence[Session]) -> SessionStats:
    if not sessions:
        return SessionStats()

    durations = [s.duration_minutes for s in sessions]
    total_commits = sum(s.commit_count for s in sessions)
    return SessionStats(
        total_sessions=len(sessions),
        total_commits=total_commits,
        avg_commits_per_session=round(total_commits / len(sessions), 1),
        avg_duration_minutes=round(sum(durations) / len(durations), 1),
        median_duration_minutes=round(statistics.median(durations), 1),
        longest_session_minutes=max(durations),
        shortest_session_minutes=min(durations),
    )


def active_hours(
    commits: Sequence[Commit],
    gap_minutes: float = DEFAULT_GAP_MINUTES,
) -> float:
    """Working time in hours with idle gaps excluded.

    Each commit is credited at least ``MIN_MINUTES_PER_COMMIT`` so that a
    burst of commits in a few seconds does not imply infinite velocity.
    """
    if not commits:
        return 0.0
    span_minutes = sum(
        _minutes(group[-1].timestamp - group[0].timestamp)
        for group in split_into_sessions(commits, gap_minutes)
    )
    floor_minutes = len(commits) * MIN_MINUTES_PER_COMMIT
    return max(span_minutes, floor_minutes) / 60.0


def detect_flow_state(session: Session) -> bool:
    """A flow state is a long, steady session of non-fix work."""
    if session.duration_minutes < FLOW_MIN_DURATION_MINUTES:
        return False

    non_fix = [c for c in session.commits if not c.is_fix]
    if len(non_fix) < FLOW_MIN_COMMITS:
        return False

    for prev, curr in zip(session.commits, session.commits[1:]):
        if _minutes(curr.timestamp - prev.timestamp) > FLOW_MAX_GAP_MINUTES:
            return False
    return True
