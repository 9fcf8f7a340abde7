"""
Anti-Gaming Duplicate Detection

Re-analyzing a window that was already scored must not earn rewards again.
A candidate period is a duplicate when one of the last DUPLICATE_SCAN_WINDOW
records covers exactly the same period, or when the overlap with a recorded
period is more than 80% of the candidate's own duration.

Duplicates are not errors: the caller gets ``is_duplicate=True`` and zero
reward units, and nothing is persisted.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from vibe_check.config.defaults import (
    DUPLICATE_OVERLAP_RATIO,
    DUPLICATE_SCAN_WINDOW,
    MAX_SESSION_RECORDS,
    MAX_STORED_SESSIONS,
    REWARD_UNITS,
    SESSION_HASH_OVERLAP_RATIO,
)
from vibe_check.core.models import Rating, RecordResult, SessionRecord, StoredSession

logger = logging.getLogger(__name__)


def overlap_ratio(
    period_from: datetime,
    period_to: datetime,
    other_from: datetime,
    other_to: datetime,
) -> float:
    """Fraction of ``[period_from, period_to)`` covered by the other period."""
    duration = (period_to - period_from).total_seconds()
    if duration <= 0:
        return 0.0
    start = max(period_from, other_from)
    end = min(period_to, other_to)
    overlap = max(0.0, (end - start).total_seconds())
    return overlap / duration


def is_period_duplicate(
    records: Sequence[SessionRecord],
    period_from: datetime,
    period_to: datetime,
    scan_window: int = DUPLICATE_SCAN_WINDOW,
) -> bool:
    for record in list(records)[-scan_window:]:
        if record.period_from is None or record.period_to is None:
            continue
        if record.period_from == period_from and record.period_to == period_to:
            return True
        ratio = overlap_ratio(period_from, period_to, record.period_from, record.period_to)
        if ratio > DUPLICATE_OVERLAP_RATIO:
            return True
    return False


def reward_for(rating: Rating) -> int:
    return REWARD_UNITS.get(rating.value, 0)


def record_session(
    records: Sequence[SessionRecord],
    score: int,
    rating: Rating,
    commits: int,
    spirals: int,
    period_from: Optional[datetime] = None,
    period_to: Optional[datetime] = None,
    metrics: Optional[Dict[str, float]] = None,
    now: Optional[datetime] = None,
    max_records: int = MAX_SESSION_RECORDS,
) -> Tuple[List[SessionRecord], RecordResult]:
    """Append a SessionRecord unless its period was already scored.

    Returns:
        The new record list (unchanged for a duplicate) and the outcome.
    """
    if period_from is not None and period_to is not None:
        if is_period_duplicate(records, period_from, period_to):
            logger.info("Period %s..%s already analyzed; no reward", period_from, period_to)
            return list(records), RecordResult(record=None, reward_units=0, is_duplicate=True)

    now = now or datetime.now(timezone.utc)
    units = reward_for(rating)
    record = SessionRecord(
        date=now.date().isoformat(),
        timestamp=now,
        score=score,
        rating=rating,
        commits=commits,
        spirals=spirals,
        reward_units=units,
        period_from=period_from,
        period_to=period_to,
        metrics=metrics,
    )
    updated = (list(records) + [record])[-max_records:]
    return updated, RecordResult(record=record, reward_units=units, is_duplicate=False)


def backfill_reward(
    records: Sequence[SessionRecord],
    timestamp: datetime,
    reward_units: int,
) -> List[SessionRecord]:
    """Set the reward on the record written at ``timestamp``.

    The only mutation a SessionRecord allows after it is written.
    """
    found = False
    result = []
    for record in records:
        if record.timestamp == timestamp:
            record = replace(record, reward_units=reward_units)
            found = True
        result.append(record)
    if not found:
        raise ValueError(f"No session record at {timestamp.isoformat()}")
    return result


# =============================================================================
# Stored sessions
# =============================================================================

def hash_overlap(a: Sequence[str], b: Sequence[str]) -> float:
    """Share of ``a``'s commit hashes also present in ``b``."""
    if not a:
        return 0.0
    other = set(b)
    return sum(1 for h in a if h in other) / len(a)


def merge_stored_sessions(
    existing: Sequence[StoredSession],
    incoming: Sequence[StoredSession],
    max_sessions: int = MAX_STORED_SESSIONS,
) -> Tuple[List[StoredSession], int]:
    """Add sessions that are not already stored.

    A session whose commits overlap a stored session by more than 80% is the
    same session seen again and is skipped.

    Returns:
        The merged list (oldest first, capped) and how many were added.
    """
    merged = list(existing)
    added = 0
    for session in incoming:
        if any(
            hash_overlap(session.commit_hashes, stored.commit_hashes) > SESSION_HASH_OVERLAP_RATIO
            for stored in merged
        ):
            continue
        merged.append(session)
        added += 1
    merged.sort(key=lambda s: s.start)
    return merged[-max_sessions:], added
