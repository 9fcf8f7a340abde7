"""
Trend Analyzer

Rolls stored sessions into ISO-week (Monday start) and calendar-month buckets.
Buckets are computed fresh on every request; only the 12 most recent weeks
and 6 most recent months are kept, oldest first.

Also reports week-over-week changes and per-component recovery-time trends.
"""

from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Sequence, Type, TypeVar

from vibe_check.config.defaults import (
    MAX_MONTHLY_BUCKETS,
    MAX_WEEKLY_BUCKETS,
    RECOVERY_STABLE_PERCENT,
    TREND_STABLE_PERCENT,
)
from vibe_check.core.models import (
    MonthTrend,
    RecoveryTrend,
    StoredSession,
    TrendBucket,
    TrendDirection,
    TrendImprovement,
    TrendReport,
    WeekTrend,
)

B = TypeVar("B", bound=TrendBucket)


def week_key(moment: datetime) -> str:
    day: date = moment.date()
    return (day - timedelta(days=day.weekday())).isoformat()


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def _rollup(
    sessions: Sequence[StoredSession],
    key_fn: Callable[[datetime], str],
    bucket_cls: Type[B],
    keep: int,
) -> List[B]:
    groups: Dict[str, List[StoredSession]] = {}
    for session in sessions:
        groups.setdefault(key_fn(session.start), []).append(session)

    buckets = []
    for key in sorted(groups)[-keep:]:
        members = groups[key]
        buckets.append(bucket_cls(
            key=key,
            session_count=len(members),
            commit_count=sum(s.commit_count for s in members),
            flow_state_count=sum(1 for s in members if s.flow_state),
            spiral_count=sum(s.spiral_count for s in members),
            avg_score=round(sum(s.score for s in members) / len(members), 1),
            active_minutes=round(sum(s.duration_minutes for s in members), 1),
        ))
    return buckets


def weekly_trends(sessions: Sequence[StoredSession], keep: int = MAX_WEEKLY_BUCKETS) -> List[WeekTrend]:
    return _rollup(sessions, week_key, WeekTrend, keep)


def monthly_trends(sessions: Sequence[StoredSession], keep: int = MAX_MONTHLY_BUCKETS) -> List[MonthTrend]:
    return _rollup(sessions, month_key, MonthTrend, keep)


def _direction(change: float, higher_is_better: bool) -> TrendDirection:
    if abs(change) <= TREND_STABLE_PERCENT:
        return TrendDirection.STABLE
    improving = change > 0 if higher_is_better else change < 0
    return TrendDirection.IMPROVING if improving else TrendDirection.DECLINING


def week_over_week(weekly: Sequence[WeekTrend]) -> List[TrendImprovement]:
    """Compare the last two weeks' flow states and spirals.

    Spiral change is reported with its sign flipped so a positive number
    always means "better".
    """
    if len(weekly) < 2:
        return []

    previous, recent = weekly[-2], weekly[-1]
    improvements = []
    if previous.flow_state_count > 0:
        change = (recent.flow_state_count - previous.flow_state_count) / previous.flow_state_count * 100
        improvements.append(TrendImprovement(
            metric="flow_states",
            direction=_direction(change, higher_is_better=True),
            change_percent=round(change),
            period=recent.key,
        ))
    if previous.spiral_count > 0:
        change = (recent.spiral_count - previous.spiral_count) / previous.spiral_count * 100
        improvements.append(TrendImprovement(
            metric="spirals",
            direction=_direction(change, higher_is_better=False),
            change_percent=round(-change),
            period=recent.key,
        ))
    return improvements


def build_trends(sessions: Sequence[StoredSession]) -> TrendReport:
    weekly = weekly_trends(sessions)
    return TrendReport(
        weekly=weekly,
        monthly=monthly_trends(sessions),
        improvements=week_over_week(weekly),
    )


# =============================================================================
# Recovery time
# =============================================================================

def _component_minutes(session: StoredSession, component: str) -> float:
    if len(session.spiral_minutes) == len(session.spiral_components):
        return float(sum(
            m for c, m in zip(session.spiral_components, session.spiral_minutes) if c == component
        ))
    # Older records have no per-spiral minutes; session length stands in
    return session.duration_minutes


def recovery_trend(sessions: Sequence[StoredSession], component: str) -> RecoveryTrend:
    """Are spirals on ``component`` resolving faster than they used to?

    Compares the mean of the last three affected sessions with the overall
    mean; a shift within 15% is stable.
    """
    relevant = sorted(
        (s for s in sessions if component in s.spiral_components),
        key=lambda s: s.start,
    )
    if len(relevant) < 2:
        return RecoveryTrend(component, TrendDirection.INSUFFICIENT_DATA, 0.0, 0.0, len(relevant))

    minutes = [_component_minutes(s, component) for s in relevant]
    overall = sum(minutes) / len(minutes)
    recent_window = minutes[-3:]
    recent = sum(recent_window) / len(recent_window)
    change = (recent - overall) / overall * 100 if overall else 0.0

    if change < -RECOVERY_STABLE_PERCENT:
        direction = TrendDirection.IMPROVING
    elif change > RECOVERY_STABLE_PERCENT:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE
    return RecoveryTrend(component, direction, round(overall), round(recent), len(relevant))


def recovery_trends(sessions: Sequence[StoredSession]) -> List[RecoveryTrend]:
    """Recovery trend for every component with at least two spiral sessions."""
    components: Dict[str, None] = {}
    for session in sessions:
        for component in session.spiral_components:
            components[component] = None

    trends = [recovery_trend(sessions, c) for c in components]
    trends = [t for t in trends if t.direction != TrendDirection.INSUFFICIENT_DATA]
    return sorted(trends, key=lambda t: -t.samples)
