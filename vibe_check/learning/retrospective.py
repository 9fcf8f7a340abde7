"""
Weekly Retrospective

Summarizes the last week of recorded analyses for one repository and compares
it with the week before: trust pass rate from the persisted metrics snapshot,
spiral rate from the recorded spiral counts.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from vibe_check.config.defaults import RETRO_WINDOW_DAYS
from vibe_check.core.models import (
    InterventionMemory,
    PatternMemory,
    SessionRecord,
    WeeklyRetro,
)
from vibe_check.learning.intervention_memory import summarize_intervention_memory
from vibe_check.learning.pattern_memory import summarize_pattern_memory

logger = logging.getLogger(__name__)


def records_between(
    records: Sequence[SessionRecord],
    start: datetime,
    end: datetime,
) -> List[SessionRecord]:
    """Records whose timestamp falls in ``(start, end]``."""
    return [r for r in records if start < r.timestamp <= end]


def _avg_trust(records: Sequence[SessionRecord]) -> Optional[float]:
    values = [
        r.metrics["trust_pass_rate"]
        for r in records
        if r.metrics and r.metrics.get("trust_pass_rate") is not None
    ]
    if not values:
        return None
    return sum(values) / len(values)


def _spiral_rate(records: Sequence[SessionRecord]) -> float:
    return sum(r.spirals for r in records) / len(records)


def build_weekly_retro(
    records: Sequence[SessionRecord],
    pattern_memory: Optional[PatternMemory] = None,
    intervention_memory: Optional[InterventionMemory] = None,
    now: Optional[datetime] = None,
    days: int = RETRO_WINDOW_DAYS,
) -> WeeklyRetro:
    """Build the weekly summary.

    Args:
        records: Session records of one repository.
        pattern_memory: Used for the top spiral trigger.
        intervention_memory: Used for the most used intervention.
        now: Clock override; the week ends here.
        days: Length of each compared window.

    Returns:
        WeeklyRetro. Week-over-week changes are None unless both weeks have
        records; the spiral rate change is positive when spirals went down.
    """
    now = now or datetime.now(timezone.utc)
    week_start = now - timedelta(days=days)
    current = records_between(records, week_start, now)
    previous = records_between(records, week_start - timedelta(days=days), week_start)

    patterns = summarize_pattern_memory(pattern_memory)
    interventions = summarize_intervention_memory(intervention_memory)
    top_pattern = patterns["top_patterns"][0] if patterns["top_patterns"] else None
    top_intervention = (
        interventions["top_interventions"][0]["name"] if interventions["top_interventions"] else None
    )

    retro = WeeklyRetro(
        period_start=week_start,
        period_end=now,
        session_count=len(current),
        commit_count=sum(r.commits for r in current),
        spiral_count=sum(r.spirals for r in current),
        avg_score=round(sum(r.score for r in current) / len(current)) if current else 0,
        top_pattern=top_pattern["pattern"] if top_pattern else None,
        top_intervention=top_intervention,
    )

    if current and previous:
        current_trust = _avg_trust(current)
        previous_trust = _avg_trust(previous)
        if current_trust is not None and previous_trust is not None:
            retro.trust_pass_rate_change = round(current_trust - previous_trust)
        previous_rate = _spiral_rate(previous)
        retro.spiral_rate_change = round(
            (previous_rate - _spiral_rate(current)) / (previous_rate or 1) * 100
        )

    if not current:
        retro.key_insight = "No analyses recorded this week"
    elif retro.spiral_count == 0:
        retro.key_insight = "Zero spirals this week: excellent flow"
    elif top_pattern:
        retro.key_insight = (
            f"{top_pattern['name']} is your main spiral trigger ({top_pattern['count']} occurrences)"
        )
    else:
        retro.key_insight = f"{len(current)} analyses with {retro.avg_score}% average score"

    logger.info(
        "Weekly retro: %d analyses, %d spirals, trust change %s, spiral change %s",
        retro.session_count, retro.spiral_count,
        retro.trust_pass_rate_change, retro.spiral_rate_change,
    )
    return retro
