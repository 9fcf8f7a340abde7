"""
Pattern Memory

Remembers which spiral patterns and components keep recurring across
repositories. The record list is capped at the most recent MAX_PATTERN_RECORDS
and every aggregate is recomputed from it on each update, so aggregates can
never drift from the records they summarize.
"""

from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from vibe_check.config.defaults import MAX_PATTERN_RECORDS, MEMORY_VERSION, TOP_N
from vibe_check.core.models import FixChain, PatternMemory, PatternRecord
from vibe_check.learning.knowledge import get_pattern_advice, get_pattern_display_name


def create_pattern_memory() -> PatternMemory:
    return PatternMemory(version=MEMORY_VERSION)


def _top(counts: Counter, n: int = TOP_N) -> List[str]:
    # Counter.most_common keeps first-seen order for ties
    return [key for key, _ in counts.most_common(n)]


def compute_pattern_aggregates(
    records: Sequence[PatternRecord],
    version: str = MEMORY_VERSION,
) -> PatternMemory:
    """Build a PatternMemory whose aggregates are derived from ``records`` only."""
    pattern_counts: Counter = Counter()
    component_counts: Counter = Counter()
    pattern_durations: Counter = Counter()
    for record in records:
        pattern_counts[record.pattern] += 1
        component_counts[record.component] += 1
        pattern_durations[record.pattern] += record.duration

    total_duration = sum(r.duration for r in records)
    return PatternMemory(
        version=version,
        records=list(records),
        pattern_counts=dict(pattern_counts),
        component_counts=dict(component_counts),
        pattern_durations=dict(pattern_durations),
        top_patterns=_top(pattern_counts),
        top_components=_top(component_counts),
        avg_recovery_time=round(total_duration / len(records)) if records else 0,
        total_spirals=len(records),
    )


def add_pattern_records(
    memory: Optional[PatternMemory],
    new_records: Sequence[PatternRecord],
    max_records: int = MAX_PATTERN_RECORDS,
) -> PatternMemory:
    """Append records, keep the most recent ``max_records``, recompute."""
    memory = memory or create_pattern_memory()
    records = list(memory.records) + list(new_records)
    return compute_pattern_aggregates(records[-max_records:], memory.version)


def update_pattern_memory(
    memory: Optional[PatternMemory],
    chains: Sequence[FixChain],
    today: Optional[date] = None,
) -> PatternMemory:
    """Record every spiral in ``chains``; shorter chains are ignored."""
    day = (today or date.today()).isoformat()
    new_records = [
        PatternRecord(
            pattern=chain.pattern.value,
            component=chain.component,
            duration=chain.duration_minutes,
            commits=chain.commit_count,
            date=day,
        )
        for chain in chains
        if chain.is_spiral
    ]
    if not new_records and memory is not None:
        return memory
    return add_pattern_records(memory, new_records)


def pattern_memory_from_dict(data: Optional[Dict[str, Any]]) -> PatternMemory:
    """Load records and recompute; stored aggregates are never trusted."""
    if not data:
        return create_pattern_memory()
    records = [PatternRecord.from_dict(r) for r in data.get("records", [])]
    return compute_pattern_aggregates(
        records[-MAX_PATTERN_RECORDS:], data.get("version", MEMORY_VERSION)
    )


def summarize_pattern_memory(memory: Optional[PatternMemory]) -> Dict[str, Any]:
    if memory is None or not memory.records:
        return {
            "has_data": False,
            "summary": "No spiral patterns recorded yet",
            "top_patterns": [],
            "top_components": [],
        }

    top_pattern = memory.top_patterns[0]
    return {
        "has_data": True,
        "summary": (
            f"{memory.total_spirals} spirals recorded, most often "
            f"{get_pattern_display_name(top_pattern)}. "
            f"Average recovery {memory.avg_recovery_time} min"
        ),
        "top_patterns": [
            {
                "pattern": p,
                "name": get_pattern_display_name(p),
                "count": memory.pattern_counts.get(p, 0),
                "minutes": memory.pattern_durations.get(p, 0),
                "advice": get_pattern_advice(p),
            }
            for p in memory.top_patterns
        ],
        "top_components": [
            {"component": c, "count": memory.component_counts.get(c, 0)}
            for c in memory.top_components
        ],
    }
