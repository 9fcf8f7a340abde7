"""
Intervention Memory

Remembers what the developer did to break out of spirals and which actions
were used against which pattern, so the most-used remedy can be suggested
the next time that pattern shows up.
"""

from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from vibe_check.config.defaults import MAX_INTERVENTION_RECORDS, MEMORY_VERSION, TOP_N
from vibe_check.core.models import InterventionMemory, InterventionRecord, InterventionType
from vibe_check.learning.knowledge import get_intervention_name


def create_intervention_memory() -> InterventionMemory:
    return InterventionMemory(version=MEMORY_VERSION)


def compute_intervention_aggregates(
    records: Sequence[InterventionRecord],
    version: str = MEMORY_VERSION,
) -> InterventionMemory:
    """Build an InterventionMemory whose aggregates come from ``records`` only."""
    type_counts: Counter = Counter()
    effective_by_pattern: Dict[str, List[str]] = {}
    for record in records:
        type_counts[record.type.value] += 1
        if record.spiral_pattern:
            used = effective_by_pattern.setdefault(record.spiral_pattern, [])
            if record.type.value not in used:
                used.append(record.type.value)

    return InterventionMemory(
        version=version,
        records=list(records),
        type_counts=dict(type_counts),
        effective_by_pattern=effective_by_pattern,
        top_interventions=[t for t, _ in type_counts.most_common(TOP_N)],
        avg_time_to_intervene=(
            round(sum(r.spiral_duration for r in records) / len(records)) if records else 0
        ),
        total_interventions=len(records),
    )


def record_intervention(
    memory: Optional[InterventionMemory],
    intervention_type: InterventionType,
    spiral_pattern: Optional[str] = None,
    spiral_component: Optional[str] = None,
    spiral_duration: int = 0,
    notes: Optional[str] = None,
    successful: bool = True,
    today: Optional[date] = None,
    max_records: int = MAX_INTERVENTION_RECORDS,
) -> InterventionMemory:
    """Append one intervention, keep the most recent ``max_records``, recompute."""
    memory = memory or create_intervention_memory()
    record = InterventionRecord(
        type=intervention_type,
        date=(today or date.today()).isoformat(),
        spiral_pattern=spiral_pattern,
        spiral_component=spiral_component,
        spiral_duration=spiral_duration,
        notes=notes,
        successful=successful,
    )
    records = list(memory.records) + [record]
    return compute_intervention_aggregates(records[-max_records:], memory.version)


def recommend_intervention(
    memory: Optional[InterventionMemory],
    pattern: Optional[str] = None,
) -> Optional[InterventionType]:
    """Most-used intervention for ``pattern``, else overall, else None."""
    if memory is None or not memory.records:
        return None

    if pattern:
        counts = Counter(r.type.value for r in memory.records if r.spiral_pattern == pattern)
        if counts:
            return InterventionType(counts.most_common(1)[0][0])

    if memory.top_interventions:
        return InterventionType(memory.top_interventions[0])
    return None


def intervention_memory_from_dict(data: Optional[Dict[str, Any]]) -> InterventionMemory:
    """Load records and recompute; stored aggregates are never trusted."""
    if not data:
        return create_intervention_memory()
    records = [InterventionRecord.from_dict(r) for r in data.get("records", [])]
    return compute_intervention_aggregates(
        records[-MAX_INTERVENTION_RECORDS:], data.get("version", MEMORY_VERSION)
    )


def summarize_intervention_memory(memory: Optional[InterventionMemory]) -> Dict[str, Any]:
    if memory is None or not memory.records:
        return {
            "has_data": False,
            "summary": "No interventions recorded yet",
            "top_interventions": [],
        }

    top = memory.top_interventions[0]
    return {
        "has_data": True,
        "summary": (
            f"{memory.total_interventions} interventions recorded, "
            f"most used: {get_intervention_name(top)}"
        ),
        "avg_time_to_intervene": memory.avg_time_to_intervene,
        "top_interventions": [
            {"type": t, "name": get_intervention_name(t), "count": memory.type_counts.get(t, 0)}
            for t in memory.top_interventions
        ],
    }
