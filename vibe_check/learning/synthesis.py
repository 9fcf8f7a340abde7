"""
Lesson Synthesis

Turns pattern memory and intervention memory into lessons during periodic
review. Every pattern seen at least SYNTHESIS_THRESHOLD times gets exactly one
active lesson: it is created on first sight and refreshed on later runs.
Dismissed lessons are kept but never targeted again, so a dismissed pattern
that keeps recurring gets a fresh lesson.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from vibe_check.config.defaults import (
    MAX_LESSON_COMPONENTS,
    MAX_SYNTHESIS_LOG,
    SYNTHESIS_THRESHOLD,
)
from vibe_check.core.models import (
    InterventionMemory,
    InterventionType,
    Lesson,
    LessonIntervention,
    LessonsDatabase,
    PatternMemory,
    SynthesisLogEntry,
    SynthesisResult,
)
from vibe_check.learning.knowledge import get_knowledge
from vibe_check.learning.lessons import (
    calculate_confidence,
    finalize_database,
    generate_lesson_id,
    get_active_lesson_for_pattern,
    severity_for,
    upsert_lesson,
)

logger = logging.getLogger(__name__)


def components_for_pattern(pattern: str, memory: PatternMemory) -> List[str]:
    """Distinct components where ``pattern`` occurred, in first-seen order."""
    seen: List[str] = []
    for record in memory.records:
        if record.pattern == pattern and record.component and record.component not in seen:
            seen.append(record.component)
    return seen


def interventions_for_pattern(
    pattern: str,
    memory: Optional[InterventionMemory],
) -> List[LessonIntervention]:
    """Per-type success counts for interventions used against ``pattern``."""
    if memory is None:
        return []

    counts: Dict[InterventionType, List[int]] = {}
    for record in memory.records:
        if record.spiral_pattern != pattern:
            continue
        success_total = counts.setdefault(record.type, [0, 0])
        success_total[1] += 1
        if record.successful:
            success_total[0] += 1

    results = [
        LessonIntervention(
            type=t,
            success_count=success,
            total_count=total,
            effectiveness=round(success / total * 100),
        )
        for t, (success, total) in counts.items()
    ]
    return sorted(results, key=lambda i: -i.effectiveness)


def merge_interventions(
    existing: Sequence[LessonIntervention],
    incoming: Sequence[LessonIntervention],
) -> List[LessonIntervention]:
    """Sum successes and totals per type, then recompute effectiveness."""
    merged: Dict[InterventionType, LessonIntervention] = {i.type: i for i in existing}
    for item in incoming:
        current = merged.get(item.type)
        if current is None:
            merged[item.type] = item
            continue
        success = current.success_count + item.success_count
        total = current.total_count + item.total_count
        merged[item.type] = LessonIntervention(
            type=item.type,
            success_count=success,
            total_count=total,
            effectiveness=round(success / total * 100) if total else 0,
        )
    return sorted(merged.values(), key=lambda i: -i.effectiveness)


def _describe(pattern: str, evidence_count: int, time_wasted: int) -> str:
    knowledge = get_knowledge(pattern)
    return (
        f"You've encountered {knowledge.display_name} issues {evidence_count} times, "
        f"wasting {time_wasted} minutes total. {knowledge.advice}"
    )


def create_lesson(
    pattern: str,
    pattern_memory: PatternMemory,
    intervention_memory: Optional[InterventionMemory],
    now: datetime,
) -> Lesson:
    knowledge = get_knowledge(pattern)
    evidence_count = pattern_memory.pattern_counts.get(pattern, 0)
    time_wasted = pattern_memory.pattern_durations.get(pattern, 0)
    interventions = interventions_for_pattern(pattern, intervention_memory)

    return Lesson(
        id=generate_lesson_id(pattern, now),
        version=1,
        created_at=now,
        updated_at=now,
        pattern=pattern,
        components=components_for_pattern(pattern, pattern_memory)[:MAX_LESSON_COMPONENTS],
        title=f"{knowledge.display_name} causes recurring spirals",
        description=_describe(pattern, evidence_count, time_wasted),
        root_cause=knowledge.root_cause,
        prevention=list(knowledge.prevention),
        interventions=interventions,
        confidence=calculate_confidence(evidence_count, interventions, applied=False),
        evidence_count=evidence_count,
        total_time_wasted=time_wasted,
        severity=severity_for(time_wasted),
        tags=list(knowledge.tags),
    )


def update_lesson(
    lesson: Lesson,
    pattern_memory: PatternMemory,
    intervention_memory: Optional[InterventionMemory],
) -> Lesson:
    pattern = lesson.pattern
    evidence_count = pattern_memory.pattern_counts.get(pattern, 0)
    time_wasted = pattern_memory.pattern_durations.get(pattern, 0)

    components = list(lesson.components)
    for component in components_for_pattern(pattern, pattern_memory):
        if component not in components:
            components.append(component)

    interventions = merge_interventions(
        lesson.interventions, interventions_for_pattern(pattern, intervention_memory)
    )

    return replace(
        lesson,
        components=components,
        interventions=interventions,
        confidence=calculate_confidence(evidence_count, interventions, lesson.applied),
        evidence_count=evidence_count,
        total_time_wasted=time_wasted,
        severity=severity_for(time_wasted),
        description=_describe(pattern, evidence_count, time_wasted),
    )


def synthesize_lessons(
    db: LessonsDatabase,
    pattern_memory: Optional[PatternMemory],
    intervention_memory: Optional[InterventionMemory] = None,
    now: Optional[datetime] = None,
    threshold: int = SYNTHESIS_THRESHOLD,
) -> Tuple[LessonsDatabase, SynthesisResult]:
    """Create or refresh one active lesson per recurring pattern.

    Args:
        db: Current lessons database.
        pattern_memory: Spiral history to learn from.
        intervention_memory: Remediation history, for effectiveness.
        now: Clock override.
        threshold: Minimum occurrences before a pattern earns a lesson.

    Returns:
        The finalized database and a summary of what changed.
    """
    result = SynthesisResult()
    if pattern_memory is None or not pattern_memory.records:
        return db, result

    now = now or datetime.now(timezone.utc)
    for pattern, count in pattern_memory.pattern_counts.items():
        if count < threshold:
            continue
        existing = get_active_lesson_for_pattern(db, pattern)
        if existing is None:
            lesson = create_lesson(pattern, pattern_memory, intervention_memory, now)
            db = upsert_lesson(db, lesson, now)
            result.created.append(lesson)
        else:
            db = upsert_lesson(db, update_lesson(existing, pattern_memory, intervention_memory), now)
            result.updated.append(db.get(existing.id))

    result.patterns_processed = len(pattern_memory.pattern_counts)
    entry = SynthesisLogEntry(
        timestamp=now,
        lessons_created=len(result.created),
        lessons_updated=len(result.updated),
        patterns_processed=result.patterns_processed,
    )
    db = replace(
        db,
        synthesis_log=(list(db.synthesis_log) + [entry])[-MAX_SYNTHESIS_LOG:],
        last_synthesis=now,
    )
    logger.info(
        "Synthesis: %d lessons created, %d updated, %d patterns processed",
        entry.lessons_created, entry.lessons_updated, entry.patterns_processed,
    )
    return finalize_database(db, now), result
