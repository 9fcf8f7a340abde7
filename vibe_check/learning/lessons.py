"""
Lessons Database

Operations on the global lessons database. Every function returns a new
database; callers persist it through the storage layer. ``finalize_database``
runs on every write: it trims to MAX_LESSONS, recomputes statistics and
rebuilds the pattern index.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from vibe_check.config.defaults import (
    BEST_INTERVENTION_MIN_EFFECTIVENESS,
    CONFIDENCE_BASE,
    LESSONS_VERSION,
    MAX_LESSONS,
    SURFACED_LESSONS_LIMIT,
    SURFACING_RECENT_DAYS,
)
from vibe_check.core.models import (
    InterventionType,
    Lesson,
    LessonIntervention,
    LessonsDatabase,
    LessonSeverity,
    LessonsStats,
    SurfacedLesson,
)
from vibe_check.learning.knowledge import get_pattern_display_name

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_lessons_database(now: Optional[datetime] = None) -> LessonsDatabase:
    return LessonsDatabase(version=LESSONS_VERSION, last_updated=now or _utcnow())


# =============================================================================
# Scoring
# =============================================================================

def calculate_confidence(
    evidence_count: int,
    interventions: Sequence[LessonIntervention],
    applied: bool,
) -> int:
    """50 base, +5 per occurrence (max +25), +15 for a >70% effective
    intervention, +10 once applied. Clamped to 0-100."""
    confidence = CONFIDENCE_BASE
    confidence += min(25, evidence_count * 5)
    if any(i.effectiveness > 70 for i in interventions):
        confidence += 15
    if applied:
        confidence += 10
    return max(0, min(100, confidence))


def severity_for(time_wasted: int) -> LessonSeverity:
    if time_wasted > 120:
        return LessonSeverity.CRITICAL
    if time_wasted > 60:
        return LessonSeverity.HIGH
    if time_wasted > 30:
        return LessonSeverity.MEDIUM
    return LessonSeverity.LOW


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_lesson_id(pattern: str, now: Optional[datetime] = None) -> str:
    millis = int((now or _utcnow()).timestamp() * 1000)
    slug = pattern.lower().replace("_", "-")
    return f"lesson-{slug}-{_base36(millis)}"


# =============================================================================
# Derived state
# =============================================================================

def build_pattern_index(lessons: Sequence[Lesson]) -> Dict[str, List[str]]:
    index: Dict[str, List[str]] = {}
    for lesson in lessons:
        index.setdefault(lesson.pattern, []).append(lesson.id)
    return index


def compute_stats(lessons: Sequence[Lesson]) -> LessonsStats:
    active = [lesson for lesson in lessons if not lesson.dismissed]
    confidences = [lesson.confidence for lesson in active]
    return LessonsStats(
        total_lessons=len(lessons),
        active_lessons=len(active),
        patterns_with_lessons=len({lesson.pattern for lesson in active}),
        avg_confidence=round(sum(confidences) / len(confidences)) if confidences else 0,
        total_time_wasted=sum(lesson.total_time_wasted for lesson in lessons),
    )


def trim_lessons(lessons: Sequence[Lesson], max_lessons: int = MAX_LESSONS) -> List[Lesson]:
    """Keep the ``max_lessons`` most valuable lessons.

    Dismissed lessons go first, then lower confidence, then less evidence,
    then the least recently updated.
    """
    if len(lessons) <= max_lessons:
        return list(lessons)
    ranked = sorted(
        lessons,
        key=lambda lesson: (
            lesson.dismissed,
            -lesson.confidence,
            -lesson.evidence_count,
            -lesson.updated_at.timestamp(),
        ),
    )
    logger.info("Trimming lessons database from %d to %d", len(lessons), max_lessons)
    return ranked[:max_lessons]


def finalize_database(db: LessonsDatabase, now: Optional[datetime] = None) -> LessonsDatabase:
    lessons = trim_lessons(db.lessons)
    return replace(
        db,
        last_updated=now or _utcnow(),
        lessons=lessons,
        stats=compute_stats(lessons),
        lessons_by_pattern=build_pattern_index(lessons),
    )


# =============================================================================
# Mutations
# =============================================================================

def upsert_lesson(
    db: LessonsDatabase,
    lesson: Lesson,
    now: Optional[datetime] = None,
) -> LessonsDatabase:
    """Insert a new lesson, or replace one with the same id and bump its version."""
    lessons = list(db.lessons)
    for i, existing in enumerate(lessons):
        if existing.id == lesson.id:
            lessons[i] = replace(lesson, version=existing.version + 1, updated_at=now or _utcnow())
            break
    else:
        lessons.append(lesson)
    return replace(db, lessons=lessons, lessons_by_pattern=build_pattern_index(lessons))


def _require(db: LessonsDatabase, lesson_id: str) -> Lesson:
    lesson = db.get(lesson_id)
    if lesson is None:
        raise ValueError(f"Lesson not found: {lesson_id}")
    return lesson


def dismiss_lesson(
    db: LessonsDatabase,
    lesson_id: str,
    now: Optional[datetime] = None,
) -> LessonsDatabase:
    lesson = _require(db, lesson_id)
    return upsert_lesson(db, replace(lesson, dismissed=True), now)


def apply_lesson(
    db: LessonsDatabase,
    lesson_id: str,
    effectiveness: int,
    now: Optional[datetime] = None,
) -> LessonsDatabase:
    """Mark a lesson as applied with a 0-100 user-reported effectiveness.

    Effectiveness of 70+ raises confidence by 5, below 40 lowers it by 10.
    """
    if not 0 <= effectiveness <= 100:
        raise ValueError(f"effectiveness must be between 0 and 100, got {effectiveness}")

    lesson = _require(db, lesson_id)
    confidence = lesson.confidence
    if effectiveness >= 70:
        confidence = min(100, confidence + 5)
    elif effectiveness < 40:
        confidence = max(0, confidence - 10)

    now = now or _utcnow()
    updated = replace(
        lesson,
        applied=True,
        applied_at=now,
        user_effectiveness=effectiveness,
        confidence=confidence,
    )
    return upsert_lesson(db, updated, now)


# =============================================================================
# Queries
# =============================================================================

def get_active_lessons(db: LessonsDatabase) -> List[Lesson]:
    """Non-dismissed lessons, most confident first."""
    active = [lesson for lesson in db.lessons if not lesson.dismissed]
    return sorted(active, key=lambda lesson: (-lesson.confidence, -lesson.evidence_count))


def get_lessons_for_pattern(db: LessonsDatabase, pattern: str) -> List[Lesson]:
    ids = db.lessons_by_pattern.get(pattern, [])
    by_id = {lesson.id: lesson for lesson in db.lessons}
    return [by_id[i] for i in ids if i in by_id and not by_id[i].dismissed]


def get_active_lesson_for_pattern(db: LessonsDatabase, pattern: str) -> Optional[Lesson]:
    return next(
        (lesson for lesson in db.lessons if lesson.pattern == pattern and not lesson.dismissed),
        None,
    )


# =============================================================================
# Surfacing
# =============================================================================

def calculate_relevance(lesson: Lesson, pattern: str, now: Optional[datetime] = None) -> float:
    """How strongly a lesson should be shown for ``pattern``, 0-100.

    40% of confidence, +30 on an exact pattern match, +4 per occurrence
    (max +20), +10 if updated within the last week, -20 once applied.
    """
    now = now or _utcnow()
    score = lesson.confidence * 0.4
    if lesson.pattern == pattern:
        score += 30
    score += min(20, lesson.evidence_count * 4)
    if (now - lesson.updated_at).days < SURFACING_RECENT_DAYS:
        score += 10
    if lesson.applied:
        score -= 20
    return max(0.0, min(100.0, score))


def best_intervention(lesson: Lesson) -> Optional[InterventionType]:
    """The most effective intervention, if it worked more than half the time."""
    if not lesson.interventions:
        return None
    best = max(lesson.interventions, key=lambda i: i.effectiveness)
    if best.effectiveness > BEST_INTERVENTION_MIN_EFFECTIVENESS:
        return best.type
    return None


def _rank(
    lessons: Sequence[Lesson],
    relevance_for: Dict[str, str],
    reason_for: Dict[str, str],
    now: datetime,
    limit: int,
) -> List[SurfacedLesson]:
    surfaced = [
        SurfacedLesson(
            lesson=lesson,
            relevance=calculate_relevance(lesson, relevance_for[lesson.id], now),
            reason=reason_for[lesson.id],
            suggested_intervention=best_intervention(lesson),
        )
        for lesson in lessons
    ]
    surfaced.sort(key=lambda s: -s.relevance)
    return surfaced[:limit]


def surface_lessons(
    db: LessonsDatabase,
    pattern: str,
    now: Optional[datetime] = None,
    limit: int = SURFACED_LESSONS_LIMIT,
) -> List[SurfacedLesson]:
    """Active lessons for a pattern that just spiralled, most relevant first."""
    lessons = get_lessons_for_pattern(db, pattern)
    name = get_pattern_display_name(pattern)
    return _rank(
        lessons,
        {lesson.id: pattern for lesson in lessons},
        {
            lesson.id: f"You've seen {name} {lesson.evidence_count} times before"
            for lesson in lessons
        },
        now or _utcnow(),
        limit,
    )


def surface_lessons_for_component(
    db: LessonsDatabase,
    component: str,
    now: Optional[datetime] = None,
    limit: int = SURFACED_LESSONS_LIMIT,
) -> List[SurfacedLesson]:
    """Active lessons whose components overlap ``component`` by substring."""
    needle = component.lower()
    lessons = [
        lesson
        for lesson in get_active_lessons(db)
        if any(needle in c.lower() or c.lower() in needle for c in lesson.components)
    ]
    return _rank(
        lessons,
        {lesson.id: lesson.pattern for lesson in lessons},
        {
            lesson.id: (
                f"{component} has caused {get_pattern_display_name(lesson.pattern)} spirals before"
            )
            for lesson in lessons
        },
        now or _utcnow(),
        limit,
    )
