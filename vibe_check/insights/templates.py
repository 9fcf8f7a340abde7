"""
Digest Templates

Plain-text layouts for the CLI digests. No colour codes; output is meant to be
readable in a terminal, a log file or a pasted chat message alike.
"""

from vibe_check.core.models import FixChain, Lesson, SurfacedLesson, WeeklyRetro
from vibe_check.learning.knowledge import get_intervention_name, get_pattern_display_name

RATING_ICONS = {
    "ELITE": "**",
    "HIGH": "+",
    "MEDIUM": "~",
    "LOW": "!!",
}

SEVERITY_ICONS = {
    "critical": "!!",
    "high": "!",
    "medium": "~",
    "low": "-",
    "warning": "!",
}

REPORT_TEMPLATE = """
  vibe-check Report
  {period_start} to {period_end}

  Code Health: {code_health}  |  Pattern Score: {pattern_score}% ({pattern_rating})
  {commit_count} commits ({fix_count} fixes) over {active_hours}h active, {session_count} sessions

  Metrics
{metrics_section}

  Pattern Signals
{signals_section}

  Debug Spirals
{spirals_section}
"""

RETRO_TEMPLATE = """
  vibe-check Retrospective

  Patterns
  {pattern_summary}
{patterns_section}

  Interventions
  {intervention_summary}
{interventions_section}

  Lessons
  {lessons_created} created, {lessons_updated} updated, {patterns_processed} patterns reviewed
{lessons_section}
"""

WEEKLY_TEMPLATE = """
  This Week ({period_start} to {period_end})
  {session_count} analyses, {commit_count} commits, {spiral_count} spirals, avg score {avg_score}%
{progress_section}
  Key insight: {key_insight}
"""

REPORT_FOOTER = "\n  Record what broke a spiral with: vibe-check intervene TYPE\n"


def format_spiral_line(chain: FixChain) -> str:
    return (
        f"  {chain.component:<20} {chain.commit_count} fixes in {chain.duration_minutes} min"
        f"  [{get_pattern_display_name(chain.pattern.value)}]"
    )


def format_lesson_card(lesson: Lesson, index: int) -> str:
    """Format a single lesson as a numbered card."""
    icon = SEVERITY_ICONS.get(lesson.severity.value, "-")
    lines = [
        f"  {index}. [{icon} {lesson.severity.value.upper()}] {lesson.title}",
        f"     id: {lesson.id}  confidence: {lesson.confidence}%  "
        f"evidence: {lesson.evidence_count}  time lost: {lesson.total_time_wasted} min",
        f"     {lesson.description}",
    ]
    if lesson.components:
        lines.append(f"     Components: {', '.join(lesson.components)}")
    if lesson.prevention:
        lines.append("     Prevention:")
        lines.extend(f"       - {step}" for step in lesson.prevention)
    if lesson.interventions:
        best = lesson.interventions[0]
        lines.append(
            f"     Best intervention: {get_intervention_name(best.type.value)} "
            f"({best.effectiveness}% of {best.total_count})"
        )
    if lesson.dismissed:
        lines.append("     (dismissed)")
    elif lesson.applied:
        lines.append(f"     Applied, effectiveness {lesson.user_effectiveness}%")
    return "\n".join(lines)


def format_surfaced_lesson(surfaced: SurfacedLesson) -> str:
    """Format a lesson surfaced during analysis as a short reminder."""
    lesson = surfaced.lesson
    icon = SEVERITY_ICONS.get(lesson.severity.value, "-")
    lines = [
        f"  {icon} LESSON: {lesson.title}",
        f"     {surfaced.reason} ({lesson.total_time_wasted} min lost)",
    ]
    if surfaced.suggested_intervention:
        worked = next(
            (i for i in lesson.interventions if i.type == surfaced.suggested_intervention), None
        )
        effectiveness = f" ({worked.effectiveness}%)" if worked else ""
        lines.append(
            f"     What worked: {get_intervention_name(surfaced.suggested_intervention.value)}"
            f"{effectiveness}"
        )
    if lesson.prevention:
        lines.append(f"     Prevention: {lesson.prevention[0]}")
    lines.append(f"     Details: vibe-check lessons --pattern {lesson.pattern}")
    return "\n".join(lines)


def format_weekly_retro(retro: WeeklyRetro) -> str:
    progress = []
    if retro.trust_pass_rate_change is not None:
        progress.append(f"  Trust Pass Rate: {retro.trust_pass_rate_change:+d}%")
    if retro.spiral_rate_change is not None:
        progress.append(f"  Spiral Reduction: {retro.spiral_rate_change:+d}%")
    if not progress:
        progress.append("  No previous week to compare with")
    return WEEKLY_TEMPLATE.format(
        period_start=retro.period_start.strftime("%Y-%m-%d"),
        period_end=retro.period_end.strftime("%Y-%m-%d"),
        session_count=retro.session_count,
        commit_count=retro.commit_count,
        spiral_count=retro.spiral_count,
        avg_score=retro.avg_score,
        progress_section="\n".join(progress),
        key_insight=retro.key_insight,
    )
