"""
Digest Generator

Turns reports, sessions, trends and lessons into the plain-text digests shown
by the CLI. JSON output bypasses this module and uses ``to_dict()`` directly.
"""

import logging
from typing import List, Optional, Sequence

from vibe_check.core.models import (
    InterventionType,
    Lesson,
    LessonsDatabase,
    RecoveryTrend,
    RegressionAnalysis,
    Session,
    SynthesisResult,
    TrendDirection,
    TrendReport,
    UserProfile,
    VibeReport,
    WeeklyRetro,
)
from vibe_check.insights.templates import (
    RATING_ICONS,
    REPORT_FOOTER,
    REPORT_TEMPLATE,
    RETRO_TEMPLATE,
    SEVERITY_ICONS,
    format_lesson_card,
    format_spiral_line,
    format_surfaced_lesson,
    format_weekly_retro,
)
from vibe_check.learning.intervention_memory import summarize_intervention_memory
from vibe_check.learning.knowledge import get_intervention_name, get_pattern_advice
from vibe_check.learning.pattern_memory import summarize_pattern_memory

logger = logging.getLogger(__name__)

METRIC_LABELS = {
    "iteration_velocity": "Iteration Velocity",
    "rework_ratio": "Rework Ratio",
    "trust_pass_rate": "Trust Pass Rate",
    "debug_spiral_duration": "Debug Spiral Duration",
    "flow_efficiency": "Flow Efficiency",
}

DIRECTION_ARROWS = {
    TrendDirection.IMPROVING: "^",
    TrendDirection.DECLINING: "v",
    TrendDirection.STABLE: "=",
    TrendDirection.INSUFFICIENT_DATA: "?",
}


class DigestGenerator:
    """Formats analysis output as readable text."""

    def format_report(
        self,
        report: VibeReport,
        recommendation: Optional[InterventionType] = None,
    ) -> str:
        if report.commit_count == 0 or report.metrics is None:
            return "\n  No commits found in the requested window.\n"

        metrics_lines = []
        for key, result in report.metrics.results().items():
            icon = RATING_ICONS.get(result.rating.value, " ")
            value = f"{result.value:g} {result.unit}"
            metrics_lines.append(
                f"  {icon:>2} {METRIC_LABELS[key]:<24} {value:<16} {result.rating.value:<7} "
                f"{result.description}"
            )

        signal_lines = []
        if report.pattern_score:
            for signal in report.pattern_score.signals:
                bar = self._score_bar(signal.score * 100)
                signal_lines.append(f"  {signal.name:<20} {bar} {signal.description}")

        spiral_lines = [format_spiral_line(c) for c in report.spirals]
        if report.spirals:
            worst = max(report.spirals, key=lambda c: c.duration_minutes)
            spiral_lines.append(f"\n  Tip: {get_pattern_advice(worst.pattern.value)}")
            if recommendation:
                spiral_lines.append(
                    f"  What worked before: {get_intervention_name(recommendation.value)}"
                )

        body = REPORT_TEMPLATE.format(
            period_start=report.period_start.strftime("%Y-%m-%d %H:%M") if report.period_start else "?",
            period_end=report.period_end.strftime("%Y-%m-%d %H:%M") if report.period_end else "?",
            code_health=report.metrics.code_health.value,
            pattern_score=report.pattern_score.percent if report.pattern_score else 0,
            pattern_rating=report.pattern_score.rating.value if report.pattern_score else "-",
            commit_count=report.commit_count,
            fix_count=report.fix_count,
            active_hours=report.active_hours,
            session_count=len(report.sessions),
            metrics_section="\n".join(metrics_lines),
            signals_section="\n".join(signal_lines) if signal_lines else "  No signals enabled",
            spirals_section="\n".join(spiral_lines) if spiral_lines else "  None detected",
        )

        if report.lessons:
            body += "\n  Lessons from past spirals\n"
            body += "\n".join(format_surfaced_lesson(s) for s in report.lessons) + "\n"

        if report.record is not None:
            if report.record.is_duplicate:
                body += "\n  This period was already recorded; no reward.\n"
            else:
                body += f"\n  Recorded. Reward: {report.record.reward_units} units.\n"
        return body + REPORT_FOOTER

    def format_sessions(self, sessions: Sequence[Session]) -> str:
        if not sessions:
            return "\n  No sessions found.\n"

        lines = ["", f"  {len(sessions)} sessions", ""]
        for s in sessions:
            health = s.metrics.code_health.value if s.metrics else "-"
            flags = []
            if s.flow_state:
                flags.append("flow")
            if s.spirals:
                flags.append(f"{len(s.spirals)} spiral(s)")
            lines.append(
                f"  #{s.session_id:<3} {s.start.strftime('%Y-%m-%d %H:%M')}  "
                f"{s.duration_minutes:>6.1f} min  {s.commit_count:>3} commits  "
                f"{health:<7} {', '.join(flags)}"
            )
            for chain in s.spirals:
                lines.append("     " + format_spiral_line(chain).strip())
        lines.append("")
        return "\n".join(lines)

    def format_trends(
        self,
        trends: TrendReport,
        regression: RegressionAnalysis,
        recovery: Sequence[RecoveryTrend],
    ) -> str:
        if not trends.weekly:
            return "\n  No stored sessions yet. Run 'vibe-check analyze' first.\n"

        lines = ["", "  Weekly", "  week        sessions commits flow spirals score"]
        for w in trends.weekly:
            lines.append(
                f"  {w.key}  {w.session_count:>8} {w.commit_count:>7} {w.flow_state_count:>4} "
                f"{w.spiral_count:>7} {w.avg_score:>5.0f}"
            )

        lines += ["", "  Monthly"]
        for m in trends.monthly:
            lines.append(
                f"  {m.key}  {m.session_count} sessions, {m.spiral_count} spirals, "
                f"avg score {m.avg_score:.0f}"
            )

        if trends.improvements:
            lines += ["", "  Week over week"]
            for imp in trends.improvements:
                arrow = DIRECTION_ARROWS.get(imp.direction, "?")
                lines.append(f"  {arrow} {imp.metric}: {imp.change_percent:+d}% ({imp.direction.value})")

        lines += ["", f"  Regressions: {regression.summary}"]
        for alert in regression.alerts:
            icon = SEVERITY_ICONS.get(alert.severity.value, "!")
            lines.append(f"  {icon} {alert.message}")
            lines.append(f"     {alert.recommendation}")

        if recovery:
            lines += ["", "  Recovery time by component"]
            for r in recovery:
                arrow = DIRECTION_ARROWS.get(r.direction, "?")
                lines.append(
                    f"  {arrow} {r.component:<20} recent {r.recent_minutes:.0f} min vs "
                    f"avg {r.avg_minutes:.0f} min ({r.samples} sessions)"
                )
        lines.append("")
        return "\n".join(lines)

    def format_lessons(self, lessons: Sequence[Lesson]) -> str:
        if not lessons:
            return "\n  No lessons yet. Run 'vibe-check retro' after a few spirals.\n"
        cards = [format_lesson_card(lesson, i) for i, lesson in enumerate(lessons, 1)]
        return "\n" + "\n\n".join(cards) + "\n"

    def format_retro(
        self,
        result: SynthesisResult,
        db: LessonsDatabase,
        profile: UserProfile,
        weekly: Optional[WeeklyRetro] = None,
    ) -> str:
        patterns = summarize_pattern_memory(profile.pattern_memory)
        interventions = summarize_intervention_memory(profile.intervention_memory)

        pattern_lines = [
            f"  - {p['name']}: {p['count']}x, {p['minutes']} min" for p in patterns["top_patterns"]
        ]
        intervention_lines = [
            f"  - {i['name']}: {i['count']}x" for i in interventions["top_interventions"]
        ]
        touched: List[Lesson] = list(result.created) + list(result.updated)
        lesson_lines = [format_lesson_card(lesson, i) for i, lesson in enumerate(touched, 1)]

        text = format_weekly_retro(weekly) if weekly is not None else ""
        return text + RETRO_TEMPLATE.format(
            pattern_summary=patterns["summary"],
            patterns_section="\n".join(pattern_lines),
            intervention_summary=interventions["summary"],
            interventions_section="\n".join(intervention_lines),
            lessons_created=len(result.created),
            lessons_updated=len(result.updated),
            patterns_processed=result.patterns_processed,
            lessons_section="\n\n".join(lesson_lines) if lesson_lines
            else f"  {db.stats.active_lessons} active lessons, none changed",
        )

    def _score_bar(self, score: float, width: int = 20) -> str:
        """Generate a text-based score bar."""
        filled = int(max(0.0, min(score, 100.0)) / 100 * width)
        return "[" + "#" * filled + "." * (width - filled) + "]"
