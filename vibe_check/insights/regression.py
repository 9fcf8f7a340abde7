"""
Regression Detection

Looks at the three most recent weekly buckets for two kinds of backsliding:
a spiral rate that climbs again after improving, and a collapse in flow
states after a good week. Also counts the current improvement streak.
"""

from typing import List, Optional, Sequence

from vibe_check.core.models import AlertSeverity, RegressionAlert, RegressionAnalysis, WeekTrend

MIN_WEEKS = 3
SPIRAL_INCREASE_FACTOR = 1.5
SPIRAL_RATE_FLOOR = 0.1
GOOD_FLOW_RATE = 0.3
FLOW_DROP_FACTOR = 0.5


def detect_spiral_regression(weeks: Sequence[WeekTrend]) -> Optional[RegressionAlert]:
    """Spiral rate fell from the oldest to the middle week, then rose 50%+."""
    if len(weeks) < MIN_WEEKS:
        return None

    oldest, middle, newest = weeks[-3:]
    was_improving = middle.spiral_rate < oldest.spiral_rate
    has_regressed = newest.spiral_rate >= middle.spiral_rate * SPIRAL_INCREASE_FACTOR
    if not (was_improving and has_regressed and newest.spiral_rate > SPIRAL_RATE_FLOOR):
        return None

    change = round((newest.spiral_rate - middle.spiral_rate) / max(middle.spiral_rate, 0.01) * 100)
    return RegressionAlert(
        type="spiral_increase",
        severity=AlertSeverity.CRITICAL if change > 100 else AlertSeverity.WARNING,
        message=f"Spiral rate increased {change}% after previous improvement",
        metric="spiral_rate",
        current_value=round(newest.spiral_rate, 2),
        baseline_value=round(middle.spiral_rate, 2),
        change_percent=change,
        period=newest.key,
        recommendation="Review recent commits for unfamiliar patterns. Consider adding tracer tests.",
    )


def detect_flow_regression(weeks: Sequence[WeekTrend]) -> Optional[RegressionAlert]:
    """Middle week had 30%+ flow sessions and the newest has less than half that."""
    if len(weeks) < MIN_WEEKS:
        return None

    _, middle, newest = weeks[-3:]
    if middle.flow_rate < GOOD_FLOW_RATE or newest.flow_rate >= middle.flow_rate * FLOW_DROP_FACTOR:
        return None

    change = round((middle.flow_rate - newest.flow_rate) / middle.flow_rate * 100)
    return RegressionAlert(
        type="flow_decrease",
        severity=AlertSeverity.WARNING,
        message=f"Flow state frequency dropped {change}% this week",
        metric="flow_rate",
        current_value=round(newest.flow_rate * 100),
        baseline_value=round(middle.flow_rate * 100),
        change_percent=-change,
        period=newest.key,
        recommendation="Protect deep work time. Check for interruption patterns.",
    )


def improvement_streak(weeks: Sequence[WeekTrend]) -> int:
    """Consecutive weeks, walking back from the second-newest, whose spiral
    rate did not rise into the following week."""
    streak = 0
    for i in range(len(weeks) - 2, -1, -1):
        if weeks[i + 1].spiral_rate <= weeks[i].spiral_rate:
            streak += 1
        else:
            break
    return streak


def detect_regressions(weeks: Sequence[WeekTrend]) -> RegressionAnalysis:
    if len(weeks) < MIN_WEEKS:
        return RegressionAnalysis(
            summary=f"Not enough data for regression detection (need {MIN_WEEKS}+ weeks)",
        )

    alerts: List[RegressionAlert] = [
        alert for alert in (detect_spiral_regression(weeks), detect_flow_regression(weeks))
        if alert is not None
    ]
    streak = improvement_streak(weeks)

    critical = sum(1 for a in alerts if a.severity == AlertSeverity.CRITICAL)
    if critical:
        summary = f"{critical} critical regression(s) detected, action needed"
    elif alerts:
        summary = f"{len(alerts)} warning(s), monitor closely"
    elif streak:
        summary = f"{streak}-week improvement streak"
    else:
        summary = "No regressions detected"

    return RegressionAnalysis(
        has_regression=bool(alerts),
        alerts=alerts,
        summary=summary,
        improvement_streak=streak,
    )
