"""
Metrics Calculator

Derives the five workflow-health metrics for a session or any commit window:

- Iteration velocity (commits/hr): commits / active hours
- Rework ratio (%): fix commits / total commits
- Trust pass rate (%): commits not followed by a fix to the same file in 30 min
- Debug spiral duration (min): mean duration of spirals
- Flow efficiency (%): share of active time not spent in spirals

Each metric is banded ELITE/HIGH/MEDIUM/LOW, and the bands average into the
Code Health grade.
"""

from typing import Optional, Sequence

from vibe_check.analyzers.sessions import sort_commits
from vibe_check.analyzers.spirals import ComponentInferrer
from vibe_check.config.defaults import TRUST_WINDOW_MINUTES
from vibe_check.core.models import (
    Commit,
    FixChain,
    MetricResult,
    Rating,
    SessionMetrics,
)
from vibe_check.core.scoring import (
    clamp,
    composite_rating,
    rate_higher_is_better,
    rate_lower_is_better,
)

VELOCITY_DESCRIPTIONS = {
    Rating.ELITE: "Excellent iteration speed, tight feedback loops",
    Rating.HIGH: "Good iteration speed",
    Rating.MEDIUM: "Normal pace",
    Rating.LOW: "Slow iteration, consider smaller commits",
}

REWORK_DESCRIPTIONS = {
    Rating.ELITE: "Mostly forward progress",
    Rating.HIGH: "Some debugging, mostly building",
    Rating.MEDIUM: "Significant rework, consider tracer tests",
    Rating.LOW: "Mostly fixing, stop and validate assumptions",
}

TRUST_DESCRIPTIONS = {
    Rating.ELITE: "Code sticks on first try",
    Rating.HIGH: "Occasional fixes needed, mostly autonomous",
    Rating.MEDIUM: "Regular intervention required",
    Rating.LOW: "Heavy oversight needed, run tracer tests before implementation",
}

SPIRAL_DESCRIPTIONS = {
    Rating.ELITE: "Quick recovery from issues",
    Rating.HIGH: "Normal debugging time",
    Rating.MEDIUM: "Debug spirals running long",
    Rating.LOW: "Extended debug spirals, step back and rethink",
}

FLOW_DESCRIPTIONS = {
    Rating.ELITE: "Excellent focus, minimal debugging",
    Rating.HIGH: "Good balance of building and fixing",
    Rating.MEDIUM: "Significant time lost to debugging",
    Rating.LOW: "More time debugging than building",
}


def iteration_velocity(commit_count: int, active_hours: float) -> MetricResult:
    if commit_count == 0:
        return MetricResult(0.0, "commits/hour", Rating.LOW, "No commits found")
    if active_hours <= 0:
        return MetricResult(
            float(commit_count), "commits/hour", Rating.HIGH,
            "All commits in rapid succession",
        )

    velocity = commit_count / active_hours
    # 5.0/hr is already ELITE
    rating = rate_higher_is_better(velocity, 5, 3, 1, elite_inclusive=True)
    return MetricResult(round(velocity, 1), "commits/hour", rating, VELOCITY_DESCRIPTIONS[rating])


def rework_ratio(commits: Sequence[Commit]) -> MetricResult:
    if not commits:
        return MetricResult(0.0, "%", Rating.ELITE, "No commits found")

    fixes = sum(1 for c in commits if c.is_fix)
    ratio = fixes / len(commits) * 100
    rating = rate_lower_is_better(ratio, 30, 50, 70)
    return MetricResult(float(round(ratio)), "%", rating, REWORK_DESCRIPTIONS[rating])


def _touches_same_target(
    earlier: Commit,
    later: Commit,
    inferrer: ComponentInferrer,
) -> bool:
    if earlier.files and later.files:
        return bool(set(earlier.files) & set(later.files))
    component = inferrer(earlier)
    return component is not None and component == inferrer(later)


def trust_pass_rate(
    commits: Sequence[Commit],
    window_minutes: float = TRUST_WINDOW_MINUTES,
    inferrer: Optional[ComponentInferrer] = None,
) -> MetricResult:
    """Share of commits that did not need a follow-up fix.

    A commit fails when a later fix within ``window_minutes`` touches one of
    its files. Commits without file lists fall back to component equality.
    """
    if not commits:
        return MetricResult(100.0, "%", Rating.ELITE, "No commits found")

    inferrer = inferrer or ComponentInferrer()
    ordered = sort_commits(commits)
    trusted = 0
    for i, commit in enumerate(ordered):
        needs_followup = False
        for later in ordered[i + 1:]:
            elapsed = (later.timestamp - commit.timestamp).total_seconds() / 60.0
            if elapsed >= window_minutes:
                break
            if later.is_fix and _touches_same_target(commit, later, inferrer):
                needs_followup = True
                break
        if not needs_followup:
            trusted += 1

    rate = trusted / len(ordered) * 100
    rating = rate_higher_is_better(rate, 95, 80, 60)
    return MetricResult(float(round(rate)), "%", rating, TRUST_DESCRIPTIONS[rating])


def debug_spiral_duration(chains: Sequence[FixChain]) -> MetricResult:
    spirals = [c for c in chains if c.is_spiral]
    if not spirals:
        return MetricResult(0.0, "minutes", Rating.ELITE, "No debug spirals detected")

    mean = sum(c.duration_minutes for c in spirals) / len(spirals)
    rating = rate_lower_is_better(mean, 15, 30, 60)
    return MetricResult(float(round(mean)), "minutes", rating, SPIRAL_DESCRIPTIONS[rating])


def flow_efficiency(active_minutes: float, chains: Sequence[FixChain]) -> MetricResult:
    if active_minutes <= 0:
        return MetricResult(100.0, "%", Rating.ELITE, "No active time recorded")

    spiral_minutes = sum(c.duration_minutes for c in chains if c.is_spiral)
    efficiency = clamp((active_minutes - spiral_minutes) / active_minutes * 100, 0, 100)
    rating = rate_higher_is_better(efficiency, 90, 75, 50)
    return MetricResult(float(round(efficiency)), "%", rating, FLOW_DESCRIPTIONS[rating])


def calculate_metrics(
    commits: Sequence[Commit],
    active_hours: float,
    chains: Sequence[FixChain],
    trust_window_minutes: float = TRUST_WINDOW_MINUTES,
    inferrer: Optional[ComponentInferrer] = None,
) -> SessionMetrics:
    """Compute all five metrics plus the Code Health grade.

    Args:
        commits: The commits in the window.
        active_hours: Working time with idle gaps excluded.
        chains: Fix chains detected in the window.
        trust_window_minutes: Follow-up window for trust pass rate.
        inferrer: Component inferrer shared with spiral detection.
    """
    velocity = iteration_velocity(len(commits), active_hours)
    rework = rework_ratio(commits)
    trust = trust_pass_rate(commits, trust_window_minutes, inferrer)
    spiral = debug_spiral_duration(chains)
    flow = flow_efficiency(active_hours * 60, chains)

    return SessionMetrics(
        iteration_velocity=velocity,
        rework_ratio=rework,
        trust_pass_rate=trust,
        debug_spiral_duration=spiral,
        flow_efficiency=flow,
        code_health=composite_rating(
            r.rating for r in (velocity, rework, trust, spiral, flow)
        ),
        active_hours=round(active_hours, 2),
    )
