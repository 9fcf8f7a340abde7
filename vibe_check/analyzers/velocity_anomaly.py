"""
Velocity Anomaly Signal

How far the current commit velocity sits from the personal baseline, as a
z-score. The score falls off smoothly past 1.5 sigma:
score = 1 / (1 + e^(z - 1.5)).

Without history the baseline defaults to 3.0 +/- 1.5 commits/hour. Once
enough sessions are stored the baseline is learned from them.
"""

import statistics
from typing import List, Optional, Sequence

from vibe_check.analyzers.base_analyzer import BaseSignalAnalyzer
from vibe_check.analyzers.sessions import active_hours
from vibe_check.config.defaults import (
    BASELINE_MIN_SESSIONS,
    BASELINE_VELOCITY_MEAN,
    BASELINE_VELOCITY_STDDEV,
    BASELINE_WINDOW_SESSIONS,
)
from vibe_check.core.models import Commit, SignalResult, VelocityBaseline
from vibe_check.core.scoring import rate_lower_is_better, sigmoid

DEFAULT_BASELINE = VelocityBaseline(
    mean=BASELINE_VELOCITY_MEAN,
    stddev=BASELINE_VELOCITY_STDDEV,
)


def learn_baseline(velocities: Sequence[float]) -> VelocityBaseline:
    """Baseline from the most recent per-session velocities.

    Falls back to the default until BASELINE_MIN_SESSIONS samples exist.
    """
    recent = list(velocities)[-BASELINE_WINDOW_SESSIONS:]
    if len(recent) < BASELINE_MIN_SESSIONS:
        return DEFAULT_BASELINE
    return VelocityBaseline(
        mean=round(statistics.mean(recent), 2),
        stddev=round(statistics.pstdev(recent), 2),
        samples=len(recent),
    )


class VelocityAnomalyAnalyzer(BaseSignalAnalyzer):
    """Flags sessions that run unusually fast or slow for this developer."""

    def get_key(self) -> str:
        return "velocity_anomaly"

    def get_name(self) -> str:
        return "Velocity Anomaly"

    def analyze(
        self,
        commits: List[Commit],
        baseline: Optional[VelocityBaseline] = None,
    ) -> SignalResult:
        base = baseline or DEFAULT_BASELINE
        hours = active_hours(commits)
        velocity = len(commits) / hours if hours > 0 else 0.0
        z_score = abs(velocity - base.mean) / base.stddev if base.stddev > 0 else 0.0

        return SignalResult(
            key=self.get_key(),
            name=self.get_name(),
            score=1.0 - sigmoid(z_score, 1.5),
            rating=rate_lower_is_better(z_score, 1.0, 1.5, 2.0),
            description=(
                f"{velocity:.1f}/hr ({z_score:.1f} sigma from baseline {base.mean:.1f}/hr)"
            ),
            metrics={
                "velocity": round(velocity, 1),
                "baseline_mean": base.mean,
                "baseline_stddev": base.stddev,
                "z_score": round(z_score, 2),
            },
        )
