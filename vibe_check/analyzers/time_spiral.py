"""
Time Spiral Signal

Commits landing less than RAPID_COMMIT_MINUTES after the previous one suggest
frustrated trial-and-error. Score = 1 - rapid commits / total commits.
"""

from typing import List, Optional

from vibe_check.analyzers.base_analyzer import BaseSignalAnalyzer
from vibe_check.analyzers.sessions import sort_commits
from vibe_check.config.defaults import RAPID_COMMIT_MINUTES
from vibe_check.core.models import Commit, Rating, SignalResult, VelocityBaseline
from vibe_check.core.scoring import rate_lower_is_better


class TimeSpiralAnalyzer(BaseSignalAnalyzer):
    """Detects bursts of rapid-fire commits."""

    def get_key(self) -> str:
        return "time_spiral"

    def get_name(self) -> str:
        return "Time Spiral"

    def analyze(
        self,
        commits: List[Commit],
        baseline: Optional[VelocityBaseline] = None,
    ) -> SignalResult:
        if len(commits) < 2:
            return SignalResult(
                key=self.get_key(),
                name=self.get_name(),
                score=1.0,
                rating=Rating.ELITE,
                description="Insufficient commits for analysis",
                metrics={"rapid_commits": 0, "total_commits": len(commits)},
            )

        ordered = sort_commits(commits)
        rapid = sum(
            1 for prev, curr in zip(ordered, ordered[1:])
            if (curr.timestamp - prev.timestamp).total_seconds() < RAPID_COMMIT_MINUTES * 60
        )
        ratio = rapid / len(ordered)

        return SignalResult(
            key=self.get_key(),
            name=self.get_name(),
            score=1.0 - ratio,
            rating=rate_lower_is_better(ratio, 0.15, 0.30, 0.50),
            description=f"{rapid}/{len(ordered)} rapid commits",
            metrics={"rapid_commits": rapid, "total_commits": len(ordered)},
        )
