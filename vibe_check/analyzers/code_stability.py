"""
Code Stability Signal

Approximates how much freshly added code survives using the deletion to
addition ratio: score = 1 - min(deletions / additions, 1) * 0.5. Heavy
deletion halves the score at most. Windows with no line counts fall back to
the share of fix and revert commits.
"""

from typing import List, Optional

from vibe_check.analyzers.base_analyzer import BaseSignalAnalyzer
from vibe_check.core.models import Commit, SignalResult, VelocityBaseline
from vibe_check.core.scoring import rating_from_score

_ESTIMATE_MARKERS = ("fix", "revert", "undo")


class CodeStabilityAnalyzer(BaseSignalAnalyzer):
    """Scores how much added code sticks around."""

    def get_key(self) -> str:
        return "code_stability"

    def get_name(self) -> str:
        return "Code Stability"

    def analyze(
        self,
        commits: List[Commit],
        baseline: Optional[VelocityBaseline] = None,
    ) -> SignalResult:
        added = sum(c.lines_added for c in commits)
        deleted = sum(c.lines_deleted for c in commits)

        if added == 0 and deleted == 0:
            return self._estimate(commits)

        churn_rate = min(deleted / added, 1.0) if added > 0 else 0.0
        score = 1.0 - churn_rate * 0.5
        return SignalResult(
            key=self.get_key(),
            name=self.get_name(),
            score=score,
            rating=rating_from_score(score),
            description=f"{round(score * 100)}% stability (+{added}/-{deleted})",
            metrics={
                "lines_added": added,
                "lines_deleted": deleted,
                "lines_surviving": round(added * score),
            },
        )

    def _estimate(self, commits: List[Commit]) -> SignalResult:
        flagged = sum(
            1 for c in commits
            if any(marker in c.message.lower() for marker in _ESTIMATE_MARKERS)
        )
        ratio = flagged / len(commits) if commits else 0.0
        score = 1.0 - ratio
        return SignalResult(
            key=self.get_key(),
            name=self.get_name(),
            score=score,
            rating=rating_from_score(score),
            description=f"Estimated: {round(ratio * 100)}% fix/revert commits",
            metrics={"lines_added": 0, "lines_deleted": 0, "lines_surviving": 0},
        )
