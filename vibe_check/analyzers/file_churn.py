"""
File Churn Signal

A file touched CHURN_MIN_TOUCHES or more times within CHURN_WINDOW_MINUTES is
being thrashed. Score = 1 - churned files / files touched.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from vibe_check.analyzers.base_analyzer import BaseSignalAnalyzer
from vibe_check.config.defaults import CHURN_MIN_TOUCHES, CHURN_WINDOW_MINUTES
from vibe_check.core.models import Commit, SignalResult, VelocityBaseline
from vibe_check.core.scoring import rate_lower_is_better


class FileChurnAnalyzer(BaseSignalAnalyzer):
    """Detects files edited over and over in a short span."""

    def get_key(self) -> str:
        return "file_churn"

    def get_name(self) -> str:
        return "File Churn"

    def analyze(
        self,
        commits: List[Commit],
        baseline: Optional[VelocityBaseline] = None,
    ) -> SignalResult:
        touches: Dict[str, List[datetime]] = defaultdict(list)
        for commit in commits:
            for path in commit.files:
                touches[path].append(commit.timestamp)

        window = timedelta(minutes=CHURN_WINDOW_MINUTES)
        churned = sum(1 for times in touches.values() if self._is_churned(sorted(times), window))
        total = len(touches)
        ratio = churned / total if total else 0.0
        rating = rate_lower_is_better(ratio, 0.10, 0.25, 0.40)

        return SignalResult(
            key=self.get_key(),
            name=self.get_name(),
            score=1.0 - ratio,
            rating=rating,
            description=f"{churned}/{total} files churned",
            metrics={
                "churned_files": churned,
                "total_files": total,
                "churn_ratio": ratio,
            },
        )

    @staticmethod
    def _is_churned(times: List[datetime], window: timedelta) -> bool:
        for i in range(len(times) - CHURN_MIN_TOUCHES + 1):
            if times[i + CHURN_MIN_TOUCHES - 1] - times[i] < window:
                return True
        return False
