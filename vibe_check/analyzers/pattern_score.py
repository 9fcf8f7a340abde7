"""
Pattern Score

Workflow-risk early warning, independent of the Code Health grade: a weighted
sum of the enabled signals (file churn 0.30, time spiral 0.25, velocity
anomaly 0.20, code stability 0.25), reported on 0.0-1.0.
"""

import logging
from typing import Dict, List, Optional

from vibe_check.analyzers.base_analyzer import BaseSignalAnalyzer
from vibe_check.analyzers.code_stability import CodeStabilityAnalyzer
from vibe_check.analyzers.file_churn import FileChurnAnalyzer
from vibe_check.analyzers.registry import SignalConfig
from vibe_check.analyzers.time_spiral import TimeSpiralAnalyzer
from vibe_check.analyzers.velocity_anomaly import VelocityAnomalyAnalyzer
from vibe_check.core.models import Commit, PatternScore, VelocityBaseline
from vibe_check.core.scoring import rating_from_score, weighted_sum

logger = logging.getLogger(__name__)

# Mapping of signal keys to their implementing classes
SIGNAL_CLASSES: Dict[str, type] = {
    "file_churn": FileChurnAnalyzer,
    "time_spiral": TimeSpiralAnalyzer,
    "velocity_anomaly": VelocityAnomalyAnalyzer,
    "code_stability": CodeStabilityAnalyzer,
}


class PatternScoreCalculator:
    """Runs the enabled signals and combines them."""

    def __init__(self, config: Optional[SignalConfig] = None):
        self.config = config or SignalConfig()
        self._analyzers: Dict[str, BaseSignalAnalyzer] = {}

    def calculate(
        self,
        commits: List[Commit],
        baseline: Optional[VelocityBaseline] = None,
    ) -> PatternScore:
        weights = self.config.get_weights()
        signals = []
        for key in SIGNAL_CLASSES:
            if key not in weights:
                continue
            result = self._get_analyzer(key).analyze(commits, baseline)
            logger.debug("Signal %s scored %.2f", key, result.score)
            signals.append(result)

        value = round(weighted_sum([(s.score, weights[s.key]) for s in signals]) / 100.0, 2)
        return PatternScore(
            value=value,
            rating=rating_from_score(value),
            signals=signals,
            weights={k: round(w, 3) for k, w in weights.items()},
        )

    def _get_analyzer(self, key: str) -> BaseSignalAnalyzer:
        if key not in self._analyzers:
            self._analyzers[key] = SIGNAL_CLASSES[key]()
        return self._analyzers[key]
