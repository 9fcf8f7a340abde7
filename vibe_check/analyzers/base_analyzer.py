"""
Base Signal Analyzer

Abstract interface for the pattern-score signals. Signals work on raw commit
timing and diff stats only, so they still say something when commit messages
do not follow any convention.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from vibe_check.core.models import Commit, SignalResult, VelocityBaseline


class BaseSignalAnalyzer(ABC):
    """Base class for pattern-score signals."""

    @abstractmethod
    def get_key(self) -> str:
        """Unique signal key."""

    @abstractmethod
    def get_name(self) -> str:
        """Human-readable signal name."""

    @abstractmethod
    def analyze(
        self,
        commits: List[Commit],
        baseline: Optional[VelocityBaseline] = None,
    ) -> SignalResult:
        """
        Score a commit window.

        Args:
            commits: Commits in the window, any order.
            baseline: Personal velocity baseline, if one has been learned.

        Returns:
            SignalResult with a 0.0-1.0 score where higher is healthier.
        """
