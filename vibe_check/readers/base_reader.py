"""
Base Reader

Abstract base class for commit sources. A reader turns some version-control
history into a list of immutable Commit objects; everything downstream works
on that list only.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from vibe_check.core.models import Commit


class BaseCommitReader(ABC):
    """Abstract reader for commit history."""

    @abstractmethod
    def get_source_name(self) -> str:
        """Return a short name for the commit source (e.g. ``git``)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the history can be read on the current machine."""

    @abstractmethod
    def read_commits(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Commit]:
        """
        Read commits in chronological order.

        Args:
            since: Only include commits after this timestamp.
            until: Only include commits before this timestamp.

        Returns:
            List of Commit objects, oldest first.
        """

    def get_status(self) -> dict:
        """Return a summary of commit source availability."""
        return {
            "source": self.get_source_name(),
            "available": self.is_available(),
        }
