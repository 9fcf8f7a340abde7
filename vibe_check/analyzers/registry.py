"""
Pattern Score Signal Registry

Definitions and weights of the signals that make up the Pattern Score, plus
the configuration deciding which of them run.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Set


@dataclass
class SignalDefinition:
    """Definition of a pattern-score signal."""
    name: str
    key: str
    description: str
    weight: float
    enabled_by_default: bool = True
    requires_diff_stats: bool = False  # needs per-commit files or line counts


class SignalRegistry:
    """Registry of all pattern-score signals."""

    SIGNALS = {
        "file_churn": SignalDefinition(
            name="File Churn",
            key="file_churn",
            description="Files touched 3+ times within an hour",
            weight=0.30,
            requires_diff_stats=True,
        ),
        "time_spiral": SignalDefinition(
            name="Time Spiral",
            key="time_spiral",
            description="Commits landing less than 5 minutes apart",
            weight=0.25,
        ),
        "velocity_anomaly": SignalDefinition(
            name="Velocity Anomaly",
            key="velocity_anomaly",
            description="Distance of current velocity from the personal baseline",
            weight=0.20,
        ),
        "code_stability": SignalDefinition(
            name="Code Stability",
            key="code_stability",
            description="Share of added lines not immediately deleted again",
            weight=0.25,
            requires_diff_stats=True,
        ),
    }

    @classmethod
    def get_all(cls) -> Dict[str, SignalDefinition]:
        return cls.SIGNALS

    @classmethod
    def get(cls, key: str) -> Optional[SignalDefinition]:
        return cls.SIGNALS.get(key)

    @classmethod
    def get_defaults(cls) -> List[str]:
        return [k for k, s in cls.SIGNALS.items() if s.enabled_by_default]

    @classmethod
    def get_weights(cls, keys: Set[str]) -> Dict[str, float]:
        """Weights for the given signals, renormalized to sum to 1.0."""
        raw = {k: cls.SIGNALS[k].weight for k in keys if k in cls.SIGNALS}
        total = sum(raw.values())
        if total == 0:
            return {}
        return {k: w / total for k, w in raw.items()}


class SignalConfig:
    """Configuration for which signals to run."""

    def __init__(
        self,
        enabled: Optional[List[str]] = None,
        disabled: Optional[List[str]] = None,
        has_diff_stats: bool = True,
    ):
        if enabled is not None:
            unknown = set(enabled) - set(SignalRegistry.get_all())
            if unknown:
                raise ValueError(f"Unknown signals: {', '.join(sorted(unknown))}")
            self.signals_to_run = set(enabled)
        else:
            self.signals_to_run = set(SignalRegistry.get_defaults())
            if disabled:
                self.signals_to_run -= set(disabled)

        if not has_diff_stats:
            self.signals_to_run = {
                k for k in self.signals_to_run
                if not SignalRegistry.get(k).requires_diff_stats
            }

    def should_run(self, key: str) -> bool:
        return key in self.signals_to_run

    def get_enabled(self) -> Set[str]:
        return self.signals_to_run

    def get_weights(self) -> Dict[str, float]:
        return SignalRegistry.get_weights(self.signals_to_run)


class SignalPresets:
    """Preset signal configurations."""

    @staticmethod
    def full() -> SignalConfig:
        """All signals."""
        return SignalConfig(enabled=list(SignalRegistry.get_all().keys()))

    @staticmethod
    def timing_only() -> SignalConfig:
        """Signals that need nothing but commit timestamps."""
        return SignalConfig(enabled=["time_spiral", "velocity_anomaly"])
