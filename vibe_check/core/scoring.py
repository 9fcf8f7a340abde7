"""
Shared Scoring Primitives

Reusable curve functions and rating bands used by the metrics calculator and
the pattern-score signals. Every metric maps onto the same four-tier Rating so
that a composite grade can average them.
"""

import math
from typing import Iterable, List, Tuple

from vibe_check.core.models import Rating

# Four-point scale used by the Code Health grade
RATING_POINTS = {
    Rating.ELITE: 4,
    Rating.HIGH: 3,
    Rating.MEDIUM: 2,
    Rating.LOW: 1,
}


def sigmoid(x: float, midpoint: float, steepness: float = 1.0) -> float:
    """S-curve: 0->1. Ideal for rate-based metrics (0.0-1.0 inputs).

    Args:
        x: Input value.
        midpoint: Value where output is 0.5.
        steepness: Higher = sharper transition around midpoint.
    """
    z = -steepness * (x - midpoint)
    # Clamp to avoid overflow
    z = max(-500, min(500, z))
    return 1.0 / (1.0 + math.exp(z))


def clamp(x: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, x))


def weighted_sum(dimensions: List[Tuple[float, float]]) -> float:
    """Compute weighted sum of (score_0_to_1, weight) pairs. Returns 0-100.

    Args:
        dimensions: List of (score, weight) tuples where score is 0.0-1.0
                    and weight is the relative importance.
    """
    total_w = sum(w for _, w in dimensions)
    if total_w == 0:
        return 0.0
    return 100.0 * sum(s * w for s, w in dimensions) / total_w


# =============================================================================
# Rating bands
# =============================================================================

def rate_higher_is_better(
    value: float,
    elite: float,
    high: float,
    medium: float,
    elite_inclusive: bool = False,
) -> Rating:
    """Band a metric where larger values are healthier.

    ELITE needs ``value > elite`` (or ``>=`` with ``elite_inclusive``);
    the lower tiers are inclusive lower bounds.
    """
    if value > elite or (elite_inclusive and value == elite):
        return Rating.ELITE
    if value >= high:
        return Rating.HIGH
    if value >= medium:
        return Rating.MEDIUM
    return Rating.LOW


def rate_lower_is_better(value: float, elite: float, high: float, medium: float) -> Rating:
    """Band a metric where smaller values are healthier (strict upper bounds)."""
    if value < elite:
        return Rating.ELITE
    if value < high:
        return Rating.HIGH
    if value < medium:
        return Rating.MEDIUM
    return Rating.LOW


def composite_rating(ratings: Iterable[Rating]) -> Rating:
    """Average ratings on the four-point scale into a single grade.

    An empty input grades HIGH: nothing has gone wrong yet.
    """
    points = [RATING_POINTS[r] for r in ratings]
    if not points:
        return Rating.HIGH
    avg = sum(points) / len(points)
    if avg >= 3.5:
        return Rating.ELITE
    if avg >= 2.5:
        return Rating.HIGH
    if avg >= 1.5:
        return Rating.MEDIUM
    return Rating.LOW


def rating_from_score(score: float) -> Rating:
    """Band a 0.0-1.0 health score."""
    return rate_higher_is_better(score, 0.85, 0.7, 0.5, elite_inclusive=True)
