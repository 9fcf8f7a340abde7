"""Tests for the shared scoring primitives and rating bands."""

import pytest

from vibe_check.core.models import Rating
from vibe_check.core.scoring import (
    composite_rating,
    rate_higher_is_better,
    rate_lower_is_better,
    rating_from_score,
    sigmoid,
    weighted_sum,
)


class TestSigmoid:
    def test_midpoint_returns_half(self):
        assert sigmoid(5, 5, 1.0) == pytest.approx(0.5)

    def test_far_above_midpoint_approaches_one(self):
        assert sigmoid(100, 5, 1.0) > 0.99

    def test_far_below_midpoint_approaches_zero(self):
        assert sigmoid(-100, 5, 1.0) < 0.01

    def test_no_overflow(self):
        assert sigmoid(1e9, 0, 10) == pytest.approx(1.0)


class TestWeightedSum:
    def test_scales_to_hundred(self):
        assert weighted_sum([(1.0, 0.5), (0.5, 0.5)]) == pytest.approx(75.0)

    def test_zero_weights(self):
        assert weighted_sum([(1.0, 0.0)]) == 0.0


class TestRatingBands:
    def test_higher_is_better_elite_is_strict(self):
        assert rate_higher_is_better(95, 95, 80, 60) == Rating.HIGH
        assert rate_higher_is_better(95.1, 95, 80, 60) == Rating.ELITE

    def test_higher_is_better_inclusive_elite(self):
        assert rate_higher_is_better(5, 5, 3, 1, elite_inclusive=True) == Rating.ELITE

    def test_higher_is_better_lower_tiers(self):
        assert rate_higher_is_better(80, 95, 80, 60) == Rating.HIGH
        assert rate_higher_is_better(60, 95, 80, 60) == Rating.MEDIUM
        assert rate_higher_is_better(59, 95, 80, 60) == Rating.LOW

    def test_lower_is_better(self):
        assert rate_lower_is_better(10, 15, 30, 60) == Rating.ELITE
        assert rate_lower_is_better(15, 15, 30, 60) == Rating.HIGH
        assert rate_lower_is_better(30, 15, 30, 60) == Rating.MEDIUM
        assert rate_lower_is_better(60, 15, 30, 60) == Rating.LOW


class TestCompositeRating:
    def test_all_elite(self):
        assert composite_rating([Rating.ELITE] * 5) == Rating.ELITE

    def test_mixed(self):
        # (4 + 4 + 3 + 2 + 1) / 5 = 2.8
        ratings = [Rating.ELITE, Rating.ELITE, Rating.HIGH, Rating.MEDIUM, Rating.LOW]
        assert composite_rating(ratings) == Rating.HIGH

    def test_all_low(self):
        assert composite_rating([Rating.LOW] * 5) == Rating.LOW

    def test_empty_is_high(self):
        assert composite_rating([]) == Rating.HIGH


class TestRatingFromScore:
    @pytest.mark.parametrize("score,expected", [
        (0.85, Rating.ELITE),
        (0.84, Rating.HIGH),
        (0.7, Rating.HIGH),
        (0.5, Rating.MEDIUM),
        (0.49, Rating.LOW),
    ])
    def test_bands(self, score, expected):
        assert rating_from_score(score) == expected
