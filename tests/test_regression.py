"""Tests for regression detection over weekly buckets."""

from vibe_check.core.models import AlertSeverity, WeekTrend
from vibe_check.insights.regression import (
    detect_flow_regression,
    detect_regressions,
    detect_spiral_regression,
    improvement_streak,
)


def _weeks(spirals=(0, 0, 0), flows=(0, 0, 0), sessions=100):
    return [
        WeekTrend(key=f"2024-03-{4 + 7 * i:02d}", session_count=sessions,
                  spiral_count=s, flow_state_count=f)
        for i, (s, f) in enumerate(zip(spirals, flows))
    ]


class TestSpiralRegression:
    def test_critical_after_improvement(self):
        alert = detect_spiral_regression(_weeks(spirals=(50, 10, 30)))
        assert alert is not None
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.change_percent == 200
        assert alert.period == "2024-03-18"

    def test_warning(self):
        alert = detect_spiral_regression(_weeks(spirals=(50, 20, 32)))
        assert alert.severity == AlertSeverity.WARNING
        assert alert.change_percent == 60

    def test_no_prior_improvement(self):
        assert detect_spiral_regression(_weeks(spirals=(10, 20, 40))) is None

    def test_below_floor(self):
        assert detect_spiral_regression(_weeks(spirals=(20, 4, 8))) is None


class TestFlowRegression:
    def test_flow_collapse(self):
        alert = detect_flow_regression(_weeks(flows=(0, 40, 10), sessions=100))
        assert alert.type == "flow_decrease"
        assert alert.change_percent == -75
        assert alert.current_value == 10
        assert alert.baseline_value == 40

    def test_middle_week_not_good_enough(self):
        assert detect_flow_regression(_weeks(flows=(0, 20, 0))) is None

    def test_mild_dip_ignored(self):
        assert detect_flow_regression(_weeks(flows=(0, 40, 30))) is None


class TestDetectRegressions:
    def test_not_enough_weeks(self):
        analysis = detect_regressions(_weeks(spirals=(1, 2)))
        assert not analysis.has_regression
        assert analysis.summary.startswith("Not enough data")

    def test_critical_summary(self):
        analysis = detect_regressions(_weeks(spirals=(50, 10, 30)))
        assert analysis.has_regression
        assert analysis.summary.startswith("1 critical")

    def test_streak_summary(self):
        weeks = _weeks(spirals=(50, 40, 40, 20), flows=(0, 0, 0, 0))
        analysis = detect_regressions(weeks)
        assert not analysis.has_regression
        assert analysis.improvement_streak == 3
        assert analysis.summary == "3-week improvement streak"

    def test_streak_breaks_on_rise(self):
        assert improvement_streak(_weeks(spirals=(10, 20, 15))) == 1

    def test_quiet(self):
        analysis = detect_regressions(_weeks(spirals=(10, 20, 30)))
        assert analysis.summary == "No regressions detected"
