"""Tests for moving average convergence (tangle) detection."""

import pytest

from threeline.indicators.checks import CheckStatus
from threeline.indicators.convergence import calculate_spread, detect_convergence


class TestCalculateSpread:
    """Tests for the fractional MA spread."""

    def test_spread_relative_to_close(self):
        # (102 - 100) / 100 = 2%
        assert calculate_spread(100.0, 101.0, 102.0, 100.0) == pytest.approx(0.02)

    def test_spread_is_order_independent(self):
        assert calculate_spread(102.0, 100.0, 101.0, 100.0) == pytest.approx(0.02)

    def test_identical_mas_have_zero_spread(self):
        assert calculate_spread(50.0, 50.0, 50.0, 50.0) == 0.0

    @pytest.mark.parametrize("close", [0.0, -1.0])
    def test_non_positive_reference_is_undefined(self, close):
        assert calculate_spread(1.0, 2.0, 3.0, close) is None


class TestDetectConvergence:
    """Tests for detect_convergence."""

    def test_all_days_within_tolerance(self):
        ma = [100.0] * 5
        mid = [100.5] * 5
        long_ = [101.0] * 5
        closes = [100.0] * 5

        result = detect_convergence(ma, mid, long_, closes, lookback_days=5, max_spread_pct=0.015)

        assert result.name == "tangled"
        assert result.passed
        assert result.values["days_checked"] == 5
        assert result.values["days_within"] == 5
        assert result.values["max_spread"] == pytest.approx(0.01)
        assert result.values["first_failing_date_index"] is None

    def test_single_day_out_of_tolerance_breaks_tangle(self):
        """No averaging across the window: one wide day fails the check."""
        short = [100.0, 100.0, 100.0, 100.0, 100.0]
        mid = [100.0, 100.0, 103.0, 100.0, 100.0]
        long_ = [100.0] * 5
        closes = [100.0] * 5

        result = detect_convergence(short, mid, long_, closes, lookback_days=5, max_spread_pct=0.015)

        assert result.status == CheckStatus.FAILED
        assert result.values["days_within"] == 4
        assert result.values["first_failing_date_index"] == 2
        assert not result.computation_undefined

    def test_only_lookback_window_is_checked(self):
        """Wide spreads before the lookback window do not matter."""
        short = [90.0, 90.0, 100.0, 100.0]
        mid = [100.0] * 4
        long_ = [110.0, 110.0, 100.0, 100.0]
        closes = [100.0] * 4

        result = detect_convergence(short, mid, long_, closes, lookback_days=2)

        assert result.passed
        assert result.values["days_checked"] == 2

    def test_spread_at_limit_passes(self):
        short = [100.0] * 3
        mid = [100.0] * 3
        long_ = [101.0] * 3
        closes = [100.0] * 3

        result = detect_convergence(short, mid, long_, closes, lookback_days=3, max_spread_pct=0.01)

        assert result.passed

    def test_zero_tolerance_fails_on_distinct_mas(self):
        result = detect_convergence(
            [100.0, 100.0], [100.0, 100.01], [100.0, 100.0], [100.0, 100.0],
            lookback_days=2, max_spread_pct=0.0,
        )

        assert result.status == CheckStatus.FAILED

    def test_undefined_ma_in_window_is_unavailable(self):
        short = [None, 100.0, 100.0]
        mid = [None, None, 100.0]
        long_ = [None, None, 100.0]
        closes = [100.0] * 3

        result = detect_convergence(short, mid, long_, closes, lookback_days=2)

        assert result.status == CheckStatus.UNAVAILABLE
        assert not result.passed

    def test_too_few_bars_is_unavailable(self):
        result = detect_convergence([100.0], [100.0], [100.0], [100.0], lookback_days=5)

        assert result.status == CheckStatus.UNAVAILABLE

    def test_zero_lookback_is_unavailable(self):
        result = detect_convergence([100.0], [100.0], [100.0], [100.0], lookback_days=0)

        assert result.status == CheckStatus.UNAVAILABLE

    def test_non_positive_close_marks_computation_undefined(self):
        result = detect_convergence(
            [100.0, 100.0], [100.0, 100.0], [100.0, 100.0], [100.0, 0.0], lookback_days=2
        )

        assert result.status == CheckStatus.FAILED
        assert result.computation_undefined
