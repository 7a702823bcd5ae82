"""Tests for volume analysis."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from threeline.indicators.checks import CheckStatus
from threeline.indicators.technical import simple_moving_average
from threeline.indicators.volume import calculate_volume_ratio, check_volume_surge


class TestCalculateVolumeRatio:
    """Tests for latest volume / volume MA."""

    def test_ratio(self):
        assert calculate_volume_ratio([1000.0, 3000.0], [None, 1200.0]) == pytest.approx(2.5)

    def test_undefined_average(self):
        assert calculate_volume_ratio([1000.0], [None]) is None

    def test_zero_average(self):
        assert calculate_volume_ratio([0.0, 0.0], [None, 0.0]) is None

    def test_empty(self):
        assert calculate_volume_ratio([], []) is None


class TestCheckVolumeSurge:
    """Tests for check_volume_surge."""

    def test_volume_above_average_passes(self):
        result = check_volume_surge([1000.0, 1500.0], [None, 1250.0])

        assert result.name == "volume_surge"
        assert result.passed
        assert result.values["volume_ratio"] == pytest.approx(1.2)

    def test_volume_equal_to_average_fails(self):
        """Strictly above: a flat volume never counts as a surge."""
        result = check_volume_surge([1000.0, 1000.0], [None, 1000.0])

        assert result.status == CheckStatus.FAILED

    def test_multiplier_raises_the_bar(self):
        volumes = [1000.0, 1500.0]
        volume_ma = [None, 1250.0]

        assert not check_volume_surge(volumes, volume_ma, volume_multiplier=1.5).passed
        assert check_volume_surge(volumes, volume_ma, volume_multiplier=1.1).passed

    def test_min_volume_ratio_is_a_floor(self):
        volumes = [1000.0, 1500.0]
        volume_ma = [None, 1250.0]

        result = check_volume_surge(volumes, volume_ma, volume_multiplier=1.0, min_volume_ratio=1.3)

        assert not result.passed
        assert result.values["threshold"] == 1.3

    def test_undefined_average_is_unavailable(self):
        result = check_volume_surge([1000.0], [None])

        assert result.status == CheckStatus.UNAVAILABLE

    def test_zero_average_marks_computation_undefined(self):
        result = check_volume_surge([0.0, 0.0], [None, 0.0])

        assert result.status == CheckStatus.FAILED
        assert result.computation_undefined

    @given(
        st.lists(st.floats(min_value=1.0, max_value=1e9), min_size=5, max_size=40),
        st.floats(min_value=0.1, max_value=5.0),
    )
    @settings(max_examples=50, deadline=1000)
    def test_pass_implies_ratio_reaches_threshold(self, volumes, multiplier):
        volume_ma = simple_moving_average(volumes, 5)

        result = check_volume_surge(volumes, volume_ma, volume_multiplier=multiplier)

        if result.passed:
            assert result.values["volume_ratio"] >= multiplier
            assert volumes[-1] > result.values["volume_ma"]
