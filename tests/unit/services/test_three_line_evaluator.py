"""Unit tests for ThreeLineEvaluator."""

import random
from datetime import date, timedelta

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from threeline.indicators.checks import CheckStatus
from threeline.providers.base import Bar
from threeline.services.three_line_evaluator import (
    EngineIssue,
    ThreeLineEvaluator,
    VerdictLabel,
    evaluate,
)


def _make_bars(
    closes: list[float],
    volumes: list[float] | None = None,
    start: date = date(2025, 1, 1),
) -> list[Bar]:
    volumes = volumes or [1000.0] * len(closes)
    return [
        Bar(
            date=(start + timedelta(days=i)).isoformat(),
            open=close,
            high=close,
            low=close,
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes))
    ]


def _ramp_with_volume_spike(count: int = 40) -> list[Bar]:
    """Closes 100, 101, ... with the final volume at 3x the rest."""
    closes = [100.0 + i for i in range(count)]
    volumes = [1000.0] * (count - 1) + [3000.0]
    return _make_bars(closes, volumes)


class TestThreeLineEvaluatorConstants:
    """Test evaluator constants."""

    def test_baseline_checks(self):
        assert ThreeLineEvaluator.BASELINE_CHECKS == (
            "tangled", "arranged", "trending_up", "price_above", "volume_surge",
        )

    def test_hard_gates(self):
        assert ThreeLineEvaluator.HARD_GATES == (
            "min_score", "confirmed_above", "long_ma_rising", "extension_guard",
        )


class TestDetermineLabel:
    """Test score to label mapping."""

    @pytest.mark.parametrize(
        "score, label",
        [
            (5, VerdictLabel.NEAR_CONVERGENCE_BULLISH),
            (4, VerdictLabel.NEAR_CONVERGENCE_BULLISH),
            (3, VerdictLabel.NEUTRAL_BULLISH),
            (2, VerdictLabel.WATCH),
            (1, VerdictLabel.NOT_FORMED),
            (0, VerdictLabel.NOT_FORMED),
        ],
    )
    def test_label_thresholds(self, score, label):
        assert ThreeLineEvaluator().determine_label(score) == label

    def test_label_descriptions(self):
        assert (
            VerdictLabel.NEAR_CONVERGENCE_BULLISH.description
            == "near three-line convergence (bullish lean)"
        )
        assert VerdictLabel.NOT_FORMED.description == "not yet formed"


class TestInsufficientData:
    """Verdicts for series shorter than the configured windows."""

    def test_twenty_bars_is_insufficient(self):
        verdict = evaluate(_make_bars([100.0 + i for i in range(20)]))

        assert verdict.label == VerdictLabel.INSUFFICIENT_DATA
        assert verdict.score == 0
        assert verdict.qualified is False
        assert EngineIssue.INSUFFICIENT_DATA in verdict.issues
        assert verdict.min_bars_required == 30
        assert verdict.bars_used == 20
        assert all(check.status == CheckStatus.UNAVAILABLE for check in verdict.details.values())
        assert all(gate.status == CheckStatus.UNAVAILABLE for gate in verdict.gates.values())

    def test_insufficient_verdict_still_reports_latest_bar(self):
        verdict = evaluate(_make_bars([100.0, 101.0]))

        assert verdict.latest is not None
        assert verdict.latest.close == 101.0
        assert verdict.latest.ma_long is None

    @pytest.mark.parametrize("bars", [None, []])
    def test_empty_input(self, bars):
        verdict = evaluate(bars)

        assert verdict.label == VerdictLabel.INSUFFICIENT_DATA
        assert verdict.latest is None

    def test_invalid_bars_do_not_count(self):
        bars = _make_bars([100.0] * 35)
        bars[-10:] = [
            Bar(date=bar.date, open=None, high=None, low=None, close=0.0, volume=1000.0)
            for bar in bars[-10:]
        ]

        verdict = evaluate(bars)

        assert verdict.bars_used == 25
        assert verdict.label == VerdictLabel.INSUFFICIENT_DATA
        assert EngineIssue.INVALID_BAR in verdict.issues

    def test_longer_windows_raise_the_requirement(self):
        verdict = evaluate(_make_bars([100.0] * 40), {"ma_long": 60})

        assert verdict.min_bars_required == 64
        assert verdict.label == VerdictLabel.INSUFFICIENT_DATA


class TestEvaluateScenarios:
    """End-to-end verdicts on constructed series."""

    def test_flat_series_only_tangled(self):
        verdict = evaluate(_make_bars([100.0] * 40))

        assert verdict.score == 1
        assert verdict.label == VerdictLabel.NOT_FORMED
        assert verdict.details["tangled"].passed
        assert not verdict.details["arranged"].passed
        assert not verdict.details["trending_up"].passed
        assert not verdict.details["price_above"].passed
        assert not verdict.details["volume_surge"].passed
        assert verdict.qualified is False
        assert verdict.issues == []

    def test_out_of_range_integers_do_not_raise(self):
        bars = _make_bars([100.0] * 40, volumes=[1000.0] * 39 + [10**400])

        verdict = evaluate(bars, {"ma_short": 10**400})

        assert verdict.bars_used == 39
        assert verdict.rules.ma_short == 5
        assert EngineIssue.INVALID_BAR in verdict.issues
        assert EngineIssue.INVALID_CONFIGURATION in verdict.issues
        assert verdict.score == 1

    def test_ramp_with_volume_spike_scores_four(self):
        verdict = evaluate(_ramp_with_volume_spike())

        assert verdict.score == 4
        assert verdict.label == VerdictLabel.NEAR_CONVERGENCE_BULLISH
        assert not verdict.details["tangled"].passed
        assert verdict.details["arranged"].passed
        assert verdict.details["trending_up"].passed
        assert verdict.details["price_above"].passed
        assert verdict.details["volume_surge"].passed

    def test_ramp_latest_metrics(self):
        latest = evaluate(_ramp_with_volume_spike()).latest

        assert latest.date == "2025-02-09"
        assert latest.close == 139.0
        assert latest.ma_short == pytest.approx(137.0)
        assert latest.ma_mid == pytest.approx(134.5)
        assert latest.ma_long == pytest.approx(129.5)
        assert latest.volume_ma == pytest.approx(1200.0)
        assert latest.volume_ratio == pytest.approx(2.5)
        assert latest.extension_pct == pytest.approx(9.5 / 129.5)

    def test_ramp_with_volume_spike_is_qualified(self):
        verdict = evaluate(_ramp_with_volume_spike())

        assert verdict.qualified is True
        assert all(gate.passed for gate in verdict.gates.values())

    def test_extension_guard_blocks_qualification(self):
        verdict = evaluate(_ramp_with_volume_spike(), {"max_extension_pct": 0.05})

        assert verdict.score == 4
        assert not verdict.gates["extension_guard"].passed
        assert verdict.qualified is False

    def test_min_score_gate(self):
        verdict = evaluate(_ramp_with_volume_spike(), {"min_score": 5})

        assert not verdict.gates["min_score"].passed
        assert verdict.qualified is False

    def test_zero_spread_fails_tangle_on_distinct_mas(self):
        verdict = evaluate(_ramp_with_volume_spike(), {"tangle_max_spread_pct": 0})

        assert verdict.details["tangled"].status == CheckStatus.FAILED
        assert EngineIssue.INVALID_CONFIGURATION not in verdict.issues

    def test_loose_spread_makes_ramp_tangled(self):
        verdict = evaluate(_ramp_with_volume_spike(), {"tangle_max_spread_pct": 0.10})

        assert verdict.details["tangled"].passed
        assert verdict.score == 5

    def test_invalid_rule_is_reported_and_defaulted(self):
        verdict = evaluate(_ramp_with_volume_spike(), {"tangle_max_spread_pct": 1.5})

        assert EngineIssue.INVALID_CONFIGURATION in verdict.issues
        assert verdict.rules.tangle_max_spread_pct == 0.015
        assert verdict.score == 4

    def test_zero_volume_history_marks_computation_undefined(self):
        closes = [100.0 + i for i in range(40)]
        verdict = evaluate(_make_bars(closes, [0.0] * 40))

        assert not verdict.details["volume_surge"].passed
        assert EngineIssue.COMPUTATION_UNDEFINED in verdict.issues
        assert verdict.latest.volume_ratio is None

    def test_to_dict_shape(self):
        payload = evaluate(_ramp_with_volume_spike()).to_dict()

        assert payload["score"] == 4
        assert payload["max_score"] == 5
        assert payload["label"] == "near-convergence-bullish"
        assert list(payload["details"]) == list(ThreeLineEvaluator.BASELINE_CHECKS)
        assert payload["details"]["volume_surge"]["pass"] is True
        assert payload["details"]["tangled"]["status"] == "failed"
        assert payload["latest"]["ma_mid"] == 134.5
        assert payload["rules"]["ma_long"] == 20
        assert "defaults_applied" not in payload["rules"]


class TestEvaluateInvariants:
    """Properties that hold for any input."""

    def test_shuffled_and_duplicated_input_gives_same_verdict(self):
        bars = _ramp_with_volume_spike()
        messy = list(bars)
        random.Random(7).shuffle(messy)
        messy = messy + [bars[5], bars[20]]

        assert evaluate(messy).to_dict() == evaluate(bars).to_dict()

    def test_evaluate_is_deterministic(self):
        bars = _ramp_with_volume_spike()

        assert evaluate(bars).to_dict() == evaluate(bars).to_dict()

    @given(
        st.lists(
            st.tuples(
                st.floats(min_value=1.0, max_value=1000.0),
                st.floats(min_value=0.0, max_value=1e7),
            ),
            min_size=0,
            max_size=80,
        ),
        st.randoms(use_true_random=False),
    )
    @settings(max_examples=40, deadline=2000)
    def test_order_invariance_and_score_bounds(self, rows, rnd):
        bars = _make_bars([close for close, _ in rows], [volume for _, volume in rows])
        shuffled = list(bars)
        rnd.shuffle(shuffled)

        verdict = evaluate(bars)

        assert 0 <= verdict.score <= 5
        assert verdict.score == sum(1 for check in verdict.details.values() if check.passed)
        assert evaluate(shuffled).to_dict() == verdict.to_dict()
        if verdict.qualified:
            assert verdict.score >= verdict.rules.min_score

    @given(
        st.lists(st.floats(min_value=1.0, max_value=1000.0), min_size=30, max_size=60),
        st.floats(min_value=0.0, max_value=0.2),
        st.floats(min_value=0.0, max_value=0.2),
    )
    @settings(max_examples=40, deadline=2000)
    def test_tangle_is_monotonic_in_tolerance(self, closes, tol_a, tol_b):
        """A looser spread tolerance never un-tangles a series."""
        tight, loose = sorted((tol_a, tol_b))
        bars = _make_bars(closes)

        tight_verdict = evaluate(bars, {"tangle_max_spread_pct": tight})
        loose_verdict = evaluate(bars, {"tangle_max_spread_pct": loose})

        if tight_verdict.details["tangled"].passed:
            assert loose_verdict.details["tangled"].passed
