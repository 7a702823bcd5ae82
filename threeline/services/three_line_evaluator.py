"""Three-line convergence evaluation logic shared by lookups and scans.

This module contains the core scoring logic for the three-line convergence
(short/mid/long MA) pattern. It evaluates 5 baseline checks (1 point each) and
maps the score to a label. A separate set of hard gates decides whether a
symbol is an actionable scan candidate.

Usage:
    evaluator = ThreeLineEvaluator()
    verdict = evaluator.evaluate(bars, {"tangle_max_spread_pct": 0.02})
    verdict.score, verdict.label, verdict.qualified
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from threeline.indicators.checks import CheckResult
from threeline.indicators.convergence import detect_convergence
from threeline.indicators.ma_analysis import (
    calculate_extension,
    check_arranged,
    check_confirmed_above,
    check_extension,
    check_long_ma_rising,
    check_price_above,
    check_trending_up,
)
from threeline.indicators.technical import MASeries, simple_moving_average, value_at
from threeline.indicators.volume import calculate_volume_ratio, check_volume_surge
from threeline.providers.base import Bar
from threeline.schemas.rules import RuleConfig, normalize_rule_config
from threeline.services.bar_series import NormalizedSeries, normalize_bars
from threeline.utils.numbers import safe_round


class VerdictLabel(str, Enum):
    """Categorical outcome of one evaluation."""

    NEAR_CONVERGENCE_BULLISH = "near-convergence-bullish"
    NEUTRAL_BULLISH = "neutral-bullish"
    WATCH = "watch"
    NOT_FORMED = "not-formed"
    INSUFFICIENT_DATA = "insufficient-data"

    @property
    def description(self) -> str:
        return _LABEL_DESCRIPTIONS[self]


_LABEL_DESCRIPTIONS = {
    VerdictLabel.NEAR_CONVERGENCE_BULLISH: "near three-line convergence (bullish lean)",
    VerdictLabel.NEUTRAL_BULLISH: "neutral-bullish",
    VerdictLabel.WATCH: "watch",
    VerdictLabel.NOT_FORMED: "not yet formed",
    VerdictLabel.INSUFFICIENT_DATA: "insufficient data",
}


class EngineIssue(str, Enum):
    """Recoverable problems observed while evaluating (never raised)."""

    INSUFFICIENT_DATA = "insufficient-data"
    INVALID_BAR = "invalid-bar"
    INVALID_CONFIGURATION = "invalid-configuration"
    COMPUTATION_UNDEFINED = "computation-undefined"


@dataclass
class IndicatorSeries:
    """Moving average series aligned with a normalized bar series."""

    ma_short: MASeries
    ma_mid: MASeries
    ma_long: MASeries
    volume_ma: MASeries


@dataclass
class LatestMetrics:
    """Latest bar and its moving average context."""

    date: str
    close: float
    volume: float
    ma_short: float | None
    ma_mid: float | None
    ma_long: float | None
    volume_ma: float | None
    volume_ratio: float | None
    extension_pct: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "close": self.close,
            "volume": self.volume,
            "ma_short": safe_round(self.ma_short, 3),
            "ma_mid": safe_round(self.ma_mid, 3),
            "ma_long": safe_round(self.ma_long, 3),
            "volume_ma": safe_round(self.volume_ma, 0),
            "volume_ratio": safe_round(self.volume_ratio, 4),
            "extension_pct": safe_round(self.extension_pct, 4),
        }


@dataclass
class Verdict:
    """Structured result of evaluating one bar series.

    Attributes:
        score: Number of passed baseline checks (0-5)
        label: Categorical label derived from the score
        details: Baseline checks by name, in evaluation order
        gates: Hard gates by name (scan inclusion, not scored)
        qualified: True when every hard gate passed
        latest: Latest bar metrics, None if no usable bar was supplied
        issues: Recoverable problems observed during evaluation
        bars_used: Bars left after normalization
        min_bars_required: Bars needed for the configured windows
        rules: The normalized rule configuration that was applied
    """

    score: int
    label: VerdictLabel
    details: dict[str, CheckResult]
    gates: dict[str, CheckResult]
    qualified: bool
    latest: LatestMetrics | None
    issues: list[EngineIssue]
    bars_used: int
    min_bars_required: int
    rules: RuleConfig

    @property
    def volume_ratio(self) -> float | None:
        return self.latest.volume_ratio if self.latest else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "max_score": len(self.details),
            "label": self.label.value,
            "label_text": self.label.description,
            "details": {name: check.to_dict() for name, check in self.details.items()},
            "gates": {name: check.to_dict() for name, check in self.gates.items()},
            "qualified": self.qualified,
            "latest": self.latest.to_dict() if self.latest else None,
            "issues": [issue.value for issue in self.issues],
            "bars_used": self.bars_used,
            "min_bars_required": self.min_bars_required,
            "rules": self.rules.to_public_dict(),
        }


class ThreeLineEvaluator:
    """Core evaluation logic for the three-line convergence pattern.

    Evaluates 5 baseline checks (1 point each, 5 total):
    1. Tangled - the three MAs stayed within a spread tolerance over a lookback
    2. Arranged - bullish stack, short MA > mid MA > long MA
    3. Trending up - all three MAs higher than ``slope_days`` ago
    4. Price above - latest close strictly above all three MAs
    5. Volume surge - latest volume above its average by the configured ratio

    Hard gates (not scored, all must pass for ``qualified``):
    - min_score - score reaches rules.min_score
    - confirmed_above - last ``confirm_days`` closes on all three MAs
    - long_ma_rising - long MA higher than ``slope_days`` ago
    - extension_guard - close not more than max_extension_pct above the long MA

    Note:
        Inputs are normalized here (bars sorted, de-duplicated and filtered;
        invalid rule values defaulted). Evaluation never raises for bad data.
    """

    BASELINE_CHECKS = ("tangled", "arranged", "trending_up", "price_above", "volume_surge")
    HARD_GATES = ("min_score", "confirmed_above", "long_ma_rising", "extension_guard")
    NEAR_CONVERGENCE_SCORE = 4
    NEUTRAL_BULLISH_SCORE = 3
    WATCH_SCORE = 2

    def evaluate(
        self,
        bars: Iterable[Bar | Mapping[str, Any]] | None,
        rules: RuleConfig | Mapping[str, Any] | None = None,
    ) -> Verdict:
        """Normalize inputs and evaluate the latest bar.

        Args:
            bars: Raw daily bars for one symbol, any order
            rules: Rule configuration (partial mappings are filled with defaults)

        Returns:
            Verdict for the latest bar
        """
        return self.evaluate_series(normalize_bars(bars), normalize_rule_config(rules))

    def evaluate_series(self, series: NormalizedSeries, rules: RuleConfig) -> Verdict:
        """Evaluate an already-normalized series with a normalized rule set."""
        issues: list[EngineIssue] = []
        if series.invalid:
            issues.append(EngineIssue.INVALID_BAR)
        if rules.defaults_applied:
            issues.append(EngineIssue.INVALID_CONFIGURATION)

        required = rules.required_bars
        indicators = self.compute_indicators(series, rules)
        latest = self.latest_metrics(series, indicators)

        if len(series) < required:
            issues.append(EngineIssue.INSUFFICIENT_DATA)
            return self._insufficient_verdict(series, rules, latest, issues)

        details = {check.name: check for check in self.evaluate_criteria(series, indicators, rules)}
        score = sum(1 for check in details.values() if check.passed)
        label = self.determine_label(score)

        gates = {check.name: check for check in self.evaluate_gates(series, indicators, rules, score)}
        qualified = all(gate.passed for gate in gates.values())

        if any(check.computation_undefined for check in (*details.values(), *gates.values())):
            issues.append(EngineIssue.COMPUTATION_UNDEFINED)

        return Verdict(
            score=score,
            label=label,
            details=details,
            gates=gates,
            qualified=qualified,
            latest=latest,
            issues=issues,
            bars_used=len(series),
            min_bars_required=required,
            rules=rules,
        )

    def compute_indicators(self, series: NormalizedSeries, rules: RuleConfig) -> IndicatorSeries:
        """Build the three price MAs and the volume MA for a series."""
        closes = series.closes
        volumes = series.volumes
        return IndicatorSeries(
            ma_short=simple_moving_average(closes, rules.ma_short),
            ma_mid=simple_moving_average(closes, rules.ma_mid),
            ma_long=simple_moving_average(closes, rules.ma_long),
            volume_ma=simple_moving_average(volumes, rules.volume_ma_days),
        )

    def evaluate_criteria(
        self, series: NormalizedSeries, indicators: IndicatorSeries, rules: RuleConfig
    ) -> list[CheckResult]:
        """Evaluate the 5 baseline checks in their fixed order."""
        closes = series.closes
        return [
            detect_convergence(
                indicators.ma_short,
                indicators.ma_mid,
                indicators.ma_long,
                closes,
                lookback_days=rules.tangle_lookback_days,
                max_spread_pct=rules.tangle_max_spread_pct,
            ),
            check_arranged(indicators.ma_short, indicators.ma_mid, indicators.ma_long),
            check_trending_up(
                indicators.ma_short,
                indicators.ma_mid,
                indicators.ma_long,
                slope_days=rules.slope_days,
            ),
            check_price_above(closes, indicators.ma_short, indicators.ma_mid, indicators.ma_long),
            check_volume_surge(
                series.volumes,
                indicators.volume_ma,
                volume_multiplier=rules.volume_multiplier,
                min_volume_ratio=rules.min_volume_ratio,
            ),
        ]

    def evaluate_gates(
        self,
        series: NormalizedSeries,
        indicators: IndicatorSeries,
        rules: RuleConfig,
        score: int,
    ) -> list[CheckResult]:
        """Evaluate the hard gates used for scan inclusion."""
        closes = series.closes
        return [
            CheckResult.from_condition(
                "min_score",
                score >= rules.min_score,
                f"score {score}/{len(self.BASELINE_CHECKS)} (need {rules.min_score})",
                {"score": score, "min_score": rules.min_score},
            ),
            check_confirmed_above(
                closes,
                indicators.ma_short,
                indicators.ma_mid,
                indicators.ma_long,
                confirm_days=rules.confirm_days,
            ),
            check_long_ma_rising(indicators.ma_long, slope_days=rules.slope_days),
            check_extension(closes, indicators.ma_long, rules.max_extension_pct),
        ]

    def determine_label(self, score: int) -> VerdictLabel:
        """Map a baseline score to its label."""
        if score >= self.NEAR_CONVERGENCE_SCORE:
            return VerdictLabel.NEAR_CONVERGENCE_BULLISH
        if score == self.NEUTRAL_BULLISH_SCORE:
            return VerdictLabel.NEUTRAL_BULLISH
        if score == self.WATCH_SCORE:
            return VerdictLabel.WATCH
        return VerdictLabel.NOT_FORMED

    def latest_metrics(
        self, series: NormalizedSeries, indicators: IndicatorSeries
    ) -> LatestMetrics | None:
        """Collect the latest bar's metrics, or None for an empty series."""
        if not series.bars:
            return None
        last = series.bars[-1]
        ma_long = value_at(indicators.ma_long)
        return LatestMetrics(
            date=last.date_key,
            close=last.close,  # type: ignore[arg-type]
            volume=last.volume,  # type: ignore[arg-type]
            ma_short=value_at(indicators.ma_short),
            ma_mid=value_at(indicators.ma_mid),
            ma_long=ma_long,
            volume_ma=value_at(indicators.volume_ma),
            volume_ratio=calculate_volume_ratio(series.volumes, indicators.volume_ma),
            extension_pct=calculate_extension(last.close, ma_long),
        )

    def _insufficient_verdict(
        self,
        series: NormalizedSeries,
        rules: RuleConfig,
        latest: LatestMetrics | None,
        issues: list[EngineIssue],
    ) -> Verdict:
        required = rules.required_bars
        note = f"needs at least {required} bars of history, got {len(series)}"
        values = {"bars_used": len(series), "min_bars_required": required}

        return Verdict(
            score=0,
            label=VerdictLabel.INSUFFICIENT_DATA,
            details={
                name: CheckResult.unavailable(name, note, dict(values))
                for name in self.BASELINE_CHECKS
            },
            gates={
                name: CheckResult.unavailable(name, note, dict(values))
                for name in self.HARD_GATES
            },
            qualified=False,
            latest=latest,
            issues=issues,
            bars_used=len(series),
            min_bars_required=required,
            rules=rules,
        )


_default_evaluator = ThreeLineEvaluator()


def evaluate(
    bars: Iterable[Bar | Mapping[str, Any]] | None,
    rules: RuleConfig | Mapping[str, Any] | None = None,
) -> Verdict:
    """Evaluate one symbol's bars with the shared evaluator."""
    return _default_evaluator.evaluate(bars, rules)
