"""Scan ranking for three-line convergence candidates.

This module provides pure-logic pool scanning with no I/O dependencies. Each
symbol's bars are evaluated independently, symbols failing any hard gate are
dropped, and the remaining candidates are ordered by volume ratio.

Key classes:
- ScanItem: One qualifying symbol with its verdict-derived fields
- ScanResult: Ordered qualifying items plus bookkeeping for skipped symbols

Key functions:
- scan: Evaluate a symbol -> bars mapping and rank qualifying symbols
- rank_candidates: Order items by volume ratio (stable, undefined ratio last)
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from threeline.providers.base import Bar
from threeline.schemas.rules import RuleConfig, normalize_rule_config
from threeline.services.three_line_evaluator import (
    LatestMetrics,
    ThreeLineEvaluator,
    Verdict,
)

logger = logging.getLogger(__name__)


@dataclass
class ScanItem:
    """A symbol that passed every hard gate."""

    symbol: str
    name: str | None
    score: int
    label: str
    latest: LatestMetrics | None

    @property
    def volume_ratio(self) -> float | None:
        return self.latest.volume_ratio if self.latest else None

    @classmethod
    def from_verdict(cls, symbol: str, name: str | None, verdict: Verdict) -> ScanItem:
        return cls(
            symbol=symbol,
            name=name,
            score=verdict.score,
            label=verdict.label.value,
            latest=verdict.latest,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "score": self.score,
            "label": self.label,
            "latest": self.latest.to_dict() if self.latest else None,
        }


@dataclass
class ScanResult:
    """Ranked scan output.

    Attributes:
        items: Qualifying symbols, volume ratio descending
        evaluated: Number of symbols evaluated
        skipped: Symbol -> reason for symbols that could not be evaluated
    """

    items: list[ScanItem] = field(default_factory=list)
    evaluated: int = 0
    skipped: dict[str, str] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "items": [item.to_dict() for item in self.items],
            "evaluated": self.evaluated,
            "skipped": dict(self.skipped),
        }


def _ratio_key(item: ScanItem) -> float:
    ratio = item.volume_ratio
    return ratio if ratio is not None else float("-inf")


def rank_candidates(items: Iterable[ScanItem]) -> list[ScanItem]:
    """Order items by volume ratio descending.

    Python's sort is stable, so ties keep their input order and removing one
    item never reorders the others. Items without a ratio sort last.
    """
    return sorted(items, key=_ratio_key, reverse=True)


def scan(
    symbol_bars: Mapping[str, Iterable[Bar | Mapping[str, Any]] | None],
    rules: RuleConfig | Mapping[str, Any] | None = None,
    names: Mapping[str, str | None] | None = None,
    evaluator: ThreeLineEvaluator | None = None,
) -> ScanResult:
    """Evaluate every symbol and return the ranked qualifying subset.

    Args:
        symbol_bars: Symbol -> raw bars (any order, may contain bad bars)
        rules: Rule configuration applied to every symbol
        names: Optional display names, passed through untouched
        evaluator: Evaluator instance (a fresh one by default)

    Returns:
        ScanResult; an empty input or no qualifying symbol gives count=0.
    """
    rule_config = normalize_rule_config(rules)
    evaluator = evaluator or ThreeLineEvaluator()
    names = names or {}
    result = ScanResult()
    qualifying: list[ScanItem] = []

    for symbol, bars in symbol_bars.items():
        try:
            verdict = evaluator.evaluate(bars, rule_config)
        except Exception as e:
            # One bad symbol must not abort the batch
            logger.error(f"Error evaluating {symbol}: {e}", exc_info=True)
            result.skipped[symbol] = str(e) or type(e).__name__
            continue

        result.evaluated += 1
        if verdict.qualified:
            qualifying.append(ScanItem.from_verdict(symbol, names.get(symbol), verdict))

    result.items = rank_candidates(qualifying)
    logger.info(
        f"Scan evaluated {result.evaluated} symbols: {result.count} qualifying, "
        f"{len(result.skipped)} skipped"
    )
    return result
