"""Bar series normalization.

The evaluator never assumes its input is clean. Before any moving average is
computed the raw bars are coerced, filtered, sorted and de-duplicated here.
"""
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from threeline.providers.base import Bar
from threeline.utils.numbers import to_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedSeries:
    """Clean, ascending, date-unique bars plus counters of what was removed.

    Attributes:
        bars: Bars sorted ascending by date, one per date
        received: Number of raw bars supplied
        invalid: Bars dropped for a non-finite/non-positive close or a
            non-finite/negative volume
        duplicates: Bars dropped because a later bar had the same date
    """

    bars: tuple[Bar, ...]
    received: int
    invalid: int
    duplicates: int

    @property
    def closes(self) -> list[float]:
        return [bar.close for bar in self.bars]  # type: ignore[misc]

    @property
    def volumes(self) -> list[float]:
        return [bar.volume for bar in self.bars]  # type: ignore[misc]

    def __len__(self) -> int:
        return len(self.bars)


def _coerce_bar(raw: Bar | Mapping[str, Any]) -> Bar | None:
    """Build a Bar with numeric fields coerced, or None if unusable."""
    if isinstance(raw, Bar):
        source = raw.to_dict()
        source["date"] = raw.date
    elif isinstance(raw, Mapping):
        source = raw
    else:
        return None

    bar_date = source.get("date")
    if bar_date is None or str(bar_date).strip() == "":
        return None

    return Bar(
        date=bar_date,
        open=to_number(source.get("open")),
        high=to_number(source.get("high")),
        low=to_number(source.get("low")),
        close=to_number(source.get("close")),
        volume=to_number(source.get("volume")),
    )


def _is_valid(bar: Bar) -> bool:
    return (
        bar.close is not None
        and bar.close > 0
        and bar.volume is not None
        and bar.volume >= 0
    )


def normalize_bars(bars: Iterable[Bar | Mapping[str, Any]] | None) -> NormalizedSeries:
    """Normalize raw bars into an ascending, date-unique, finite series.

    Steps:
    1. Coerce numeric fields (numbers or comma-grouped numeric strings)
    2. Drop bars with a missing/non-finite/non-positive close or a
       missing/non-finite/negative volume
    3. De-duplicate by date, keeping the last occurrence in input order
    4. Sort ascending by date

    Args:
        bars: Raw bars (Bar instances or mappings with the same keys)

    Returns:
        NormalizedSeries. Empty if ``bars`` is None or nothing survives.
    """
    raw_bars = list(bars) if bars is not None else []

    by_date: dict[str, Bar] = {}
    invalid = 0
    duplicates = 0

    for raw in raw_bars:
        bar = _coerce_bar(raw)
        if bar is None or not _is_valid(bar):
            invalid += 1
            continue
        if bar.date_key in by_date:
            duplicates += 1
        by_date[bar.date_key] = bar

    ordered = tuple(by_date[key] for key in sorted(by_date))

    if invalid or duplicates:
        logger.debug(
            f"Normalized {len(raw_bars)} bars: dropped {invalid} invalid, "
            f"{duplicates} duplicate(s), kept {len(ordered)}"
        )

    return NormalizedSeries(
        bars=ordered,
        received=len(raw_bars),
        invalid=invalid,
        duplicates=duplicates,
    )
