"""Moving average convergence ("tangle") detection.

Three averages are tangled when, on every one of the most recent trading days,
the gap between the highest and the lowest of them is small relative to that
day's close. A single day out of tolerance breaks the tangle; there is no
averaging across the window.
"""

from threeline.indicators.checks import CheckResult, fmt
from threeline.indicators.technical import MASeries


def calculate_spread(
    ma_short: float, ma_mid: float, ma_long: float, reference_close: float
) -> float | None:
    """Fractional spread of three MAs relative to a reference close.

    Returns:
        (max - min) / reference_close, or None if the reference is not positive.
    """
    if reference_close <= 0:
        return None
    highest = max(ma_short, ma_mid, ma_long)
    lowest = min(ma_short, ma_mid, ma_long)
    return (highest - lowest) / reference_close


def detect_convergence(
    ma_short: MASeries,
    ma_mid: MASeries,
    ma_long: MASeries,
    closes: list[float],
    lookback_days: int = 5,
    max_spread_pct: float = 0.015,
) -> CheckResult:
    """Check that the three MAs stayed within tolerance over the lookback window.

    Args:
        ma_short: Short MA series (aligned with closes)
        ma_mid: Mid MA series
        ma_long: Long MA series
        closes: Closing prices, oldest first
        lookback_days: Number of most recent days that must all be tangled
        max_spread_pct: Maximum allowed spread as a fraction (0.015 = 1.5%)

    Returns:
        CheckResult named "tangled". UNAVAILABLE if any MA in the window is
        undefined; FAILED (computation undefined) if a reference close is not
        positive.
    """
    n = len(closes)
    values: dict[str, float | int | None] = {
        "lookback_days": lookback_days,
        "max_spread_pct": max_spread_pct,
    }

    if lookback_days < 1 or n < lookback_days or min(len(ma_short), len(ma_mid), len(ma_long)) < n:
        return CheckResult.unavailable(
            "tangled", f"need {lookback_days} days of moving averages", values
        )

    spreads: list[float] = []
    for i in range(n - lookback_days, n):
        short, mid, long_ = ma_short[i], ma_mid[i], ma_long[i]
        if short is None or mid is None or long_ is None:
            return CheckResult.unavailable(
                "tangled", f"need {lookback_days} days of moving averages", values
            )

        spread = calculate_spread(short, mid, long_, closes[i])
        if spread is None:
            values["days_checked"] = len(spreads)
            return CheckResult.undefined(
                "tangled", f"close {fmt(closes[i])} on day {i} is not a usable reference", values
            )
        spreads.append(spread)

    max_spread = max(spreads)
    within = [spread <= max_spread_pct for spread in spreads]
    values["days_checked"] = len(spreads)
    values["days_within"] = sum(within)
    values["max_spread"] = max_spread
    values["first_failing_date_index"] = next(
        (n - lookback_days + offset for offset, ok in enumerate(within) if not ok), None
    )
    values["last_spread"] = spreads[-1]

    return CheckResult.from_condition(
        "tangled",
        all(within),
        f"max spread {max_spread * 100:.2f}% over {lookback_days}d "
        f"(limit {max_spread_pct * 100:.2f}%)",
        values,
    )
