"""Moving average relationship checks for three-line convergence.

Provides the ordering, slope and price-position predicates evaluated against
the latest bar and its short/mid/long moving average context.

Every predicate returns a CheckResult. When a moving average it needs is not
yet defined the result is UNAVAILABLE rather than FAILED, so callers can tell
"not enough history" apart from "computed and failed".
"""

from threeline.indicators.checks import CheckResult, fmt
from threeline.indicators.technical import MASeries, value_at


def _latest_mas(
    ma_short: MASeries, ma_mid: MASeries, ma_long: MASeries, offset: int = 0
) -> tuple[float | None, float | None, float | None]:
    return value_at(ma_short, offset), value_at(ma_mid, offset), value_at(ma_long, offset)


def check_arranged(ma_short: MASeries, ma_mid: MASeries, ma_long: MASeries) -> CheckResult:
    """Check the bullish stack: short MA > mid MA > long MA (ties fail)."""
    short, mid, long_ = _latest_mas(ma_short, ma_mid, ma_long)
    values = {"ma_short": short, "ma_mid": mid, "ma_long": long_}

    if short is None or mid is None or long_ is None:
        return CheckResult.unavailable("arranged", "moving averages not yet defined", values)

    return CheckResult.from_condition(
        "arranged",
        short > mid > long_,
        f"MA short={fmt(short)} / mid={fmt(mid)} / long={fmt(long_)}",
        values,
    )


def check_trending_up(
    ma_short: MASeries,
    ma_mid: MASeries,
    ma_long: MASeries,
    slope_days: int = 1,
) -> CheckResult:
    """Check that all three MAs are higher today than ``slope_days`` bars ago.

    Any one average flat or falling fails the whole check.
    """
    values: dict[str, float | int | None] = {"slope_days": slope_days}
    rising = True
    defined = True

    for key, series in (("ma_short", ma_short), ("ma_mid", ma_mid), ("ma_long", ma_long)):
        current = value_at(series, 0)
        reference = value_at(series, slope_days)
        values[key] = current
        values[f"{key}_ref"] = reference
        if current is None or reference is None:
            defined = False
        elif current <= reference:
            rising = False

    if not defined:
        return CheckResult.unavailable(
            "trending_up", f"need moving averages {slope_days} bar(s) back", values
        )

    note = (
        f"{slope_days}d ago: short={fmt(values['ma_short_ref'])} / "
        f"mid={fmt(values['ma_mid_ref'])} / long={fmt(values['ma_long_ref'])}"
    )
    return CheckResult.from_condition("trending_up", rising, note, values)


def check_price_above(
    closes: list[float], ma_short: MASeries, ma_mid: MASeries, ma_long: MASeries
) -> CheckResult:
    """Check the latest close is strictly above all three MAs."""
    close = closes[-1] if closes else None
    short, mid, long_ = _latest_mas(ma_short, ma_mid, ma_long)
    values = {"close": close, "ma_short": short, "ma_mid": mid, "ma_long": long_}

    if close is None or short is None or mid is None or long_ is None:
        return CheckResult.unavailable("price_above", "moving averages not yet defined", values)

    return CheckResult.from_condition(
        "price_above",
        close > short and close > mid and close > long_,
        f"close={fmt(close)}",
        values,
    )


def check_confirmed_above(
    closes: list[float],
    ma_short: MASeries,
    ma_mid: MASeries,
    ma_long: MASeries,
    confirm_days: int = 1,
) -> CheckResult:
    """Check each of the last ``confirm_days`` closes stays on all three MAs.

    Uses >= so an exact touch of an average still counts as standing on it.
    """
    values: dict[str, float | int | None] = {"confirm_days": confirm_days}

    if len(closes) < confirm_days:
        return CheckResult.unavailable(
            "confirmed_above", f"need {confirm_days} closes", values
        )

    days = []
    for offset in range(confirm_days):
        mas = _latest_mas(ma_short, ma_mid, ma_long, offset)
        if any(ma is None for ma in mas):
            return CheckResult.unavailable(
                "confirmed_above", "moving averages not yet defined", values
            )
        days.append((closes[-1 - offset], mas))

    days_above = sum(1 for close, mas in days if all(close >= ma for ma in mas))
    values["days_above"] = days_above

    return CheckResult.from_condition(
        "confirmed_above",
        days_above == confirm_days,
        f"{days_above}/{confirm_days} recent closes on all three MAs",
        values,
    )


def check_long_ma_rising(ma_long: MASeries, slope_days: int = 1) -> CheckResult:
    """Check the long MA is higher than ``slope_days`` bars ago."""
    current = value_at(ma_long, 0)
    reference = value_at(ma_long, slope_days)
    values = {"ma_long": current, "ma_long_ref": reference, "slope_days": slope_days}

    if current is None or reference is None:
        return CheckResult.unavailable(
            "long_ma_rising", f"need long MA {slope_days} bar(s) back", values
        )

    return CheckResult.from_condition(
        "long_ma_rising",
        current > reference,
        f"long MA {fmt(reference)} -> {fmt(current)}",
        values,
    )


def calculate_extension(close: float | None, ma_long: float | None) -> float | None:
    """Fractional distance of price above the long MA (0.05 = 5% above)."""
    if close is None or ma_long is None or ma_long <= 0:
        return None
    return (close - ma_long) / ma_long


def check_extension(
    closes: list[float], ma_long: MASeries, max_extension_pct: float
) -> CheckResult:
    """Anti-chasing guard: price must not be stretched too far above the long MA."""
    close = closes[-1] if closes else None
    long_ = value_at(ma_long)
    values: dict[str, float | int | None] = {
        "close": close,
        "ma_long": long_,
        "max_extension_pct": max_extension_pct,
    }

    if close is None or long_ is None:
        return CheckResult.unavailable("extension_guard", "long MA not yet defined", values)

    extension = calculate_extension(close, long_)
    if extension is None:
        return CheckResult.undefined(
            "extension_guard", f"long MA {fmt(long_)} is not a usable reference", values
        )

    values["extension_pct"] = extension
    return CheckResult.from_condition(
        "extension_guard",
        extension <= max_extension_pct,
        f"{extension * 100:+.2f}% vs long MA (limit {max_extension_pct * 100:.2f}%)",
        values,
    )
