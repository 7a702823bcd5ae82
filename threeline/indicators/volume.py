"""Volume analysis for three-line convergence.

Compares the latest session's volume to its moving average. A breakout out of
a convergence zone is only trusted when volume expands alongside it.
"""

from threeline.indicators.checks import CheckResult, fmt
from threeline.indicators.technical import MASeries, value_at


def calculate_volume_ratio(volumes: list[float], volume_ma: MASeries) -> float | None:
    """Latest volume divided by its moving average.

    Returns:
        The ratio, or None if either value is missing or the average is zero.
    """
    if not volumes:
        return None
    average = value_at(volume_ma)
    if average is None or average <= 0:
        return None
    return volumes[-1] / average


def check_volume_surge(
    volumes: list[float],
    volume_ma: MASeries,
    volume_multiplier: float = 1.0,
    min_volume_ratio: float = 0.0,
) -> CheckResult:
    """Check that the latest volume is above its moving average.

    Passes when the latest volume is strictly greater than the average AND
    the ratio reaches max(volume_multiplier, min_volume_ratio). With the
    default multiplier of 1.0 this is simply "volume above its average".

    Args:
        volumes: Volume data, oldest first
        volume_ma: Moving average of ``volumes``
        volume_multiplier: Required multiple of the average
        min_volume_ratio: Floor for the required multiple

    Returns:
        CheckResult named "volume_surge"
    """
    latest = volumes[-1] if volumes else None
    average = value_at(volume_ma)
    threshold = max(volume_multiplier, min_volume_ratio)
    values: dict[str, float | int | None] = {
        "volume": latest,
        "volume_ma": average,
        "threshold": threshold,
    }

    if latest is None or average is None:
        return CheckResult.unavailable("volume_surge", "volume average not yet defined", values)

    ratio = calculate_volume_ratio(volumes, volume_ma)
    if ratio is None:
        return CheckResult.undefined(
            "volume_surge", f"volume average is {fmt(average, 0)}, ratio undefined", values
        )

    values["volume_ratio"] = ratio
    return CheckResult.from_condition(
        "volume_surge",
        latest > average and ratio >= threshold,
        f"volume={fmt(latest, 0)} vs avg={fmt(average, 0)} ({ratio:.2f}x, need {threshold:.2f}x)",
        values,
    )
