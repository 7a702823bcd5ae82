"""Technical indicators package for the three-line convergence engine.

This package provides the building blocks the evaluator combines into a
verdict.

Available indicators:
- Simple Moving Average (SMA) series with undefined-position sentinels
- Moving average convergence ("tangle") detection
- Moving average ordering, slope, price position and extension checks
- Volume surge analysis
"""

from .checks import (
    CheckResult,
    CheckStatus,
)
from .convergence import (
    calculate_spread,
    detect_convergence,
)
from .ma_analysis import (
    calculate_extension,
    check_arranged,
    check_confirmed_above,
    check_extension,
    check_long_ma_rising,
    check_price_above,
    check_trending_up,
)
from .technical import (
    MASeries,
    simple_moving_average,
    value_at,
)
from .volume import (
    calculate_volume_ratio,
    check_volume_surge,
)

__all__ = [
    "CheckResult",
    "CheckStatus",
    "calculate_spread",
    "detect_convergence",
    "calculate_extension",
    "check_arranged",
    "check_confirmed_above",
    "check_extension",
    "check_long_ma_rising",
    "check_price_above",
    "check_trending_up",
    "MASeries",
    "simple_moving_average",
    "value_at",
    "calculate_volume_ratio",
    "check_volume_surge",
]
