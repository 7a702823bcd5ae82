"""Rule configuration for the three-line convergence engine.

Every threshold the evaluator uses is a named, defaulted field here. Parsing is
forgiving on purpose: a missing, non-finite, mistyped or out-of-domain value is
replaced by the field default and recorded in ``defaults_applied`` instead of
raising, so one bad parameter never fails an evaluation.
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from threeline.utils.numbers import to_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldDomain:
    """Accepted values for one rule field."""

    default: int | float
    minimum: float
    maximum: float | None = None
    integer: bool = False
    exclusive_minimum: bool = False

    def coerce(self, raw: Any) -> int | float | None:
        """Return the coerced value, or None if it is outside the domain."""
        number = to_number(raw)
        if number is None:
            return None
        if self.integer and not number.is_integer():
            return None
        if number < self.minimum or (self.exclusive_minimum and number == self.minimum):
            return None
        if self.maximum is not None and number > self.maximum:
            return None
        return int(number) if self.integer else number


RULE_DOMAINS: dict[str, FieldDomain] = {
    "ma_short": FieldDomain(default=5, minimum=1, integer=True),
    "ma_mid": FieldDomain(default=10, minimum=1, integer=True),
    "ma_long": FieldDomain(default=20, minimum=1, integer=True),
    "tangle_lookback_days": FieldDomain(default=5, minimum=1, integer=True),
    "tangle_max_spread_pct": FieldDomain(default=0.015, minimum=0.0, maximum=1.0),
    "volume_ma_days": FieldDomain(default=10, minimum=1, integer=True),
    "volume_multiplier": FieldDomain(default=1.0, minimum=0.0, exclusive_minimum=True),
    "min_volume_ratio": FieldDomain(default=0.0, minimum=0.0),
    "slope_days": FieldDomain(default=1, minimum=1, integer=True),
    "max_extension_pct": FieldDomain(default=0.10, minimum=0.0, maximum=1.0),
    "confirm_days": FieldDomain(default=1, minimum=1, integer=True),
    "min_bars": FieldDomain(default=30, minimum=1, integer=True),
    "min_score": FieldDomain(default=4, minimum=0, maximum=5, integer=True),
}


class RuleConfig(BaseModel):
    """Parameter set controlling the three-line convergence rules.

    All fractions are fractions (0.015 = 1.5%), never percentages.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    ma_short: int = Field(default=5, description="Short moving average window (days)")
    ma_mid: int = Field(default=10, description="Mid moving average window (days)")
    ma_long: int = Field(default=20, description="Long moving average window (days)")
    tangle_lookback_days: int = Field(
        default=5, description="Most recent days over which the MAs must stay tangled"
    )
    tangle_max_spread_pct: float = Field(
        default=0.015, description="Max (max MA - min MA) / close on every lookback day"
    )
    volume_ma_days: int = Field(default=10, description="Volume moving average window (days)")
    volume_multiplier: float = Field(
        default=1.0, description="Required latest volume / volume MA ratio"
    )
    min_volume_ratio: float = Field(
        default=0.0, description="Floor applied to volume_multiplier"
    )
    slope_days: int = Field(
        default=1, description="Lookback offset used to confirm an MA is rising"
    )
    max_extension_pct: float = Field(
        default=0.10, description="Max fractional distance of close above the long MA"
    )
    confirm_days: int = Field(
        default=1, description="Consecutive recent closes that must stay on all three MAs"
    )
    min_bars: int = Field(default=30, description="Minimum bars before evaluating")
    min_score: int = Field(default=4, description="Minimum score for scan inclusion")
    defaults_applied: tuple[str, ...] = Field(
        default=(), description="Fields whose supplied value was replaced by the default"
    )

    @model_validator(mode="before")
    @classmethod
    def substitute_invalid_values(cls, data: Any) -> Any:
        """Replace invalid values with field defaults instead of failing."""
        if isinstance(data, RuleConfig):
            return data.model_dump()
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            logger.warning(f"Ignoring non-mapping rule configuration: {type(data).__name__}")
            data = {}

        cleaned: dict[str, Any] = {}
        applied: list[str] = list(data.get("defaults_applied") or ())

        for name, domain in RULE_DOMAINS.items():
            raw = data.get(name)
            if raw is None:
                continue
            value = domain.coerce(raw)
            if value is None:
                logger.warning(
                    f"Invalid rule value {name}={raw!r}, using default {domain.default}"
                )
                if name not in applied:
                    applied.append(name)
                continue
            cleaned[name] = value

        cleaned["defaults_applied"] = tuple(applied)
        return cleaned

    @model_validator(mode="after")
    def warn_on_window_order(self) -> "RuleConfig":
        if not self.ma_short < self.ma_mid < self.ma_long:
            logger.warning(
                f"MA windows {self.ma_short}/{self.ma_mid}/{self.ma_long} are not "
                "increasing; ordering checks will not be meaningful"
            )
        return self

    @property
    def required_bars(self) -> int:
        """Bars needed before every configured window and lookback is defined."""
        longest = max(self.ma_short, self.ma_mid, self.ma_long)
        return max(
            self.min_bars,
            longest + self.tangle_lookback_days - 1,
            longest + self.slope_days,
            longest + self.confirm_days - 1,
            self.volume_ma_days,
        )

    def to_public_dict(self) -> dict[str, Any]:
        """Rule values without bookkeeping fields, for API responses."""
        return self.model_dump(exclude={"defaults_applied"})


def normalize_rule_config(raw: RuleConfig | Mapping[str, Any] | None = None) -> RuleConfig:
    """Return a valid RuleConfig for any input, substituting defaults as needed."""
    if isinstance(raw, RuleConfig):
        return raw
    return RuleConfig.model_validate(raw)
