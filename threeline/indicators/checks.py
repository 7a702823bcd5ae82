"""Result types shared by the three-line convergence predicates."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from threeline.utils.numbers import safe_round

CheckValues = dict[str, float | int | None]


class CheckStatus(str, Enum):
    """Outcome of a single predicate."""
    PASSED = "passed"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"  # Not enough history to compute


@dataclass
class CheckResult:
    """Result of evaluating one predicate against a bar series.

    Attributes:
        name: Check identifier (tangled, arranged, trending_up, ...)
        status: PASSED / FAILED / UNAVAILABLE
        note: Human-readable summary of the numbers involved
        values: The numbers the decision was made on (None when undefined)
        computation_undefined: True if the check failed because its arithmetic
            was undefined (e.g. division by a zero reference price)
    """

    name: str
    status: CheckStatus
    note: str
    values: CheckValues = field(default_factory=dict)
    computation_undefined: bool = False

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASSED

    @property
    def available(self) -> bool:
        return self.status != CheckStatus.UNAVAILABLE

    @classmethod
    def from_condition(
        cls, name: str, condition: bool, note: str, values: CheckValues | None = None
    ) -> "CheckResult":
        return cls(
            name=name,
            status=CheckStatus.PASSED if condition else CheckStatus.FAILED,
            note=note,
            values=values or {},
        )

    @classmethod
    def unavailable(
        cls, name: str, note: str, values: CheckValues | None = None
    ) -> "CheckResult":
        return cls(name=name, status=CheckStatus.UNAVAILABLE, note=note, values=values or {})

    @classmethod
    def undefined(
        cls, name: str, note: str, values: CheckValues | None = None
    ) -> "CheckResult":
        """Failed result for arithmetic that cannot be carried out."""
        return cls(
            name=name,
            status=CheckStatus.FAILED,
            note=note,
            values=values or {},
            computation_undefined=True,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass": self.passed,
            "status": self.status.value,
            "note": self.note,
            "values": {
                key: safe_round(value, 4) if isinstance(value, float) else value
                for key, value in self.values.items()
            },
        }


def fmt(value: float | None, digits: int = 2) -> str:
    """Format a possibly-undefined number for a check note."""
    if value is None:
        return "-"
    return f"{value:.{digits}f}"
