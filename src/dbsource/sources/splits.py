"""Split planning for parallel table scans.

The bounding query returns the (min, max) of the split column. The planner
cuts that interval into contiguous ranges; every range becomes the
predicate of one split query. Ranges are half open ``[lower, upper)``
except the last one, which includes ``max``.

Usage:
    plan = plan_splits(0, 99, 4)
    for split in plan.ranges:
        predicate, params = split.to_predicate("id", "format")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from dbsource.core.exceptions import ConfigurationError
from dbsource.core.models.base import SqlType


@dataclass(frozen=True)
class SplitRange:
    """One contiguous range of the split column.

    Attributes:
        lower: Inclusive lower bound (None for an unbounded range)
        upper: Upper bound (None for an unbounded range)
        upper_inclusive: Whether ``upper`` belongs to the range
        is_null: Range selecting rows where the split column is NULL
    """

    lower: Any = None
    upper: Any = None
    upper_inclusive: bool = False
    is_null: bool = False

    @property
    def unbounded(self) -> bool:
        return not self.is_null and self.lower is None and self.upper is None

    @property
    def is_empty(self) -> bool:
        """True when no value can satisfy the range."""
        if self.unbounded or self.is_null:
            return False
        if self.upper_inclusive:
            return bool(self.lower > self.upper)
        return bool(self.lower >= self.upper)

    def contains(self, value: Any) -> bool:
        if self.is_null:
            return value is None
        if self.unbounded:
            return True
        if value is None or value < self.lower:
            return False
        return value <= self.upper if self.upper_inclusive else value < self.upper

    def to_predicate(self, column: str, paramstyle: str) -> tuple[str, list[Any]]:
        """Render the range as a SQL predicate with driver placeholders.

        Args:
            column: Split column expression
            paramstyle: DB-API paramstyle of the target driver

        Returns:
            Tuple of (predicate, parameters)
        """
        if self.is_null:
            return f"{column} IS NULL", []
        if self.unbounded:
            return "1 = 1", []

        upper_op = "<=" if self.upper_inclusive else "<"
        predicate = (
            f"{column} >= {placeholder(paramstyle, 1)} "
            f"AND {column} {upper_op} {placeholder(paramstyle, 2)}"
        )
        return predicate, [self.lower, self.upper]


@dataclass(frozen=True)
class SplitPlan:
    """Ordered ranges for one run.

    ``deferred`` plans carry a single range spanning the raw bounds; the
    execution engine picks the actual split count.
    """

    ranges: list[SplitRange]
    num_splits: int | None
    deferred: bool = False
    bounds: tuple[Any, Any] | None = None
    warnings: list[str] = field(default_factory=list)


def placeholder(paramstyle: str, position: int) -> str:
    """DB-API placeholder for the parameter at ``position`` (1-based)."""
    if paramstyle == "qmark":
        return "?"
    if paramstyle in ("format", "pyformat"):
        return "%s"
    if paramstyle == "numeric":
        return f":{position}"
    if paramstyle == "named":
        return f":p{position}"
    raise ConfigurationError(f"Unsupported DB-API paramstyle '{paramstyle}'")


def plan_splits(
    min_value: Any,
    max_value: Any,
    num_splits: int | None,
    column_type: SqlType | None = None,
) -> SplitPlan:
    """Partition [min_value, max_value] into split ranges.

    Args:
        min_value: Lowest split column value (from the bounding query)
        max_value: Highest split column value (from the bounding query)
        num_splits: Requested split count; None defers the choice
        column_type: Type of the split column, used to coerce bounds

    Returns:
        SplitPlan with ordered ranges

    Raises:
        ConfigurationError: If the split count or bounds cannot be planned
    """
    if num_splits is not None and num_splits < 1:
        raise ConfigurationError(f"Invalid value for numSplits '{num_splits}'. Must be at least 1.")

    if num_splits == 1:
        return SplitPlan(ranges=[SplitRange()], num_splits=1)

    if min_value is None and max_value is None:
        # Empty table or all-NULL split column
        return SplitPlan(
            ranges=[SplitRange(is_null=True)],
            num_splits=num_splits,
            warnings=["Bounding query returned NULL bounds; reading NULL split values only"],
        )
    if min_value is None or max_value is None:
        raise ConfigurationError(
            f"Bounding query returned a NULL bound (min={min_value!r}, max={max_value!r})."
        )

    lower, upper = _coerce_bounds(min_value, max_value, column_type)
    if lower > upper:
        raise ConfigurationError(
            f"Bounding query returned min {lower!r} greater than max {upper!r}."
        )

    if num_splits is None:
        return SplitPlan(
            ranges=[SplitRange(lower, upper, upper_inclusive=True)],
            num_splits=None,
            deferred=True,
            bounds=(lower, upper),
        )

    if lower == upper:
        # Every row falls in the first range; the rest stay empty.
        ranges = [SplitRange(lower, upper, upper_inclusive=True)]
        ranges += [SplitRange(lower, upper) for _ in range(num_splits - 1)]
        return SplitPlan(ranges=ranges, num_splits=num_splits, bounds=(lower, upper))

    boundaries = _boundaries(lower, upper, num_splits)
    ranges = [
        SplitRange(boundaries[i], boundaries[i + 1], upper_inclusive=(i == num_splits - 1))
        for i in range(num_splits)
    ]
    return SplitPlan(ranges=ranges, num_splits=num_splits, bounds=(lower, upper))


def _boundaries(lower: Any, upper: Any, n: int) -> list[Any]:
    """Compute n + 1 ascending boundaries, first == lower and last == upper."""
    if isinstance(lower, int):
        inner = [lower + (upper - lower) * i // n for i in range(1, n)]
    elif isinstance(lower, Decimal | float):
        inner = [lower + (upper - lower) * i / n for i in range(1, n)]
    elif isinstance(lower, date):
        # date and datetime: timedelta arithmetic keeps the tzinfo of lower
        inner = [lower + (upper - lower) * i / n for i in range(1, n)]
    elif isinstance(lower, time):
        lo, hi = _time_to_micros(lower), _time_to_micros(upper)
        inner = [_micros_to_time(lo + (hi - lo) * i // n, lower) for i in range(1, n)]
    else:
        raise ConfigurationError(
            f"Cannot generate splits for split column values of type '{type(lower).__name__}'."
        )
    return [lower, *inner, upper]


def _coerce_bounds(
    min_value: Any, max_value: Any, column_type: SqlType | None
) -> tuple[Any, Any]:
    lower = _coerce(min_value, column_type)
    upper = _coerce(max_value, column_type)

    if isinstance(lower, bool) or isinstance(upper, bool):
        raise ConfigurationError("Cannot generate splits on a boolean split column.")
    if isinstance(lower, str | bytes) or isinstance(upper, str | bytes):
        raise ConfigurationError(
            "Cannot generate splits on a text or binary split column; "
            "use a numeric or temporal column."
        )

    # Mixed numeric bounds (e.g. int min, Decimal max)
    if type(lower) is not type(upper):
        if isinstance(lower, Decimal) or isinstance(upper, Decimal):
            lower, upper = Decimal(str(lower)), Decimal(str(upper))
        elif isinstance(lower, float) or isinstance(upper, float):
            lower, upper = float(lower), float(upper)
        elif isinstance(lower, datetime) != isinstance(upper, datetime):
            raise ConfigurationError(
                f"Bounding query returned mismatched types "
                f"'{type(lower).__name__}' and '{type(upper).__name__}'."
            )
    return lower, upper


def _coerce(value: Any, column_type: SqlType | None) -> Any:
    if column_type is None or isinstance(value, bool):
        return value
    try:
        if column_type.is_integral:
            if isinstance(value, Decimal | float) and value == int(value):
                return int(value)
            if isinstance(value, str):
                return int(value)
        elif column_type.is_numeric and isinstance(value, str):
            return Decimal(value)
    except (ValueError, OverflowError, ArithmeticError) as e:
        raise ConfigurationError(
            f"Bounding query returned '{value}', which is not a valid bound for a "
            f"{column_type.value} split column."
        ) from e
    return value


def _time_to_micros(value: time) -> int:
    return ((value.hour * 60 + value.minute) * 60 + value.second) * 1_000_000 + value.microsecond


def _micros_to_time(micros: int, like: time) -> time:
    base = datetime.combine(date.min, time(0))
    return (base + timedelta(microseconds=micros)).time().replace(tzinfo=like.tzinfo)
