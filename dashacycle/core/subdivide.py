# dashacycle/core/subdivide.py
"""
Proportional subdivision of one period into a full rotation of child periods.

Durations are measured in whole *quanta* (one day unless configured finer).
The parent's length is carried as an exact Decimal count of quanta, each of the
first N-1 children gets its weight share rounded half-even, and the last child
always ends exactly on the parent's end. Children therefore tile the parent
with no gap or overlap whatever the rounding did.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from typing import List, NamedTuple, Union

from dashacycle.core.constants import DEFAULT_DAYS_PER_YEAR, ROUNDING_QUANTA, SECONDS_PER_DAY
from dashacycle.core.cycle import CycleSpec, Ruler
from dashacycle.core.errors import ConfigurationError

__all__ = [
    "ChildSpan", "subdivide", "resolve_quantum",
    "span_in_quanta", "round_quanta", "years_to_timedelta",
]

_ONE_US = timedelta(microseconds=1)
_DAY_US = SECONDS_PER_DAY * 1_000_000
_PREC = 40  # digits; plenty for microsecond counts over millennia


class ChildSpan(NamedTuple):
    ruler: Ruler
    start: datetime
    end: datetime


def resolve_quantum(unit: Union[str, timedelta, None]) -> timedelta:
    """'day' | 'hour' | 'minute' | 'second' or a positive timedelta."""
    if unit is None:
        return ROUNDING_QUANTA["day"]
    if isinstance(unit, timedelta):
        if unit <= timedelta(0):
            raise ConfigurationError(f"rounding quantum must be positive, got {unit!r}")
        return unit
    key = str(unit).strip().lower().rstrip("s")
    try:
        return ROUNDING_QUANTA[key]
    except KeyError:
        raise ConfigurationError(
            f"unknown rounding unit {unit!r}; use one of {', '.join(ROUNDING_QUANTA)}"
        ) from None


def span_in_quanta(span: timedelta, quantum: timedelta) -> Decimal:
    """Exact (possibly fractional) number of quanta in `span`."""
    with localcontext() as ctx:
        ctx.prec = _PREC
        return Decimal(span // _ONE_US) / Decimal(quantum // _ONE_US)


def round_quanta(q: Decimal) -> int:
    return int(q.to_integral_value(rounding=ROUND_HALF_EVEN))


def years_to_timedelta(
    years: Decimal,
    quantum: timedelta,
    days_per_year: Decimal = DEFAULT_DAYS_PER_YEAR,
) -> timedelta:
    """Whole quanta nearest to `years` calendar years (half-even)."""
    with localcontext() as ctx:
        ctx.prec = _PREC
        q = Decimal(years) * Decimal(days_per_year) * _DAY_US / Decimal(quantum // _ONE_US)
    return quantum * round_quanta(q)


def subdivide(
    parent_start: datetime,
    parent_end: datetime,
    spec: CycleSpec,
    start_ruler_index: int,
    quantum: timedelta = ROUNDING_QUANTA["day"],
) -> List[ChildSpan]:
    """
    One full rotation of children for [parent_start, parent_end), beginning at
    `start_ruler_index` and wrapping around the sequence.

    A zero-length parent yields N zero-length children at `parent_start`.
    """
    total = parent_end - parent_start
    if total < timedelta(0):
        raise ValueError(f"parent end {parent_end} precedes start {parent_start}")

    rulers = spec.rulers
    n = len(rulers)
    if total == timedelta(0):
        return [ChildSpan(rulers.at(start_ruler_index + k), parent_start, parent_start) for k in range(n)]

    d = span_in_quanta(total, quantum)
    out: List[ChildSpan] = []
    cursor = parent_start
    for k in range(n):
        ruler = rulers.at(start_ruler_index + k)
        if k == n - 1:
            end = parent_end
        else:
            with localcontext() as ctx:
                ctx.prec = _PREC
                share = d * ruler.years / spec.cycle_years
            end = min(cursor + quantum * round_quanta(share), parent_end)
        out.append(ChildSpan(ruler, cursor, end))
        cursor = end
    return out
