# dashacycle/core/anchor.py
"""
Birth anchor and start resolution.

The chart collaborator supplies a birth instant plus the Moon's nakshatra and
how far through it the Moon had travelled. `resolve_start` turns that into the
starting position in a system's ruler sequence and the elapsed fraction of the
first (balance) period.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Tuple

from dashacycle.core.constants import NAKSHATRA_COUNT, NAKSHATRAS
from dashacycle.core.cycle import CycleSpec
from dashacycle.core.errors import ConfigurationError, MissingInputError

__all__ = ["BirthAnchor", "resolve_start", "require_aware", "query_instant"]


def require_aware(t: Any, what: str = "instant") -> datetime:
    if not isinstance(t, datetime):
        raise MissingInputError(f"{what} must be a datetime, got {type(t).__name__}")
    if t.tzinfo is None or t.utcoffset() is None:
        raise MissingInputError(f"{what} must be timezone-aware")
    return t


def query_instant(t: Any, what: str = "instant") -> datetime:
    """Aware datetime for a lookup; naive or non-datetime values are caller errors."""
    if not isinstance(t, datetime):
        raise TypeError(f"{what} must be a datetime, got {type(t).__name__}")
    if t.tzinfo is None or t.utcoffset() is None:
        raise ValueError(f"{what} must be timezone-aware")
    return t


@dataclass(frozen=True)
class BirthAnchor:
    birth: datetime
    nakshatra_index: int
    fraction: float = 0.0

    def __post_init__(self) -> None:
        require_aware(self.birth, "birth")
        n = self.nakshatra_index
        if n is None or isinstance(n, bool) or not isinstance(n, int):
            raise MissingInputError(f"nakshatra_index must be an int, got {n!r}")
        f = self.fraction
        if f is None or isinstance(f, bool) or not isinstance(f, (int, float, Decimal)):
            raise MissingInputError(f"fraction must be a number, got {f!r}")
        f = float(f)
        if not math.isfinite(f) or not (0.0 <= f < 1.0):
            raise MissingInputError(f"fraction must lie in [0, 1), got {f!r}")
        object.__setattr__(self, "fraction", f)

    @classmethod
    def from_moon_longitude(cls, birth: datetime, moon_longitude: Any) -> "BirthAnchor":
        """Derive nakshatra index and traversed fraction from a sidereal Moon longitude (degrees)."""
        if moon_longitude is None or isinstance(moon_longitude, bool):
            raise MissingInputError("moon_longitude is required")
        try:
            lon = Decimal(repr(moon_longitude)) if isinstance(moon_longitude, float) else Decimal(moon_longitude)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise MissingInputError(f"moon_longitude must be numeric, got {moon_longitude!r}") from e
        if not lon.is_finite():
            raise MissingInputError("moon_longitude must be finite")

        lon = lon % 360
        if lon < 0:
            lon += 360
        # lon * 27 / 360 is exact in Decimal; dividing by the rounded span is not
        pos = lon * NAKSHATRA_COUNT / 360
        idx = int(pos)
        frac = pos - idx
        # 359.99999... can round up to a full 27 spans
        if idx >= NAKSHATRA_COUNT:
            idx, frac = NAKSHATRA_COUNT - 1, Decimal(0)
        f = float(frac)
        if f >= 1.0:
            f = math.nextafter(1.0, 0.0)
        return cls(birth=birth, nakshatra_index=idx, fraction=f)

    @property
    def nakshatra(self) -> str:
        if 0 <= self.nakshatra_index < NAKSHATRA_COUNT:
            return NAKSHATRAS[self.nakshatra_index]
        return f"#{self.nakshatra_index}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "birth_utc": self.birth.isoformat(),
            "nakshatra_index": self.nakshatra_index,
            "nakshatra": self.nakshatra,
            "fraction": self.fraction,
        }


def resolve_start(spec: CycleSpec, anchor: BirthAnchor) -> Tuple[int, float]:
    """(starting sequence position, elapsed fraction of the first period)."""
    if not isinstance(anchor, BirthAnchor):
        raise MissingInputError(f"expected BirthAnchor, got {type(anchor).__name__}")
    if not isinstance(spec, CycleSpec):
        raise ConfigurationError(f"expected CycleSpec, got {type(spec).__name__}")
    return spec.starting_position(anchor.nakshatra_index), anchor.fraction
