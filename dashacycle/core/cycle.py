# dashacycle/core/cycle.py
"""
Static description of one period system.

A CycleSpec carries the ordered ruler sequence, each ruler's weight in years,
the total cycle length, the deepest useful nesting level and the rule that
maps a birth nakshatra to a starting position in the sequence. Specs are
validated once at construction and never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterator, Optional, Sequence, Tuple, Union

from dashacycle.core.constants import NAKSHATRA_COUNT, NAKSHATRAS
from dashacycle.core.errors import ConfigurationError

__all__ = ["Ruler", "RulerSequence", "CycleSpec", "as_decimal"]


def as_decimal(value: Union[int, float, str, Decimal], what: str = "value") -> Decimal:
    """Exact Decimal for ints/strings/Decimals; floats go through repr so 0.1 stays 0.1."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be numeric, got bool")
    try:
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ConfigurationError(f"{what} must be numeric, got {value!r}") from e


@dataclass(frozen=True)
class Ruler:
    name: str
    years: Decimal
    body: Optional[str] = None  # governing body when the ruler is not itself a planet (Yogini)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ConfigurationError("ruler name must be a non-empty string")
        years = as_decimal(self.years, f"weight of {self.name}")
        if not years.is_finite() or years <= 0:
            raise ConfigurationError(f"weight of {self.name} must be positive, got {self.years!r}")
        object.__setattr__(self, "years", years)

    def __str__(self) -> str:
        return self.name


class RulerSequence:
    """Fixed ruler order with explicit wrap-around indexing."""

    __slots__ = ("_rulers", "_index")

    def __init__(self, rulers: Sequence[Ruler]):
        rulers = tuple(rulers)
        if not rulers:
            raise ConfigurationError("ruler sequence must not be empty")
        index = {}
        for i, r in enumerate(rulers):
            if not isinstance(r, Ruler):
                raise ConfigurationError(f"sequence item {i} is not a Ruler: {r!r}")
            if r.name in index:
                raise ConfigurationError(f"duplicate ruler in sequence: {r.name}")
            index[r.name] = i
        self._rulers: Tuple[Ruler, ...] = rulers
        self._index = index

    def __len__(self) -> int:
        return len(self._rulers)

    def __iter__(self) -> Iterator[Ruler]:
        return iter(self._rulers)

    def __getitem__(self, i: int) -> Ruler:
        return self._rulers[i]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RulerSequence):
            return self._rulers == other._rulers
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._rulers)

    def __repr__(self) -> str:
        return f"RulerSequence({[r.name for r in self._rulers]})"

    def at(self, index: int) -> Ruler:
        """Ruler at `index` modulo the sequence length (negative indices wrap too)."""
        return self._rulers[index % len(self._rulers)]

    def index_of(self, ruler: Union[Ruler, str]) -> int:
        name = ruler.name if isinstance(ruler, Ruler) else ruler
        try:
            return self._index[name]
        except KeyError:
            raise ConfigurationError(f"ruler {name!r} is not part of this sequence") from None

    def rotation(self, start: int) -> Tuple[Ruler, ...]:
        """One full rotation beginning at `start`."""
        n = len(self._rulers)
        return tuple(self._rulers[(start + k) % n] for k in range(n))

    @property
    def total_years(self) -> Decimal:
        return sum((r.years for r in self._rulers), Decimal(0))

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self._rulers)


@dataclass(frozen=True)
class CycleSpec:
    name: str
    rulers: RulerSequence
    cycle_years: Decimal
    max_depth: int
    start_index: Callable[[int], int] = field(compare=False, repr=False)
    default_repetitions: int = 1
    label: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.rulers, RulerSequence):
            object.__setattr__(self, "rulers", RulerSequence(self.rulers))
        cycle = as_decimal(self.cycle_years, f"{self.name}.cycle_years")
        object.__setattr__(self, "cycle_years", cycle)

        total = self.rulers.total_years
        if total != cycle:
            raise ConfigurationError(
                f"{self.name}: ruler weights sum to {total} years, declared cycle is {cycle}"
            )
        if not isinstance(self.max_depth, int) or self.max_depth < 0:
            raise ConfigurationError(f"{self.name}: max_depth must be a non-negative int")
        if not isinstance(self.default_repetitions, int) or self.default_repetitions < 1:
            raise ConfigurationError(f"{self.name}: default_repetitions must be >= 1")
        if not callable(self.start_index):
            raise ConfigurationError(f"{self.name}: start_index must be callable")
        # Totality over every nakshatra is checked up front, not on first use.
        for n in range(NAKSHATRA_COUNT):
            self._checked_position(n)

    def _checked_position(self, nakshatra_index: int) -> int:
        try:
            pos = self.start_index(nakshatra_index)
        except Exception as e:
            raise ConfigurationError(
                f"{self.name}: no starting ruler defined for nakshatra {nakshatra_index} "
                f"({type(e).__name__}: {e})"
            ) from e
        if isinstance(pos, bool) or not isinstance(pos, int) or not (0 <= pos < len(self.rulers)):
            raise ConfigurationError(
                f"{self.name}: starting index for nakshatra {nakshatra_index} "
                f"must be an int in [0, {len(self.rulers)}), got {pos!r}"
            )
        return pos

    def starting_position(self, nakshatra_index: int) -> int:
        """Sequence position of the first ruler for a birth nakshatra (0..26)."""
        if isinstance(nakshatra_index, bool) or not isinstance(nakshatra_index, int) \
                or not (0 <= nakshatra_index < NAKSHATRA_COUNT):
            raise ConfigurationError(
                f"{self.name}: nakshatra index must be in [0, {NAKSHATRA_COUNT}), got {nakshatra_index!r}"
            )
        return self._checked_position(nakshatra_index)

    def starting_ruler(self, nakshatra_index: int) -> Ruler:
        return self.rulers[self.starting_position(nakshatra_index)]

    def weight_of(self, ruler: Union[Ruler, str]) -> Decimal:
        return self.rulers[self.rulers.index_of(ruler)].years

    def start_table(self) -> Tuple[Tuple[str, str], ...]:
        """(nakshatra, starting ruler) for all 27 nakshatras, for display."""
        return tuple(
            (NAKSHATRAS[n], self.rulers[self._checked_position(n)].name)
            for n in range(NAKSHATRA_COUNT)
        )

    def to_dict(self):
        return {
            "name": self.name,
            "label": self.label or self.name,
            "cycle_years": float(self.cycle_years),
            "max_depth": self.max_depth,
            "default_repetitions": self.default_repetitions,
            "rulers": [
                {"name": r.name, "years": float(r.years), "body": r.body or r.name}
                for r in self.rulers
            ],
        }
