# dashacycle/core/systems.py
from __future__ import annotations

import logging
from typing import Dict, List, Union

from dashacycle.core.constants import NAKSHATRA_COUNT
from dashacycle.core.cycle import CycleSpec, Ruler, RulerSequence
from dashacycle.core.errors import ConfigurationError

log = logging.getLogger(__name__)

__all__ = [
    "ASHTOTTARI", "YOGINI", "VIMSHOTTARI",
    "SYSTEMS", "get_system", "list_systems", "register_system",
]

# ───────────────────────── Ashtottari (108 years) ─────────────────────────
_ASHTOTTARI_RULERS = RulerSequence([
    Ruler("Sun", 6),
    Ruler("Moon", 15),
    Ruler("Mars", 8),
    Ruler("Mercury", 17),
    Ruler("Saturn", 10),
    Ruler("Jupiter", 19),
    Ruler("Rahu", 12),
    Ruler("Venus", 21),
])

_ARDRA = 5


def _ashtottari_start(n: int) -> int:
    # Ardra begins with the Sun; every following nakshatra advances one ruler.
    return ((n - _ARDRA) % NAKSHATRA_COUNT) % len(_ASHTOTTARI_RULERS)


ASHTOTTARI = CycleSpec(
    name="ashtottari",
    rulers=_ASHTOTTARI_RULERS,
    cycle_years=108,
    max_depth=2,
    start_index=_ashtottari_start,
    # one rotation minus the balance can fall short of a 120-year life
    default_repetitions=2,
    label="Ashtottari",
)

# ───────────────────────── Yogini (36 years) ─────────────────────────
_YOGINI_RULERS = RulerSequence([
    Ruler("Mangala", 1, body="Moon"),
    Ruler("Pingala", 2, body="Sun"),
    Ruler("Dhanya", 3, body="Jupiter"),
    Ruler("Bhramari", 4, body="Mars"),
    Ruler("Bhadrika", 5, body="Mercury"),
    Ruler("Ulka", 6, body="Saturn"),
    Ruler("Siddha", 7, body="Venus"),
    Ruler("Sankata", 8, body="Rahu"),
])


def _yogini_start(n: int) -> int:
    # (nakshatra number + 3) mod 8 taken as a 0-based yogini index: Ashwini -> Bhadrika.
    return (n + 1 + 3) % len(_YOGINI_RULERS)


YOGINI = CycleSpec(
    name="yogini",
    rulers=_YOGINI_RULERS,
    cycle_years=36,
    max_depth=2,
    start_index=_yogini_start,
    default_repetitions=3,
    label="Yogini",
)

# ───────────────────────── Vimshottari (120 years) ─────────────────────────
_VIMSHOTTARI_RULERS = RulerSequence([
    Ruler("Ketu", 7),
    Ruler("Venus", 20),
    Ruler("Sun", 6),
    Ruler("Moon", 10),
    Ruler("Mars", 7),
    Ruler("Rahu", 18),
    Ruler("Jupiter", 16),
    Ruler("Saturn", 19),
    Ruler("Mercury", 17),
])


def _vimshottari_start(n: int) -> int:
    return n % len(_VIMSHOTTARI_RULERS)


VIMSHOTTARI = CycleSpec(
    name="vimshottari",
    rulers=_VIMSHOTTARI_RULERS,
    cycle_years=120,
    max_depth=5,
    start_index=_vimshottari_start,
    default_repetitions=2,
    label="Vimshottari",
)

# ───────────────────────── registry ─────────────────────────
SYSTEMS: Dict[str, CycleSpec] = {
    s.name: s for s in (ASHTOTTARI, YOGINI, VIMSHOTTARI)
}


def register_system(spec: CycleSpec, *, replace: bool = False) -> CycleSpec:
    """Add a custom CycleSpec to the registry (name is case-insensitive)."""
    if not isinstance(spec, CycleSpec):
        raise ConfigurationError(f"expected CycleSpec, got {type(spec).__name__}")
    key = spec.name.strip().lower()
    if key in SYSTEMS and not replace:
        raise ConfigurationError(f"system {key!r} is already registered")
    SYSTEMS[key] = spec
    log.info("Registered period system %s (%d rulers, %s years)", key, len(spec.rulers), spec.cycle_years)
    return spec


def get_system(system: Union[str, CycleSpec]) -> CycleSpec:
    if isinstance(system, CycleSpec):
        return system
    if not isinstance(system, str):
        raise ConfigurationError(f"system must be a name or CycleSpec, got {type(system).__name__}")
    key = system.strip().lower()
    try:
        return SYSTEMS[key]
    except KeyError:
        raise ConfigurationError(
            f"unknown period system {system!r}; known: {', '.join(sorted(SYSTEMS))}"
        ) from None


def list_systems() -> List[CycleSpec]:
    return [SYSTEMS[k] for k in sorted(SYSTEMS)]
