# dashacycle/core/engine.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional, Sequence, Union

from dashacycle.core.anchor import BirthAnchor
from dashacycle.core.cycle import CycleSpec
from dashacycle.core.errors import ConfigurationError
from dashacycle.core.locator import PeriodLocator, QueryResult, locate
from dashacycle.core.sandhi import Sandhi, upcoming_sandhis
from dashacycle.core.systems import get_system
from dashacycle.core.tree import PeriodNode, PeriodTreeBuilder
from dashacycle.utils.cache import LRUCache
from dashacycle.utils.metrics import TREE_BUILDS

log = logging.getLogger(__name__)

__all__ = ["DashaEngine"]

SystemRef = Union[str, CycleSpec]


class DashaEngine:
    """
    Facade over builder, locator and sandhi scan for any registered system.

    Holds only immutable settings plus an optional shared tree cache; every
    call is safe to run concurrently.
    """

    def __init__(self, builder: Optional[PeriodTreeBuilder] = None, cache_capacity: int = 256):
        self.builder = builder or PeriodTreeBuilder()
        self.cache = LRUCache(cache_capacity, name="trees")

    @classmethod
    def from_config(cls, cfg: Any) -> "DashaEngine":
        eng = cfg.get("engine", {}) if cfg else {}
        cache = cfg.get("cache", {}) if cfg else {}
        builder = PeriodTreeBuilder(
            days_per_year=eng.get("days_per_year", "365.25"),
            quantum=eng.get("rounding_unit", "day"),
            max_span_years=eng.get("max_span_years", 500),
            eager=bool(eng.get("eager", False)),
        )
        return cls(builder, cache_capacity=int(cache.get("capacity", 256)))

    def __repr__(self) -> str:
        return f"DashaEngine({self.builder!r}, cache={self.cache.capacity})"

    # ───────────────────────── building ─────────────────────────
    def compute_periods(
        self,
        system: SystemRef,
        anchor: BirthAnchor,
        repetitions: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> List[PeriodNode]:
        """Fresh top-level period list for `anchor` (not cached)."""
        spec = get_system(system)
        nodes = self.builder.build(spec, anchor, repetitions, max_depth)
        TREE_BUILDS.labels(system=spec.name).inc()
        return nodes

    def periods_for(
        self,
        system: SystemRef,
        anchor: BirthAnchor,
        repetitions: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> List[PeriodNode]:
        """Like compute_periods, but trees are shared through the LRU cache."""
        spec = get_system(system)
        reps = spec.default_repetitions if repetitions is None else repetitions
        depth = spec.max_depth if max_depth is None else min(max_depth, spec.max_depth)
        # start_index is left out of CycleSpec equality, so key on the rule itself too
        key = (spec, spec.start_index, anchor, reps, depth)
        return self.cache.get_or_build(
            key, lambda: self.compute_periods(spec, anchor, reps, max_depth)
        )

    # ───────────────────────── queries ─────────────────────────
    @staticmethod
    def _check_tree(spec: CycleSpec, top_nodes: Sequence[PeriodNode]) -> None:
        if top_nodes and top_nodes[0].spec != spec:
            raise ConfigurationError(
                f"period tree was built for {top_nodes[0].spec.name!r}, not {spec.name!r}"
            )

    def active_periods_at(
        self,
        system: SystemRef,
        top_nodes: Sequence[PeriodNode],
        instant: datetime,
        max_depth: Optional[int] = None,
    ) -> QueryResult:
        spec = get_system(system)
        self._check_tree(spec, top_nodes)
        return locate(top_nodes, instant, max_depth)

    def locator(self, system: SystemRef, top_nodes: Sequence[PeriodNode], max_depth: Optional[int] = None) -> PeriodLocator:
        """Cursor for many queries against one tree (monotone streams are cheapest)."""
        spec = get_system(system)
        self._check_tree(spec, top_nodes)
        return PeriodLocator(top_nodes, max_depth)

    def upcoming_sandhis(
        self,
        system: SystemRef,
        top_nodes: Sequence[PeriodNode],
        from_instant: datetime,
        lookahead: timedelta,
        max_depth: Optional[int] = 1,
    ) -> List[Sandhi]:
        spec = get_system(system)
        self._check_tree(spec, top_nodes)
        return upcoming_sandhis(top_nodes, from_instant, lookahead, max_depth)
