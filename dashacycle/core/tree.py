# dashacycle/core/tree.py
"""
Period tree: top-level (Mahadasha) nodes anchored to a birth, each lazily
subdividing into a full rotation of children down to a maximum depth.

Nodes are read-only once created. Children are produced on first access and
memoized exactly once under a per-node lock, so a tree can be shared between
threads (see `dashacycle.utils.cache`). Parent links are weak references.
"""
from __future__ import annotations

import logging
import threading
import weakref
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple, Union

from dashacycle.core.anchor import BirthAnchor, require_aware, resolve_start
from dashacycle.core.constants import (
    DEFAULT_DAYS_PER_YEAR,
    DEFAULT_MAX_SPAN_YEARS,
    ROUNDING_QUANTA,
    level_name,
)
from dashacycle.core.cycle import CycleSpec, Ruler, as_decimal
from dashacycle.core.subdivide import resolve_quantum, subdivide, years_to_timedelta

log = logging.getLogger(__name__)

__all__ = ["PeriodNode", "PeriodTreeBuilder", "iter_nodes"]

_ZERO = timedelta(0)


class _TreeContext(NamedTuple):
    spec: CycleSpec
    quantum: timedelta
    max_depth: int


class PeriodNode:
    """One period [start, end) ruled by `ruler` at nesting `depth` (0 = Mahadasha)."""

    __slots__ = (
        "ruler", "depth", "start", "end", "years", "lineage",
        "_ctx", "_parent", "_children", "_lock", "__weakref__",
    )

    def __init__(
        self,
        ruler: Ruler,
        depth: int,
        start: datetime,
        end: datetime,
        ctx: _TreeContext,
        years: Decimal,
        parent: Optional["PeriodNode"] = None,
    ):
        self.ruler = ruler
        self.depth = depth
        self.start = start
        self.end = end
        self.years = years  # nominal share of the cycle, in years
        self.lineage: Tuple[str, ...] = (parent.lineage if parent is not None else ()) + (ruler.name,)
        self._ctx = ctx
        self._parent = weakref.ref(parent) if parent is not None else None
        if depth >= ctx.max_depth:
            self._children: Optional[Tuple[PeriodNode, ...]] = ()
            self._lock = None
        else:
            self._children = None
            self._lock = threading.Lock()

    # ───────────── structure ─────────────
    @property
    def parent(self) -> Optional["PeriodNode"]:
        return self._parent() if self._parent is not None else None

    @property
    def spec(self) -> CycleSpec:
        return self._ctx.spec

    @property
    def max_depth(self) -> int:
        return self._ctx.max_depth

    @property
    def is_expanded(self) -> bool:
        return self._children is not None

    @property
    def children(self) -> Tuple["PeriodNode", ...]:
        kids = self._children
        if kids is None:
            with self._lock:
                if self._children is None:
                    self._children = self._expand()
                kids = self._children
        return kids

    def _expand(self) -> Tuple["PeriodNode", ...]:
        ctx = self._ctx
        spec = ctx.spec
        spans = subdivide(
            self.start, self.end, spec, spec.rulers.index_of(self.ruler), ctx.quantum
        )
        depth = self.depth + 1
        kids = tuple(
            PeriodNode(
                s.ruler, depth, s.start, s.end, ctx,
                self.years * s.ruler.years / spec.cycle_years, parent=self,
            )
            for s in spans
        )
        log.debug("expanded %s %s -> %d children at depth %d", spec.name, "/".join(self.lineage), len(kids), depth)
        return kids

    # ───────────── time helpers ─────────────
    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def level_name(self) -> str:
        return level_name(self.depth)

    @property
    def nominal_years(self) -> Decimal:
        return self.years

    def contains(self, t: datetime) -> bool:
        return self.start <= t < self.end

    def elapsed(self, t: datetime) -> timedelta:
        if t <= self.start:
            return _ZERO
        if t >= self.end:
            return self.duration
        return t - self.start

    def remaining(self, t: datetime) -> timedelta:
        return self.duration - self.elapsed(t)

    def progress(self, t: datetime) -> float:
        """Fraction of the period elapsed at `t`, clamped to [0, 1]."""
        total = self.duration
        if total <= _ZERO:
            return 1.0 if t >= self.end else 0.0
        return self.elapsed(t) / total

    # ───────────── identity / output ─────────────
    def key(self) -> Tuple[str, int, datetime, datetime]:
        return (self.ruler.name, self.depth, self.start, self.end)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PeriodNode):
            return self.key() == other.key()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.key())

    def __repr__(self) -> str:
        return (
            f"PeriodNode({'/'.join(self.lineage)}, depth={self.depth}, "
            f"{self.start.isoformat()} -> {self.end.isoformat()})"
        )

    def to_dict(self, expand_depth: int = 0) -> Dict[str, Any]:
        """JSON-friendly dict; `expand_depth` levels of children are included."""
        out: Dict[str, Any] = {
            "ruler": self.ruler.name,
            "body": self.ruler.body or self.ruler.name,
            "depth": self.depth,
            "level": self.level_name,
            "lineage": list(self.lineage),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration_days": self.duration / timedelta(days=1),
            "nominal_years": float(self.years),
        }
        if expand_depth > 0 and self.depth < self.max_depth:
            out["children"] = [c.to_dict(expand_depth - 1) for c in self.children]
        return out


def iter_nodes(top_nodes: Iterable[PeriodNode], max_depth: Optional[int] = None) -> Iterator[PeriodNode]:
    """Depth-first, pre-order walk; expands lazily down to `max_depth` (inclusive)."""
    stack: List[PeriodNode] = list(reversed(list(top_nodes)))
    while stack:
        node = stack.pop()
        yield node
        if max_depth is None or node.depth < max_depth:
            stack.extend(reversed(node.children))


class PeriodTreeBuilder:
    """
    Builds the top-level period list for a CycleSpec and a birth anchor.

    - days_per_year: calendar length of one nominal year (Decimal-able)
    - quantum: rounding unit for every boundary ('day', 'hour', ... or timedelta)
    - max_span_years: no top-level node starts at or beyond birth + this many years
    - eager: expand the whole tree at build time instead of on demand
    """

    def __init__(
        self,
        days_per_year: Union[Decimal, str, float, int] = DEFAULT_DAYS_PER_YEAR,
        quantum: Union[str, timedelta, None] = "day",
        max_span_years: Union[int, float, Decimal, str] = DEFAULT_MAX_SPAN_YEARS,
        eager: bool = False,
    ):
        self.days_per_year = as_decimal(days_per_year, "days_per_year")
        if self.days_per_year <= 0:
            raise ValueError("days_per_year must be positive")
        self.quantum = resolve_quantum(quantum)
        self.max_span_years = as_decimal(max_span_years, "max_span_years")
        if self.max_span_years <= 0:
            raise ValueError("max_span_years must be positive")
        self.eager = bool(eager)

    def __repr__(self) -> str:
        return (
            f"PeriodTreeBuilder(days_per_year={self.days_per_year}, quantum={self.quantum}, "
            f"max_span_years={self.max_span_years}, eager={self.eager})"
        )

    def _resolve_depth(self, spec: CycleSpec, max_depth: Optional[int]) -> int:
        if max_depth is None:
            return spec.max_depth
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
            raise ValueError(f"max_depth must be a non-negative int, got {max_depth!r}")
        if max_depth > spec.max_depth:
            log.warning(
                "%s: requested depth %d exceeds system maximum %d; clamping",
                spec.name, max_depth, spec.max_depth,
            )
            return spec.max_depth
        return max_depth

    def build(
        self,
        spec: CycleSpec,
        anchor: BirthAnchor,
        repetitions: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> List[PeriodNode]:
        start_pos, elapsed = resolve_start(spec, anchor)
        if repetitions is None:
            repetitions = spec.default_repetitions
        if isinstance(repetitions, bool) or not isinstance(repetitions, int) or repetitions < 1:
            raise ValueError(f"repetitions must be an int >= 1, got {repetitions!r}")
        depth = self._resolve_depth(spec, max_depth)

        ctx = _TreeContext(spec, self.quantum, depth)
        birth = require_aware(anchor.birth, "birth")
        rulers = spec.rulers
        limit = years_to_timedelta(self.max_span_years, ROUNDING_QUANTA["second"], self.days_per_year)

        # Boundaries come from the cumulative offset in years so rounding never drifts.
        offset = Decimal(0)
        cursor = birth
        nodes: List[PeriodNode] = []
        for k in range(repetitions * len(rulers)):
            ruler = rulers.at(start_pos + k)
            years = ruler.years * (1 - Decimal(repr(elapsed))) if k == 0 else ruler.years
            if cursor - birth >= limit:
                log.info(
                    "%s: stopped after %d of %d periods at the %s-year span limit",
                    spec.name, len(nodes), repetitions * len(rulers), self.max_span_years,
                )
                break
            offset += years
            try:
                end = birth + years_to_timedelta(offset, self.quantum, self.days_per_year)
            except OverflowError:
                log.info("%s: stopped after %d periods at the end of the calendar", spec.name, len(nodes))
                break
            nodes.append(PeriodNode(ruler, 0, cursor, end, ctx, years))
            cursor = end

        log.debug(
            "built %s: %d top-level periods, depth %d, %s -> %s",
            spec.name, len(nodes), depth,
            nodes[0].start.isoformat() if nodes else None,
            nodes[-1].end.isoformat() if nodes else None,
        )
        if self.eager:
            for _ in iter_nodes(nodes, depth):
                pass
        return nodes
