# dashacycle/core/locator.py
from __future__ import annotations

import logging
from bisect import bisect_right
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from dashacycle.core.anchor import query_instant
from dashacycle.core.tree import PeriodNode

log = logging.getLogger(__name__)

__all__ = ["QueryResult", "locate", "PeriodLocator"]


def _start(node: PeriodNode) -> datetime:
    return node.start


def _find(nodes: Sequence[PeriodNode], t: datetime, lo: int = 0, hi: Optional[int] = None) -> int:
    """Index of the sibling whose [start, end) holds t within nodes[lo:hi], or -1."""
    if hi is None:
        hi = len(nodes)
    i = bisect_right(nodes, t, lo, hi, key=_start) - 1
    if i >= lo and nodes[i].start <= t < nodes[i].end:
        return i
    return -1


def _limit(nodes: Sequence[PeriodNode], max_depth: Optional[int]) -> int:
    deepest = nodes[0].max_depth if nodes else 0
    if max_depth is None:
        return deepest
    if max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth!r}")
    return min(max_depth, deepest)


class QueryResult:
    """Active node per depth for one instant; empty when the instant is outside the span."""

    __slots__ = ("instant", "nodes")

    def __init__(self, instant: datetime, nodes: Sequence[PeriodNode] = ()):
        self.instant = instant
        self.nodes: Tuple[PeriodNode, ...] = tuple(nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[PeriodNode]:
        return iter(self.nodes)

    def __getitem__(self, depth: int) -> PeriodNode:
        return self.nodes[depth]

    def __bool__(self) -> bool:
        return bool(self.nodes)

    def __repr__(self) -> str:
        return f"QueryResult({self.instant.isoformat()}, {'/'.join(self.rulers) or '-'})"

    @property
    def rulers(self) -> Tuple[str, ...]:
        return tuple(n.ruler.name for n in self.nodes)

    @property
    def deepest(self) -> Optional[PeriodNode]:
        return self.nodes[-1] if self.nodes else None

    def progress(self, depth: int) -> float:
        return self.nodes[depth].progress(self.instant)

    def to_dict(self) -> Dict[str, Any]:
        levels: List[Dict[str, Any]] = []
        for n in self.nodes:
            d = n.to_dict()
            d["progress"] = n.progress(self.instant)
            d["remaining_days"] = n.remaining(self.instant).total_seconds() / 86400.0
            levels.append(d)
        return {
            "instant": self.instant.isoformat(),
            "in_span": bool(self.nodes),
            "rulers": list(self.rulers),
            "levels": levels,
        }


def locate(top_nodes: Sequence[PeriodNode], instant: datetime, max_depth: Optional[int] = None) -> QueryResult:
    """
    Active period at every depth 0..max_depth for `instant`.

    Intervals are half-open: an instant equal to a node's end belongs to the
    next sibling. Outside the computed span the result is empty.
    """
    t = query_instant(instant, "instant")
    limit = _limit(top_nodes, max_depth)
    found: List[PeriodNode] = []
    siblings: Sequence[PeriodNode] = top_nodes
    while siblings:
        i = _find(siblings, t)
        if i < 0:
            break
        node = siblings[i]
        found.append(node)
        if node.depth >= limit:
            break
        siblings = node.children
    return QueryResult(t, found)


class PeriodLocator:
    """
    Stateful cursor over one tree. Remembers the last active path so queries
    that move forward (or backward) in time only look at nearby siblings.
    Not meant to be shared between threads.
    """

    def __init__(self, top_nodes: Sequence[PeriodNode], max_depth: Optional[int] = None):
        self._top: Tuple[PeriodNode, ...] = tuple(top_nodes)
        self._limit = _limit(self._top, max_depth)
        self._path: List[Tuple[int, PeriodNode]] = []  # (sibling index, node) per depth
        self.hits = 0
        self.searches = 0

    @property
    def max_depth(self) -> int:
        return self._limit

    def reset(self) -> None:
        self._path = []

    def _seek(self, siblings: Sequence[PeriodNode], t: datetime, hint: Optional[int]) -> int:
        if hint is not None:
            node = siblings[hint]
            if node.start <= t < node.end:
                self.hits += 1
                return hint
            self.searches += 1
            if t >= node.end:
                nxt = hint + 1
                if nxt < len(siblings) and siblings[nxt].start <= t < siblings[nxt].end:
                    return nxt
                return _find(siblings, t, lo=hint + 1)
            return _find(siblings, t, hi=hint)
        self.searches += 1
        return _find(siblings, t)

    def locate(self, instant: datetime) -> QueryResult:
        t = query_instant(instant, "instant")
        path: List[Tuple[int, PeriodNode]] = []
        siblings: Sequence[PeriodNode] = self._top
        reuse = True  # cached hint is valid only while every ancestor was reused
        depth = 0
        while siblings:
            hint = None
            if reuse and depth < len(self._path):
                hint = self._path[depth][0]
            i = self._seek(siblings, t, hint)
            if i < 0:
                break
            node = siblings[i]
            reuse = reuse and hint == i
            path.append((i, node))
            if node.depth >= self._limit:
                break
            siblings = node.children
            depth += 1
        if path:
            self._path = path
        return QueryResult(t, [n for _, n in path])
