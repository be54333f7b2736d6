# dashacycle/core/sandhi.py
"""
Sandhi: the junction window around the hand-over from one period to the next
sibling at the same depth.

The window is a share of the *ending* period's length (5% for Mahadashas,
growing to 20% at deeper levels), clamped to [1 hour, 30 days] and centred on
the transition instant.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from dashacycle.core.anchor import query_instant
from dashacycle.core.constants import SANDHI_FRACTIONS, SANDHI_MAX, SANDHI_MIN, level_name
from dashacycle.core.tree import PeriodNode

__all__ = ["Sandhi", "sandhi_window", "upcoming_sandhis"]


@dataclass(frozen=True)
class Sandhi:
    depth: int
    outgoing: PeriodNode
    incoming: PeriodNode
    transition: datetime
    window_start: datetime
    window_end: datetime

    @property
    def level(self) -> str:
        return level_name(self.depth)

    @property
    def width(self) -> timedelta:
        return self.window_end - self.window_start

    def contains(self, t: datetime) -> bool:
        return self.window_start <= t < self.window_end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "depth": self.depth,
            "level": self.level,
            "from": self.outgoing.ruler.name,
            "to": self.incoming.ruler.name,
            "lineage": list(self.outgoing.lineage[:-1]),
            "transition": self.transition.isoformat(),
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "width_hours": self.width.total_seconds() / 3600.0,
        }


def sandhi_window(ending: PeriodNode) -> timedelta:
    """Width of the junction window after `ending`."""
    frac = SANDHI_FRACTIONS[min(ending.depth, len(SANDHI_FRACTIONS) - 1)]
    width = ending.duration * float(frac)
    return max(SANDHI_MIN, min(width, SANDHI_MAX))


def _junction(a: PeriodNode, b: PeriodNode) -> Sandhi:
    half = sandhi_window(a) / 2
    t = a.end
    return Sandhi(a.depth, a, b, t, t - half, t + half)


def _scan(
    siblings: Sequence[PeriodNode],
    lo: datetime,
    hi: datetime,
    max_depth: int,
    out: List[Sandhi],
) -> None:
    live = [n for n in siblings if n.end > n.start]
    for a, b in zip(live, live[1:]):
        if lo < a.end < hi:
            out.append(_junction(a, b))
    for n in live:
        # only parents overlapping the window are expanded
        if n.depth < max_depth and n.start < hi and n.end > lo:
            _scan(n.children, lo, hi, max_depth, out)


def upcoming_sandhis(
    top_nodes: Sequence[PeriodNode],
    from_instant: datetime,
    lookahead: timedelta,
    max_depth: Optional[int] = 1,
) -> List[Sandhi]:
    """
    Sibling transitions falling strictly inside (from_instant, from_instant + lookahead)
    at depths 0..max_depth, ordered by transition instant then depth.
    """
    lo = query_instant(from_instant, "from_instant")
    if not isinstance(lookahead, timedelta) or lookahead <= timedelta(0):
        raise ValueError(f"lookahead must be a positive timedelta, got {lookahead!r}")
    if not top_nodes:
        return []
    deepest = top_nodes[0].max_depth
    limit = deepest if max_depth is None else min(max_depth, deepest)
    if limit < 0:
        raise ValueError(f"max_depth must be >= 0, got {max_depth!r}")
    out: List[Sandhi] = []
    _scan(top_nodes, lo, lo + lookahead, limit, out)
    out.sort(key=lambda s: (s.transition, s.depth))
    return out
