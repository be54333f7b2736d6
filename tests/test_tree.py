# tests/test_tree.py
from __future__ import annotations

import gc
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from dashacycle.core.anchor import BirthAnchor
from dashacycle.core.errors import ConfigurationError
from dashacycle.core.subdivide import years_to_timedelta
from dashacycle.core.systems import ASHTOTTARI, VIMSHOTTARI, YOGINI
from dashacycle.core.tree import PeriodTreeBuilder, iter_nodes

UTC = timezone.utc
BIRTH = datetime(1990, 5, 21, 9, 0, tzinfo=UTC)
DAY = timedelta(days=1)


def _assert_tiles(nodes) -> None:
    for a, b in zip(nodes, nodes[1:]):
        assert a.end == b.start
    for parent in nodes:
        kids = parent.children
        if not kids:
            continue
        assert kids[0].start == parent.start
        assert kids[-1].end == parent.end
        for a, b in zip(kids, kids[1:]):
            assert a.end == b.start


# ─────────────────────────────────────────────────────────────────────────────
# Scenarios
# ─────────────────────────────────────────────────────────────────────────────

def test_first_period_full_when_fraction_zero(builder) -> None:
    nodes = builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.0))
    assert [n.ruler.name for n in nodes[:2]] == ["Sun", "Moon"]
    assert nodes[0].start == BIRTH
    # 6 * 365.25 = 2191.5 days, rounded half-even
    assert nodes[0].duration == timedelta(days=2192)
    assert abs(nodes[1].duration - timedelta(days=15 * 365.25)) <= DAY
    assert len(nodes) == 16  # two rotations by default
    assert nodes[-1].end == BIRTH + years_to_timedelta(Decimal(216), DAY)

def test_half_elapsed_first_period(builder) -> None:
    nodes = builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.5))
    assert nodes[0].ruler.name == "Sun"
    # 3 * 365.25 = 1095.75 -> 1096
    assert nodes[0].duration == timedelta(days=1096)
    assert abs(nodes[1].duration - timedelta(days=15 * 365.25)) <= DAY
    # two rotations less the 3 years already elapsed before birth
    assert nodes[-1].end == BIRTH + years_to_timedelta(Decimal(213), DAY)

def test_three_rotations_of_36_years(builder) -> None:
    f = 0.3
    anchor = BirthAnchor(BIRTH, 7, f)  # Pushya: Bhramari, 4 years
    nodes = builder.build(YOGINI, anchor, repetitions=3)
    assert len(nodes) == 24
    assert nodes[0].ruler.name == "Bhramari"
    assert nodes[8].ruler.name == "Bhramari"
    elapsed = Decimal(repr(f)) * 4
    assert nodes[-1].end == BIRTH + years_to_timedelta(Decimal(108) - elapsed, DAY)
    _assert_tiles(nodes)

def test_default_repetitions_come_from_system(builder) -> None:
    assert len(builder.build(YOGINI, BirthAnchor(BIRTH, 0, 0.0))) == 24
    assert len(builder.build(VIMSHOTTARI, BirthAnchor(BIRTH, 0, 0.0))) == 18
    assert len(builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.0))) == 16

def test_child_rotation_restarts_at_parent_ruler(builder) -> None:
    nodes = builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.0))
    moon = nodes[1]
    assert [c.ruler.name for c in moon.children][:3] == ["Moon", "Mars", "Mercury"]
    assert moon.children[0].parent is moon
    assert moon.children[0].lineage == ("Moon", "Moon")
    assert moon.children[2].children[0].lineage == ("Moon", "Mercury", "Mercury")

def test_tiling_at_every_depth(builder) -> None:
    nodes = builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 11, 0.42))
    for node in iter_nodes(nodes):
        if node.children:
            _assert_tiles([node])
            _assert_tiles(list(node.children))


# ─────────────────────────────────────────────────────────────────────────────
# Depth, repetitions, bounds
# ─────────────────────────────────────────────────────────────────────────────

def test_depth_is_clamped_with_warning(builder, caplog) -> None:
    with caplog.at_level("WARNING", logger="dashacycle.core.tree"):
        nodes = builder.build(YOGINI, BirthAnchor(BIRTH, 0, 0.0), max_depth=9)
    assert nodes[0].max_depth == YOGINI.max_depth
    assert "clamping" in caplog.text

def test_depth_zero_has_no_children(builder) -> None:
    nodes = builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.0), max_depth=0)
    assert nodes[0].children == ()
    assert nodes[0].is_expanded

@pytest.mark.parametrize("reps", [0, -2, 1.5, True])
def test_bad_repetitions(builder, reps) -> None:
    with pytest.raises(ValueError):
        builder.build(YOGINI, BirthAnchor(BIRTH, 0, 0.0), repetitions=reps)

def test_out_of_domain_nakshatra_propagates(builder) -> None:
    with pytest.raises(ConfigurationError):
        builder.build(YOGINI, BirthAnchor(BIRTH, 30, 0.0))

def test_span_limit_stops_emission(caplog) -> None:
    b = PeriodTreeBuilder(max_span_years=100)
    with caplog.at_level("INFO", logger="dashacycle.core.tree"):
        nodes = b.build(YOGINI, BirthAnchor(BIRTH, 4, 0.0), repetitions=10)
    limit = BIRTH + timedelta(days=100 * 365.25)
    assert nodes[-1].start < limit
    assert len(nodes) < 80
    # two rotations (72y) then Mangala..Siddha (28y) end exactly on the limit; Sankata is dropped
    assert nodes[-1].end == limit
    assert nodes[-1].ruler.name == "Siddha"
    assert len(nodes) == 23
    assert "span limit" in caplog.text

def test_bad_builder_settings() -> None:
    with pytest.raises(ValueError):
        PeriodTreeBuilder(days_per_year=0)
    with pytest.raises(ValueError):
        PeriodTreeBuilder(max_span_years=-5)
    with pytest.raises(ConfigurationError):
        PeriodTreeBuilder(quantum="fortnight")

def test_savana_year() -> None:
    b = PeriodTreeBuilder(days_per_year="360")
    nodes = b.build(YOGINI, BirthAnchor(BIRTH, 4, 0.0), repetitions=1)
    assert nodes[0].duration == timedelta(days=360)
    assert nodes[-1].end == BIRTH + timedelta(days=36 * 360)


# ─────────────────────────────────────────────────────────────────────────────
# Laziness, idempotence, concurrency
# ─────────────────────────────────────────────────────────────────────────────

def test_children_are_lazy_and_memoized(builder) -> None:
    nodes = builder.build(VIMSHOTTARI, BirthAnchor(BIRTH, 3, 0.1))
    top = nodes[0]
    assert not top.is_expanded
    first = top.children
    assert top.is_expanded
    assert top.children is first

def test_eager_build_expands_everything() -> None:
    b = PeriodTreeBuilder(eager=True)
    nodes = b.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.0), repetitions=1)
    assert all(n.is_expanded for n in iter_nodes(nodes))
    assert sum(1 for _ in iter_nodes(nodes)) == 8 + 64 + 512

def test_build_is_idempotent(builder) -> None:
    anchor = BirthAnchor(BIRTH, 17, 0.77)
    a = builder.build(YOGINI, anchor)
    b = builder.build(YOGINI, anchor)
    assert [n.key() for n in iter_nodes(a)] == [n.key() for n in iter_nodes(b)]
    assert a == b

def test_concurrent_first_expansion_yields_one_children_tuple(builder) -> None:
    top = builder.build(VIMSHOTTARI, BirthAnchor(BIRTH, 3, 0.1))[0]
    seen = []
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        seen.append(top.children)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(seen) == 8
    assert all(s is seen[0] for s in seen)
    assert len(seen[0]) == 9

def test_parent_link_does_not_own_parent(builder) -> None:
    nodes = builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.0))
    child = nodes[0].children[0]
    assert child.parent is nodes[0]
    del nodes
    gc.collect()
    assert child.parent is None


# ─────────────────────────────────────────────────────────────────────────────
# Node helpers
# ─────────────────────────────────────────────────────────────────────────────

def test_progress_and_remaining(builder) -> None:
    top = builder.build(YOGINI, BirthAnchor(BIRTH, 4, 0.0))[0]   # Mangala, 1 year
    mid = top.start + top.duration / 2
    assert top.progress(mid) == pytest.approx(0.5)
    assert top.progress(top.start - DAY) == 0.0
    assert top.progress(top.end + DAY) == 1.0
    assert top.remaining(mid) == top.duration / 2
    assert top.elapsed(top.end + DAY) == top.duration
    assert top.contains(top.start) and not top.contains(top.end)
    assert top.level_name == "Mahadasha"
    assert top.children[0].level_name == "Antardasha"
    assert top.nominal_years == Decimal(1)
    assert top.children[1].nominal_years == Decimal(2) / Decimal(36)

def test_to_dict_expansion(builder) -> None:
    top = builder.build(ASHTOTTARI, BirthAnchor(BIRTH, 5, 0.0))[0]
    d = top.to_dict(expand_depth=2)
    assert d["ruler"] == "Sun" and d["level"] == "Mahadasha"
    assert len(d["children"]) == 8
    assert len(d["children"][0]["children"]) == 8
    assert "children" not in d["children"][0]["children"][0]
    assert d["duration_days"] == 2192.0
    assert "children" not in top.to_dict()


@given(
    nak=st.integers(min_value=0, max_value=26),
    frac=st.floats(min_value=0.0, max_value=0.999999, allow_nan=False),
    spec=st.sampled_from([ASHTOTTARI, YOGINI, VIMSHOTTARI]),
    unit=st.sampled_from(["day", "hour"]),
)
def test_top_level_and_first_children_tile(nak, frac, spec, unit) -> None:
    b = PeriodTreeBuilder(quantum=unit)
    nodes = b.build(spec, BirthAnchor(BIRTH, nak, frac), repetitions=1, max_depth=2)
    assert nodes[0].start == BIRTH
    assert nodes[0].ruler is spec.starting_ruler(nak)
    _assert_tiles(nodes)
    _assert_tiles(list(nodes[0].children))
