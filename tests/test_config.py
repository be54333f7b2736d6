# tests/test_config.py
from __future__ import annotations

import pytest

from dashacycle.utils.cache import LRUCache
from dashacycle.utils.config import AttrDict, load_config

_ENV = ("DASHA_CONFIG", "DASHA_DAYS_PER_YEAR", "DASHA_ROUNDING_UNIT", "DASHA_MAX_SPAN_YEARS")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV:
        monkeypatch.delenv(var, raising=False)


def test_defaults_without_file(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    cfg = load_config()
    assert isinstance(cfg, AttrDict)
    assert cfg.engine.days_per_year == "365.25"
    assert cfg.engine.rounding_unit == "day"
    assert cfg.cache.capacity == 256
    assert cfg.api.max_expand_depth == 2

def test_file_merges_over_defaults(tmp_path) -> None:
    p = tmp_path / "dasha.yaml"
    p.write_text("engine:\n  rounding_unit: hour\ncache:\n  capacity: 8\n", encoding="utf-8")
    cfg = load_config(str(p))
    assert cfg.engine.rounding_unit == "hour"
    assert cfg.engine.days_per_year == "365.25"   # untouched default
    assert cfg.cache.capacity == 8

def test_env_points_at_file(tmp_path, monkeypatch) -> None:
    p = tmp_path / "alt.yaml"
    p.write_text("api:\n  max_expand_depth: 4\n", encoding="utf-8")
    monkeypatch.setenv("DASHA_CONFIG", str(p))
    assert load_config().api.max_expand_depth == 4

def test_env_overrides_win(tmp_path, monkeypatch) -> None:
    p = tmp_path / "dasha.yaml"
    p.write_text("engine:\n  days_per_year: '365.2425'\n", encoding="utf-8")
    monkeypatch.setenv("DASHA_DAYS_PER_YEAR", "360")
    monkeypatch.setenv("DASHA_ROUNDING_UNIT", "minute")
    monkeypatch.setenv("DASHA_MAX_SPAN_YEARS", "150")
    cfg = load_config(str(p))
    assert cfg.engine.days_per_year == "360"
    assert cfg.engine.rounding_unit == "minute"
    assert cfg.engine.max_span_years == "150"

def test_missing_explicit_file_fails(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))

def test_non_mapping_root_fails(tmp_path) -> None:
    p = tmp_path / "list.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(p))

def test_defaults_not_mutated_between_loads(tmp_path) -> None:
    p = tmp_path / "dasha.yaml"
    p.write_text("cache:\n  capacity: 3\n", encoding="utf-8")
    assert load_config(str(p)).cache.capacity == 3
    p.write_text("{}\n", encoding="utf-8")
    assert load_config(str(p)).cache.capacity == 256

def test_attrdict_missing_attribute() -> None:
    cfg = AttrDict({"a": 1})
    assert cfg.a == 1
    with pytest.raises(AttributeError):
        _ = cfg.b


# ─────────────────────────────────────────────────────────────────────────────
# LRU cache
# ─────────────────────────────────────────────────────────────────────────────

def test_lru_get_set_and_evict() -> None:
    c = LRUCache(capacity=2, name="test")
    c.set("a", 1)
    c.set("b", 2)
    assert c.get("a") == 1        # a becomes most recent
    c.set("c", 3)
    assert c.get("b") is None
    assert "a" in c and "c" in c
    assert len(c) == 2

def test_setdefault_keeps_first() -> None:
    c = LRUCache(capacity=4, name="test")
    assert c.setdefault("k", "first") == "first"
    assert c.setdefault("k", "second") == "first"

def test_get_or_build_builds_once() -> None:
    c = LRUCache(capacity=4, name="test")
    calls = []
    def build():
        calls.append(1)
        return object()
    a = c.get_or_build("x", build)
    b = c.get_or_build("x", build)
    assert a is b and len(calls) == 1
    c.clear()
    assert len(c) == 0
