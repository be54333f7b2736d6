# tests/conftest.py
from __future__ import annotations

"""
Pytest configuration for the dashacycle suite.

- Registers Hypothesis profiles for local dev and CI.
- Freezes the process TZ to UTC (every instant in the suite is aware anyway).
- Shared fixtures: a birth instant, anchors, builder/engine, Flask test client.
"""

import os
from datetime import datetime, timezone

import pytest
from hypothesis import settings, HealthCheck

from dashacycle.core.anchor import BirthAnchor
from dashacycle.core.engine import DashaEngine
from dashacycle.core.tree import PeriodTreeBuilder


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis profiles
# ──────────────────────────────────────────────────────────────────────────────
settings.register_profile(
    "dev",
    settings(
        deadline=None,           # lazy expansion of deep levels can be slow on first touch
        max_examples=60,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)
settings.register_profile(
    "ci",
    settings(
        deadline=None,
        max_examples=120,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)

_profile = (
    "ci"
    if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS"))
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
)
settings.load_profile(_profile)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: mark test as slow")


def pytest_report_header(config: pytest.Config) -> str:
    return f"Hypothesis profile: '{_profile}'"


# ──────────────────────────────────────────────────────────────────────────────
# Global fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session", autouse=True)
def freeze_tz_env():
    prev = os.environ.get("TZ")
    os.environ["TZ"] = "UTC"
    try:
        yield
    finally:
        if prev is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = prev


BIRTH = datetime(1990, 5, 21, 9, 0, tzinfo=timezone.utc)

ARDRA = 5        # Ashtottari starts with the Sun here
ASHWINI = 0


@pytest.fixture
def birth() -> datetime:
    return BIRTH


@pytest.fixture
def ardra_anchor() -> BirthAnchor:
    return BirthAnchor(birth=BIRTH, nakshatra_index=ARDRA, fraction=0.0)


@pytest.fixture
def builder() -> PeriodTreeBuilder:
    return PeriodTreeBuilder()


@pytest.fixture
def engine() -> DashaEngine:
    return DashaEngine()


@pytest.fixture
def client():
    from dashacycle.main import create_app
    app = create_app({
        "engine": {"days_per_year": "365.25", "rounding_unit": "day", "max_span_years": 500, "eager": False},
        "cache": {"capacity": 16},
        "api": {"max_expand_depth": 2},
    })
    app.testing = True
    return app.test_client()
