# dashacycle/core/constants.py
# -*- coding: utf-8 -*-
"""
Dasha engine: core constants

Purpose
-------
Single source of truth for:
- the 27 nakshatras (names, count, angular span)
- year length used to convert period weights to calendar time
- rounding quanta accepted by the subdivider
- level names per nesting depth
- sandhi (junction) window fractions and clamps

Design
------
- Pure-Python, no external dependencies.
- Safe to import from any core module.
- Decimal values are used wherever a constant feeds day arithmetic.
"""

from __future__ import annotations
from datetime import timedelta
from decimal import Decimal
from typing import Dict, Tuple

__all__ = [
    # nakshatras
    "NAKSHATRAS", "NAKSHATRA_COUNT", "NAKSHATRA_SPAN_DEG",
    # time
    "DEFAULT_DAYS_PER_YEAR", "SECONDS_PER_DAY", "ROUNDING_QUANTA",
    # levels
    "LEVEL_NAMES", "level_name",
    # sandhi
    "SANDHI_FRACTIONS", "SANDHI_MIN", "SANDHI_MAX",
    # safety bound
    "DEFAULT_MAX_SPAN_YEARS",
]

# ── nakshatras ───────────────────────────────────────────────────────────────
NAKSHATRAS: Tuple[str, ...] = (
    "Ashwini", "Bharani", "Krittika", "Rohini", "Mrigashira", "Ardra",
    "Punarvasu", "Pushya", "Ashlesha", "Magha", "Purva Phalguni",
    "Uttara Phalguni", "Hasta", "Chitra", "Swati", "Vishakha", "Anuradha",
    "Jyeshtha", "Mula", "Purva Ashadha", "Uttara Ashadha", "Shravana",
    "Dhanishtha", "Shatabhisha", "Purva Bhadrapada", "Uttara Bhadrapada",
    "Revati",
)
NAKSHATRA_COUNT: int = len(NAKSHATRAS)  # 27

# 13°20' exactly; kept as a Decimal quotient so index/fraction math stays exact
NAKSHATRA_SPAN_DEG: Decimal = Decimal(360) / Decimal(NAKSHATRA_COUNT)

# ── time ─────────────────────────────────────────────────────────────────────
# Julian year. Override via config (engine.days_per_year) for savana (360)
# or tropical (365.24219) reckoning.
DEFAULT_DAYS_PER_YEAR: Decimal = Decimal("365.25")
SECONDS_PER_DAY: int = 86400

ROUNDING_QUANTA: Dict[str, timedelta] = {
    "day": timedelta(days=1),
    "hour": timedelta(hours=1),
    "minute": timedelta(minutes=1),
    "second": timedelta(seconds=1),
}

DEFAULT_MAX_SPAN_YEARS: int = 500

# ── nesting levels ───────────────────────────────────────────────────────────
LEVEL_NAMES: Tuple[str, ...] = (
    "Mahadasha",
    "Antardasha",
    "Pratyantardasha",
    "Sookshmadasha",
    "Pranadasha",
    "Dehadasha",
)


def level_name(depth: int) -> str:
    """Traditional name for a nesting depth (0 = Mahadasha); generic past Deha."""
    if 0 <= depth < len(LEVEL_NAMES):
        return LEVEL_NAMES[depth]
    return f"Level {depth + 1}"


# ── sandhi (junction) windows ────────────────────────────────────────────────
# Share of the ending period's duration, by depth. Deeper levels reuse the last.
SANDHI_FRACTIONS: Tuple[Decimal, ...] = (
    Decimal("0.05"),
    Decimal("0.10"),
    Decimal("0.15"),
    Decimal("0.20"),
    Decimal("0.20"),
    Decimal("0.20"),
)
SANDHI_MIN: timedelta = timedelta(hours=1)
SANDHI_MAX: timedelta = timedelta(days=30)
