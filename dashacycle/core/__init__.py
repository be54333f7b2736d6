from dashacycle.core.anchor import BirthAnchor, resolve_start
from dashacycle.core.cycle import CycleSpec, Ruler, RulerSequence
from dashacycle.core.engine import DashaEngine
from dashacycle.core.errors import ConfigurationError, DashaError, MissingInputError
from dashacycle.core.locator import PeriodLocator, QueryResult, locate
from dashacycle.core.sandhi import Sandhi, sandhi_window, upcoming_sandhis
from dashacycle.core.subdivide import ChildSpan, subdivide
from dashacycle.core.systems import ASHTOTTARI, VIMSHOTTARI, YOGINI, get_system, list_systems
from dashacycle.core.tree import PeriodNode, PeriodTreeBuilder, iter_nodes

__all__ = [
    "BirthAnchor", "resolve_start",
    "CycleSpec", "Ruler", "RulerSequence",
    "DashaEngine",
    "ConfigurationError", "DashaError", "MissingInputError",
    "PeriodLocator", "QueryResult", "locate",
    "Sandhi", "sandhi_window", "upcoming_sandhis",
    "ChildSpan", "subdivide",
    "ASHTOTTARI", "VIMSHOTTARI", "YOGINI", "get_system", "list_systems",
    "PeriodNode", "PeriodTreeBuilder", "iter_nodes",
]
