"""Cyclic period-subdivision (dasha) engine."""
from dashacycle.version import VERSION as __version__

__all__ = ["__version__"]
