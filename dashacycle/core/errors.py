# dashacycle/core/errors.py
from __future__ import annotations

__all__ = ["DashaError", "ConfigurationError", "MissingInputError"]


class DashaError(Exception):
    """Base class for every error raised by the period engine."""


class ConfigurationError(DashaError):
    """
    Invalid or incomplete period-system configuration.

    Raised when a CycleSpec is constructed (weights not summing to the declared
    cycle, starting-index rule undefined for some nakshatra) or when a caller
    selects a system / nakshatra index the configuration does not cover.
    Never recovered silently.
    """


class MissingInputError(DashaError, ValueError):
    """Birth anchor lacks (or carries unusable) Moon-derived data."""
