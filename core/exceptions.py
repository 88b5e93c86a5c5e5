"""
NutriGuard Safety Engine – Exceptions
======================================
Load-time errors. Detection and scanning never raise these to callers.
"""


class NutriGuardError(Exception):
    """Base class for engine errors."""


class CatalogError(NutriGuardError):
    """A drug or allergen catalog could not be loaded."""


class ConfigError(NutriGuardError):
    """Engine configuration is invalid."""
