"""
AccessForge exception hierarchy.

Errors are converted into data (statuses, error strings) as close to their
origin as possible; these types mark where that conversion happens.
"""


class AccessForgeError(Exception):
    """Base exception for all AccessForge errors."""


class RuleCatalogueError(AccessForgeError):
    """Raised when a rule definition or a whole catalogue cannot be loaded."""


class RuleEvaluationError(AccessForgeError):
    """Raised when a single rule cannot be evaluated against a finding."""


class UnknownScorerError(RuleEvaluationError):
    """Raised when a custom rule names a scorer that was never registered."""


class PluginError(AccessForgeError):
    """Raised when a detector, heuristic or enhancer produces unusable output."""
