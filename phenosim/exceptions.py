"""
Error types raised by PhenoSim.

All errors derive from ``PhenoSimError`` (itself a ``ValueError``) so callers
can catch either the specific kind or the whole family. Every error is fatal:
a simulation that raises never returns a partial phenotype.
"""


class PhenoSimError(ValueError):
    """Base class for all PhenoSim configuration and simulation errors."""

    pass


class ShapeMismatch(PhenoSimError):
    """A matrix passed between pipeline stages has inconsistent dimensions."""

    pass


class InvalidBudget(PhenoSimError):
    """Variance fractions outside [0, 1] or not summing to 1."""

    pass


class DegenerateComponent(PhenoSimError):
    """A budgeted component has zero empirical variance and cannot be rescaled."""

    pass


class ParameterRangeError(PhenoSimError):
    """Distribution or generator parameters outside their valid range."""

    pass
