"""
Exception hierarchy for proximity analysis.

Query-level errors (``InvalidArgument``, ``IndexOutOfRange``) are raised
synchronously to the caller. Initialization errors leave the analysis
unusable.
"""


class ProximityError(Exception):
    """Base class for all proximitypy errors."""


class InvalidArgument(ProximityError, ValueError):
    """Negative interaction count, negative threshold or bad configuration value."""


class IndexOutOfRange(ProximityError, IndexError):
    """Interaction count past the configured bucket array."""


class PreconditionViolation(ProximityError):
    """An input cell is missing its geometry."""


class TransientIndexFault(ProximityError):
    """Spatial index read failed; healed by an exclusive rebuild."""


class AnalysisCancelled(ProximityError):
    """Initialization observed the cancellation token.

    Not a failure: the analysis instance is discarded and must not be reused.
    """


class AnalysisUnavailable(ProximityError, RuntimeError):
    """Query issued on an analysis that is not ready."""


class WeibullFitError(ProximityError):
    """Weibull maximum-likelihood fit did not converge."""
