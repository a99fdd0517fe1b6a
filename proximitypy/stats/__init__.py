"""Statistics of nearest-neighbor distance distributions."""

from proximitypy.stats.distributions import (
    DistanceStatistics,
    descriptive_statistics,
    distance_statistics,
    fit_weibull,
)

__all__ = [
    "DistanceStatistics",
    "descriptive_statistics",
    "distance_statistics",
    "fit_weibull",
]
