"""
proximitypy - nearest-neighbor proximity analysis between cell populations

For every target cell the nearest reference cells are found once; repeated
threshold queries ("which targets have at least / exactly n reference cells
within d microns") are then answered from sorted distance buckets without
rescanning the populations.

Key Features:
- Edge (boundary) and centroid distance metrics
- Whole-image or per-partition (TMA core) analysis
- Cumulative and exclusive interaction queries with labels and connection lines
- Descriptive and Weibull statistics of neighbor distances
- Measurement tables as pandas DataFrames

Example:
    >>> from proximitypy import ProximityAnalysis, ProximityConfig
    >>> analysis = ProximityAnalysis.build(tumor, cd8, ProximityConfig(max_neighbors=5))
    >>> analysis.exclusive(20.0, 2)
"""

__version__ = "0.1.0"

from proximitypy.analysis.engine import AnalysisState, ProximityAnalysis
from proximitypy.analysis.measurements import measurements_frame
from proximitypy.concurrency import CancellationToken
from proximitypy.core.cells import Cell, ImageRoot, Partition, Region
from proximitypy.core.config import (
    ImageCalibration,
    LineStyle,
    Metric,
    PartitionMode,
    ProximityConfig,
)
from proximitypy.core.errors import (
    AnalysisCancelled,
    AnalysisUnavailable,
    IndexOutOfRange,
    InvalidArgument,
    PreconditionViolation,
    ProximityError,
    TransientIndexFault,
)
from proximitypy.display import DisplayLayer

__all__ = [
    # Version
    "__version__",
    # Analysis
    "ProximityAnalysis",
    "AnalysisState",
    "CancellationToken",
    "measurements_frame",
    # Cells
    "Cell",
    "ImageRoot",
    "Partition",
    "Region",
    # Config
    "ImageCalibration",
    "LineStyle",
    "Metric",
    "PartitionMode",
    "ProximityConfig",
    # Display
    "DisplayLayer",
    # Errors
    "ProximityError",
    "InvalidArgument",
    "IndexOutOfRange",
    "PreconditionViolation",
    "TransientIndexFault",
    "AnalysisCancelled",
    "AnalysisUnavailable",
]
