"""Core data model, configuration and errors."""

from proximitypy.core.cells import (
    Cell,
    ImageRoot,
    Partition,
    PartitionMap,
    Population,
    Region,
    require_geometry,
)
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
    WeibullFitError,
)

__all__ = [
    # Cells
    "Cell",
    "ImageRoot",
    "Partition",
    "PartitionMap",
    "Population",
    "Region",
    "require_geometry",
    # Config
    "ImageCalibration",
    "LineStyle",
    "Metric",
    "PartitionMode",
    "ProximityConfig",
    # Errors
    "AnalysisCancelled",
    "AnalysisUnavailable",
    "IndexOutOfRange",
    "InvalidArgument",
    "PreconditionViolation",
    "ProximityError",
    "TransientIndexFault",
    "WeibullFitError",
]
