"""Proximity analysis: trackers, buckets, connections, queries and measurements."""

from proximitypy.analysis.buckets import NOT_APPLICABLE, DistanceBucket, DistanceBucketIndex
from proximitypy.analysis.connections import ConnectionBuilder, LineConnection
from proximitypy.analysis.engine import AnalysisState, ProximityAnalysis
from proximitypy.analysis.measurements import measurements_frame
from proximitypy.analysis.queries import ThresholdQueryEngine
from proximitypy.analysis.tracker import LabelAnchor, NeighborTracker

__all__ = [
    "NOT_APPLICABLE",
    "DistanceBucket",
    "DistanceBucketIndex",
    "ConnectionBuilder",
    "LineConnection",
    "AnalysisState",
    "ProximityAnalysis",
    "measurements_frame",
    "ThresholdQueryEngine",
    "LabelAnchor",
    "NeighborTracker",
]
