"""Spatial indexing and nearest-neighbor search."""

from proximitypy.neighbors.index import IndexSnapshot, SpatialIndex
from proximitypy.neighbors.kdtree import KDTreeNeighborSearch
from proximitypy.neighbors.locking import IndexState, ReadWriteLock
from proximitypy.neighbors.resolver import NearestNeighborResolver, Neighbor, metric_distance

__all__ = [
    "IndexSnapshot",
    "SpatialIndex",
    "KDTreeNeighborSearch",
    "IndexState",
    "ReadWriteLock",
    "NearestNeighborResolver",
    "Neighbor",
    "metric_distance",
]
