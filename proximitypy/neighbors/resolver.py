"""
k-nearest reference geometries for a target geometry.

Two metrics are supported:

- EDGE: shortest distance between the two geometries (0 when they touch or
  overlap). Answered exactly by an expanding envelope window on the STRtree.
- CENTROID: distance between the two centroids, answered by the KD-tree.

Distances are returned in the index's coordinate units (pixels).
"""

from typing import Any, NamedTuple

import numpy as np
import shapely
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from proximitypy.core.config import Metric
from proximitypy.neighbors.index import IndexSnapshot, SpatialIndex


class Neighbor(NamedTuple):
    """One resolved neighbor."""

    key: Any
    geometry: BaseGeometry
    distance: float


def metric_distance(a: BaseGeometry, b: BaseGeometry, metric: Metric) -> float:
    """Distance between two geometries under ``metric``."""
    if Metric(metric) is Metric.CENTROID:
        return float(a.centroid.distance(b.centroid))
    return float(a.distance(b))


def _edge_candidates(snapshot: IndexSnapshot, geometry: BaseGeometry, k: int) -> np.ndarray:
    """
    Indices of a candidate set guaranteed to contain the k edge-nearest.

    Any geometry within distance ``r`` of the target has an envelope that
    intersects the target's envelope grown by ``r``, so once at least k
    candidates lie within ``r`` nothing outside the window can beat them.
    """
    n = len(snapshot)
    if k >= n:
        return np.arange(n)

    minx, miny, maxx, maxy = geometry.bounds
    tminx, tminy, tmaxx, tmaxy = snapshot.bounds
    # window half-width at which every indexed envelope is covered
    reach = max(minx - tminx, tmaxx - maxx, miny - tminy, tmaxy - maxy, 0.0)

    radius = snapshot.initial_radius
    while radius < reach:
        window = box(minx - radius, miny - radius, maxx + radius, maxy + radius)
        idx = snapshot.tree.query(window)
        if len(idx) >= k:
            distances = shapely.distance(geometry, snapshot.geometries[idx])
            if np.count_nonzero(distances <= radius) >= k:
                return np.sort(idx)
        radius *= 2
    return np.arange(n)


def _nearest_by_edge(snapshot: IndexSnapshot, geometry: BaseGeometry, k: int) -> list[Neighbor]:
    idx = _edge_candidates(snapshot, geometry, k)
    if len(idx) == 0:
        return []
    distances = np.asarray(shapely.distance(geometry, snapshot.geometries[idx]), dtype=np.float64)
    order = np.argsort(distances, kind="stable")[:k]
    return [
        Neighbor(snapshot.keys[idx[i]].item(), snapshot.geometries[idx[i]], float(distances[i]))
        for i in order
    ]


def _nearest_by_centroid(snapshot: IndexSnapshot, geometry: BaseGeometry, k: int) -> list[Neighbor]:
    centroid = geometry.centroid
    indices, distances = snapshot.centroids.query_nearest((centroid.x, centroid.y), k)
    return [
        Neighbor(snapshot.keys[i].item(), snapshot.geometries[i], float(d))
        for i, d in zip(indices, distances)
    ]


class NearestNeighborResolver:
    """
    Resolves the k nearest reference geometries under a fixed metric.

    Parameters
    ----------
    metric : Metric, default=Metric.EDGE
        Distance metric applied consistently to search and ranking.

    Examples
    --------
    >>> resolver = NearestNeighborResolver(Metric.CENTROID)
    >>> neighbors = resolver.query(cell.geometry, index, k=3)
    >>> [n.distance for n in neighbors]  # ascending
    """

    def __init__(self, metric: Metric = Metric.EDGE):
        self.metric = Metric(metric)
        self._search = _nearest_by_centroid if self.metric is Metric.CENTROID else _nearest_by_edge

    def query(self, geometry: BaseGeometry, index: SpatialIndex, k: int) -> list[Neighbor]:
        """
        Find up to k nearest geometries in ``index``, ascending by distance.

        Returns fewer than k neighbors when the index holds fewer geometries.
        Ties keep index order.
        """
        if k <= 0:
            return []
        return index.read(lambda snapshot: self._search(snapshot, geometry, k))
