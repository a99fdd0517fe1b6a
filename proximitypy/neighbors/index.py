"""
Spatial index over reference-cell geometries.

Geometries are inserted concurrently during the build phase and then
finalized into an immutable snapshot: a shapely ``STRtree`` for boundary
distance queries and a ``KDTreeNeighborSearch`` over centroids for centroid
distance queries.

Reads run under the shared side of a ``ReadWriteLock``. A fault caught during
a read is healed by a single exclusive rebuild followed by one retry.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np
import shapely
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

from proximitypy.core.errors import TransientIndexFault
from proximitypy.neighbors.kdtree import KDTreeNeighborSearch
from proximitypy.neighbors.locking import IndexState, ReadWriteLock

logger = logging.getLogger(__name__)

RECOVERABLE_FAULTS = (TransientIndexFault, GEOSException)


@dataclass(frozen=True)
class IndexSnapshot:
    """
    Immutable, finalized view of a spatial index.

    Attributes
    ----------
    keys : np.ndarray
        Insertion keys, ascending.
    geometries : np.ndarray
        Geometries (object array) aligned with ``keys``.
    tree : STRtree
        Envelope tree over ``geometries``.
    centroids : KDTreeNeighborSearch
        KD-tree over geometry centroids.
    bounds : tuple
        Total bounds (minx, miny, maxx, maxy) of all geometries.
    initial_radius : float
        Starting window half-width for expanding boundary searches.
    """

    keys: np.ndarray
    geometries: np.ndarray
    tree: STRtree
    centroids: KDTreeNeighborSearch
    bounds: tuple
    initial_radius: float

    def __len__(self) -> int:
        return len(self.keys)


class SpatialIndex:
    """
    Thread-safe, bulk-built spatial index.

    Parameters
    ----------
    name : str, optional
        Name used in log messages (e.g. the partition name).

    Examples
    --------
    >>> index = SpatialIndex()
    >>> index.insert(0, Point(0, 0).buffer(1))
    >>> index.build()
    >>> index.read(lambda snapshot: len(snapshot))
    1
    """

    def __init__(self, name: Optional[str] = None):
        self.name = name or "index"
        self._entries: list[tuple[Any, BaseGeometry]] = []
        self._insert_lock = threading.Lock()
        self._lock = ReadWriteLock()
        self._snapshot: Optional[IndexSnapshot] = None
        self.state = IndexState.READY
        self.rebuild_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def insert(self, key, geometry: BaseGeometry) -> None:
        """
        Add one geometry. Safe to call from concurrent build tasks.

        ``key`` must be orderable; the finalized index is ordered by it, so
        the result does not depend on the order tasks ran in. Inserting into
        a finalized index invalidates it until the next ``build``.
        """
        with self._insert_lock:
            self._entries.append((key, geometry))
            self._snapshot = None

    def build(self) -> IndexSnapshot:
        """Finalize all inserted geometries into a new snapshot."""
        with self._insert_lock:
            entries = sorted(self._entries, key=lambda entry: entry[0])
            keys = np.array([key for key, _ in entries])
            geometries = np.empty(len(entries), dtype=object)
            geometries[:] = [geometry for _, geometry in entries]

            if len(entries):
                centroid_coords = shapely.get_coordinates(shapely.centroid(geometries))
                bounds = tuple(float(b) for b in shapely.total_bounds(geometries))
                width = bounds[2] - bounds[0]
                height = bounds[3] - bounds[1]
                initial_radius = float(np.sqrt(width * height / len(entries)))
                if not initial_radius > 0:
                    initial_radius = max(width, height) / len(entries) or 1.0
            else:
                centroid_coords = np.empty((0, 2))
                bounds = (0.0, 0.0, 0.0, 0.0)
                initial_radius = 1.0

            snapshot = IndexSnapshot(
                keys=keys,
                geometries=geometries,
                tree=STRtree(geometries),
                centroids=KDTreeNeighborSearch(centroid_coords),
                bounds=bounds,
                initial_radius=initial_radius,
            )
            self._snapshot = snapshot
        return snapshot

    def _current(self) -> IndexSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise TransientIndexFault(f"Spatial index '{self.name}' read before it was built")
        return snapshot

    def read(self, fn: Callable[[IndexSnapshot], Any]):
        """
        Run ``fn`` against the current snapshot under the shared lock.

        On a recoverable fault the shared lock is released, the exclusive
        lock taken, the index rebuilt and ``fn`` retried once. A second
        fault propagates as ``TransientIndexFault``.
        """
        with self._lock.read_locked():
            try:
                return fn(self._current())
            except RECOVERABLE_FAULTS as e:
                fault = e

        logger.warning(f"Unexpected fault in spatial index '{self.name}' query ({fault}). Rebuilding and retrying...")

        with self._lock.write_locked():
            self.state = IndexState.REBUILDING
            try:
                self.build()
                self.rebuild_count += 1
                return fn(self._current())
            except RECOVERABLE_FAULTS as e:
                raise TransientIndexFault(
                    f"Spatial index '{self.name}' query failed after rebuild"
                ) from e
            finally:
                self.state = IndexState.READY
