"""
Per-target nearest-neighbor records.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry


@dataclass(eq=False)
class LabelAnchor:
    """
    Point at a target cell's centroid that carries its interaction label.

    ``name`` is the label text set by the most recent ``label`` query.
    """

    cell: Any
    point: Point
    classification: Optional[str] = None
    name: Optional[str] = None
    parent: Any = field(default=None, repr=False)


class NeighborTracker:
    """
    Nearest-neighbor distances of one target cell.

    Keeps two views of the same data: rank n -> distance and neighbor
    geometry -> distance. Each rank is written once.

    Parameters
    ----------
    cell : Cell
        The target cell.
    """

    def __init__(self, cell):
        self.cell = cell
        self._by_n: dict[int, float] = {}
        self._neighbors: dict[int, BaseGeometry] = {}
        self._by_geometry: dict[BaseGeometry, float] = {}
        self._lock = threading.Lock()
        centroid = cell.geometry.centroid
        self.anchor = LabelAnchor(
            cell=cell,
            point=Point(centroid.x, centroid.y),
            classification=getattr(cell, "classification", None),
            parent=cell,
        )

    def add_data(self, n: int, geometry: BaseGeometry, distance: float) -> None:
        """
        Record the n-th nearest neighbor (zero-based).

        Raises
        ------
        ValueError
            If rank ``n`` was already recorded.
        """
        with self._lock:
            if n in self._by_n:
                raise ValueError(f"Neighbor #{n + 1} of {self.cell!r} already recorded")
            self._by_n[n] = float(distance)
            self._neighbors[n] = geometry
            self._by_geometry.setdefault(geometry, float(distance))

    def distance_by_n(self, n: int) -> Optional[float]:
        """Distance to the n-th nearest neighbor, or None if there is none."""
        return self._by_n.get(n)

    def distance_by_geometry(self, geometry: BaseGeometry) -> Optional[float]:
        return self._by_geometry.get(geometry)

    def distances(self) -> dict[int, float]:
        """Rank -> distance, ascending by rank."""
        return dict(sorted(self._by_n.items()))

    def geometries(self) -> list[BaseGeometry]:
        """Neighbor geometries, ascending by rank."""
        return [self._neighbors[n] for n in sorted(self._neighbors)]

    def neighbors(self) -> list[tuple[int, BaseGeometry, float]]:
        """(rank, geometry, distance) for every recorded neighbor, ascending by rank."""
        return [(n, self._neighbors[n], self._by_n[n]) for n in sorted(self._by_n)]

    def __len__(self) -> int:
        return len(self._by_n)
