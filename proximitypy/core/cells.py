"""
Cell objects, containers and populations.

Cells are compared by identity: two cells with identical geometry are still
two cells. Containers (partitions, regions, the image root) carry their own
``measurements`` dictionary so measurement writers can target any of them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

from shapely.geometry.base import BaseGeometry

from proximitypy.core.errors import PreconditionViolation

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ImageRoot:
    """Whole-image aggregate object."""

    name: str = "Image"
    measurements: dict = field(default_factory=dict, repr=False)


@dataclass(eq=False)
class Partition:
    """
    Spatial sub-region (e.g. a TMA core) within which analysis may run.

    Parameters
    ----------
    name : str
        Display name of the partition.
    geometry : BaseGeometry, optional
        Outline of the partition.
    parent : object, optional
        Enclosing container.
    """

    name: str
    geometry: Optional[BaseGeometry] = None
    parent: Any = None
    measurements: dict = field(default_factory=dict, repr=False)


@dataclass(eq=False)
class Region:
    """Non-partition container, e.g. an annotation drawn inside a core."""

    name: str
    geometry: Optional[BaseGeometry] = None
    parent: Any = None
    measurements: dict = field(default_factory=dict, repr=False)


@dataclass(eq=False)
class Cell:
    """
    A detected cell.

    Parameters
    ----------
    geometry : BaseGeometry
        Cell outline (polygon) or location (point), in pixels.
    classification : str, optional
        Class tag, propagated to labels and connection lines.
    parent : object, optional
        Enclosing container (``Region``, ``Partition`` or ``ImageRoot``).
    name : str, optional
        Free-form identifier.
    """

    geometry: Optional[BaseGeometry]
    classification: Optional[str] = None
    parent: Any = None
    name: Optional[str] = None
    measurements: dict = field(default_factory=dict, repr=False)

    @property
    def area(self) -> float:
        return self.geometry.area

    def __repr__(self) -> str:
        label = self.name if self.name is not None else hex(id(self))
        return f"Cell({label}, {self.classification})"


def require_geometry(cell) -> BaseGeometry:
    """Return the cell geometry, raising if it is missing or empty."""
    geometry = getattr(cell, "geometry", None)
    if geometry is None or geometry.is_empty:
        raise PreconditionViolation(f"Cell {cell!r} has no geometry")
    return geometry


class Population:
    """
    Ordered, deduplicated collection of cells.

    Order of first occurrence is kept so that index construction and bucket
    contents are reproducible for identical inputs.

    Parameters
    ----------
    cells : iterable
        Cells, possibly with duplicates.
    label : str, default="cells"
        Name used in log messages.
    """

    def __init__(self, cells: Iterable = (), label: str = "cells"):
        cells = list(cells)
        self._cells = tuple(dict.fromkeys(cells))
        self._members = frozenset(self._cells)
        self.label = label
        if len(self._cells) != len(cells):
            logger.warning(
                f"Duplicates removed in {label}: {len(cells) - len(self._cells)}"
            )

    def __iter__(self) -> Iterator:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, cell) -> bool:
        return cell in self._members

    def __getitem__(self, i):
        return self._cells[i]

    def as_set(self) -> set:
        return set(self._cells)

    def total_area(self) -> float:
        return float(sum(cell.geometry.area for cell in self._cells))


class PartitionMap:
    """
    Precomputed cell -> enclosing partition lookup.

    The ownership chain of each cell is walked once; every container visited
    on the way is memoized so shared ancestors are resolved only once.

    Parameters
    ----------
    cells : iterable
        Cells to resolve.
    partitions : iterable, optional
        Known partitions. They are reported by ``partitions`` even when no
        cell falls inside them.
    """

    def __init__(self, cells: Iterable, partitions: Iterable = ()):
        self._container_cache: dict[int, Optional[Partition]] = {}
        self._cells: dict = {}
        self._partitions: dict = dict.fromkeys(partitions)
        for cell in cells:
            partition = self._resolve(cell)
            self._cells[cell] = partition
            if partition is not None:
                self._partitions.setdefault(partition, None)

    def _resolve(self, obj) -> Optional[Partition]:
        chain = []
        node = obj
        while node is not None and not isinstance(node, Partition):
            key = id(node)
            if key in self._container_cache:
                found = self._container_cache[key]
                break
            chain.append(node)
            node = getattr(node, "parent", None)
        else:
            found = node
        for visited in chain:
            if not isinstance(visited, Cell):
                self._container_cache[id(visited)] = found
        return found

    def partition_of(self, cell) -> Optional[Partition]:
        """Enclosing partition of ``cell``, or None outside every partition."""
        if cell in self._cells:
            return self._cells[cell]
        return self._resolve(cell)

    @property
    def partitions(self) -> list:
        return list(self._partitions)

    def members(self, population: Iterable) -> dict:
        """Group ``population`` by partition (every known partition present)."""
        groups = {partition: set() for partition in self._partitions}
        for cell in population:
            partition = self.partition_of(cell)
            if partition is not None:
                groups.setdefault(partition, set()).add(cell)
        return groups
