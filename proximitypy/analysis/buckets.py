"""
Distance buckets: one sorted distance -> cell-set map per neighbor rank.

Bucket n groups target cells by the distance to their (n+1)-th nearest
reference neighbor. Threshold queries become a binary search over the
sorted keys followed by a union of the leading groups.
"""

from typing import Iterable, Iterator, Union

import numpy as np


class NotApplicable:
    """Bucket key for cells that have no neighbor at a given rank."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"

    def __reduce__(self):
        return (NotApplicable, ())


NOT_APPLICABLE = NotApplicable()

BucketKey = Union[float, NotApplicable]


class DistanceBucket:
    """
    Sorted distance -> frozenset of cells, plus a not-applicable group.

    Parameters
    ----------
    groups : dict
        Mapping of distance (float) or ``NOT_APPLICABLE`` to cells.
    """

    def __init__(self, groups: dict):
        numeric = sorted(
            (float(key), frozenset(cells))
            for key, cells in groups.items()
            if key is not NOT_APPLICABLE
        )
        self._keys = np.array([key for key, _ in numeric], dtype=np.float64)
        self._groups = [cells for _, cells in numeric]
        self._not_applicable = frozenset(groups.get(NOT_APPLICABLE, ()))

    @classmethod
    def from_distances(cls, cells: Iterable, distance_of) -> "DistanceBucket":
        """
        Group ``cells`` by ``distance_of(cell)``; None maps to ``NOT_APPLICABLE``.
        """
        groups: dict = {}
        for cell in cells:
            distance = distance_of(cell)
            key = NOT_APPLICABLE if distance is None else distance
            groups.setdefault(key, set()).add(cell)
        return cls(groups)

    def cells_within(self, threshold: float) -> set:
        """Cells whose distance is <= threshold (not-applicable excluded)."""
        stop = int(np.searchsorted(self._keys, threshold, side="right"))
        result = set()
        for cells in self._groups[:stop]:
            result.update(cells)
        return result

    @property
    def not_applicable(self) -> frozenset:
        return self._not_applicable

    def keys(self) -> list:
        keys: list = self._keys.tolist()
        if self._not_applicable:
            keys.append(NOT_APPLICABLE)
        return keys

    def __getitem__(self, key: BucketKey) -> frozenset:
        if key is NOT_APPLICABLE:
            return self._not_applicable
        i = int(np.searchsorted(self._keys, key, side="left"))
        if i < len(self._keys) and self._keys[i] == key:
            return self._groups[i]
        raise KeyError(key)

    def items(self) -> Iterator:
        yield from zip(self._keys.tolist(), self._groups)
        if self._not_applicable:
            yield NOT_APPLICABLE, self._not_applicable

    def __len__(self) -> int:
        return len(self._keys) + (1 if self._not_applicable else 0)

    def n_cells(self) -> int:
        return sum(len(cells) for cells in self._groups) + len(self._not_applicable)


class DistanceBucketIndex:
    """
    The full bucket array, one ``DistanceBucket`` per rank 0..max_neighbors.

    Parameters
    ----------
    buckets : sequence of DistanceBucket
        Buckets ordered by rank.
    """

    def __init__(self, buckets):
        self._buckets = tuple(buckets)

    @classmethod
    def build_bucket(cls, n: int, cells: Iterable, trackers: dict) -> DistanceBucket:
        """Bucket for rank ``n`` from populated trackers."""
        return DistanceBucket.from_distances(cells, lambda cell: trackers[cell].distance_by_n(n))

    def __len__(self) -> int:
        return len(self._buckets)

    def __getitem__(self, n: int) -> DistanceBucket:
        return self._buckets[n]

    def __iter__(self):
        return iter(self._buckets)

    def cells_within(self, n: int, threshold: float) -> set:
        """Cells whose (n+1)-th nearest neighbor is within ``threshold``."""
        return self._buckets[n].cells_within(threshold)

    def cells_beyond_configured(self, threshold: float) -> set:
        """Cells with more interactions within ``threshold`` than configured."""
        return self._buckets[-1].cells_within(threshold)

    def not_applicable(self, n: int) -> frozenset:
        return self._buckets[n].not_applicable
