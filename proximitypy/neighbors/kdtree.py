"""
KD-tree based nearest-neighbor search over cell centroids.

Uses scipy.spatial.cKDTree for O(log n) k-nearest queries.
"""

from typing import Tuple

import numpy as np
from scipy.spatial import cKDTree


class KDTreeNeighborSearch:
    """
    KD-tree based k-nearest search over 2D points.

    Parameters
    ----------
    coords : array-like
        Point coordinates of shape (n, 2).
    leafsize : int, default=16
        Number of points at which to switch to brute-force search.

    Examples
    --------
    >>> coords = np.random.randn(10000, 2) * 100
    >>> searcher = KDTreeNeighborSearch(coords)
    >>> idx, dist = searcher.query_nearest([0.0, 0.0], k=3)
    >>> len(idx)
    3
    """

    def __init__(self, coords, leafsize: int = 16):
        self.coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
        self.n_points = self.coords.shape[0]
        self.tree = cKDTree(self.coords, leafsize=leafsize) if self.n_points else None

    def query_nearest(
        self,
        point,
        k: int,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the k points nearest to ``point``.

        Parameters
        ----------
        point : array-like
            Query coordinates (x, y).
        k : int
            Number of neighbors. Capped at the number of indexed points.

        Returns
        -------
        Tuple[np.ndarray, np.ndarray]
            (indices, distances), ascending by distance. Shorter than k when
            fewer points are indexed.
        """
        k = min(int(k), self.n_points)
        if k <= 0:
            return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float64)

        distances, indices = self.tree.query(np.asarray(point, dtype=np.float64), k=k)

        return (
            np.atleast_1d(indices).astype(np.int64),
            np.atleast_1d(distances).astype(np.float64),
        )
