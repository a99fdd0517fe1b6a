"""Shared fixtures for proximitypy tests."""

import numpy as np
import pytest
from shapely.geometry import Point

from proximitypy.core.cells import Cell
from proximitypy.io.loaders import point_cell


@pytest.fixture
def ab_scenario():
    """
    Two targets A, B and two references at distances 2 and 5 from both.

    A = (0, 0), B = (0, 4); the references sit on the bisector y = 2.
    """
    a = point_cell(0, 0, "Tumor", name="A")
    b = point_cell(0, 4, "Tumor", name="B")
    near = point_cell(0, 2, "CD8", name="R1")
    far = point_cell(np.sqrt(21.0), 2, "CD8", name="R2")
    return a, b, near, far


@pytest.fixture
def random_cells():
    """Factory of disc cells at seeded random positions."""

    def make(n, classification, seed=42, extent=200.0, prefix="c"):
        rng = np.random.default_rng(seed)
        xy = rng.uniform(0, extent, size=(n, 2))
        radii = rng.uniform(1.0, 3.0, size=n)
        return [
            Cell(Point(x, y).buffer(r), classification, name=f"{prefix}{i}")
            for i, ((x, y), r) in enumerate(zip(xy, radii))
        ]

    return make
