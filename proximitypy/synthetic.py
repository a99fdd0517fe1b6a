"""
Synthetic tissue generation for examples, benchmarks and tests.

Provides classes for:
- Generating disc-shaped target and reference cells in a rectangular field
- Optionally laying the field out as a grid of partitions (TMA-like cores)
"""

from dataclasses import dataclass

import numpy as np
from shapely.geometry import Point, box

from proximitypy.core.cells import Cell, ImageRoot, Partition, Region


@dataclass
class TissueConfig:
    """
    Synthetic tissue parameters.

    Parameters
    ----------
    n_targets : int
        Number of target cells.
    n_references : int
        Number of reference cells.
    width, height : float
        Field size in pixels.
    min_radius, max_radius : float
        Range of cell radii in pixels.
    grid : tuple of int
        (rows, cols) of partitions; (0, 0) for none.
    target_class, reference_class : str
        Classification tags.
    random_seed : int
        Seed for ``np.random.default_rng``.
    """

    n_targets: int = 500
    n_references: int = 500
    width: float = 1000.0
    height: float = 1000.0
    min_radius: float = 3.0
    max_radius: float = 6.0
    grid: tuple = (0, 0)
    target_class: str = "Tumor"
    reference_class: str = "Immune"
    random_seed: int = 42


class SyntheticTissue:
    """
    Generates target and reference cell populations.

    Cell centers are uniform in the field; radii are uniform in
    [min_radius, max_radius]. With a partition grid, each cell is parented to
    a per-partition ``Region`` whose parent is the enclosing ``Partition``.

    Parameters
    ----------
    config : TissueConfig
        Generation parameters.

    Example
    -------
    >>> tissue = SyntheticTissue(TissueConfig(n_targets=100, n_references=200, grid=(2, 2)))
    >>> targets, references = tissue.generate()
    >>> len(tissue.partitions)
    4
    """

    def __init__(self, config: TissueConfig = None):
        self.config = config if config is not None else TissueConfig()
        self._rng = np.random.default_rng(self.config.random_seed)
        self.image = ImageRoot()
        self.partitions = self._make_partitions()
        self._regions = [
            Region(f"{p.name} annotation", geometry=p.geometry, parent=p) for p in self.partitions
        ]

    def _make_partitions(self) -> list[Partition]:
        rows, cols = self.config.grid
        if rows <= 0 or cols <= 0:
            return []
        dx = self.config.width / cols
        dy = self.config.height / rows
        partitions = []
        for r in range(rows):
            for c in range(cols):
                partitions.append(
                    Partition(
                        f"Core {r + 1}-{c + 1}",
                        geometry=box(c * dx, r * dy, (c + 1) * dx, (r + 1) * dy),
                        parent=self.image,
                    )
                )
        return partitions

    def _parent_of(self, x: float, y: float):
        if not self.partitions:
            return self.image
        rows, cols = self.config.grid
        c = min(int(x / (self.config.width / cols)), cols - 1)
        r = min(int(y / (self.config.height / rows)), rows - 1)
        return self._regions[r * cols + c]

    def generate_cells(self, n: int, classification: str, prefix: str) -> list[Cell]:
        """
        Generate ``n`` disc-shaped cells.

        Returns
        -------
        list of Cell
            Cells named ``f"{prefix}{i}"``.
        """
        cfg = self.config
        xs = self._rng.uniform(0, cfg.width, n)
        ys = self._rng.uniform(0, cfg.height, n)
        radii = self._rng.uniform(cfg.min_radius, cfg.max_radius, n)

        return [
            Cell(
                geometry=Point(x, y).buffer(r, quad_segs=8),
                classification=classification,
                parent=self._parent_of(x, y),
                name=f"{prefix}{i}",
            )
            for i, (x, y, r) in enumerate(zip(xs, ys, radii))
        ]

    def generate(self) -> tuple[list[Cell], list[Cell]]:
        """Generate (targets, references)."""
        cfg = self.config
        targets = self.generate_cells(cfg.n_targets, cfg.target_class, "t")
        references = self.generate_cells(cfg.n_references, cfg.reference_class, "r")
        return targets, references
