"""
Configuration dataclasses for proximity analysis.

These dataclasses describe everything an analysis session depends on besides
the cell populations themselves: how many interactions to test, whether to
work per partition, which distance metric and which line decoration to use.
"""

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

import numpy as np

from proximitypy.core.errors import InvalidArgument


class Metric(Enum):
    """Distance metric between a target and a reference cell."""

    EDGE = "edge"
    CENTROID = "centroid"


class PartitionMode(Enum):
    """Scope of the nearest-neighbor search."""

    WHOLE_IMAGE = "whole_image"
    PER_PARTITION = "per_partition"  # e.g. one search per TMA core


class LineStyle(Enum):
    """Decoration of the connection lines."""

    LINE = "line"
    ARROW = "arrow"
    DOUBLE_ARROW = "double_arrow"


@dataclass
class ImageCalibration:
    """
    Pixel calibration of the analyzed image.

    Parameters
    ----------
    pixel_width : float
        Physical width of one pixel (microns).
    pixel_height : float
        Physical height of one pixel (microns).
    """

    pixel_width: float = 1.0
    pixel_height: float = 1.0

    @property
    def pixel_size(self) -> float:
        """Average of pixel width and height."""
        return (float(self.pixel_width) + float(self.pixel_height)) / 2


def _convert_to_native(obj: Any) -> Any:
    """Convert numpy and enum values to native Python types for JSON serialization."""
    if isinstance(obj, dict):
        return {k: _convert_to_native(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_convert_to_native(v) for v in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, Enum):
        return obj.value
    else:
        return obj


@dataclass
class ProximityConfig:
    """
    Complete proximity analysis configuration.

    Parameters
    ----------
    max_neighbors : int
        Maximum number of reference interactions to test. The analysis keeps
        ``max_neighbors + 1`` nearest neighbors per target so that cells with
        exactly ``max_neighbors`` interactions can be told apart from cells
        with more.
    partition_mode : PartitionMode
        Search the whole image, or only within each cell's partition.
    metric : Metric
        Edge (boundary to boundary) or centroid distance.
    line_style : LineStyle
        Decoration attached to connection lines.
    keep_hidden : bool
        Keep hidden connections published in the display layer instead of
        removing them after each ``connect``. Interactive sessions set this
        to avoid re-publishing lines on every slider move.

    Example
    -------
    >>> config = ProximityConfig(max_neighbors=5, metric=Metric.CENTROID)
    >>> config.n_buckets
    6
    >>> config.save("proximity.json")
    """

    max_neighbors: int = 10
    partition_mode: PartitionMode = PartitionMode.WHOLE_IMAGE
    metric: Metric = Metric.EDGE
    line_style: LineStyle = LineStyle.LINE
    keep_hidden: bool = False

    def __post_init__(self):
        if isinstance(self.max_neighbors, bool) or not isinstance(
            self.max_neighbors, (int, np.integer)
        ):
            raise InvalidArgument(f"max_neighbors must be an integer, got {self.max_neighbors!r}")
        if self.max_neighbors < 0:
            raise InvalidArgument(f"max_neighbors cannot be negative: {self.max_neighbors}")
        self.max_neighbors = int(self.max_neighbors)
        self.partition_mode = PartitionMode(self.partition_mode)
        self.metric = Metric(self.metric)
        self.line_style = LineStyle(self.line_style)

    @property
    def n_buckets(self) -> int:
        """Size of the distance bucket array (``max_neighbors + 1``)."""
        return self.max_neighbors + 1

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return _convert_to_native(asdict(self))

    def save(self, path: str) -> None:
        """Save configuration to JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, d: dict) -> "ProximityConfig":
        """Build a configuration from a dictionary produced by ``to_dict``."""
        known = {k: v for k, v in d.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    @classmethod
    def load(cls, path: str) -> "ProximityConfig":
        """Load configuration from JSON file."""
        with open(path) as f:
            d = json.load(f)
        return cls.from_dict(d)
