"""
Line segments joining each target cell to each of its tracked neighbors.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from shapely.geometry import LineString
from shapely.geometry.base import BaseGeometry
from shapely.ops import nearest_points

from proximitypy.core.config import LineStyle, Metric

ARROWHEADS = {
    LineStyle.LINE: None,
    LineStyle.ARROW: ">",
    LineStyle.DOUBLE_ARROW: "<>",
}

# Classification given to lines outside the current threshold
HIDDEN_CLASS = "proximity_hidden"
LINE_METADATA_KEY = "PROXIMITY_LINE"


@dataclass(eq=False)
class LineConnection:
    """
    One target -> neighbor connection.

    ``classification`` is the target's class while shown and ``HIDDEN_CLASS``
    while hidden.
    """

    cell: Any
    neighbor: BaseGeometry
    distance: float
    line: LineString
    metadata: dict = field(default_factory=dict)
    classification: Optional[str] = HIDDEN_CLASS

    @property
    def visible(self) -> bool:
        return self.classification != HIDDEN_CLASS

    def show(self) -> None:
        self.classification = getattr(self.cell, "classification", None)

    def hide(self) -> None:
        self.classification = HIDDEN_CLASS


def apply_line_style(metadata: dict, line_style: LineStyle) -> dict:
    """Attach the arrowhead marker for ``line_style`` to ``metadata``."""
    arrowhead = ARROWHEADS[LineStyle(line_style)]
    if arrowhead is not None:
        metadata["arrowhead"] = arrowhead
    return metadata


class ConnectionBuilder:
    """
    Builds the connection lines of one target cell.

    Parameters
    ----------
    metric : Metric
        EDGE joins the closest boundary points, CENTROID joins centroids.
    line_style : LineStyle
        Arrowhead decoration.
    """

    def __init__(self, metric: Metric = Metric.EDGE, line_style: LineStyle = LineStyle.LINE):
        self.metric = Metric(metric)
        self.line_style = LineStyle(line_style)

    def endpoints(self, geometry: BaseGeometry, neighbor: BaseGeometry):
        if self.metric is Metric.EDGE:
            start, end = nearest_points(geometry, neighbor)
        else:
            start, end = geometry.centroid, neighbor.centroid
        return (start.x, start.y), (end.x, end.y)

    def build(self, tracker) -> list[LineConnection]:
        """One connection per neighbor recorded in ``tracker``."""
        cell = tracker.cell
        connections = []
        for _, neighbor, distance in tracker.neighbors():
            start, end = self.endpoints(cell.geometry, neighbor)
            connections.append(
                LineConnection(
                    cell=cell,
                    neighbor=neighbor,
                    distance=distance,
                    line=LineString([start, end]),
                    metadata=apply_line_style({}, self.line_style),
                )
            )
        return connections
