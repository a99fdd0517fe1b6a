"""
Threshold queries over the distance buckets.

``get(threshold, n)`` answers "which targets have at least n reference
neighbors within threshold" and ``exclusive(threshold, n)`` answers "exactly
n". Both are read-only. ``show``, ``label`` and ``connect`` push the result
into the display layer (selection, label text, line visibility); those side
effects are last-write-wins.
"""

import logging
import math
import threading
from numbers import Integral, Real
from typing import Optional

from proximitypy.analysis.buckets import DistanceBucketIndex
from proximitypy.analysis.connections import LINE_METADATA_KEY
from proximitypy.core.errors import IndexOutOfRange, InvalidArgument
from proximitypy.display import DisplayLayer

logger = logging.getLogger(__name__)


def validate_threshold(threshold) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, Real):
        raise InvalidArgument(f"Distance threshold must be a number, got {threshold!r}")
    threshold = float(threshold)
    if math.isnan(threshold) or threshold < 0:
        raise InvalidArgument(f"Distance threshold cannot be negative: {threshold}")
    return threshold


def validate_count(n) -> int:
    if isinstance(n, bool) or not isinstance(n, Integral):
        raise InvalidArgument(f"Number of reference cells must be an integer, got {n!r}")
    if n < 0:
        raise InvalidArgument(f"Number of reference cells cannot be negative: {n}")
    return int(n)


class ThresholdQueryEngine:
    """
    Cumulative and exclusive interaction queries.

    Parameters
    ----------
    targets : Population
        Target cells.
    buckets : DistanceBucketIndex
        One bucket per neighbor rank, ``max_neighbors + 1`` in total.
    trackers : dict
        Target cell -> ``NeighborTracker`` (label anchors live there).
    connections : list of LineConnection
        Precomputed connection lines.
    display : DisplayLayer, optional
        Receives selection, labels and lines.
    keep_hidden : bool, default=False
        Default for ``connect``: keep hidden lines published.
    """

    def __init__(
        self,
        targets,
        buckets: DistanceBucketIndex,
        trackers: dict,
        connections: list,
        display: Optional[DisplayLayer] = None,
        keep_hidden: bool = False,
    ):
        self.targets = targets
        self.buckets = buckets
        self.trackers = trackers
        self.connections = connections
        self.display = display if display is not None else DisplayLayer()
        self.keep_hidden = keep_hidden
        self.max_neighbors = len(buckets) - 1
        self.labels_added = False
        self.connections_added = False
        self._publish_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def _cumulative(self, threshold: float, n: int) -> set:
        if n > len(self.buckets):
            raise IndexOutOfRange(
                f"Cannot query {n} reference cells; at most {len(self.buckets)} are tracked"
            )
        if n == 0:
            return self.targets.as_set()
        return self.buckets.cells_within(n - 1, threshold)

    def _exact(self, threshold: float, n: int) -> set:
        if n > self.max_neighbors:
            raise IndexOutOfRange(
                f"Cannot isolate exactly {n} reference cells; max_neighbors is {self.max_neighbors}"
            )
        return self._cumulative(threshold, n) - self._cumulative(threshold, n + 1)

    def get(self, threshold: float, n: int) -> set:
        """Targets with at least ``n`` reference neighbors within ``threshold``."""
        return self._cumulative(validate_threshold(threshold), validate_count(n))

    def exclusive(self, threshold: float, n: int) -> set:
        """Targets with exactly ``n`` reference neighbors within ``threshold``."""
        return self._exact(validate_threshold(threshold), validate_count(n))

    def counts(self, threshold: float) -> dict:
        """
        Exclusive counts for every n, plus the overflow group.

        Returns
        -------
        dict
            ``{0: ..., 1: ..., max_neighbors: ..., "more": ...}``
        """
        threshold = validate_threshold(threshold)
        result: dict = {i: len(self._exact(threshold, i)) for i in range(self.max_neighbors + 1)}
        result["more"] = len(self.buckets.cells_beyond_configured(threshold))
        return result

    # ------------------------------------------------------------------
    # Display side effects
    # ------------------------------------------------------------------

    def _publish_labels(self):
        with self._publish_lock:
            if self.labels_added:
                return
            self.display.add_objects(tracker.anchor for tracker in self.trackers.values())
            self.labels_added = True

    def _publish_connections(self):
        with self._publish_lock:
            if self.connections_added:
                return
            for connection in self.connections:
                connection.metadata.setdefault(LINE_METADATA_KEY, None)
                connection.hide()
            self.display.add_objects(self.connections)
            self.connections_added = True

    def _apply_labels(self, threshold: float):
        self._publish_labels()
        for i in range(self.max_neighbors + 1):
            for cell in self._exact(threshold, i):
                self.trackers[cell].anchor.name = str(i)
        overflow = f"{self.max_neighbors}+"
        for cell in self.buckets.cells_beyond_configured(threshold):
            self.trackers[cell].anchor.name = overflow

    def _apply_connections(self, threshold: float, keep_hidden: bool) -> list:
        self._publish_connections()
        shown, hidden = [], []
        for connection in self.connections:
            if connection.distance <= threshold:
                connection.show()
                shown.append(connection)
            else:
                connection.hide()
                hidden.append(connection)
        self.display.add_objects(shown)
        if not keep_hidden:
            self.display.remove_objects(hidden)
        return shown

    def query(
        self,
        threshold: float,
        n: int,
        highlight: bool = False,
        label: bool = False,
        connect: bool = False,
        exclusive: bool = False,
        keep_hidden: Optional[bool] = None,
    ) -> set:
        """
        Combined query with optional display side effects.

        Parameters
        ----------
        threshold : float
            Distance threshold (physical units, inclusive).
        n : int
            Number of reference interactions.
        highlight : bool, default=False
            Replace the display selection with the matching cells (and their
            shown connections when ``connect`` is set).
        label : bool, default=False
            Write interaction counts onto every target's label anchor.
        connect : bool, default=False
            Show connections within ``threshold`` and hide the rest.
        exclusive : bool, default=False
            Match exactly ``n`` interactions instead of at least ``n``.
        keep_hidden : bool, optional
            Override the engine's ``keep_hidden`` for this call.

        Returns
        -------
        set
            The matching target cells.
        """
        threshold = validate_threshold(threshold)
        n = validate_count(n)
        cells = self._exact(threshold, n) if exclusive else self._cumulative(threshold, n)
        logger.debug(
            f"{'Exactly' if exclusive else 'At least'} {n} interactions within {threshold}: {len(cells)} cells"
        )

        if label:
            self._apply_labels(threshold)

        shown = []
        if connect:
            shown = self._apply_connections(
                threshold, self.keep_hidden if keep_hidden is None else keep_hidden
            )

        if highlight:
            selection = set(cells)
            selection.update(c for c in shown if c.cell in cells)
            self.display.set_selection(selection)
        elif label or connect:
            self.display.clear_selection()

        return cells

    def show(self, threshold: float, n: int, exclusive: bool = False) -> set:
        """Select the matching cells in the display layer."""
        return self.query(threshold, n, highlight=True, exclusive=exclusive)

    highlight = show

    def label(self, threshold: float) -> None:
        """Label every target with its interaction count within ``threshold``."""
        self.query(threshold, 0, label=True)

    def connect(self, threshold: float, keep_hidden: Optional[bool] = None) -> None:
        """Show connections within ``threshold``; hide (or prune) the others."""
        self.query(threshold, 0, connect=True, keep_hidden=keep_hidden)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def clear_labels(self) -> None:
        with self._publish_lock:
            self.display.remove_objects(tracker.anchor for tracker in self.trackers.values())
            self.labels_added = False

    def clear_connections(self) -> None:
        with self._publish_lock:
            self.display.remove_objects(self.connections)
            self.connections_added = False

    def cleanup(self) -> None:
        """Remove labels and connections and clear the selection."""
        self.clear_connections()
        self.clear_labels()
        self.display.clear_selection()
