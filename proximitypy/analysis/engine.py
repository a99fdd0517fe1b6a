"""
ProximityAnalysis - one-time initialization plus repeated threshold queries.

Initialization runs four join-barrier phases on a shared executor:

1. insert every reference geometry into its spatial index (global, or one
   per partition), then finalize the indexes;
2. resolve the nearest references of every target into a NeighborTracker;
3. build the connection lines of every target;
4. build one distance bucket per neighbor rank.

Nothing is published until all four phases succeed. A cancelled or failed
initialization leaves the instance unusable.
"""

import logging
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from enum import Enum
from itertools import chain
from typing import Callable, Iterable, Optional

from proximitypy.analysis import measurements
from proximitypy.analysis.buckets import DistanceBucketIndex
from proximitypy.analysis.connections import ConnectionBuilder
from proximitypy.analysis.queries import ThresholdQueryEngine
from proximitypy.analysis.tracker import NeighborTracker
from proximitypy.concurrency import CancellationToken, run_phase
from proximitypy.core.cells import PartitionMap, Population, require_geometry
from proximitypy.core.config import PartitionMode, ProximityConfig
from proximitypy.core.errors import AnalysisCancelled, AnalysisUnavailable, InvalidArgument
from proximitypy.display import DisplayLayer
from proximitypy.neighbors.index import SpatialIndex
from proximitypy.neighbors.resolver import NearestNeighborResolver
from proximitypy.stats.distributions import DistanceStatistics, distance_statistics

logger = logging.getLogger(__name__)


class AnalysisState(Enum):
    """Lifecycle of a ProximityAnalysis."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    DISCARDED = "discarded"


class ProximityAnalysis:
    """
    Nearest-neighbor proximity analysis between two cell populations.

    Parameters
    ----------
    targets : iterable of Cell
        Cells to analyze. Duplicates are dropped with a warning.
    references : iterable of Cell
        Cells to test against. Duplicates are dropped with a warning.
    config : ProximityConfig, optional
        Analysis configuration. Defaults to ``ProximityConfig()``.
    pixel_size : float, default=1.0
        Physical size of one pixel; distances and thresholds are in
        physical units, areas are scaled by ``pixel_size ** 2``.
    partitions : iterable of Partition, optional
        Known partitions, reported even when empty.
    executor : Executor, optional
        Worker pool for the initialization phases. When omitted a private
        ``ThreadPoolExecutor`` is created and shut down by ``initialize``.
    token : CancellationToken, optional
        Cooperative cancellation flag.
    display : DisplayLayer, optional
        Receives selections, labels and connection lines.

    Example
    -------
    >>> analysis = ProximityAnalysis.build(tumor_cells, immune_cells,
    ...                                    ProximityConfig(max_neighbors=5),
    ...                                    pixel_size=0.5)
    >>> len(analysis.get(20.0, 2))   # targets with >= 2 references within 20 um
    >>> analysis.exclusive(20.0, 1)  # targets with exactly 1
    """

    def __init__(
        self,
        targets: Iterable,
        references: Iterable,
        config: Optional[ProximityConfig] = None,
        pixel_size: float = 1.0,
        partitions: Iterable = (),
        executor: Optional[Executor] = None,
        token: Optional[CancellationToken] = None,
        display: Optional[DisplayLayer] = None,
    ):
        if not pixel_size > 0:
            raise InvalidArgument(f"pixel_size must be positive, got {pixel_size}")

        self.config = config if config is not None else ProximityConfig()
        self.targets = Population(targets, "target cells")
        self.references = Population(references, "reference cells")
        self.pixel_size = float(pixel_size)
        self.executor = executor
        self.token = token if token is not None else CancellationToken()
        self.display = display if display is not None else DisplayLayer()
        self._known_partitions = list(partitions)

        self.state = AnalysisState.PENDING
        self.partition_map: Optional[PartitionMap] = None
        self.indexes: Optional[dict] = None
        self.trackers: Optional[dict] = None
        self.connections: Optional[list] = None
        self.buckets: Optional[DistanceBucketIndex] = None
        self.queries: Optional[ThresholdQueryEngine] = None

    @classmethod
    def build(cls, *args, **kwargs) -> "ProximityAnalysis":
        """Construct and initialize in one step."""
        return cls(*args, **kwargs).initialize()

    def __repr__(self) -> str:
        return (
            f"ProximityAnalysis({len(self.targets)} targets, {len(self.references)} references, "
            f"max_neighbors={self.config.max_neighbors}, {self.state.value})"
        )

    @property
    def is_usable(self) -> bool:
        return self.state is AnalysisState.READY

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self) -> "ProximityAnalysis":
        """
        Run all initialization phases and publish the results.

        Raises
        ------
        AnalysisCancelled
            The token was cancelled; the instance is discarded.
        PreconditionViolation
            An input cell has no geometry; the instance is failed.
        AnalysisUnavailable
            The instance was already initialized, failed or discarded.
        """
        if self.state is not AnalysisState.PENDING:
            raise AnalysisUnavailable(f"{self!r} cannot be initialized again")

        start = time.perf_counter()
        logger.info(f"Initializing {self!r}")

        try:
            if self.executor is None:
                with ThreadPoolExecutor() as executor:
                    results = self._run_phases(executor)
            else:
                results = self._run_phases(self.executor)
        except AnalysisCancelled:
            self._discard(AnalysisState.DISCARDED)
            logger.info(f"Proximity analysis initialization cancelled ({self!r})")
            raise
        except Exception:
            self._discard(AnalysisState.FAILED)
            raise

        self.partition_map, self.indexes, self.trackers, self.connections, self.buckets = results
        self.queries = ThresholdQueryEngine(
            self.targets,
            self.buckets,
            self.trackers,
            self.connections,
            display=self.display,
            keep_hidden=self.config.keep_hidden,
        )
        self.state = AnalysisState.READY

        logger.info(f"Total time to initialize {self!r}: {time.perf_counter() - start:.3f} s")
        return self

    def _discard(self, state: AnalysisState):
        self.partition_map = None
        self.indexes = None
        self.trackers = None
        self.connections = None
        self.buckets = None
        self.queries = None
        self.state = state

    def _run_phases(self, executor: Executor):
        token = self.token
        config = self.config
        token.raise_if_cancelled()

        partition_map = PartitionMap(
            chain(self.targets, self.references), self._known_partitions
        )
        per_partition = config.partition_mode is PartitionMode.PER_PARTITION

        # Phase 1: spatial indexes
        t0 = time.perf_counter()
        if per_partition:
            indexes = {p: SpatialIndex(p.name) for p in partition_map.partitions}
        else:
            indexes = {None: SpatialIndex("image")}

        def index_for(cell) -> Optional[SpatialIndex]:
            if per_partition:
                return indexes.get(partition_map.partition_of(cell))
            return indexes[None]

        def insert(item):
            key, cell = item
            geometry = require_geometry(cell)
            index = index_for(cell)
            if index is not None:
                index.insert(key, geometry)

        run_phase(executor, insert, enumerate(self.references), token)
        token.raise_if_cancelled()
        for index in indexes.values():
            index.build()
        logger.info(
            f"Time to make spatial {'indexes' if len(indexes) > 1 else 'index'} "
            f"({len(indexes)}): {time.perf_counter() - t0:.3f} s"
        )

        # Phase 2: nearest neighbors
        t0 = time.perf_counter()
        resolver = NearestNeighborResolver(config.metric)
        k = config.n_buckets
        pixel_size = self.pixel_size

        def resolve(cell) -> NeighborTracker:
            geometry = require_geometry(cell)
            tracker = NeighborTracker(cell)
            index = index_for(cell)
            if index is None:
                return tracker
            for n, neighbor in enumerate(resolver.query(geometry, index, k)):
                tracker.add_data(n, neighbor.geometry, neighbor.distance * pixel_size)
            return tracker

        trackers = dict(zip(self.targets, run_phase(executor, resolve, self.targets, token)))

        # Phase 3: connection lines
        builder = ConnectionBuilder(config.metric, config.line_style)
        line_groups = run_phase(executor, builder.build, list(trackers.values()), token)
        connections = [line for group in line_groups for line in group]
        logger.info(f"Time to calculate distances: {time.perf_counter() - t0:.3f} s")

        # Phase 4: distance buckets
        t0 = time.perf_counter()
        targets = self.targets

        def bucket(n):
            return DistanceBucketIndex.build_bucket(n, targets, trackers)

        buckets = DistanceBucketIndex(run_phase(executor, bucket, range(config.n_buckets), token))
        logger.info(f"Time to make distance buckets ({len(buckets)}): {time.perf_counter() - t0:.3f} s")

        token.raise_if_cancelled()
        return partition_map, indexes, trackers, connections, buckets

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def queries_or_raise(self) -> ThresholdQueryEngine:
        if self.state is not AnalysisState.READY:
            raise AnalysisUnavailable(f"{self!r} is not ready for queries")
        return self.queries

    def get(self, threshold: float, n: int) -> set:
        """Targets with at least ``n`` reference neighbors within ``threshold``."""
        return self.queries_or_raise().get(threshold, n)

    def exclusive(self, threshold: float, n: int) -> set:
        """Targets with exactly ``n`` reference neighbors within ``threshold``."""
        return self.queries_or_raise().exclusive(threshold, n)

    def counts(self, threshold: float) -> dict:
        return self.queries_or_raise().counts(threshold)

    def query(self, threshold: float, n: int, **kwargs) -> set:
        """See ``ThresholdQueryEngine.query``."""
        return self.queries_or_raise().query(threshold, n, **kwargs)

    def show(self, threshold: float, n: int, exclusive: bool = False) -> set:
        return self.queries_or_raise().show(threshold, n, exclusive=exclusive)

    highlight = show

    def label(self, threshold: float) -> None:
        self.queries_or_raise().label(threshold)

    def connect(self, threshold: float, keep_hidden: Optional[bool] = None) -> None:
        self.queries_or_raise().connect(threshold, keep_hidden=keep_hidden)

    def clear_labels(self) -> None:
        self.queries_or_raise().clear_labels()

    def clear_connections(self) -> None:
        self.queries_or_raise().clear_connections()

    def cleanup(self) -> None:
        self.queries_or_raise().cleanup()

    # ------------------------------------------------------------------
    # Statistics and measurements
    # ------------------------------------------------------------------

    def distance_statistics(self, n: int, subset: Optional[Iterable] = None) -> DistanceStatistics:
        """Statistics of the distance to the n-th nearest reference (one-based)."""
        self.queries_or_raise()
        if not 1 <= n <= self.config.n_buckets:
            raise InvalidArgument(f"Neighbor rank must be within 1..{self.config.n_buckets}, got {n}")
        return distance_statistics(self.trackers, n - 1, subset)

    def partition_populations(self) -> dict:
        """Partition -> (target cells, reference cells) inside it."""
        self.queries_or_raise()
        targets = self.partition_map.members(self.targets)
        references = self.partition_map.members(self.references)
        return {p: (targets[p], references.get(p, set())) for p in targets}

    def add_measurements(
        self,
        obj,
        target_name: str,
        reference_name: str,
        target_subset: Optional[Iterable] = None,
        reference_subset: Optional[Iterable] = None,
        threshold: float = 0.0,
    ) -> dict:
        """See ``proximitypy.analysis.measurements.add_measurements``."""
        return measurements.add_measurements(
            self, obj, target_name, reference_name, target_subset, reference_subset, threshold
        )

    def add_partition_measurements(self, target_name: str, reference_name: str, threshold: float) -> list:
        """Write aggregate measurements onto every partition; returns the partitions."""
        populations = self.partition_populations()
        for partition, (targets, references) in populations.items():
            self.add_measurements(partition, target_name, reference_name, targets, references, threshold)
        return list(populations)

    def add_cell_measurements(
        self,
        target_name: Optional[str] = None,
        reference_name: Optional[str] = None,
        prefix: Optional[Callable] = None,
    ) -> None:
        """See ``proximitypy.analysis.measurements.add_cell_measurements``."""
        measurements.add_cell_measurements(self, target_name, reference_name, prefix)
