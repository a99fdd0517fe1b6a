"""Tests for the spatial index, its read/write lock and fault recovery."""

import threading

import numpy as np
import pytest
from shapely.errors import GEOSException
from shapely.geometry import Point, box

from proximitypy.core.errors import TransientIndexFault
from proximitypy.neighbors.index import SpatialIndex
from proximitypy.neighbors.kdtree import KDTreeNeighborSearch
from proximitypy.neighbors.locking import IndexState, ReadWriteLock


class TestKDTreeNeighborSearch:
    """Tests for KDTreeNeighborSearch."""

    def test_nearest(self):
        """Test k nearest points are returned in order."""
        coords = np.array([[0.0, 0.0], [1.0, 0.0], [5.0, 0.0], [2.0, 0.0]])
        searcher = KDTreeNeighborSearch(coords)

        idx, dist = searcher.query_nearest([0.0, 0.0], k=3)

        assert list(idx) == [0, 1, 3]
        assert np.allclose(dist, [0.0, 1.0, 2.0])

    def test_k_capped(self):
        """Test k larger than the point count returns every point."""
        searcher = KDTreeNeighborSearch(np.array([[0.0, 0.0], [3.0, 4.0]]))

        idx, dist = searcher.query_nearest([0.0, 0.0], k=5)

        assert len(idx) == 2
        assert np.allclose(dist, [0.0, 5.0])

    def test_empty(self):
        """Test an empty tree returns empty results."""
        searcher = KDTreeNeighborSearch(np.empty((0, 2)))

        idx, dist = searcher.query_nearest([0.0, 0.0], k=3)

        assert len(idx) == 0
        assert len(dist) == 0


class TestSpatialIndex:
    """Tests for SpatialIndex."""

    def test_build_orders_by_key(self):
        """Test finalized entries are ordered by key, not insertion order."""
        index = SpatialIndex()
        for key in (3, 0, 2, 1):
            index.insert(key, Point(key, 0))
        snapshot = index.build()

        assert list(snapshot.keys) == [0, 1, 2, 3]
        assert [g.x for g in snapshot.geometries] == [0.0, 1.0, 2.0, 3.0]
        assert snapshot.bounds == (0.0, 0.0, 3.0, 0.0)
        assert snapshot.initial_radius > 0

    def test_concurrent_insert(self):
        """Test inserts from several threads are all kept."""
        index = SpatialIndex()

        def worker(offset):
            for i in range(100):
                index.insert(offset + i, Point(offset + i, 0))

        threads = [threading.Thread(target=worker, args=(k * 100,)) for k in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(index.build()) == 400

    def test_empty_index(self):
        """Test an empty index can be built and read."""
        index = SpatialIndex()
        index.build()

        assert index.read(len) == 0

    def test_read_unbuilt_rebuilds(self):
        """Test reading before build is healed by one rebuild."""
        index = SpatialIndex("core")
        index.insert(0, box(0, 0, 1, 1))

        assert index.read(len) == 1
        assert index.rebuild_count == 1
        assert index.state is IndexState.READY

    def test_insert_after_build_invalidates(self):
        """Test a late insert is picked up by the rebuild on next read."""
        index = SpatialIndex()
        index.insert(0, Point(0, 0))
        index.build()
        index.insert(1, Point(1, 0))

        assert index.read(len) == 2
        assert index.rebuild_count == 1

    def test_retry_once_on_fault(self):
        """Test a fault on first read is retried after a rebuild."""
        index = SpatialIndex()
        index.insert(0, Point(0, 0))
        index.build()
        calls = []

        def flaky(snapshot):
            calls.append(index.state)
            if len(calls) == 1:
                raise GEOSException("TopologyException: side location conflict")
            return len(snapshot)

        assert index.read(flaky) == 1
        assert calls == [IndexState.READY, IndexState.REBUILDING]
        assert index.rebuild_count == 1
        assert index.state is IndexState.READY

    def test_second_fault_propagates(self):
        """Test a fault after the rebuild is raised as TransientIndexFault."""
        index = SpatialIndex()
        index.insert(0, Point(0, 0))
        index.build()

        def broken(snapshot):
            raise TransientIndexFault("still broken")

        with pytest.raises(TransientIndexFault):
            index.read(broken)
        assert index.state is IndexState.READY

    def test_other_errors_not_retried(self):
        """Test unrelated errors propagate without a rebuild."""
        index = SpatialIndex()
        index.insert(0, Point(0, 0))
        index.build()

        def failing(snapshot):
            raise KeyError("boom")

        with pytest.raises(KeyError):
            index.read(failing)
        assert index.rebuild_count == 0


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_readers_share(self):
        """Test two readers can hold the lock together."""
        lock = ReadWriteLock()
        entered = threading.Event()

        with lock.read_locked():
            t = threading.Thread(target=lambda: (lock.acquire_read(), entered.set(), lock.release_read()))
            t.start()
            assert entered.wait(timeout=2.0)
            t.join()

    def test_writer_excludes_readers(self):
        """Test a writer waits until the reader leaves."""
        lock = ReadWriteLock()
        written = threading.Event()

        def writer():
            with lock.write_locked():
                written.set()

        lock.acquire_read()
        t = threading.Thread(target=writer)
        t.start()
        assert not written.wait(timeout=0.1)
        lock.release_read()
        assert written.wait(timeout=2.0)
        t.join()

    def test_reader_waits_for_writer(self):
        """Test a reader blocks while the writer holds the lock."""
        lock = ReadWriteLock()
        read = threading.Event()

        def reader():
            with lock.read_locked():
                read.set()

        lock.acquire_write()
        t = threading.Thread(target=reader)
        t.start()
        assert not read.wait(timeout=0.1)
        lock.release_write()
        assert read.wait(timeout=2.0)
        t.join()
