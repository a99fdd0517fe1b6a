"""
Multi-reader / single-writer lock used to guard spatial index reads.
"""

import threading
from contextlib import contextmanager
from enum import Enum


class IndexState(Enum):
    """Lifecycle of a spatial index after it has been finalized."""

    READY = "ready"
    REBUILDING = "rebuilding"


class ReadWriteLock:
    """
    Readers share the lock; a writer holds it alone.

    Writers are preferred: once a writer waits, new readers block until it
    has finished, so a rebuild cannot be starved by a stream of queries.
    Not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self):
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self):
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self):
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
