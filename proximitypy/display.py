"""
In-memory presentation layer receiving the side effects of queries.

A viewer integration subclasses ``DisplayLayer`` and forwards these calls to
its own object hierarchy; the default implementation just records state so
sessions can be scripted and tested without a viewer.
"""

import threading
from typing import Iterable


class DisplayLayer:
    """
    Published overlay objects and the current selection.

    Selection is replaced, never merged: the last ``set_selection`` wins.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._objects: set = set()
        self._selection: frozenset = frozenset()
        self.refresh_count = 0

    def add_objects(self, objects: Iterable) -> None:
        with self._lock:
            self._objects.update(objects)

    def remove_objects(self, objects: Iterable) -> None:
        with self._lock:
            self._objects.difference_update(objects)

    def set_selection(self, objects: Iterable) -> None:
        with self._lock:
            self._selection = frozenset(objects)

    def clear_selection(self) -> None:
        with self._lock:
            self._selection = frozenset()
            self.refresh_count += 1

    @property
    def objects(self) -> frozenset:
        with self._lock:
            return frozenset(self._objects)

    @property
    def selection(self) -> frozenset:
        return self._selection
