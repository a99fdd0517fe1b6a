"""I/O utilities for loading cell detections."""

from proximitypy.io.loaders import cells_from_frame, load_cells_csv, load_cells_geojson

__all__ = [
    "cells_from_frame",
    "load_cells_csv",
    "load_cells_geojson",
]
