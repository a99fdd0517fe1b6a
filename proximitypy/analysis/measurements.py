"""
Measurement writers for aggregate objects and individual target cells.

Measurements are plain ``name -> float`` entries in an object's
``measurements`` dict. ``measurements_frame`` collects them into a pandas
DataFrame for export.
"""

import logging
from typing import Callable, Iterable, Optional

import pandas as pd

from proximitypy.stats.distributions import distance_statistics

logger = logging.getLogger(__name__)

AREA_UNIT = "µm^2"
DISTANCE_UNIT = "µm"


def _interactions(n: int) -> str:
    return "interaction" if n == 1 else "interactions"


def _within(threshold: float) -> str:
    return f"(≤ {threshold:.2f} {DISTANCE_UNIT})"


def total_count_name(name: str) -> str:
    return f"Total count of {name}"


def total_area_name(name: str) -> str:
    return f"Total area ({AREA_UNIT}) of {name}"


def cumulative_name(kind: str, target_name: str, reference_name: str, threshold: float) -> str:
    prefix = "Count" if kind == "count" else f"Area ({AREA_UNIT})"
    return (
        f"{prefix} of '{target_name}' with 1 or more '{reference_name}' interactions "
        f"{_within(threshold)}"
    )


def exact_name(kind: str, target_name: str, reference_name: str, i: int, threshold: float) -> str:
    prefix = "Count" if kind == "count" else f"Area ({AREA_UNIT})"
    return (
        f"{prefix} of '{target_name}' with exactly {i} '{reference_name}' {_interactions(i)} "
        f"{_within(threshold)}"
    )


def overflow_name(kind: str, target_name: str, reference_name: str, max_neighbors: int, threshold: float) -> str:
    prefix = "Count" if kind == "count" else f"Area ({AREA_UNIT})"
    return (
        f"{prefix} of '{target_name}' with more than {max_neighbors} '{reference_name}' "
        f"{_interactions(max_neighbors)} {_within(threshold)}"
    )


def statistic_name(target_name: str, reference_name: str, rank: int, statistic: str) -> str:
    return f"'{target_name}': #{rank} nearest '{reference_name}' distance ({DISTANCE_UNIT}): {statistic}"


def cell_distance_name(target_name: str, reference_name: str, rank: int) -> str:
    return f"This cell ('{target_name}') to #{rank} nearest '{reference_name}' distance ({DISTANCE_UNIT})"


STATISTIC_FIELDS = (
    ("mean", "mean"),
    ("median", "median"),
    ("standard deviation", "std"),
    ("shape (Weibull parameter)", "shape"),
    ("scale (Weibull parameter)", "scale"),
)


def add_measurements(
    analysis,
    obj,
    target_name: str,
    reference_name: str,
    target_subset: Optional[Iterable] = None,
    reference_subset: Optional[Iterable] = None,
    threshold: float = 0.0,
) -> dict:
    """
    Write the aggregate measurement schema onto ``obj.measurements``.

    Parameters
    ----------
    analysis : ProximityAnalysis
        A ready analysis.
    obj : object
        Any object with a ``measurements`` dict (image root, partition...).
    target_name, reference_name : str
        Population names used in measurement names.
    target_subset, reference_subset : iterable, optional
        Restrict counts, areas and statistics to these cells.
    threshold : float
        Interaction distance threshold (physical units).

    Returns
    -------
    dict
        The measurements written.
    """
    queries = analysis.queries_or_raise()
    area_scale = analysis.pixel_size ** 2
    max_neighbors = analysis.config.max_neighbors

    targets = analysis.targets.as_set()
    if target_subset is not None:
        target_subset = set(target_subset)
        targets &= target_subset
    references = analysis.references.as_set()
    if reference_subset is not None:
        references &= set(reference_subset)

    def restrict(cells: set) -> set:
        return cells & target_subset if target_subset is not None else cells

    def area(cells: Iterable) -> float:
        return float(sum(cell.geometry.area for cell in cells)) * area_scale

    written = {
        total_count_name(target_name): len(targets),
        total_area_name(target_name): area(targets),
        total_count_name(reference_name): len(references),
        total_area_name(reference_name): area(references),
    }

    cumulative = restrict(queries.get(threshold, 1))
    exact = [restrict(queries.exclusive(threshold, i)) for i in range(max_neighbors + 1)]
    excess = restrict(queries.get(threshold, max_neighbors + 1))

    written[cumulative_name("count", target_name, reference_name, threshold)] = len(cumulative)
    for i, cells in enumerate(exact):
        written[exact_name("count", target_name, reference_name, i, threshold)] = len(cells)
    written[overflow_name("count", target_name, reference_name, max_neighbors, threshold)] = len(excess)

    written[cumulative_name("area", target_name, reference_name, threshold)] = area(cumulative)
    for i, cells in enumerate(exact):
        written[exact_name("area", target_name, reference_name, i, threshold)] = area(cells)
    written[overflow_name("area", target_name, reference_name, max_neighbors, threshold)] = area(excess)

    for n in range(max_neighbors + 1):
        stats = distance_statistics(analysis.trackers, n, target_subset, context=str(obj))
        for label, field_name in STATISTIC_FIELDS:
            written[statistic_name(target_name, reference_name, n + 1, label)] = getattr(stats, field_name)

    obj.measurements.update(written)
    logger.info(f"Measurements added to {obj}")
    return written


def add_cell_measurements(
    analysis,
    target_name: Optional[str] = None,
    reference_name: Optional[str] = None,
    prefix: Optional[Callable] = None,
) -> None:
    """
    Write each target's distance to its 1st..(max_neighbors + 1)-th nearest
    reference onto the target itself.

    ``prefix`` maps a cell to a string prepended to its measurement names,
    e.g. the name of its partition.
    """
    analysis.queries_or_raise()
    target_name = "" if target_name is None else target_name
    reference_name = "reference" if reference_name is None else reference_name

    for cell, tracker in analysis.trackers.items():
        lead = f"{prefix(cell)} " if prefix is not None else ""
        for n, distance in tracker.distances().items():
            cell.measurements[lead + cell_distance_name(target_name, reference_name, n + 1)] = distance

    logger.info("Cell measurements added")


def measurements_frame(objects: Iterable, name_column: str = "object") -> pd.DataFrame:
    """
    Collect the measurements of ``objects`` into a DataFrame.

    One row per object; columns are the union of measurement names.
    """
    rows = []
    for obj in objects:
        label = getattr(obj, "name", None)
        rows.append({name_column: label if label is not None else repr(obj), **obj.measurements})
    return pd.DataFrame(rows)
