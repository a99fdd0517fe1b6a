"""
Cell loading utilities for exported detection tables.
"""

import json
from pathlib import Path
from typing import Optional

import shapely
from shapely.geometry import Point, shape

from proximitypy.core.cells import Cell, Partition


def cells_from_frame(
    df,
    geometry_col: str = "geometry",
    x_col: str = "x",
    y_col: str = "y",
    class_col: Optional[str] = "classification",
    name_col: Optional[str] = "name",
    partition_col: Optional[str] = None,
) -> list[Cell]:
    """
    Build cells from a table.

    Geometry is read from a WKT column when present, otherwise cells are
    points at (x, y).

    Parameters
    ----------
    df : pd.DataFrame
        One row per cell.
    geometry_col : str, default="geometry"
        Column with WKT geometries.
    x_col, y_col : str
        Centroid columns, used when ``geometry_col`` is absent.
    class_col : str, optional
        Column with classification tags.
    name_col : str, optional
        Column with cell names.
    partition_col : str, optional
        Column naming the enclosing partition (e.g. TMA core). One
        ``Partition`` is created per distinct value and set as cell parent.

    Returns
    -------
    list of Cell
        Cells in row order.

    Examples
    --------
    >>> df = pd.DataFrame({"x": [0.0, 10.0], "y": [0.0, 5.0], "classification": ["Tumor", "CD8"]})
    >>> cells = cells_from_frame(df)
    >>> cells[1].classification
    'CD8'
    """
    if geometry_col in df.columns:
        geometries = shapely.from_wkt(df[geometry_col].to_numpy())
    elif x_col in df.columns and y_col in df.columns:
        geometries = shapely.points(df[[x_col, y_col]].to_numpy(dtype=float))
    else:
        raise KeyError(
            f"Need a '{geometry_col}' column or '{x_col}'/'{y_col}' columns. "
            f"Available: {list(df.columns)}"
        )

    classes = _optional_column(df, class_col)
    names = _optional_column(df, name_col)

    partitions: dict = {}
    parents = [None] * len(df)
    if partition_col is not None:
        if partition_col not in df.columns:
            raise KeyError(f"Partition column '{partition_col}' not found. Available: {list(df.columns)}")
        for i, value in enumerate(df[partition_col].tolist()):
            if value is None or value != value:
                continue
            key = str(value)
            if key not in partitions:
                partitions[key] = Partition(key)
            parents[i] = partitions[key]

    return [
        Cell(geometry=geometry, classification=cls, parent=parent, name=name)
        for geometry, cls, parent, name in zip(geometries, classes, parents, names)
    ]


def _optional_column(df, col: Optional[str]) -> list:
    if col is None or col not in df.columns:
        return [None] * len(df)
    return [None if v != v else str(v) for v in df[col].tolist()]


def load_cells_csv(path: str, **kwargs) -> list[Cell]:
    """
    Load cells from a CSV or TSV file.

    See ``cells_from_frame`` for keyword arguments.
    """
    import pandas as pd

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    sep = "\t" if path.suffix in (".tsv", ".txt") else ","
    return cells_from_frame(pd.read_csv(path, sep=sep), **kwargs)


def load_cells_geojson(
    path: str,
    class_property: str = "classification",
    name_property: str = "name",
    partition_property: Optional[str] = None,
) -> list[Cell]:
    """
    Load cells from a GeoJSON FeatureCollection.

    ``classification`` may be a plain string or an object with a ``name``
    entry, as written by common image-analysis exporters. When
    ``partition_property`` is given, one ``Partition`` is created per distinct
    value and set as cell parent; features lacking the property have none.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        features = data.get("features", [])
    elif isinstance(data, list):
        features = data
    else:
        features = [data]

    partitions: dict = {}
    cells = []
    for feature in features:
        properties = feature.get("properties") or {}
        parent = None
        if partition_property is not None and properties.get(partition_property) is not None:
            key = str(properties[partition_property])
            if key not in partitions:
                partitions[key] = Partition(key)
            parent = partitions[key]
        classification = properties.get(class_property)
        if isinstance(classification, dict):
            classification = classification.get("name")
        geometry = feature.get("geometry")
        cells.append(
            Cell(
                geometry=shape(geometry) if geometry else None,
                classification=classification,
                parent=parent,
                name=properties.get(name_property),
            )
        )
    return cells


def cells_by_class(cells, classification: str) -> list[Cell]:
    """Cells tagged with ``classification``."""
    return [cell for cell in cells if cell.classification == classification]


def point_cell(x: float, y: float, classification: Optional[str] = None, **kwargs) -> Cell:
    """Point-geometry cell at (x, y)."""
    return Cell(geometry=Point(x, y), classification=classification, **kwargs)
