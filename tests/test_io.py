"""Tests for cell loaders and the command-line entry point."""

import json

import pandas as pd
import pytest

from proximitypy.cli import main
from proximitypy.io.loaders import (
    cells_by_class,
    cells_from_frame,
    load_cells_csv,
    load_cells_geojson,
    point_cell,
)


class TestCellsFromFrame:
    """Tests for cells_from_frame."""

    def test_xy_columns(self):
        """Test point cells from centroid columns."""
        df = pd.DataFrame({"x": [0.0, 10.0], "y": [0.0, 5.0], "classification": ["Tumor", "CD8"]})

        cells = cells_from_frame(df)

        assert len(cells) == 2
        assert (cells[1].geometry.x, cells[1].geometry.y) == (10.0, 5.0)
        assert [c.classification for c in cells] == ["Tumor", "CD8"]
        assert cells[0].name is None

    def test_wkt_column(self):
        """Test polygon cells from WKT."""
        df = pd.DataFrame(
            {
                "geometry": ["POLYGON ((0 0, 2 0, 2 2, 0 2, 0 0))"],
                "classification": ["Tumor"],
                "name": ["cell-1"],
            }
        )

        cell = cells_from_frame(df)[0]

        assert cell.geometry.area == pytest.approx(4.0)
        assert cell.name == "cell-1"

    def test_missing_geometry_columns(self):
        """Test a table without geometry raises KeyError."""
        with pytest.raises(KeyError):
            cells_from_frame(pd.DataFrame({"a": [1]}))

    def test_partition_column(self):
        """Test one shared Partition per distinct partition value."""
        df = pd.DataFrame(
            {"x": [0.0, 1.0, 2.0], "y": [0.0, 0.0, 0.0], "core": ["A-1", "A-1", "B-2"]}
        )

        cells = cells_from_frame(df, partition_col="core")

        assert cells[0].parent is cells[1].parent
        assert cells[0].parent.name == "A-1"
        assert cells[2].parent.name == "B-2"

    def test_missing_classification(self):
        """Test missing classifications become None."""
        df = pd.DataFrame({"x": [0.0, 1.0], "y": [0.0, 0.0], "classification": ["Tumor", None]})

        cells = cells_from_frame(df)

        assert cells[1].classification is None
        assert cells_by_class(cells, "Tumor") == [cells[0]]


class TestFileLoaders:
    """Tests for file loaders."""

    def test_csv(self, tmp_path):
        """Test loading a CSV table."""
        path = tmp_path / "cells.csv"
        pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 4.0], "classification": ["a", "b"]}).to_csv(
            path, index=False
        )

        cells = load_cells_csv(str(path))

        assert [c.classification for c in cells] == ["a", "b"]

    def test_tsv(self, tmp_path):
        """Test loading a tab-separated table."""
        path = tmp_path / "cells.tsv"
        pd.DataFrame({"x": [1.0], "y": [3.0]}).to_csv(path, sep="\t", index=False)

        assert len(load_cells_csv(str(path))) == 1

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_cells_csv(str(tmp_path / "nope.csv"))

    def test_geojson(self, tmp_path):
        """Test loading a FeatureCollection with object classifications."""
        path = tmp_path / "cells.geojson"
        data = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {"type": "Point", "coordinates": [1.0, 2.0]},
                    "properties": {"classification": {"name": "Tumor", "color": [255, 0, 0]}},
                },
                {
                    "type": "Feature",
                    "geometry": {
                        "type": "Polygon",
                        "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
                    },
                    "properties": {"classification": "CD8", "name": "r1"},
                },
            ],
        }
        path.write_text(json.dumps(data))

        cells = load_cells_geojson(str(path))

        assert [c.classification for c in cells] == ["Tumor", "CD8"]
        assert cells[1].geometry.area == pytest.approx(1.0)
        assert cells[1].name == "r1"

    def test_geojson_partition_property(self, tmp_path):
        """Test one shared Partition per distinct GeoJSON partition value."""
        path = tmp_path / "cells.geojson"
        features = [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [x, 0.0]},
                "properties": {"classification": "Tumor", **({"core": core} if core else {})},
            }
            for x, core in [(0.0, "A-1"), (1.0, "A-1"), (2.0, "B-2"), (3.0, None)]
        ]
        path.write_text(json.dumps({"type": "FeatureCollection", "features": features}))

        cells = load_cells_geojson(str(path), partition_property="core")

        assert cells[0].parent is cells[1].parent
        assert cells[0].parent.name == "A-1"
        assert cells[2].parent.name == "B-2"
        assert cells[3].parent is None

    def test_point_cell(self):
        """Test a point cell carries position, class and keyword fields."""
        cell = point_cell(1.5, -2.0, "CD8", name="r1")

        assert (cell.geometry.x, cell.geometry.y) == (1.5, -2.0)
        assert cell.classification == "CD8"
        assert cell.name == "r1"


class TestCommandLine:
    """Tests for the proximitypy command."""

    def test_run(self, tmp_path):
        """Test a full run writes the measurement tables."""
        cells_path = tmp_path / "cells.csv"
        pd.DataFrame(
            {
                "x": [0.0, 0.0, 0.0, 10.0],
                "y": [0.0, 4.0, 2.0, 2.0],
                "classification": ["Tumor", "Tumor", "CD8", "CD8"],
                "name": ["A", "B", "R1", "R2"],
            }
        ).to_csv(cells_path, index=False)
        out = tmp_path / "out"

        main(
            [
                "--cells", str(cells_path),
                "--target", "Tumor",
                "--reference", "CD8",
                "--threshold", "3",
                "--max-neighbors", "2",
                "--output-dir", str(out),
            ]
        )

        image = pd.read_csv(out / "image_measurements.csv")
        cells = pd.read_csv(out / "cell_measurements.csv")
        assert image.loc[0, "Total count of Tumor"] == 2
        assert list(cells["cell"]) == ["A", "B"]
        assert (out / "config.json").exists()

    def test_partitioned_run(self, tmp_path):
        """Test a partition column switches to per-partition analysis."""
        cells_path = tmp_path / "cells.csv"
        pd.DataFrame(
            {
                "x": [0.0, 50.0, 1.0, 51.0],
                "y": [0.0, 0.0, 0.0, 0.0],
                "classification": ["Tumor", "Tumor", "CD8", "CD8"],
                "core": ["A-1", "B-1", "A-1", "B-1"],
            }
        ).to_csv(cells_path, index=False)
        out = tmp_path / "out"

        main(
            [
                "--cells", str(cells_path),
                "--target", "Tumor",
                "--reference", "CD8",
                "--threshold", "2",
                "--max-neighbors", "1",
                "--partition-col", "core",
                "--output-dir", str(out),
            ]
        )

        partitions = pd.read_csv(out / "partition_measurements.csv")
        assert sorted(partitions["partition"]) == ["A-1", "B-1"]

    def test_partitioned_geojson_run(self, tmp_path):
        """Test a partition property in GeoJSON input drives per-partition analysis."""
        cells_path = tmp_path / "cells.geojson"
        features = [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [x, 0.0]},
                "properties": {"classification": cls, "core": core},
            }
            for x, cls, core in [
                (0.0, "Tumor", "A-1"),
                (50.0, "Tumor", "B-1"),
                (1.0, "CD8", "A-1"),
                (51.0, "CD8", "B-1"),
            ]
        ]
        cells_path.write_text(json.dumps({"type": "FeatureCollection", "features": features}))
        out = tmp_path / "out"

        main(
            [
                "--cells", str(cells_path),
                "--target", "Tumor",
                "--reference", "CD8",
                "--threshold", "2",
                "--max-neighbors", "1",
                "--partition-col", "core",
                "--output-dir", str(out),
            ]
        )

        partitions = pd.read_csv(out / "partition_measurements.csv")
        assert sorted(partitions["partition"]) == ["A-1", "B-1"]
