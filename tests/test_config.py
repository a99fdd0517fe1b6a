"""Tests for configuration dataclasses."""

import pytest

from proximitypy.core.config import (
    ImageCalibration,
    LineStyle,
    Metric,
    PartitionMode,
    ProximityConfig,
)
from proximitypy.core.errors import InvalidArgument


class TestProximityConfig:
    """Tests for ProximityConfig."""

    def test_defaults(self):
        """Test default configuration values."""
        config = ProximityConfig()

        assert config.max_neighbors == 10
        assert config.partition_mode is PartitionMode.WHOLE_IMAGE
        assert config.metric is Metric.EDGE
        assert config.line_style is LineStyle.LINE
        assert config.keep_hidden is False

    def test_n_buckets(self):
        """Test bucket array size is max_neighbors + 1."""
        for n in (0, 1, 5, 10):
            assert ProximityConfig(max_neighbors=n).n_buckets == n + 1

    def test_negative_max_neighbors(self):
        """Test negative max_neighbors is rejected."""
        with pytest.raises(InvalidArgument):
            ProximityConfig(max_neighbors=-1)

    def test_non_integer_max_neighbors(self):
        """Test floats and booleans are rejected."""
        with pytest.raises(InvalidArgument):
            ProximityConfig(max_neighbors=2.5)
        with pytest.raises(InvalidArgument):
            ProximityConfig(max_neighbors=True)

    def test_invalid_argument_is_value_error(self):
        """Test InvalidArgument can be caught as ValueError."""
        with pytest.raises(ValueError):
            ProximityConfig(max_neighbors=-3)

    def test_enum_coercion(self):
        """Test enum fields accept their string values."""
        config = ProximityConfig(
            partition_mode="per_partition", metric="centroid", line_style="double_arrow"
        )

        assert config.partition_mode is PartitionMode.PER_PARTITION
        assert config.metric is Metric.CENTROID
        assert config.line_style is LineStyle.DOUBLE_ARROW

    def test_unknown_metric(self):
        """Test unknown enum values raise ValueError."""
        with pytest.raises(ValueError):
            ProximityConfig(metric="manhattan")

    def test_to_dict(self):
        """Test dictionary form holds native values."""
        d = ProximityConfig(max_neighbors=3, metric=Metric.CENTROID).to_dict()

        assert d["max_neighbors"] == 3
        assert d["metric"] == "centroid"
        assert d["partition_mode"] == "whole_image"

    def test_save_load(self, tmp_path):
        """Test JSON save and load."""
        path = tmp_path / "config.json"
        config = ProximityConfig(
            max_neighbors=4,
            partition_mode=PartitionMode.PER_PARTITION,
            line_style=LineStyle.ARROW,
            keep_hidden=True,
        )
        config.save(str(path))
        loaded = ProximityConfig.load(str(path))

        assert loaded == config

    def test_from_dict_ignores_unknown_keys(self):
        """Test unrelated keys are ignored."""
        config = ProximityConfig.from_dict({"max_neighbors": 2, "colour": "red"})

        assert config.max_neighbors == 2


class TestImageCalibration:
    """Tests for ImageCalibration."""

    def test_pixel_size_average(self):
        """Test pixel size is the mean of width and height."""
        assert ImageCalibration(0.5, 0.25).pixel_size == pytest.approx(0.375)

    def test_default_uncalibrated(self):
        """Test default calibration is one unit per pixel."""
        assert ImageCalibration().pixel_size == 1.0
