"""Tests for distance statistics and the Weibull fit."""

import logging

import numpy as np
import pytest
from shapely.geometry import Point

from proximitypy.analysis.tracker import NeighborTracker
from proximitypy.core.cells import Cell
from proximitypy.core.errors import WeibullFitError
from proximitypy.stats.distributions import (
    collect_distances,
    descriptive_statistics,
    distance_statistics,
    fit_weibull,
    weibull_neg_log_likelihood,
)


def make_trackers(distance_lists):
    trackers = {}
    for i, distances in enumerate(distance_lists):
        tracker = NeighborTracker(Cell(Point(i, 0)))
        for n, d in enumerate(distances):
            tracker.add_data(n, Point(i, n + 1), d)
        trackers[tracker.cell] = tracker
    return trackers


class TestWeibullFit:
    """Tests for fit_weibull."""

    def test_recovers_parameters(self):
        """Test shape 2 / scale 5 are recovered within 10%."""
        rng = np.random.default_rng(42)
        x = rng.weibull(2.0, 5000) * 5.0

        shape, scale = fit_weibull(x)

        assert abs(shape - 2.0) / 2.0 < 0.1
        assert abs(scale - 5.0) / 5.0 < 0.1

    def test_exponential(self):
        """Test shape close to 1 for exponential data."""
        rng = np.random.default_rng(42)
        x = rng.exponential(3.0, 5000)

        shape, scale = fit_weibull(x)

        assert shape == pytest.approx(1.0, rel=0.1)
        assert scale == pytest.approx(3.0, rel=0.1)

    def test_empty(self):
        """Test empty data raises WeibullFitError."""
        with pytest.raises(WeibullFitError):
            fit_weibull([])

    def test_negative_data(self):
        """Test negative observations raise WeibullFitError."""
        with pytest.raises(WeibullFitError):
            fit_weibull([1.0, -2.0, 3.0])


class TestNegLogLikelihood:
    """Tests for weibull_neg_log_likelihood."""

    def test_invalid_parameters(self):
        """Test non-positive parameters give +inf."""
        x = np.array([1.0, 2.0])

        assert weibull_neg_log_likelihood((0.0, 1.0), x) == np.inf
        assert weibull_neg_log_likelihood((1.0, -1.0), x) == np.inf

    def test_negative_observation(self):
        """Test negative observations give +inf."""
        assert weibull_neg_log_likelihood((1.0, 1.0), np.array([1.0, -0.5])) == np.inf

    def test_zero_observation_finite(self):
        """Test zeros use the finite limit log(k) - log(lambda)."""
        k, lam = 2.0, 3.0
        value = weibull_neg_log_likelihood((k, lam), np.array([0.0]))

        assert value == pytest.approx(-(np.log(k) - np.log(lam)))

    def test_exponential_case(self):
        """Test shape 1 reduces to the exponential log-likelihood."""
        x = np.array([0.5, 1.0, 2.0])
        lam = 1.5
        expected = -np.sum(-np.log(lam) - x / lam)

        assert weibull_neg_log_likelihood((1.0, lam), x) == pytest.approx(expected)


class TestDescriptiveStatistics:
    """Tests for descriptive_statistics."""

    def test_values(self):
        """Test mean, median and sample standard deviation."""
        mean, median, std = descriptive_statistics([1.0, 2.0, 3.0, 4.0])

        assert mean == 2.5
        assert median == 2.5
        assert std == pytest.approx(np.std([1.0, 2.0, 3.0, 4.0], ddof=1))

    def test_single_value(self):
        """Test a single value has zero spread."""
        assert descriptive_statistics([7.0]) == (7.0, 7.0, 0.0)

    def test_empty(self):
        """Test empty input gives NaN."""
        assert all(np.isnan(v) for v in descriptive_statistics([]))


class TestDistanceStatistics:
    """Tests for distance_statistics."""

    def test_skips_missing_ranks(self):
        """Test cells lacking the neighbor are skipped."""
        trackers = make_trackers([[1.0, 2.0], [3.0], [5.0, 6.0]])

        assert list(collect_distances(trackers, 1)) == [2.0, 6.0]
        assert distance_statistics(trackers, 1).count == 2

    def test_subset(self):
        """Test statistics restricted to a subset of targets."""
        trackers = make_trackers([[1.0], [3.0], [5.0]])
        cells = list(trackers)

        stats = distance_statistics(trackers, 0, subset=cells[1:])

        assert stats.count == 2
        assert stats.mean == 4.0

    def test_fit(self):
        """Test the Weibull parameters are filled for enough data."""
        rng = np.random.default_rng(42)
        trackers = make_trackers([[d] for d in rng.weibull(1.5, 500) * 10.0])

        stats = distance_statistics(trackers, 0)

        assert stats.count == 500
        assert np.isfinite(stats.shape)
        assert np.isfinite(stats.scale)

    def test_failed_fit_downgraded(self, caplog):
        """Test a failed fit gives NaN and a warning, not an error."""
        trackers = make_trackers([[1.0], [2.0]])

        with caplog.at_level(logging.WARNING):
            stats = distance_statistics(trackers, 3, context="Core 7")

        assert stats.count == 0
        assert np.isnan(stats.mean)
        assert np.isnan(stats.shape)
        assert np.isnan(stats.scale)
        assert "Unable to extract Weibull parameters for Core 7" in caplog.text

    def test_to_dict(self):
        """Test dictionary form."""
        trackers = make_trackers([[1.0], [3.0]])

        d = distance_statistics(trackers, 0).to_dict()

        assert set(d) == {"count", "mean", "median", "std", "shape", "scale"}
