"""
Tests for the two-dimensional duration/overlap histogram.
"""

import numpy as np
import pytest

from overlapscope.analysis.histogram import make_histogram_2d


class TestMakeHistogram2D:
    def test_counts_and_labels(self):
        histogram = make_histogram_2d([0, 1, 2, 3, 4], [0, 0, 10, 10, 10], x_bins=4, y_bins=2)

        assert histogram.x_labels.tolist() == [0.0, 1.0, 2.0, 3.0]
        assert histogram.y_labels.tolist() == [0.0, 5.0]
        assert histogram.counts.shape == (4, 2)
        assert histogram.counts.sum() == 5
        # The maximum is clamped into the last bin
        assert histogram.counts[3, 1] == 2
        assert histogram.counts[0, 0] == 1

    def test_log_counts(self):
        histogram = make_histogram_2d([0, 0, 1], [0, 0, 1], x_bins=2, y_bins=2)

        assert histogram.log_counts[0, 0] == pytest.approx(np.log(3))
        assert histogram.log_counts[0, 1] == 0.0

    def test_constant_values_land_in_first_bin(self):
        histogram = make_histogram_2d([5, 5, 5], [1, 2, 3], x_bins=3, y_bins=3)

        assert histogram.counts[0].sum() == 3
        assert histogram.x_labels.tolist() == [5.0, 6.0, 7.0]
        assert histogram.counts.dtype == np.int64

    def test_matches_numpy_histogram(self):
        rng = np.random.default_rng(4)
        x = rng.normal(size=200)
        y = rng.uniform(0, 100, size=200)

        histogram = make_histogram_2d(x, y, x_bins=6, y_bins=5)

        expected, x_edges, y_edges = np.histogram2d(x, y, bins=(6, 5))
        assert histogram.counts.tolist() == expected.astype(np.int64).tolist()
        assert histogram.x_labels == pytest.approx(x_edges[:-1])
        assert histogram.y_labels == pytest.approx(y_edges[:-1])

    def test_empty_input(self):
        histogram = make_histogram_2d([], [])

        assert histogram.counts.shape == (0, 0)
        assert histogram.x_labels.size == 0

    def test_invalid_bins(self):
        with pytest.raises(ValueError):
            make_histogram_2d([1], [1], x_bins=0)

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            make_histogram_2d([1, 2], [1])
