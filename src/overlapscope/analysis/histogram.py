"""Two-dimensional histogram of duration vs overlap samples."""

import logging

from collections.abc import Sequence
from typing import Any

import numpy as np

from overlapscope.analysis.numeric import as_float_array
from overlapscope.analysis.types import Histogram2D
from overlapscope.constants import AnalysisConstants as AC

logger = logging.getLogger(__name__)


def _bin_edges(values: np.ndarray, bins: int) -> np.ndarray:
    """Edges of `bins` equal-width bins over [min, max]."""
    low = float(values.min())
    high = float(values.max())
    if high > low:
        return np.linspace(low, high, bins + 1)
    # Constant input: unit-width bins starting at the value
    return low + np.arange(bins + 1, dtype=np.float64)


def make_histogram_2d(
    x_values: Sequence[Any],
    y_values: Sequence[Any],
    x_bins: int = AC.DEFAULT_HISTOGRAM_BINS,
    y_bins: int = AC.DEFAULT_HISTOGRAM_BINS,
) -> Histogram2D:
    """
    Count paired samples in an x_bins by y_bins grid.

    Bins are equal width between the minimum and maximum of each dimension.
    A dimension with a single distinct value gets unit-width bins starting at
    that value.

    Args:
        x_values: First coordinate of each sample (e.g. duration in seconds)
        y_values: Second coordinate (e.g. overlap percentage)
        x_bins: Number of bins along x
        y_bins: Number of bins along y

    Returns:
        Histogram2D with bin lower edges and counts[x_bin][y_bin]. Empty input
        yields empty labels and an empty count matrix.

    Raises:
        ValueError: If lengths differ or a bin count is not positive
    """
    if x_bins < 1 or y_bins < 1:
        raise ValueError(f"Bin counts must be positive, got {x_bins}x{y_bins}")

    x = as_float_array(x_values)
    y = as_float_array(y_values)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same length ({x.size} != {y.size})")

    if x.size == 0:
        return Histogram2D(
            x_labels=np.zeros(0),
            y_labels=np.zeros(0),
            counts=np.zeros((0, 0), dtype=np.int64),
        )

    # The last bin is closed, so the maximum of each dimension lands in it
    counts, x_edges, y_edges = np.histogram2d(
        x, y, bins=(_bin_edges(x, x_bins), _bin_edges(y, y_bins))
    )

    logger.debug(
        f"Histogram of {x.size} samples: x in [{x.min()}, {x.max()}], "
        f"y in [{y.min()}, {y.max()}]"
    )
    return Histogram2D(
        x_labels=x_edges[:-1], y_labels=y_edges[:-1], counts=counts.astype(np.int64)
    )
