"""
Shape analysis of paired samples via principal component analysis.

Used to characterize how execution duration and overlap percentage vary
together for a group of executions. The covariance matrix of the centered
samples is eigen-decomposed: the eigenvectors are the principal axes of the
sample cloud and the eigenvalues are the variance along each axis. The
variance ratio (largest eigenvalue over the total) tells how elongated the
cloud is. Values near 1 mean the two measures are close to linearly
dependent; for 2D data the ratio is never below 0.5.
"""

import logging

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from overlapscope.analysis.numeric import as_float_array, kahan_sum
from overlapscope.analysis.overlap import overlap_to_percent
from overlapscope.analysis.statistics import compute_statistics
from overlapscope.analysis.types import GroupShapeSummary, ShapeRecord
from overlapscope.constants import AnalysisConstants as AC

logger = logging.getLogger(__name__)

__all__ = ["analyze_shape", "find_shape", "rank_groups_by_shape"]


def find_shape(
    x_values: Sequence[Any], y_values: Sequence[Any]
) -> tuple[np.ndarray, np.ndarray]:
    """
    Find the principal axes and their variances for a set of (x, y) samples.

    Args:
        x_values: First coordinate of each sample
        y_values: Second coordinate of each sample

    Returns:
        Tuple of (eigenvectors, eigenvalues). Eigenvectors is a 2x2 matrix
        whose columns are the axes; eigenvalues are in ascending order.

    Raises:
        ValueError: If fewer than 2 samples are given or lengths differ
    """
    x = as_float_array(x_values)
    y = as_float_array(y_values)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same length ({x.size} != {y.size})")

    n = x.size
    if n < 2:
        raise ValueError(f"Shape analysis requires at least 2 samples, got {n}")

    data = np.column_stack((x, y))
    centered = data - data.mean(axis=0)
    covariance = centered.T @ centered / (n - 1)

    eigenvalues, eigenvectors = np.linalg.eigh(covariance)
    return eigenvectors, eigenvalues


def analyze_shape(x_values: Sequence[Any], y_values: Sequence[Any]) -> ShapeRecord:
    """
    Build a ShapeRecord for a set of (x, y) samples.

    Eigenvalues within rounding error of zero are clipped to zero. A cloud
    with no variance at all (every sample identical) has a ratio of 1.0.

    Raises:
        ValueError: If fewer than 2 samples are given or lengths differ
    """
    eigenvectors, eigenvalues = find_shape(x_values, y_values)
    eigenvalues = np.clip(eigenvalues, 0.0, None)

    total_variance = kahan_sum(eigenvalues)
    if total_variance > 0:
        variance_ratio = min(float(eigenvalues.max()) / total_variance, 1.0)
    else:
        variance_ratio = 1.0

    return ShapeRecord(
        eigenvectors=eigenvectors,
        eigenvalues=eigenvalues,
        variance_ratio=variance_ratio,
    )


def rank_groups_by_shape(
    samples_by_group: Mapping[int, tuple[Sequence[Any], Sequence[Any]]],
    min_samples: int = AC.DEFAULT_MIN_PCA_SAMPLES,
) -> list[GroupShapeSummary]:
    """
    Rank groups of executions by how strongly duration follows overlap.

    For each group the overlap is converted to a percentage of duration and
    the (duration, overlap %) cloud is analyzed.

    Args:
        samples_by_group: Group ID -> (durations_ns, overlaps_ns)
        min_samples: Groups with fewer executions are skipped (at least 2)

    Returns:
        One summary per analyzed group, sorted by ascending variance ratio
    """
    if min_samples < 2:
        raise ValueError(f"min_samples must be at least 2, got {min_samples}")

    summaries: list[GroupShapeSummary] = []
    skipped = 0
    for group_id, (durations, overlaps) in samples_by_group.items():
        if len(durations) < min_samples:
            skipped += 1
            continue

        duration_array = as_float_array(durations)
        overlap_percent = overlap_to_percent(duration_array, overlaps)

        summaries.append(
            GroupShapeSummary(
                group_id=group_id,
                sample_count=duration_array.size,
                duration_statistics=compute_statistics(np.sort(duration_array)),
                shape=analyze_shape(duration_array, overlap_percent),
            )
        )

    logger.info(
        f"Analyzed {len(summaries)} groups, skipped {skipped} with fewer "
        f"than {min_samples} samples"
    )
    summaries.sort(key=lambda s: s.shape.variance_ratio)
    return summaries
