"""
Comparison of trajectories.

Modules
-------
segments
    Distances between directed segments.
distances
    Trajectory dissimilarities (Hausdorff, SPD, DSPD, TSPD) and dynamic
    variation.
shifts
    Temporal shifts relative to reference trajectories.
convergence
    Mann-Kendall convergence and divergence tests.
"""

from ecotraj.comparison.convergence import (
    ConvergenceResult,
    trajectory_convergence,
    trend_test,
)
from ecotraj.comparison.distances import (
    DynamicVariation,
    dynamic_variation,
    trajectory_distances,
)
from ecotraj.comparison.segments import (
    SegmentDistances,
    segment_distances,
    two_segment_distance,
)
from ecotraj.comparison.shifts import trajectory_shifts

__all__ = [
    "ConvergenceResult",
    "DynamicVariation",
    "SegmentDistances",
    "dynamic_variation",
    "segment_distances",
    "trajectory_convergence",
    "trajectory_distances",
    "trajectory_shifts",
    "trend_test",
    "two_segment_distance",
]
