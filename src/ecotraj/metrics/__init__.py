"""
Single-trajectory metrics.

Modules
-------
trajectory
    Lengths, speeds, angles, directionality, internal variation, projection
    and the aggregate ``trajectory_metrics`` report.
circular
    Circular summaries of angles.
"""

from ecotraj.metrics.circular import circular_summary, mean_resultant_length
from ecotraj.metrics.trajectory import (
    trajectory_angles,
    trajectory_directionality,
    trajectory_internal_variation,
    trajectory_lengths,
    trajectory_metrics,
    trajectory_projection,
    trajectory_speeds,
    trajectory_variability,
)

__all__ = [
    "circular_summary",
    "mean_resultant_length",
    "trajectory_angles",
    "trajectory_directionality",
    "trajectory_internal_variation",
    "trajectory_lengths",
    "trajectory_metrics",
    "trajectory_projection",
    "trajectory_speeds",
    "trajectory_variability",
]
