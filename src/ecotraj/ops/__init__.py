"""
Low-level operations on dissimilarity matrices.

Submodules
----------
metricity : Triangle inequality checks, local triplet correction
geometry : Coordinate-free angles, projections, centroids and combinations
"""

from ecotraj.ops.geometry import (
    ProjectionResult,
    centroid_distances,
    centroid_sum_of_squares,
    combination_distances,
    distance_to_combination,
    gower_matrix,
    interpolation_weights,
    orthogonal_projection,
    point_to_trajectory_distance,
    project_on_segment,
    segment_length,
    triangle_angle,
    turning_angle,
)
from ecotraj.ops.metricity import (
    correct_triplet,
    is_metric,
    triangle_violations,
)

__all__ = [
    "ProjectionResult",
    "centroid_distances",
    "centroid_sum_of_squares",
    "combination_distances",
    "correct_triplet",
    "distance_to_combination",
    "gower_matrix",
    "interpolation_weights",
    "is_metric",
    "orthogonal_projection",
    "point_to_trajectory_distance",
    "project_on_segment",
    "segment_length",
    "triangle_angle",
    "triangle_violations",
    "turning_angle",
]
