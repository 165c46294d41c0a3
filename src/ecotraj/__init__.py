"""Ecological Trajectory Analysis on dissimilarity matrices.

**ecotraj** represents the temporal dynamics of ecological entities (sites,
individuals, communities) as survey-ordered sequences of states in a space
defined only by pairwise dissimilarities, and derives geometric descriptors,
comparisons and transformations of those trajectories without ever
constructing coordinates.

Core Classes (Top-Level Exports)
--------------------------------
Trajectories : Dissimilarity matrix bound to entity/survey/time metadata
    Build with ``define_trajectories``; subset with ``subset_trajectories``.
TrajectoryError : Base class of all ecotraj errors

Submodule Organization
----------------------
trajectories : Data model
    >>> from ecotraj.trajectories import define_trajectories, subset_trajectories

ops : Low-level operations
    Metricity checks, local triangle correction and coordinate-free geometry.

    >>> from ecotraj.ops import is_metric, triangle_angle, orthogonal_projection

metrics : Single-trajectory metrics
    >>> from ecotraj.metrics import trajectory_lengths, trajectory_directionality

comparison : Multi-trajectory comparison
    >>> from ecotraj.comparison import trajectory_distances, trajectory_convergence

transforms : Centering, smoothing and interpolation
    >>> from ecotraj.transforms import center_trajectories, interpolate_trajectories

errors : Exceptions and warnings

Common Usage
------------
>>> import numpy as np
>>> from scipy.spatial.distance import pdist, squareform
>>> from ecotraj import define_trajectories
>>> from ecotraj.metrics import trajectory_metrics
>>> coords = np.array([[0, 0], [0, 1], [0, 2], [1, 0], [2, 1], [2, 3]])
>>> x = define_trajectories(
...     squareform(pdist(coords)),
...     entities=["A", "A", "A", "B", "B", "B"],
...     times=[2000, 2005, 2010, 2000, 2005, 2010],
... )
>>> metrics = trajectory_metrics(x)
>>> float(metrics.loc["A", "directionality"])
1.0

Notes
-----
The input dissimilarities may be non-Euclidean. Triangles violating the
triangle inequality are corrected locally by the angle and projection
primitives (see ``ecotraj.ops.metricity``); global corrections are left to
the caller.

References
----------
De Cáceres, M. et al. (2019). "Trajectory analysis in community ecology."
Ecological Monographs, 89(2), e01350.
"""

import logging

from ecotraj.errors import TrajectoryError
from ecotraj.trajectories import (
    Trajectories,
    define_trajectories,
    is_synchronous,
    subset_trajectories,
)

# Add NullHandler to prevent "No handler found" warnings if user doesn't configure logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Trajectories",
    "TrajectoryError",
    "define_trajectories",
    "is_synchronous",
    "subset_trajectories",
]
