"""Triangle inequality checks and local triplet correction.

Dissimilarity coefficients used in community ecology are often semi-metric:
some triplets of states violate the triangle inequality. This module checks
metricity and provides the *local* correction used by the angle and
projection primitives.

Local versus global correction
------------------------------
A local correction patches only the triangle at hand and is never written
back to the dissimilarity matrix. All other distances are preserved
exactly, but two triangles sharing an edge may see that edge corrected
differently.

Global transforms (square root of the dissimilarities, eigenvalue
correction, metric MDS) are consistent across triplets but distort angles
and directionality, strongly so for the square root. They are preprocessing
steps that callers may apply to the matrix before
:func:`ecotraj.trajectories.define_trajectories`; this package does not
perform them.
"""

from __future__ import annotations

import logging
import warnings
from typing import Literal

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from ecotraj.errors import NonMetricInputWarning
from ecotraj.trajectories import Trajectories

__all__ = [
    "correct_triplet",
    "is_metric",
    "triangle_violations",
]

logger = logging.getLogger(__name__)

_DEFAULT_TOLERANCE = 1e-4

CorrectionMethod = Literal["clamp", "additive"]


def _matrix(d: Trajectories | ArrayLike) -> NDArray[np.float64]:
    if isinstance(d, Trajectories):
        return d.distances
    arr = np.asarray(d, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {arr.shape}")
    return arr


def is_metric(
    d: Trajectories | ArrayLike,
    tol: float = _DEFAULT_TOLERANCE,
    *,
    warn: bool = False,
) -> bool:
    """
    Check whether a dissimilarity matrix satisfies the triangle inequality.

    Parameters
    ----------
    d : Trajectories or array-like, shape (n, n)
        Dissimilarities to check.
    tol : float, default=1e-4
        Tolerance added to the right-hand side of each inequality.
    warn : bool, default=False
        If True, emit a :class:`~ecotraj.errors.NonMetricInputWarning` when
        a violation is found.

    Returns
    -------
    bool
        True if ``d[i, k] <= d[i, j] + d[j, k] + tol`` for every triplet.

    Notes
    -----
    The scan is exhaustive, O(n³) in time and O(n²) in memory, vectorized
    over the first and last vertex for each middle vertex ``j``.
    Returning False is informational: downstream metrics correct offending
    triangles locally.

    Examples
    --------
    >>> import numpy as np
    >>> from ecotraj.ops.metricity import is_metric
    >>> is_metric(np.array([[0, 1, 5], [1, 0, 1], [5, 1, 0]]))
    False
    """
    mat = _matrix(d)
    for j in range(mat.shape[0]):
        bound = mat[:, j][:, np.newaxis] + mat[j, :][np.newaxis, :] + tol
        if np.any(mat > bound):
            if warn:
                warnings.warn(
                    "Dissimilarities violate the triangle inequality; angles and "
                    "projections will correct offending triangles locally.",
                    NonMetricInputWarning,
                    stacklevel=2,
                )
            return False
    return True


def triangle_violations(
    d: Trajectories | ArrayLike, tol: float = _DEFAULT_TOLERANCE
) -> pd.DataFrame:
    """
    List triplets violating the triangle inequality.

    Parameters
    ----------
    d : Trajectories or array-like, shape (n, n)
        Dissimilarities to check.
    tol : float, default=1e-4
        Tolerance, as in :func:`is_metric`.

    Returns
    -------
    pd.DataFrame
        Columns ``i``, ``j``, ``k`` and ``excess``, one row per violation of
        ``d[i, k] <= d[i, j] + d[j, k]`` with ``i < k``. ``excess`` is the
        amount by which ``d[i, k]`` exceeds the path through ``j``.
    """
    mat = _matrix(d)
    n = mat.shape[0]
    upper = np.triu(np.ones((n, n), dtype=bool), k=1)
    records = []
    for j in range(n):
        excess = mat - (mat[:, j][:, np.newaxis] + mat[j, :][np.newaxis, :])
        ii, kk = np.nonzero((excess > tol) & upper)
        records.extend(
            (int(i), j, int(k), float(excess[i, k])) for i, k in zip(ii, kk)
        )
    return pd.DataFrame(records, columns=["i", "j", "k", "excess"])


def correct_triplet(
    d_ab: float,
    d_bc: float,
    d_ac: float,
    method: CorrectionMethod = "clamp",
) -> tuple[float, float, float]:
    """
    Locally correct one triangle so that it satisfies the triangle inequality.

    Parameters
    ----------
    d_ab, d_bc, d_ac : float
        Side lengths of triangle (a, b, c).
    method : {"clamp", "additive"}, default="clamp"
        - "clamp": replace the violating side (the longest one) by the sum
          of the other two. The other two sides are preserved exactly.
        - "additive": add to all three sides the smallest constant that
          restores equality on the violating side.

    Returns
    -------
    tuple of float
        Corrected ``(d_ab, d_bc, d_ac)``. Unchanged if the triangle already
        satisfies the inequality.

    Examples
    --------
    >>> from ecotraj.ops.metricity import correct_triplet
    >>> correct_triplet(1.0, 1.0, 3.0)
    (1.0, 1.0, 2.0)
    >>> correct_triplet(1.0, 1.0, 3.0, method="additive")
    (2.0, 2.0, 4.0)
    """
    if method not in ("clamp", "additive"):
        raise ValueError(f"method must be 'clamp' or 'additive', got '{method}'")

    sides = [float(d_ab), float(d_bc), float(d_ac)]
    longest = int(np.argmax(sides))
    others = sum(sides) - sides[longest]
    excess = sides[longest] - others
    if excess <= 0.0:
        return sides[0], sides[1], sides[2]

    if method == "clamp":
        sides[longest] = others
    else:
        sides = [s + excess for s in sides]

    logger.debug(
        "Corrected triangle (%.6g, %.6g, %.6g) by %.6g using '%s'",
        d_ab,
        d_bc,
        d_ac,
        excess,
        method,
    )
    return sides[0], sides[1], sides[2]
