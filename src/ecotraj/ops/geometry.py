"""Coordinate-free geometric primitives.

Every function in this module works on pairwise dissimilarities only. No
coordinates are ever constructed: angles follow from the law of cosines,
projections from the same triangle relations, and centroids, weighted
averages and centred positions from the Huygens identity and the doubly
centred Gram (Gower) matrix.

The formulas are exact for Euclidean-embeddable dissimilarities. For other
metric or near-metric inputs they are the natural generalization; triangles
violating the triangle inequality are corrected locally (see
:mod:`ecotraj.ops.metricity`) and negative squared distances arising from
non-Euclidean Gram matrices are clipped to zero.

Key relations
-------------
Law of cosines, angle at ``b`` in triangle (a, b, c):

.. math::

    \\cos\\theta = \\frac{d_{ab}^2 + d_{bc}^2 - d_{ac}^2}{2 d_{ab} d_{bc}}

Sum of squares around the centroid of ``n`` states:

.. math::

    SS = \\frac{1}{n} \\sum_{i<j} d_{ij}^2

Squared norm of a zero-sum combination :math:`\\gamma` of states:

.. math::

    \\left\\lVert \\sum_k \\gamma_k x_k \\right\\rVert^2
        = -\\tfrac{1}{2} \\gamma^T D^{(2)} \\gamma = \\gamma^T G \\gamma
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ecotraj.errors import DegenerateSegmentError, OutOfRangeTargetError
from ecotraj.ops.metricity import CorrectionMethod, correct_triplet

__all__ = [
    "ProjectionResult",
    "centroid_distances",
    "centroid_sum_of_squares",
    "combination_distances",
    "distance_to_combination",
    "gower_matrix",
    "interpolation_weights",
    "orthogonal_projection",
    "point_to_trajectory_distance",
    "project_on_segment",
    "segment_length",
    "triangle_angle",
    "turning_angle",
]

logger = logging.getLogger(__name__)

# Slack on relative segment positions before a foot counts as outside
_RANGE_TOLERANCE = 1e-8


def segment_length(d: NDArray[np.float64], a: int, b: int) -> float:
    """Length of the segment joining states ``a`` and ``b``."""
    return float(d[a, b])


def triangle_angle(
    d_ab: float,
    d_bc: float,
    d_ac: float,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> float:
    """
    Interior angle at vertex ``b`` of triangle (a, b, c).

    Parameters
    ----------
    d_ab, d_bc, d_ac : float
        Side lengths.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction applied when the triangle violates the triangle
        inequality. None disables it; the cosine is still clipped to
        [-1, 1].

    Returns
    -------
    float
        Angle in radians, in [0, π]. Collinear, consistently directed
        states give π.

    Raises
    ------
    DegenerateSegmentError
        If ``d_ab`` or ``d_bc`` is zero.

    Examples
    --------
    >>> from ecotraj.ops.geometry import triangle_angle
    >>> round(triangle_angle(1.0, 1.0, 2 ** 0.5), 6)  # right angle
    1.570796
    """
    if d_ab <= 0.0 or d_bc <= 0.0:
        raise DegenerateSegmentError(
            f"Angle undefined for zero-length segment (d_ab={d_ab}, d_bc={d_bc})."
        )
    if correction is not None:
        d_ab, d_bc, d_ac = correct_triplet(d_ab, d_bc, d_ac, method=correction)
    cos_theta = (d_ab**2 + d_bc**2 - d_ac**2) / (2.0 * d_ab * d_bc)
    return float(np.arccos(np.clip(cos_theta, -1.0, 1.0)))


def turning_angle(
    d_ab: float,
    d_bc: float,
    d_ac: float,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> float:
    """
    Change of direction at ``b`` when moving a → b → c.

    Zero for a straight continuation, π for a full reversal.
    Same parameters and errors as :func:`triangle_angle`.
    """
    return float(np.pi - triangle_angle(d_ab, d_bc, d_ac, correction=correction))


def project_on_segment(
    d_pa: float,
    d_pb: float,
    d_ab: float,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> tuple[float, float]:
    """
    Project point ``p`` onto the line through segment (a, b).

    Parameters
    ----------
    d_pa, d_pb : float
        Distances from the point to the segment endpoints.
    d_ab : float
        Segment length.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local triangle correction.

    Returns
    -------
    t : float
        Position of the foot of the perpendicular relative to the segment
        (0 at ``a``, 1 at ``b``). Not clamped; values outside [0, 1] mean
        the foot lies outside the segment. 0 for zero-length segments.
    residual : float
        Distance from the point to the foot.
    """
    if d_ab <= 0.0:
        return 0.0, float(d_pa)
    if correction is not None:
        d_pa, d_pb, d_ab = correct_triplet(d_pa, d_pb, d_ab, method=correction)
    along = (d_pa**2 + d_ab**2 - d_pb**2) / (2.0 * d_ab)
    residual_sq = max(d_pa**2 - along**2, 0.0)
    return float(along / d_ab), float(np.sqrt(residual_sq))


@dataclass(frozen=True)
class ProjectionResult:
    """Orthogonal projection of a state onto a trajectory.

    Attributes
    ----------
    relative_position : float
        Cumulative length from the first state to the foot, divided by the
        total trajectory length, in [0, 1]. NaN for trajectories of zero
        length or fewer than two states.
    residual_distance : float
        Distance from the state to its projection.
    segment : int
        0-based index of the segment receiving the projection (-1 if none).
    segment_position : float
        Position of the foot within that segment, in [0, 1].
    out_of_range : bool
        True if the foot fell before the first state or after the last one
        and was clamped to the boundary.
    """

    relative_position: float
    residual_distance: float
    segment: int
    segment_position: float
    out_of_range: bool


def orthogonal_projection(
    d: NDArray[np.float64],
    point: int,
    trajectory_indices: ArrayLike,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> ProjectionResult:
    """
    Project a state onto a trajectory.

    Each segment is treated as a triangle with the state; the foot of the
    perpendicular is clamped to the segment and the segment with the
    smallest residual wins (first one on ties). Zero-length segments from
    repeated states are skipped, so overshooting a repeated end state is
    still reported as out of range.

    Parameters
    ----------
    d : NDArray[np.float64], shape (n, n)
        Dissimilarity matrix.
    point : int
        Index of the state to project.
    trajectory_indices : array-like of int
        Survey-ordered indices of the reference trajectory.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local triangle correction.

    Returns
    -------
    ProjectionResult
        Relative position and residual. The position is never extrapolated:
        feet beyond either end are clamped and flagged ``out_of_range``.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.spatial.distance import pdist, squareform
    >>> from ecotraj.ops.geometry import orthogonal_projection
    >>> coords = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [0.5, 1.0]])
    >>> d = squareform(pdist(coords))
    >>> res = orthogonal_projection(d, 3, [0, 1, 2])
    >>> round(res.relative_position, 3), round(res.residual_distance, 3)
    (0.25, 1.0)
    """
    idx = np.asarray(trajectory_indices, dtype=np.intp)
    if idx.size < 2:
        residual = float(d[point, idx[0]]) if idx.size == 1 else np.nan
        return ProjectionResult(np.nan, residual, -1, np.nan, True)

    starts, ends = idx[:-1], idx[1:]
    lengths = d[starts, ends]
    n_segments = len(lengths)
    positions = np.empty(n_segments)
    dists = np.empty(n_segments)
    for s in range(n_segments):
        d_pa = float(d[point, starts[s]])
        d_pb = float(d[point, ends[s]])
        t, residual = project_on_segment(
            d_pa, d_pb, float(lengths[s]), correction=correction
        )
        positions[s] = t
        if t < -_RANGE_TOLERANCE:
            dists[s] = d_pa
        elif t > 1.0 + _RANGE_TOLERANCE:
            dists[s] = d_pb
        else:
            dists[s] = residual

    # Zero-length segments (repeated states) never win unless all are.
    degenerate = lengths <= 0.0
    if degenerate.all():
        first, last = 0, n_segments - 1
    else:
        dists[degenerate] = np.inf
        nondegenerate = np.flatnonzero(~degenerate)
        first, last = int(nondegenerate[0]), int(nondegenerate[-1])

    best = int(np.argmin(dists))
    t_best = float(positions[best])
    out_of_range = (best == first and t_best < -_RANGE_TOLERANCE) or (
        best == last and t_best > 1.0 + _RANGE_TOLERANCE
    )
    t_clamped = float(np.clip(t_best, 0.0, 1.0))

    total = float(lengths.sum())
    if total > 0.0:
        foot = float(lengths[:best].sum()) + t_clamped * float(lengths[best])
        relative = foot / total
    else:
        relative = np.nan

    return ProjectionResult(
        relative_position=relative,
        residual_distance=float(dists[best]),
        segment=best,
        segment_position=t_clamped,
        out_of_range=bool(out_of_range),
    )


def point_to_trajectory_distance(
    d: NDArray[np.float64],
    point: int,
    trajectory_indices: ArrayLike,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> float:
    """Distance from a state to the nearest point of a trajectory's path.

    Single-state trajectories reduce to the point-to-point distance.
    """
    idx = np.asarray(trajectory_indices, dtype=np.intp)
    if idx.size == 1:
        return float(d[point, idx[0]])
    return orthogonal_projection(
        d, point, idx, correction=correction
    ).residual_distance


def centroid_sum_of_squares(
    d: NDArray[np.float64],
    indices: ArrayLike,
    exclude: ArrayLike | None = None,
) -> float:
    """
    Sum of squared distances of a set of states to their centroid.

    Parameters
    ----------
    d : NDArray[np.float64], shape (n, n)
        Dissimilarity matrix.
    indices : array-like of int
        States forming the set.
    exclude : array-like of int, optional
        States of ``indices`` left out of the computation.

    Returns
    -------
    float
        :math:`SS = \\frac{1}{m} \\sum_{i<j} d_{ij}^2` over the ``m``
        included states. 0 for a single state.

    Raises
    ------
    ValueError
        If no state remains after exclusion.
    """
    included = _included(indices, exclude)
    d2 = d[np.ix_(included, included)] ** 2
    return float(d2.sum() / (2.0 * len(included)))


def centroid_distances(
    d: NDArray[np.float64],
    indices: ArrayLike,
    exclude: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """
    Squared distances of states to the centroid of the included states.

    Parameters
    ----------
    d : NDArray[np.float64], shape (n, n)
        Dissimilarity matrix.
    indices : array-like of int
        States whose distance to the centroid is returned.
    exclude : array-like of int, optional
        States of ``indices`` not contributing to the centroid. Their
        distance to the centroid is still returned.

    Returns
    -------
    NDArray[np.float64], shape (len(indices),)
        :math:`\\frac{1}{m} \\sum_{j} d_{ij}^2 - SS / m` with ``j`` running
        over the ``m`` included states. Can be slightly negative for
        non-Euclidean input.
    """
    idx = np.asarray(indices, dtype=np.intp)
    included = _included(idx, exclude)
    m = len(included)
    ss = centroid_sum_of_squares(d, included)
    return (d[np.ix_(idx, included)] ** 2).sum(axis=1) / m - ss / m


def _included(indices: ArrayLike, exclude: ArrayLike | None) -> NDArray[np.intp]:
    idx = np.asarray(indices, dtype=np.intp)
    if exclude is not None:
        idx = idx[~np.isin(idx, np.asarray(exclude, dtype=np.intp))]
    if idx.size == 0:
        raise ValueError("No states left to compute a centroid from.")
    return idx


def gower_matrix(d: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Doubly centred Gram matrix of a dissimilarity matrix.

    :math:`G = -\\tfrac{1}{2} J D^{(2)} J` with :math:`J` the centering
    matrix. For Euclidean dissimilarities ``G`` is the inner-product matrix
    of the states around their global centroid. The identity
    ``G[i, i] + G[j, j] - 2 G[i, j] == d[i, j] ** 2`` holds for any
    symmetric input.
    """
    a = -0.5 * np.asarray(d, dtype=np.float64) ** 2
    return (
        a
        - a.mean(axis=0, keepdims=True)
        - a.mean(axis=1, keepdims=True)
        + a.mean()
    )


def combination_distances(
    d: NDArray[np.float64],
    weights: NDArray[np.float64],
    *,
    gower: NDArray[np.float64] | None = None,
) -> NDArray[np.float64]:
    """
    Distances between linear combinations of states.

    Row ``r`` of ``weights`` defines a new point :math:`y_r = \\sum_k
    w_{rk} x_k`. All rows must share the same sum: 1 for weighted-average
    positions (smoothing, interpolation) or 0 for displacements (centering),
    so that every difference :math:`y_r - y_s` is a zero-sum combination.

    Parameters
    ----------
    d : NDArray[np.float64], shape (n, n)
        Dissimilarity matrix.
    weights : NDArray[np.float64], shape (m, n)
        Combination weights.
    gower : NDArray[np.float64], shape (n, n), optional
        Precomputed :func:`gower_matrix` of ``d``.

    Returns
    -------
    NDArray[np.float64], shape (m, m)
        Symmetric, zero-diagonal distances. Negative squared distances from
        non-Euclidean input are clipped to zero.

    Raises
    ------
    ValueError
        If the rows of ``weights`` do not share a common sum.
    """
    w = np.atleast_2d(np.asarray(weights, dtype=np.float64))
    row_sums = w.sum(axis=1)
    if row_sums.size and not np.allclose(row_sums, row_sums[0], atol=1e-8):
        raise ValueError("All rows of weights must have the same sum.")

    g = gower_matrix(d) if gower is None else gower
    m = w @ g @ w.T
    diag = np.diag(m)
    d2 = diag[:, np.newaxis] + diag[np.newaxis, :] - 2.0 * m

    negative = d2 < 0.0
    n_negative = int(np.count_nonzero(negative & ~np.eye(len(d2), dtype=bool)))
    if n_negative:
        logger.debug(
            "Clipped %d negative squared distances (minimum %.3g)",
            n_negative,
            float(d2.min()),
        )
    d2[negative] = 0.0
    out = np.sqrt(d2)
    out = (out + out.T) / 2.0
    np.fill_diagonal(out, 0.0)
    return out


def distance_to_combination(
    d: NDArray[np.float64],
    point: int,
    indices: ArrayLike,
    weights: ArrayLike,
) -> float:
    """
    Distance from a state to a weighted average of other states.

    Generalized Stewart relation with weights summing to one:

    .. math::

        d(p, y)^2 = \\sum_k w_k d_{pk}^2 - \\tfrac{1}{2}
                    \\sum_{k,l} w_k w_l d_{kl}^2

    Parameters
    ----------
    d : NDArray[np.float64], shape (n, n)
        Dissimilarity matrix.
    point : int
        Index of the state.
    indices : array-like of int
        States combined into :math:`y`.
    weights : array-like of float
        Weights, summing to one.

    Returns
    -------
    float
        Distance, with negative squared values clipped to zero.
    """
    idx = np.asarray(indices, dtype=np.intp)
    w = np.asarray(weights, dtype=np.float64)
    d2_point = d[point, idx] ** 2
    d2_within = d[np.ix_(idx, idx)] ** 2
    value = float(w @ d2_point - 0.5 * w @ d2_within @ w)
    return float(np.sqrt(max(value, 0.0)))


def interpolation_weights(
    times: ArrayLike,
    target: float,
    *,
    out_of_range: Literal["raise", "clamp"] = "raise",
) -> tuple[NDArray[np.float64], bool]:
    """
    Linear-in-time weights locating a target time along a trajectory.

    Parameters
    ----------
    times : array-like of float, shape (k,)
        Survey-ordered, non-decreasing times of the trajectory.
    target : float
        Time to locate.
    out_of_range : {"raise", "clamp"}, default="raise"
        Policy when ``target`` lies outside ``[times[0], times[-1]]``:
        raise :class:`OutOfRangeTargetError` or use the nearest boundary
        state. Extrapolation is never performed.

    Returns
    -------
    weights : NDArray[np.float64], shape (k,)
        At most two non-zero weights summing to one.
    clamped : bool
        True if the target was clamped to a boundary.

    Examples
    --------
    >>> from ecotraj.ops.geometry import interpolation_weights
    >>> interpolation_weights([0.0, 10.0, 20.0], 15.0)
    (array([0. , 0.5, 0.5]), False)
    """
    if out_of_range not in ("raise", "clamp"):
        raise ValueError(
            f"out_of_range must be 'raise' or 'clamp', got '{out_of_range}'"
        )
    t = np.asarray(times, dtype=np.float64)
    k = len(t)
    if k == 0:
        raise ValueError("Cannot interpolate along an empty trajectory.")
    weights = np.zeros(k)
    span = max(float(t[-1] - t[0]), 1.0)
    tol = _RANGE_TOLERANCE * span

    if target < t[0] - tol or target > t[-1] + tol:
        if out_of_range == "raise":
            raise OutOfRangeTargetError(
                f"Target time {target} outside observed range [{t[0]}, {t[-1]}]."
            )
        weights[0 if target < t[0] else -1] = 1.0
        return weights, True

    exact = np.flatnonzero(np.abs(t - target) <= tol)
    if exact.size:
        weights[exact[0]] = 1.0
        return weights, False

    j = int(np.searchsorted(t, target, side="right"))
    i = j - 1
    p = (target - t[i]) / (t[j] - t[i])
    weights[i] = 1.0 - p
    weights[j] = p
    return weights, False
