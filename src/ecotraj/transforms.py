"""Trajectory transformations.

Centering, smoothing and interpolation all replace each state by a linear
combination of the states of its own entity:

- centering: the state minus the centroid of its trajectory,
- smoothing: a Gaussian-kernel weighted average over the entity's surveys,
- interpolation: a linear-in-time average of the two bracketing states.

The new dissimilarities follow from the doubly centred Gram matrix of the
input (:func:`ecotraj.ops.geometry.combination_distances`), so no
coordinates are constructed. Each function returns a new
:class:`~ecotraj.trajectories.Trajectories`; the input is left untouched.

Examples
--------
>>> import numpy as np
>>> from scipy.spatial.distance import pdist, squareform
>>> from ecotraj.trajectories import define_trajectories
>>> from ecotraj.transforms import center_trajectories
>>> coords = np.array([[0.0, 0.0], [0.0, 1.0], [5.0, 0.0], [5.0, 1.0]])
>>> x = define_trajectories(squareform(pdist(coords)), ["A", "A", "B", "B"])
>>> centered = center_trajectories(x)
>>> np.allclose(centered.distances[0, 2], 0.0)
True
"""

from __future__ import annotations

import logging
import warnings
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ecotraj.ops.geometry import combination_distances, interpolation_weights
from ecotraj.trajectories import Trajectories

__all__ = [
    "center_trajectories",
    "interpolate_trajectories",
    "smooth_trajectories",
]

logger = logging.getLogger(__name__)


def center_trajectories(
    x: Trajectories,
    *,
    exclude: ArrayLike | None = None,
) -> Trajectories:
    """
    Shift every trajectory so that its centroid lies at a common origin.

    Centering removes differences in the position of trajectories while
    preserving their shape: distances within a trajectory, and therefore
    lengths, speeds, angles and directionality, are unchanged.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    exclude : array-like of int, optional
        Row indices of states that do not contribute to their trajectory's
        centroid. They are still shifted along with their trajectory.

    Returns
    -------
    Trajectories
        New collection with the same metadata and centered dissimilarities.

    Raises
    ------
    ValueError
        If every state of an entity is excluded.

    Notes
    -----
    State ``i`` of entity ``A`` becomes :math:`x_i - c_A` with
    :math:`c_A` the mean of A's included states, and

    .. math::

        d'(i, j)^2 = \\lVert (x_i - c_A) - (x_j - c_B) \\rVert^2

    is evaluated from the Gram matrix of the input dissimilarities.
    """
    n = x.n_observations
    excluded = (
        np.zeros(n, dtype=bool)
        if exclude is None
        else np.isin(np.arange(n), np.asarray(exclude, dtype=np.intp))
    )

    weights = np.eye(n)
    for entity in x.entity_labels:
        idx = x.indices(entity)
        included = idx[~excluded[idx]]
        if included.size == 0:
            raise ValueError(
                f"All states of entity {entity!r} are excluded; cannot compute "
                "its centroid."
            )
        weights[np.ix_(idx, included)] -= 1.0 / included.size

    logger.debug("Centering %d trajectories", len(x.entity_labels))
    return x.with_distances(combination_distances(x.distances, weights))


def smooth_trajectories(
    x: Trajectories,
    *,
    bandwidth: float = 1.0,
) -> Trajectories:
    """
    Smooth each trajectory with a Gaussian kernel over survey times.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    bandwidth : float, default=1.0
        Kernel standard deviation, in the units of the survey times.

    Returns
    -------
    Trajectories
        New collection with the same metadata; each state replaced by the
        kernel-weighted average of its entity's states.

    Raises
    ------
    ValueError
        If ``bandwidth`` is not positive.

    Notes
    -----
    The weight of state ``r`` in the smoothed state at time ``t`` is

    .. math::

        w_r(t) = \\frac{K(t, t_r)}{\\sum_s K(t, t_s)}, \\qquad
        K(t, t_r) = \\exp\\left(-\\frac{(t - t_r)^2}{2 b^2}\\right)

    Only states of the same entity are averaged.
    """
    if not bandwidth > 0:
        raise ValueError(f"bandwidth must be positive, got {bandwidth}")

    n = x.n_observations
    weights = np.zeros((n, n))
    for entity in x.entity_labels:
        idx = x.indices(entity)
        times = x.times[idx]
        lags = times[:, np.newaxis] - times[np.newaxis, :]
        kernel = np.exp(-(lags**2) / (2.0 * bandwidth**2))
        kernel /= kernel.sum(axis=1, keepdims=True)
        weights[np.ix_(idx, idx)] = kernel

    return x.with_distances(combination_distances(x.distances, weights))


def interpolate_trajectories(
    x: Trajectories,
    times: ArrayLike,
    *,
    out_of_range: Literal["raise", "clamp"] = "raise",
) -> Trajectories:
    """
    Resample every trajectory at common target times.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    times : array-like of float
        Target times, strictly increasing.
    out_of_range : {"raise", "clamp"}, default="raise"
        Policy for target times outside an entity's observed time span:
        raise :class:`~ecotraj.errors.OutOfRangeTargetError`, or use the
        entity's first or last state (with a warning). States are never
        extrapolated.

    Returns
    -------
    Trajectories
        New synchronous collection with one state per entity and target
        time, surveys numbered 1..k and ``times`` as survey times.

    Raises
    ------
    OutOfRangeTargetError
        If a target lies outside an entity's time span and
        ``out_of_range="raise"``.
    ValueError
        If ``times`` is empty or not strictly increasing.

    Notes
    -----
    A target between surveys ``r`` and ``r + 1`` becomes
    :math:`(1 - p) x_r + p x_{r+1}` with
    :math:`p = (t - t_r) / (t_{r+1} - t_r)`, the same construction used by
    the TSPD trajectory distance. Interpolating at the observed times
    reproduces the input dissimilarities.
    """
    targets: NDArray[np.float64] = np.asarray(times, dtype=np.float64).ravel()
    if targets.size == 0:
        raise ValueError("At least one target time is required.")
    if np.any(np.diff(targets) <= 0):
        raise ValueError("Target times must be strictly increasing.")

    labels = x.entity_labels
    k = targets.size
    weights = np.zeros((len(labels) * k, x.n_observations))
    clamped: list[str] = []
    for e, entity in enumerate(labels):
        idx = x.indices(entity)
        entity_times = x.times[idx]
        for r, target in enumerate(targets):
            w, was_clamped = interpolation_weights(
                entity_times, float(target), out_of_range=out_of_range
            )
            weights[e * k + r, idx] = w
            if was_clamped:
                clamped.append(f"{entity!r}@{target:g}")

    if clamped:
        warnings.warn(
            f"Clamped {len(clamped)} target times to trajectory boundaries: "
            f"{', '.join(clamped[:10])}{' ...' if len(clamped) > 10 else ''}",
            stacklevel=2,
        )

    return Trajectories(
        distances=combination_distances(x.distances, weights),
        entities=np.repeat(np.array(labels, dtype=object), k),
        surveys=np.tile(np.arange(1, k + 1), len(labels)),
        times=np.tile(targets, len(labels)),
    )
