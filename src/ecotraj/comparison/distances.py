"""Dissimilarities between whole trajectories.

Four trajectory dissimilarities are available, each built from a directed
(asymmetric) version from trajectory A to trajectory B:

- ``"Hausdorff"``: the largest Hausdorff distance from a segment of A to its
  nearest segment of B. Symmetrized by the maximum of both directions.
- ``"SPD"`` (segment path distance): mean distance from the states of A to
  the path of B. Ignores direction and timing.
- ``"DSPD"`` (directed segment path distance): mean distance from the
  directed segments of A to their nearest directed segment of B. Sensitive
  to direction.
- ``"TSPD"`` (time-sensitive path distance): mean distance from each state
  of A to the state of B at the same time, obtained by linear interpolation
  along B and clamped to B's first or last state outside its time range.

Directed values of SPD, DSPD and TSPD are symmetrized by their arithmetic
mean unless ``symmetrization=None``.

:func:`dynamic_variation` decomposes the variation among trajectories from
these dissimilarities.

References
----------
.. [1] De Cáceres, M. et al. (2019). "Trajectory analysis in community
       ecology." Ecological Monographs, 89(2), e01350.
.. [2] Besse, P., Guillouet, B., Loubes, J.-M. & Royer, F. (2016). "Review
       and perspective for distance-based clustering of vehicle
       trajectories." IEEE Trans. Intell. Transp. Syst., 17(11), 3306-3317.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
import pandas as pd

from ecotraj.comparison.segments import segment_distances
from ecotraj.ops.geometry import (
    centroid_distances,
    centroid_sum_of_squares,
    distance_to_combination,
    interpolation_weights,
    point_to_trajectory_distance,
)
from ecotraj.ops.metricity import CorrectionMethod
from ecotraj.trajectories import Trajectories

__all__ = [
    "DynamicVariation",
    "dynamic_variation",
    "trajectory_distances",
]

logger = logging.getLogger(__name__)

TrajectoryDistanceType = Literal["Hausdorff", "SPD", "DSPD", "TSPD"]

_TRAJECTORY_DISTANCE_TYPES = ("Hausdorff", "SPD", "DSPD", "TSPD")


def _directed_matrix(
    x: Trajectories,
    distance_type: TrajectoryDistanceType,
    correction: CorrectionMethod | None,
) -> np.ndarray:
    """Directed dissimilarity from each entity (rows) to each other (columns)."""
    labels = x.entity_labels
    n = len(labels)
    d = x.distances
    out = np.zeros((n, n))

    if distance_type in ("Hausdorff", "DSPD"):
        seg = segment_distances(
            x,
            distance_type="Hausdorff" if distance_type == "Hausdorff" else "directed-segment",
            correction=correction,
        )
        dseg = seg.distances.to_numpy()
        positions = {
            entity: np.flatnonzero((seg.segments["entity"] == entity).to_numpy())
            for entity in labels
        }
        reduce = np.max if distance_type == "Hausdorff" else np.mean
        for a, entity_a in enumerate(labels):
            for b, entity_b in enumerate(labels):
                if a == b:
                    continue
                block = dseg[np.ix_(positions[entity_a], positions[entity_b])]
                out[a, b] = float(reduce(block.min(axis=1)))
        return out

    indices = {entity: x.indices(entity) for entity in labels}
    n_clamped = 0
    for a, entity_a in enumerate(labels):
        for b, entity_b in enumerate(labels):
            if a == b:
                continue
            idx_b = indices[entity_b]
            values = []
            for point in indices[entity_a]:
                if distance_type == "SPD":
                    values.append(
                        point_to_trajectory_distance(
                            d, int(point), idx_b, correction=correction
                        )
                    )
                else:
                    weights, clamped = interpolation_weights(
                        x.times[idx_b], float(x.times[point]), out_of_range="clamp"
                    )
                    n_clamped += int(clamped)
                    values.append(distance_to_combination(d, int(point), idx_b, weights))
            out[a, b] = float(np.mean(values))
    if n_clamped:
        logger.debug("TSPD clamped %d queries to trajectory boundaries", n_clamped)
    return out


def trajectory_distances(
    x: Trajectories,
    *,
    distance_type: TrajectoryDistanceType = "DSPD",
    symmetrization: Literal["mean"] | None = "mean",
    correction: CorrectionMethod | None = "clamp",
) -> pd.DataFrame:
    """
    Dissimilarities between every pair of trajectories.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    distance_type : {"Hausdorff", "SPD", "DSPD", "TSPD"}, default="DSPD"
        Trajectory dissimilarity, see module documentation.
    symmetrization : {"mean"} or None, default="mean"
        How directed values are combined. "mean" averages both directions
        (Hausdorff takes their maximum). None returns the directed values,
        row entity to column entity.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    pd.DataFrame
        Square entity-by-entity matrix with zero diagonal.

    Raises
    ------
    ValueError
        If ``distance_type`` or ``symmetrization`` is not supported.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.spatial.distance import pdist, squareform
    >>> from ecotraj.trajectories import define_trajectories
    >>> from ecotraj.comparison.distances import trajectory_distances
    >>> line = np.array([[0.0, 0.0], [0.0, 1.0], [0.0, 2.0], [0.0, 3.0]])
    >>> coords = np.vstack([line, line[::-1]])
    >>> x = define_trajectories(squareform(pdist(coords)), ["A"] * 4 + ["B"] * 4)
    >>> float(trajectory_distances(x, distance_type="SPD").loc["A", "B"])
    0.0
    >>> bool(trajectory_distances(x, distance_type="DSPD").loc["A", "B"] > 0)
    True
    """
    if distance_type not in _TRAJECTORY_DISTANCE_TYPES:
        raise ValueError(
            f"distance_type must be one of {list(_TRAJECTORY_DISTANCE_TYPES)}, "
            f"got '{distance_type}'"
        )
    if symmetrization not in ("mean", None):
        raise ValueError(
            f"symmetrization must be 'mean' or None, got '{symmetrization}'"
        )

    directed = _directed_matrix(x, distance_type, correction)
    if symmetrization is None:
        values = directed
    elif distance_type == "Hausdorff":
        values = np.maximum(directed, directed.T)
    else:
        values = (directed + directed.T) / 2.0

    labels = pd.Index(x.entity_labels, name="entity")
    return pd.DataFrame(values, index=labels, columns=labels.rename(None))


@dataclass(frozen=True)
class DynamicVariation:
    """Variation among trajectories.

    Attributes
    ----------
    dynamic_ss : float
        Sum of squared trajectory dissimilarities to the (implicit) centroid
        trajectory.
    dynamic_variance : float
        ``dynamic_ss / (n_entities - 1)``; NaN with a single entity.
    relative_contributions : pd.Series
        Fraction of ``dynamic_ss`` contributed by each entity.
    """

    dynamic_ss: float
    dynamic_variance: float
    relative_contributions: pd.Series


def dynamic_variation(
    x: Trajectories | pd.DataFrame,
    *,
    distance_type: TrajectoryDistanceType = "DSPD",
    correction: CorrectionMethod | None = "clamp",
) -> DynamicVariation:
    """
    Decompose the variation among trajectories.

    The sum of squares of :func:`~ecotraj.ops.geometry.centroid_sum_of_squares`
    is applied in the space of whole trajectories, using symmetrized
    trajectory dissimilarities.

    Parameters
    ----------
    x : Trajectories or pd.DataFrame
        Trajectory collection, or a precomputed square trajectory
        dissimilarity matrix indexed by entity.
    distance_type : {"Hausdorff", "SPD", "DSPD", "TSPD"}, default="DSPD"
        Trajectory dissimilarity, ignored for precomputed input.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local triangle correction, ignored for precomputed input.

    Returns
    -------
    DynamicVariation
        Total sum of squares, unbiased variance and entity contributions.
    """
    if isinstance(x, Trajectories):
        table = trajectory_distances(
            x, distance_type=distance_type, correction=correction
        )
    else:
        table = x
    dmat = table.to_numpy(dtype=np.float64)
    n = dmat.shape[0]
    everyone = np.arange(n)
    ss = centroid_sum_of_squares(dmat, everyone)
    contributions = centroid_distances(dmat, everyone)
    relative: Any = contributions / ss if ss > 0 else np.full(n, np.nan)
    return DynamicVariation(
        dynamic_ss=ss,
        dynamic_variance=ss / (n - 1) if n > 1 else np.nan,
        relative_contributions=pd.Series(
            relative, index=table.index, name="relative_contribution"
        ),
    )
