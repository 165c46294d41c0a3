"""Single-trajectory metrics.

Geometric descriptors of each trajectory of a :class:`~ecotraj.Trajectories`
collection, computed from the dissimilarity matrix alone: segment lengths,
speeds, angles between consecutive segments, directionality, internal
variation and the relative position of states along a trajectory.

Every function returns a :class:`pandas.DataFrame` (or Series) indexed by
entity. Trajectories shorter than a metric requires produce NaN rather than
an error, and degenerate triplets (zero-length segments) are reported as NaN
in their own cell only.

Angles are reported in degrees as *turning* angles: 0 for a straight
continuation, 180 for a complete reversal.

References
----------
.. [1] De Cáceres, M., Coll, L., Legendre, P., Allen, R.B., Wiser, S.K.,
       Fortin, M.J., Condit, R. & Hubbell, S. (2019). "Trajectory analysis
       in community ecology." Ecological Monographs, 89(2), e01350.
"""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Any, Literal

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike

from ecotraj.errors import DegenerateSegmentError, ZeroDurationError
from ecotraj.metrics.circular import circular_summary
from ecotraj.ops.geometry import (
    centroid_distances,
    centroid_sum_of_squares,
    orthogonal_projection,
    triangle_angle,
    turning_angle,
)
from ecotraj.ops.metricity import CorrectionMethod
from ecotraj.trajectories import Trajectories

__all__ = [
    "trajectory_angles",
    "trajectory_directionality",
    "trajectory_internal_variation",
    "trajectory_lengths",
    "trajectory_metrics",
    "trajectory_projection",
    "trajectory_speeds",
    "trajectory_variability",
]

logger = logging.getLogger(__name__)


def _entity_table(
    rows: dict[Any, dict[str, float]], columns: list[str]
) -> pd.DataFrame:
    """Assemble per-entity rows into a DataFrame with a fixed column order."""
    table = pd.DataFrame.from_dict(rows, orient="index")
    table = table.reindex(index=list(rows), columns=columns)
    table.index.name = "entity"
    return table.astype(np.float64)


def _segment_columns(x: Trajectories) -> list[str]:
    n_max = int(x.n_per_entity.max()) if x.n_observations else 0
    return [f"S{s}" for s in range(1, max(n_max, 1))]


def trajectory_lengths(
    x: Trajectories,
    *,
    relative_to_initial: bool = False,
    all_states: bool = False,
) -> pd.DataFrame:
    """
    Lengths of trajectory segments and total path length.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    relative_to_initial : bool, default=False
        If True, report the distance from the first state to every later
        state (columns ``L1_2``, ``L1_3``, ...) instead of segment lengths.
    all_states : bool, default=False
        If True, report the distance between every pair of states
        (columns ``L{i}_{j}``, i < j, 1-based survey ranks). Takes
        precedence over ``relative_to_initial``.

    Returns
    -------
    pd.DataFrame
        One row per entity. Default columns ``S1 .. Sk`` are segment lengths
        (NaN padded for shorter trajectories); ``path`` is always the total
        path length (sum of segment lengths).

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.spatial.distance import pdist, squareform
    >>> from ecotraj.trajectories import define_trajectories
    >>> from ecotraj.metrics.trajectory import trajectory_lengths
    >>> coords = np.array([[0, 0], [0, 1], [0, 2], [0, 3]])
    >>> x = define_trajectories(squareform(pdist(coords)), ["A"] * 4)
    >>> trajectory_lengths(x).loc["A"].tolist()
    [1.0, 1.0, 1.0, 3.0]
    """
    d = x.distances
    rows: dict[Any, dict[str, float]] = {}
    columns: list[str] = []
    for entity in x.entity_labels:
        idx = x.indices(entity)
        row: dict[str, float] = {}
        if all_states:
            for i, j in combinations(range(len(idx)), 2):
                row[f"L{i + 1}_{j + 1}"] = float(d[idx[i], idx[j]])
        elif relative_to_initial:
            for j in range(1, len(idx)):
                row[f"L1_{j + 1}"] = float(d[idx[0], idx[j]])
        else:
            for s, (a, b) in enumerate(zip(idx[:-1], idx[1:]), start=1):
                row[f"S{s}"] = float(d[a, b])
        row["path"] = float(d[idx[:-1], idx[1:]].sum())
        rows[entity] = row
        columns.extend(c for c in row if c not in columns)

    if not (all_states or relative_to_initial):
        columns = [*_segment_columns(x), "path"]
    else:
        columns = [c for c in columns if c != "path"] + ["path"]
    return _entity_table(rows, columns)


def _speed(
    length: float,
    duration: float,
    zero_duration: Literal["nan", "inf", "raise"],
    label: str,
) -> float:
    if duration != 0.0:
        return length / duration
    if zero_duration == "raise":
        raise ZeroDurationError(f"Zero time difference for {label}.")
    if zero_duration == "inf":
        return np.inf if length > 0 else np.nan
    return np.nan


def trajectory_speeds(
    x: Trajectories,
    *,
    zero_duration: Literal["nan", "inf", "raise"] = "nan",
) -> pd.DataFrame:
    """
    Segment speeds and average path speed.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    zero_duration : {"nan", "inf", "raise"}, default="nan"
        Policy for segments whose two states share the same time:
        report NaN, report infinity (NaN if the segment also has zero
        length), or raise :class:`ZeroDurationError`.

    Returns
    -------
    pd.DataFrame
        One row per entity. ``S1 .. Sk`` are segment length divided by the
        segment's time difference; ``path`` is the total path length divided
        by the time elapsed between the first and last states.

    Raises
    ------
    ZeroDurationError
        If ``zero_duration="raise"`` and a zero time difference is found.
    """
    if zero_duration not in ("nan", "inf", "raise"):
        raise ValueError(
            f"zero_duration must be 'nan', 'inf' or 'raise', got '{zero_duration}'"
        )
    d = x.distances
    rows: dict[Any, dict[str, float]] = {}
    for entity in x.entity_labels:
        idx = x.indices(entity)
        times = x.times[idx]
        row: dict[str, float] = {}
        for s in range(len(idx) - 1):
            row[f"S{s + 1}"] = _speed(
                float(d[idx[s], idx[s + 1]]),
                float(times[s + 1] - times[s]),
                zero_duration,
                f"segment {s + 1} of entity {entity!r}",
            )
        if len(idx) > 1:
            row["path"] = _speed(
                float(d[idx[:-1], idx[1:]].sum()),
                float(times[-1] - times[0]),
                zero_duration,
                f"entity {entity!r}",
            )
        else:
            row["path"] = np.nan
        rows[entity] = row
    return _entity_table(rows, [*_segment_columns(x), "path"])


def _safe_angle(
    d: np.ndarray,
    a: int,
    b: int,
    c: int,
    *,
    turning: bool,
    correction: CorrectionMethod | None,
) -> float:
    """Angle at ``b`` in degrees, NaN for degenerate segments."""
    func = turning_angle if turning else triangle_angle
    try:
        angle = func(
            float(d[a, b]), float(d[b, c]), float(d[a, c]), correction=correction
        )
    except DegenerateSegmentError:
        logger.debug("Degenerate triplet (%d, %d, %d) reported as NaN", a, b, c)
        return np.nan
    return float(np.degrees(angle))


def trajectory_angles(
    x: Trajectories,
    *,
    all_triplets: bool = False,
    relative_to_initial: bool = False,
    correction: CorrectionMethod | None = "clamp",
) -> pd.DataFrame:
    """
    Angles between trajectory segments.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    all_triplets : bool, default=False
        If False, compute the turning angle at every interior state using
        its previous and next states (columns ``S1-S2``, ``S2-S3``, ...).
        If True, compute it for every triplet of survey-ordered states
        ``i < j < k`` (columns ``{i}-{j}-{k}``, 1-based ranks).
    relative_to_initial : bool, default=False
        If True (and ``all_triplets`` is False), report instead the angle
        seen from the first state between the directions to consecutive
        states ``j`` and ``j + 1`` (columns ``R{j}-{j+1}``).
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    pd.DataFrame
        One row per entity with angles in degrees, plus the circular
        ``mean``, ``sd`` and mean resultant length ``rho`` of the entity's
        valid angles. Degenerate triplets are NaN and excluded from the
        circular statistics.

    Notes
    -----
    The turning angle at ``b`` for states a → b → c is
    :math:`180 - \\theta_b` where :math:`\\theta_b` is the interior angle
    from the law of cosines. Straight trajectories give 0 everywhere.
    Angles are unsigned: the direction of a turn is undefined without
    coordinates.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.spatial.distance import pdist, squareform
    >>> from ecotraj.trajectories import define_trajectories
    >>> from ecotraj.metrics.trajectory import trajectory_angles
    >>> coords = np.array([[0, 0], [1, 0], [1, 1]])
    >>> x = define_trajectories(squareform(pdist(coords)), ["A"] * 3)
    >>> round(trajectory_angles(x).loc["A", "S1-S2"], 6)
    90.0
    """
    d = x.distances
    rows: dict[Any, dict[str, float]] = {}
    columns: list[str] = []
    for entity in x.entity_labels:
        idx = x.indices(entity)
        n = len(idx)
        row: dict[str, float] = {}
        if all_triplets:
            for i, j, k in combinations(range(n), 3):
                row[f"{i + 1}-{j + 1}-{k + 1}"] = _safe_angle(
                    d, idx[i], idx[j], idx[k], turning=True, correction=correction
                )
        elif relative_to_initial:
            for j in range(1, n - 1):
                row[f"R{j + 1}-{j + 2}"] = _safe_angle(
                    d, idx[j], idx[0], idx[j + 1], turning=False, correction=correction
                )
        else:
            for j in range(1, n - 1):
                row[f"S{j}-S{j + 1}"] = _safe_angle(
                    d, idx[j - 1], idx[j], idx[j + 1], turning=True, correction=correction
                )
        columns.extend(c for c in row if c not in columns)
        mean, sd, rho = circular_summary(list(row.values()), angle_unit="deg")
        row.update(mean=mean, sd=sd, rho=rho)
        rows[entity] = row
    return _entity_table(rows, [*columns, "mean", "sd", "rho"])


def trajectory_directionality(
    x: Trajectories,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> pd.Series:
    """
    Directionality of each trajectory.

    Directionality summarizes how consistently a trajectory keeps its
    direction, weighting angles by the length of the segments involved.
    Over every triplet of survey-ordered states ``i < j < k``:

    .. math::

        D = \\frac{\\sum (d_{ij} + d_{jk}) (180 - \\alpha_{ijk}) / 180}
                  {\\sum (d_{ij} + d_{jk})}

    where :math:`\\alpha_{ijk}` is the turning angle at ``j`` in degrees.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    pd.Series
        Directionality per entity in [0, 1]. 1 for a straight, consistently
        directed trajectory; lower values for meandering ones. NaN for
        trajectories with fewer than three states or only degenerate
        triplets.

    References
    ----------
    .. [1] De Cáceres et al. (2019). Ecological Monographs, 89(2), e01350.
    """
    d = x.distances
    values: dict[Any, float] = {}
    for entity in x.entity_labels:
        idx = x.indices(entity)
        numerator = 0.0
        denominator = 0.0
        for i, j, k in combinations(idx, 3):
            angle = _safe_angle(d, i, j, k, turning=True, correction=correction)
            if np.isnan(angle):
                continue
            weight = float(d[i, j] + d[j, k])
            numerator += weight * (180.0 - angle) / 180.0
            denominator += weight
        values[entity] = numerator / denominator if denominator > 0 else np.nan
    series = pd.Series(values, name="directionality", dtype=np.float64)
    series.index.name = "entity"
    return series


def trajectory_internal_variation(
    x: Trajectories,
    *,
    relative: bool = True,
) -> pd.DataFrame:
    """
    Variation of the states of each trajectory around its centroid.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    relative : bool, default=True
        If True, state contributions are fractions of the sum of squares;
        otherwise they are squared distances to the centroid.

    Returns
    -------
    pd.DataFrame
        One row per entity with ``ss`` (sum of squared distances to the
        centroid), ``variance`` (``ss / (n - 1)``, NaN for single states)
        and contributions ``T1 .. Tn`` of each survey-ordered state.

    Notes
    -----
    :math:`SS = \\frac{1}{n} \\sum_{i<j} d_{ij}^2` and the contribution of
    state ``i`` is its squared distance to the centroid,
    :math:`\\frac{1}{n}\\sum_j d_{ij}^2 - SS/n`. Contributions sum to ``SS``.
    """
    d = x.distances
    n_max = int(x.n_per_entity.max())
    rows: dict[Any, dict[str, float]] = {}
    for entity in x.entity_labels:
        idx = x.indices(entity)
        n = len(idx)
        ss = centroid_sum_of_squares(d, idx)
        row: dict[str, float] = {
            "ss": ss,
            "variance": ss / (n - 1) if n > 1 else np.nan,
        }
        contributions = centroid_distances(d, idx)
        if relative:
            contributions = contributions / ss if ss > 0 else np.full(n, np.nan)
        for s, value in enumerate(contributions, start=1):
            row[f"T{s}"] = float(value)
        rows[entity] = row
    return _entity_table(
        rows, ["ss", "variance", *[f"T{s}" for s in range(1, n_max + 1)]]
    )


def trajectory_variability(
    x: Trajectories,
    *,
    relative: bool = True,
) -> pd.DataFrame:
    """Alias of :func:`trajectory_internal_variation`."""
    return trajectory_internal_variation(x, relative=relative)


def trajectory_projection(
    x: Trajectories,
    target: ArrayLike | None = None,
    reference: Any | None = None,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> pd.DataFrame:
    """
    Relative position of states projected onto a trajectory.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    target : array-like of int, optional
        Row indices of the states to project. Defaults to every state (or,
        when ``reference`` is given, every state of the other entities).
    reference : hashable, optional
        Entity whose trajectory receives the projections. If None, each
        target state is projected onto its own entity's trajectory.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    pd.DataFrame
        Indexed by target row, with columns ``entity``, ``survey``,
        ``distance_to_trajectory``, ``segment`` (1-based, NaN if none),
        ``relative_position`` (in [0, 1]) and ``out_of_range`` (True when
        the projection fell beyond either end and was clamped).
    """
    if target is None:
        if reference is None:
            target_idx = np.arange(x.n_observations)
        else:
            target_idx = np.flatnonzero(x.entities != reference)
    else:
        target_idx = np.asarray(target, dtype=np.intp).ravel()

    reference_idx = None if reference is None else x.indices(reference)
    records = []
    for point in target_idx:
        traj = (
            reference_idx
            if reference_idx is not None
            else x.indices(x.entities[point])
        )
        result = orthogonal_projection(
            x.distances, int(point), traj, correction=correction
        )
        records.append(
            {
                "entity": x.entities[point],
                "survey": int(x.surveys[point]),
                "distance_to_trajectory": result.residual_distance,
                "segment": result.segment + 1 if result.segment >= 0 else np.nan,
                "relative_position": result.relative_position,
                "out_of_range": result.out_of_range,
            }
        )
    table = pd.DataFrame.from_records(
        records,
        index=pd.Index(target_idx, name="state"),
        columns=[
            "entity",
            "survey",
            "distance_to_trajectory",
            "segment",
            "relative_position",
            "out_of_range",
        ],
    )
    return table


def trajectory_metrics(
    x: Trajectories,
    *,
    correction: CorrectionMethod | None = "clamp",
) -> pd.DataFrame:
    """
    Summary metrics for each trajectory.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    pd.DataFrame
        One row per entity with ``n`` (number of states), ``t_start``,
        ``t_end``, ``duration``, ``length`` (path length), ``mean_speed``
        (length / duration, NaN for zero duration), ``mean_angle``
        (circular mean of consecutive turning angles), ``directionality``,
        ``internal_ss`` and ``internal_variance``.
    """
    lengths = trajectory_lengths(x)
    angles = trajectory_angles(x, correction=correction)
    directionality = trajectory_directionality(x, correction=correction)
    variation = trajectory_internal_variation(x)

    rows: dict[Any, dict[str, float]] = {}
    for entity in x.entity_labels:
        times = x.entity_times(entity)
        duration = float(times[-1] - times[0])
        length = float(lengths.loc[entity, "path"])
        rows[entity] = {
            "n": float(len(times)),
            "t_start": float(times[0]),
            "t_end": float(times[-1]),
            "duration": duration,
            "length": length,
            "mean_speed": length / duration if duration > 0 else np.nan,
            "mean_angle": float(angles.loc[entity, "mean"]),
            "directionality": float(directionality.loc[entity]),
            "internal_ss": float(variation.loc[entity, "ss"]),
            "internal_variance": float(variation.loc[entity, "variance"]),
        }
    table = _entity_table(
        rows,
        [
            "n",
            "t_start",
            "t_end",
            "duration",
            "length",
            "mean_speed",
            "mean_angle",
            "directionality",
            "internal_ss",
            "internal_variance",
        ],
    )
    return table.astype({"n": np.int64})
