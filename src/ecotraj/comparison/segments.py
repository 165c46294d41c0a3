"""Distances between directed trajectory segments.

A segment joins two consecutive states of a trajectory and has a
direction (from the earlier to the later survey). Segment distances are the
building blocks of the Hausdorff and DSPD trajectory dissimilarities in
:mod:`ecotraj.comparison.distances`.

Three segment distances are available, all derived from the six pairwise
distances between the four endpoints:

- ``"Hausdorff"``: the largest distance from an endpoint of one segment to
  the other segment. Ignores direction.
- ``"directed-segment"``: mean of the distances between corresponding
  endpoints (start to start, end to end). Zero only for identical directed
  segments; a segment and its reversal are at distance equal to its length.
- ``"PPA"``: perpendicular + parallel + angle distance (Lee et al. 2007),
  with the angle between directions obtained from the endpoint distances.

Single-state trajectories are represented by one zero-length segment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ecotraj.ops.geometry import point_to_trajectory_distance, project_on_segment
from ecotraj.ops.metricity import CorrectionMethod
from ecotraj.trajectories import Trajectories

__all__ = [
    "SegmentDistances",
    "segment_distances",
    "two_segment_distance",
]

logger = logging.getLogger(__name__)

SegmentDistanceType = Literal["Hausdorff", "directed-segment", "PPA"]

_SEGMENT_DISTANCE_TYPES = ("Hausdorff", "directed-segment", "PPA")


def _entity_segments(x: Trajectories, entity: object) -> list[tuple[int, int]]:
    """Directed segments of an entity; a zero-length one for single states."""
    idx = x.indices(entity)
    if len(idx) == 1:
        return [(int(idx[0]), int(idx[0]))]
    return x.segments(entity)


def _ppa_distance(
    d: NDArray[np.float64],
    s1: tuple[int, int],
    s2: tuple[int, int],
    correction: CorrectionMethod | None,
) -> float:
    (p1, p2), (p3, p4) = s1, s2
    l1, l2 = float(d[p1, p2]), float(d[p3, p4])
    longer, shorter = (s1, s2) if l1 >= l2 else (s2, s1)
    a, b = longer
    c, e = shorter
    length = max(l1, l2)
    short_length = min(l1, l2)
    if length == 0.0:
        return float(d[p1, p3])

    t_c, h_c = project_on_segment(
        float(d[c, a]), float(d[c, b]), length, correction=correction
    )
    t_e, h_e = project_on_segment(
        float(d[e, a]), float(d[e, b]), length, correction=correction
    )
    perpendicular = (h_c**2 + h_e**2) / (h_c + h_e) if (h_c + h_e) > 0 else 0.0

    x_c, x_e = t_c * length, t_e * length
    parallel = min(
        min(abs(x_c), abs(length - x_c)),
        min(abs(x_e), abs(length - x_e)),
    )

    if short_length == 0.0:
        angular = 0.0
    else:
        dot = 0.5 * (d[p1, p4] ** 2 + d[p2, p3] ** 2 - d[p1, p3] ** 2 - d[p2, p4] ** 2)
        cos_theta = float(np.clip(dot / (l1 * l2), -1.0, 1.0))
        if cos_theta > 0.0:
            angular = short_length * float(np.sqrt(1.0 - cos_theta**2))
        else:
            angular = short_length
    return float(perpendicular + parallel + angular)


def two_segment_distance(
    d: NDArray[np.float64],
    s1: tuple[int, int],
    s2: tuple[int, int],
    *,
    distance_type: SegmentDistanceType = "directed-segment",
    correction: CorrectionMethod | None = "clamp",
) -> float:
    """
    Distance between two directed segments.

    Parameters
    ----------
    d : NDArray[np.float64], shape (n, n)
        Dissimilarity matrix.
    s1, s2 : tuple of int
        ``(start, end)`` state indices of each segment.
    distance_type : {"Hausdorff", "directed-segment", "PPA"}
        Segment distance, see module documentation.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    float
        Non-negative distance, zero for identical segments.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.spatial.distance import pdist, squareform
    >>> from ecotraj.comparison.segments import two_segment_distance
    >>> d = squareform(pdist(np.array([[0.0, 0.0], [1.0, 0.0]])))
    >>> two_segment_distance(d, (0, 1), (1, 0))
    1.0
    >>> two_segment_distance(d, (0, 1), (1, 0), distance_type="Hausdorff")
    0.0
    """
    if distance_type == "directed-segment":
        return float((d[s1[0], s2[0]] + d[s1[1], s2[1]]) / 2.0)
    if distance_type == "Hausdorff":
        return max(
            point_to_trajectory_distance(d, p, other, correction=correction)
            for p, other in (
                (s1[0], s2),
                (s1[1], s2),
                (s2[0], s1),
                (s2[1], s1),
            )
        )
    if distance_type == "PPA":
        return _ppa_distance(d, s1, s2, correction)
    raise ValueError(
        f"distance_type must be one of {list(_SEGMENT_DISTANCE_TYPES)}, "
        f"got '{distance_type}'"
    )


@dataclass(frozen=True)
class SegmentDistances:
    """Distances between all directed segments of a collection.

    Attributes
    ----------
    segments : pd.DataFrame
        One row per segment, indexed by label ``"{entity}[{i}-{j}]"`` with
        columns ``entity``, ``segment`` (1-based), ``start`` and ``end``
        (row indices of the endpoints).
    distances : pd.DataFrame
        Square segment-by-segment distance matrix.
    initial : pd.DataFrame
        Distances between segment start states.
    final : pd.DataFrame
        Distances between segment end states.
    distance_type : str
        Segment distance used.
    """

    segments: pd.DataFrame
    distances: pd.DataFrame
    initial: pd.DataFrame
    final: pd.DataFrame
    distance_type: str


def segment_distances(
    x: Trajectories,
    *,
    distance_type: SegmentDistanceType = "directed-segment",
    correction: CorrectionMethod | None = "clamp",
) -> SegmentDistances:
    """
    Distances between every pair of directed segments.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    distance_type : {"Hausdorff", "directed-segment", "PPA"}, default="directed-segment"
        Segment distance, see module documentation.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    SegmentDistances
        Segment table and segment distance matrices.

    Raises
    ------
    ValueError
        If ``distance_type`` is not supported.
    """
    if distance_type not in _SEGMENT_DISTANCE_TYPES:
        raise ValueError(
            f"distance_type must be one of {list(_SEGMENT_DISTANCE_TYPES)}, "
            f"got '{distance_type}'"
        )
    d = x.distances
    records = []
    for entity in x.entity_labels:
        idx = x.indices(entity)
        for s, (a, b) in enumerate(_entity_segments(x, entity), start=1):
            end_rank = s + 1 if len(idx) > 1 else s
            records.append(
                {
                    "label": f"{entity}[{s}-{end_rank}]",
                    "entity": entity,
                    "segment": s,
                    "start": a,
                    "end": b,
                }
            )
    segments = pd.DataFrame.from_records(records).set_index("label")
    pairs = list(zip(segments["start"], segments["end"]))

    n = len(pairs)
    dseg = np.zeros((n, n))
    for i in range(n):
        for j in range(i + 1, n):
            dseg[i, j] = dseg[j, i] = two_segment_distance(
                d, pairs[i], pairs[j], distance_type=distance_type, correction=correction
            )
    logger.debug("Computed %d segment distances (%s)", n * (n - 1) // 2, distance_type)

    starts = segments["start"].to_numpy()
    ends = segments["end"].to_numpy()
    labels = segments.index
    return SegmentDistances(
        segments=segments,
        distances=pd.DataFrame(dseg, index=labels, columns=labels),
        initial=pd.DataFrame(d[np.ix_(starts, starts)], index=labels, columns=labels),
        final=pd.DataFrame(d[np.ix_(ends, ends)], index=labels, columns=labels),
        distance_type=distance_type,
    )
