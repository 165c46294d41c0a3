"""Temporal shifts between trajectories.

Each state of a target trajectory is projected onto a reference trajectory.
The time of the projection is interpolated from the reference's survey times
along the receiving segment, and the shift is the difference between the
target state's own time and that time. Positive shifts mean the target
reaches a given position later than the reference did.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from ecotraj.ops.geometry import orthogonal_projection
from ecotraj.ops.metricity import CorrectionMethod
from ecotraj.trajectories import Trajectories

__all__ = ["trajectory_shifts"]


def trajectory_shifts(
    x: Trajectories,
    *,
    reference: Any | None = None,
    correction: CorrectionMethod | None = "clamp",
) -> pd.DataFrame:
    """
    Time shifts of trajectory states relative to reference trajectories.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    reference : hashable, optional
        Reference entity. If None, every entity serves as reference for all
        the others.
    correction : {"clamp", "additive"} or None, default="clamp"
        Local correction for triangles violating the triangle inequality.

    Returns
    -------
    pd.DataFrame
        One row per (reference, target state) with columns ``reference``,
        ``entity``, ``survey``, ``time``, ``reference_time`` (time of the
        projection on the reference) and ``shift`` (``time -
        reference_time``). Both are NaN when the projection falls outside
        the reference trajectory, since no extrapolation is made.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.spatial.distance import pdist, squareform
    >>> from ecotraj.trajectories import define_trajectories
    >>> from ecotraj.comparison.shifts import trajectory_shifts
    >>> line = np.array([[0.0, 0.0], [0.0, 1.0], [0.0, 2.0]])
    >>> d = squareform(pdist(np.vstack([line, line])))
    >>> x = define_trajectories(
    ...     d, ["ref"] * 3 + ["late"] * 3, times=[0, 1, 2, 2, 3, 4]
    ... )
    >>> trajectory_shifts(x, reference="ref")["shift"].tolist()
    [2.0, 2.0, 2.0]
    """
    references = x.entity_labels if reference is None else [reference]
    records = []
    for ref in references:
        ref_idx = x.indices(ref)
        ref_times = x.times[ref_idx]
        for entity in x.entity_labels:
            if entity == ref:
                continue
            for point in x.indices(entity):
                result = orthogonal_projection(
                    x.distances, int(point), ref_idx, correction=correction
                )
                if result.out_of_range or result.segment < 0:
                    reference_time = np.nan
                else:
                    s = result.segment
                    reference_time = float(
                        ref_times[s]
                        + result.segment_position * (ref_times[s + 1] - ref_times[s])
                    )
                time = float(x.times[point])
                records.append(
                    {
                        "reference": ref,
                        "entity": entity,
                        "survey": int(x.surveys[point]),
                        "time": time,
                        "reference_time": reference_time,
                        "shift": time - reference_time,
                    }
                )
    return pd.DataFrame.from_records(
        records,
        columns=["reference", "entity", "survey", "time", "reference_time", "shift"],
    )
