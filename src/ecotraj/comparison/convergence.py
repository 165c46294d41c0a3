"""Convergence and divergence trend tests.

Trajectories converge when the distance between them decreases over time
and diverge when it increases. The trend of a distance series is assessed
with the Mann-Kendall test, i.e. Kendall's tau between survey times and
distances (:func:`scipy.stats.kendalltau`). ``tau > 0`` indicates
divergence and ``tau < 0`` convergence.

Modes
-----
``"pairwise.symmetric"``
    For each pair of trajectories, the series of distances between their
    states at each survey rank. Requires synchronous trajectories.
``"pairwise.asymmetric"``
    For each ordered pair (A, B), the series of distances from each state of
    A to the path of B, over A's times. Works on non-synchronous data.
``"multiple"``
    Single test on the mean distance among all entities at each survey
    rank. Requires synchronous trajectories.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Literal

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike
from scipy.stats import kendalltau

from ecotraj.errors import SynchronyRequiredError
from ecotraj.ops.geometry import point_to_trajectory_distance
from ecotraj.ops.metricity import CorrectionMethod
from ecotraj.trajectories import Trajectories, is_synchronous

__all__ = [
    "ConvergenceResult",
    "trajectory_convergence",
    "trend_test",
]

ConvergenceMode = Literal["pairwise.symmetric", "pairwise.asymmetric", "multiple"]

_CONVERGENCE_MODES = ("pairwise.symmetric", "pairwise.asymmetric", "multiple")


@dataclass(frozen=True)
class ConvergenceResult:
    """Results of a convergence test.

    Attributes
    ----------
    tau : pd.DataFrame or float
        Mann-Kendall statistic. Entity-by-entity matrix for pairwise modes
        (row entity relative to column entity; NaN diagonal), scalar for
        ``"multiple"``.
    p_value : pd.DataFrame or float
        Two-sided p-values, same layout as ``tau``.
    mode : str
        Test mode.
    """

    tau: pd.DataFrame | float
    p_value: pd.DataFrame | float
    mode: str

    def summary(self) -> str:
        """Human-readable summary for printing."""
        if isinstance(self.tau, pd.DataFrame):
            n = self.tau.shape[0]
            return f"Pairwise convergence tests among {n} trajectories ({self.mode})"
        if np.isnan(self.tau):
            return "Convergence trend undefined"
        trend = "diverging" if self.tau > 0 else "converging"
        return f"tau = {self.tau:.3f} ({trend}), p = {self.p_value:.3g}"


def trend_test(times: ArrayLike, values: ArrayLike) -> tuple[float, float]:
    """
    Mann-Kendall trend test of a series.

    Parameters
    ----------
    times : array-like
        Observation times (ordering variable).
    values : array-like
        Series values.

    Returns
    -------
    tau : float
        Kendall's tau between times and values.
    p_value : float
        Two-sided p-value. Both are NaN for fewer than two observations or
        a constant series.
    """
    t = np.asarray(times, dtype=np.float64)
    v = np.asarray(values, dtype=np.float64)
    if len(v) < 2 or np.ptp(v) == 0.0 or np.ptp(t) == 0.0:
        return np.nan, np.nan
    tau, p_value = kendalltau(t, v)
    return float(tau), float(p_value)


def trajectory_convergence(
    x: Trajectories,
    *,
    mode: ConvergenceMode = "pairwise.asymmetric",
    correction: CorrectionMethod | None = "clamp",
) -> ConvergenceResult:
    """
    Test whether trajectories converge or diverge over time.

    Parameters
    ----------
    x : Trajectories
        Trajectory collection.
    mode : {"pairwise.symmetric", "pairwise.asymmetric", "multiple"}
        Test mode, see module documentation. Default "pairwise.asymmetric".
    correction : {"clamp", "additive"} or None, default="clamp"
        Local triangle correction for point-to-trajectory distances.

    Returns
    -------
    ConvergenceResult
        Mann-Kendall statistics and p-values.

    Raises
    ------
    SynchronyRequiredError
        If ``mode`` is "pairwise.symmetric" or "multiple" and the
        trajectories are not synchronous.
    ValueError
        If ``mode`` is not supported, or "multiple" is requested with fewer
        than two entities.
    """
    if mode not in _CONVERGENCE_MODES:
        raise ValueError(f"mode must be one of {list(_CONVERGENCE_MODES)}, got '{mode}'")
    if mode in ("pairwise.symmetric", "multiple") and not is_synchronous(x):
        raise SynchronyRequiredError(
            f"Convergence mode '{mode}' requires synchronous trajectories. "
            "Use mode='pairwise.asymmetric' or interpolate_trajectories() first."
        )

    d = x.distances
    labels = x.entity_labels
    indices = {entity: x.indices(entity) for entity in labels}

    if mode == "multiple":
        if len(labels) < 2:
            raise ValueError("mode='multiple' requires at least two entities.")
        times = x.entity_times(labels[0])
        means = [
            float(
                np.mean(
                    [
                        d[indices[a][k], indices[b][k]]
                        for a, b in combinations(labels, 2)
                    ]
                )
            )
            for k in range(len(times))
        ]
        tau, p_value = trend_test(times, means)
        return ConvergenceResult(tau=tau, p_value=p_value, mode=mode)

    n = len(labels)
    taus = np.full((n, n), np.nan)
    pvalues = np.full((n, n), np.nan)
    for a, entity_a in enumerate(labels):
        times = x.times[indices[entity_a]]
        for b, entity_b in enumerate(labels):
            if a == b or (mode == "pairwise.symmetric" and b < a):
                continue
            if mode == "pairwise.symmetric":
                series = d[indices[entity_a], indices[entity_b]]
            else:
                series = [
                    point_to_trajectory_distance(
                        d, int(p), indices[entity_b], correction=correction
                    )
                    for p in indices[entity_a]
                ]
            taus[a, b], pvalues[a, b] = trend_test(times, series)
            if mode == "pairwise.symmetric":
                taus[b, a], pvalues[b, a] = taus[a, b], pvalues[a, b]

    index = pd.Index(labels, name="entity")
    return ConvergenceResult(
        tau=pd.DataFrame(taus, index=index, columns=index.rename(None)),
        p_value=pd.DataFrame(pvalues, index=index, columns=index.rename(None)),
        mode=mode,
    )
