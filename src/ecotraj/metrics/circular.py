"""Circular summaries of trajectory angles.

Angles between segments are summarized with circular statistics: the
circular mean, the circular standard deviation and the mean resultant
length ``rho`` (1 = all angles identical, 0 = uniformly spread).

NaN angles (degenerate triplets) are ignored.

References
----------
Mardia, K.V. & Jupp, P.E. (2000). Directional Statistics. Wiley.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.stats import circmean, circstd

__all__ = [
    "circular_summary",
    "mean_resultant_length",
]


def _to_radians(
    angles: ArrayLike, angle_unit: Literal["rad", "deg"]
) -> NDArray[np.float64]:
    arr = np.asarray(angles, dtype=np.float64).ravel()
    arr = arr[~np.isnan(arr)]
    if angle_unit == "deg":
        return np.radians(arr)
    return arr


def mean_resultant_length(
    angles: ArrayLike, *, angle_unit: Literal["rad", "deg"] = "rad"
) -> float:
    """
    Mean resultant length of a set of angles.

    Parameters
    ----------
    angles : array-like
        Angles; NaN values are ignored.
    angle_unit : {"rad", "deg"}, default="rad"
        Unit of ``angles``.

    Returns
    -------
    float
        :math:`R = |\\overline{e^{i\\theta}}|` in [0, 1], NaN if no valid
        angle is given.
    """
    radians = _to_radians(angles, angle_unit)
    if radians.size == 0:
        return np.nan
    return float(np.hypot(np.mean(np.cos(radians)), np.mean(np.sin(radians))))


def circular_summary(
    angles: ArrayLike, *, angle_unit: Literal["rad", "deg"] = "deg"
) -> tuple[float, float, float]:
    """
    Circular mean, standard deviation and mean resultant length.

    Parameters
    ----------
    angles : array-like
        Angles; NaN values are ignored.
    angle_unit : {"rad", "deg"}, default="deg"
        Unit of ``angles`` and of the returned mean and deviation.

    Returns
    -------
    mean : float
        Circular mean, wrapped to [0, 360) degrees or [0, 2π) radians.
    sd : float
        Circular standard deviation :math:`\\sqrt{-2 \\ln R}`.
    rho : float
        Mean resultant length.

    Examples
    --------
    >>> from ecotraj.metrics.circular import circular_summary
    >>> circular_summary([0.0, 0.0, 0.0])
    (0.0, 0.0, 1.0)
    """
    radians = _to_radians(angles, angle_unit)
    if radians.size == 0:
        return np.nan, np.nan, np.nan
    mean = float(circmean(radians, high=2 * np.pi, low=0.0))
    sd = float(circstd(radians, high=2 * np.pi, low=0.0))
    rho = mean_resultant_length(radians)
    if angle_unit == "deg":
        mean, sd = float(np.degrees(mean)), float(np.degrees(sd))
    # Wrap values that round to a full turn back to zero
    full_turn = 360.0 if angle_unit == "deg" else 2 * np.pi
    if np.isclose(mean, full_turn):
        mean = 0.0
    return mean, sd, rho
