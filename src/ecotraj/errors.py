"""Exceptions and warnings raised by ecotraj.

Every exception carries a stable error code in its message (``[E2001]`` ...)
so that failures can be looked up in the documentation.

Construction-time errors (:class:`DimensionMismatchError`,
:class:`DuplicateSurveyError`, :class:`EmptySelectionError`) abort the
operation. Numerical edge cases (:class:`DegenerateSegmentError`,
:class:`ZeroDurationError`, :class:`OutOfRangeTargetError`) are raised by the
low-level primitives and caught by the table-producing functions, which
report the affected cell as NaN.

All exceptions derive from :class:`TrajectoryError`, itself a
:class:`ValueError`, so callers can catch either.
"""

from __future__ import annotations

__all__ = [
    "DegenerateSegmentError",
    "DimensionMismatchError",
    "DuplicateSurveyError",
    "EmptySelectionError",
    "NonMetricInputWarning",
    "OutOfRangeTargetError",
    "SynchronyRequiredError",
    "TrajectoryError",
    "ZeroDurationError",
]


class TrajectoryError(ValueError):
    """Base class for ecotraj errors.

    Parameters
    ----------
    message : str
        Human-readable description of the problem.
    error_code : str, optional
        Error code for documentation reference.

    """

    default_code = "E2000"

    def __init__(self, message: str, error_code: str | None = None) -> None:
        self.error_code = error_code or self.default_code
        super().__init__(f"[{self.error_code}] {message}")


class DimensionMismatchError(TrajectoryError):
    """Raised when the dissimilarity matrix and metadata vectors disagree in size."""

    default_code = "E2001"


class DuplicateSurveyError(TrajectoryError):
    """Raised when two observations of one entity share a survey index."""

    default_code = "E2002"


class EmptySelectionError(TrajectoryError):
    """Raised when a selection is empty or names absent entities or surveys."""

    default_code = "E2003"


class DegenerateSegmentError(TrajectoryError):
    """Raised when an angle or direction is requested for a zero-length segment.

    Table-producing functions catch this error and report NaN for the
    affected triplet.
    """

    default_code = "E2004"


class ZeroDurationError(TrajectoryError):
    """Raised when a speed is requested over a zero time difference."""

    default_code = "E2005"


class SynchronyRequiredError(TrajectoryError):
    """Raised when an operation needs synchronous trajectories and gets others."""

    default_code = "E2006"


class OutOfRangeTargetError(TrajectoryError):
    """Raised when a time query lies outside a trajectory's observed time span."""

    default_code = "E2007"


class NonMetricInputWarning(UserWarning):
    """Informational warning for dissimilarities violating the triangle inequality.

    Non-metric input never halts a computation; angle and projection
    primitives correct offending triangles locally.
    """
