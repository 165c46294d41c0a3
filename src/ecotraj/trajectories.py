"""Trajectory data model.

A :class:`Trajectories` object binds a dissimilarity matrix between
ecological states to per-observation metadata: the entity (site, individual,
community) each state belongs to, its survey index and its survey time.
Trajectories are never stored explicitly; each one is the survey-ordered
sequence of the observations sharing an entity label.

Instances are immutable. Transformations (centering, smoothing,
interpolation, subsetting) return new instances.

Examples
--------
>>> import numpy as np
>>> from scipy.spatial.distance import pdist, squareform
>>> from ecotraj.trajectories import define_trajectories
>>> coords = np.array([[0, 0], [0, 1], [0, 2], [1, 0], [1, 1], [1, 2]])
>>> d = squareform(pdist(coords))
>>> x = define_trajectories(d, entities=["A", "A", "A", "B", "B", "B"])
>>> x.entity_labels
['A', 'B']
>>> x.indices("B")
array([3, 4, 5])
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray
from scipy.spatial.distance import squareform

from ecotraj.errors import (
    DimensionMismatchError,
    DuplicateSurveyError,
    EmptySelectionError,
)

__all__ = [
    "Trajectories",
    "define_trajectories",
    "is_synchronous",
    "subset_trajectories",
]

logger = logging.getLogger(__name__)

# Absolute tolerance used when checking symmetry of input matrices
_SYMMETRY_TOLERANCE = 1e-8


def _as_square_matrix(d: ArrayLike | pd.DataFrame) -> NDArray[np.float64]:
    """Convert square, DataFrame or condensed input into a square float array."""
    if isinstance(d, pd.DataFrame):
        d = d.to_numpy(dtype=np.float64)
    arr = np.array(d, dtype=np.float64)

    if arr.ndim == 1:
        try:
            arr = squareform(arr, checks=False)
        except ValueError as exc:
            raise DimensionMismatchError(
                f"Condensed distance vector of length {arr.size} does not "
                "correspond to any square matrix."
            ) from exc

    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise DimensionMismatchError(
            f"Dissimilarity matrix must be square, got shape {arr.shape}."
        )
    return arr


@dataclass(frozen=True, eq=False)
class Trajectories:
    """Dissimilarities between ecological states plus observation metadata.

    Use :func:`define_trajectories` to build instances; it resolves default
    surveys and times before calling this constructor.

    Parameters
    ----------
    distances : NDArray[np.float64], shape (n, n)
        Symmetric, zero-diagonal, non-negative dissimilarity matrix.
    entities : NDArray[np.object_], shape (n,)
        Entity label of each observation.
    surveys : NDArray[np.int64], shape (n,)
        Survey index of each observation, unique within an entity.
    times : NDArray[np.float64], shape (n,)
        Survey time of each observation.

    Raises
    ------
    DimensionMismatchError
        If the metadata vectors do not match the matrix size.
    DuplicateSurveyError
        If two observations of one entity share a survey index.
    ValueError
        If the matrix is not symmetric, has a non-zero diagonal, or contains
        negative or non-finite values.
        Also raised if survey times decrease in survey order within an
        entity.

    Notes
    -----
    All arrays are copied and flagged read-only on construction.
    """

    distances: NDArray[np.float64]
    entities: NDArray[np.object_]
    surveys: NDArray[np.int64]
    times: NDArray[np.float64]

    def __post_init__(self) -> None:
        d = _as_square_matrix(self.distances)
        entities = np.array(self.entities, dtype=object).ravel()
        surveys = np.array(self.surveys).ravel()
        times = np.array(self.times, dtype=np.float64).ravel()

        n = d.shape[0]
        for name, values in (
            ("entities", entities),
            ("surveys", surveys),
            ("times", times),
        ):
            if len(values) != n:
                raise DimensionMismatchError(
                    f"Length of {name} ({len(values)}) does not match the "
                    f"number of rows of the dissimilarity matrix ({n})."
                )

        if not np.all(np.isfinite(d)):
            raise ValueError("Dissimilarity matrix contains non-finite values.")
        if np.any(d < 0):
            raise ValueError("Dissimilarity matrix contains negative values.")
        if not np.allclose(d, d.T, rtol=0.0, atol=_SYMMETRY_TOLERANCE):
            raise ValueError("Dissimilarity matrix must be symmetric.")
        if np.any(np.abs(np.diag(d)) > _SYMMETRY_TOLERANCE):
            raise ValueError("Dissimilarity matrix must have a zero diagonal.")
        if not np.all(np.isfinite(times)):
            raise ValueError("Survey times must be finite.")

        if n > 0 and not np.all(np.equal(np.mod(surveys, 1), 0)):
            raise ValueError("Survey indices must be integers.")
        surveys = surveys.astype(np.int64)

        table = pd.DataFrame({"entity": entities, "survey": surveys})
        duplicated = table.duplicated(keep=False)
        if duplicated.any():
            offending = table.loc[duplicated].drop_duplicates()
            pairs = ", ".join(
                f"{row.entity!r}/{row.survey}" for row in offending.itertuples()
            )
            raise DuplicateSurveyError(
                f"Duplicated survey indices within entities: {pairs}."
            )

        table["time"] = times
        steps = table.sort_values("survey").groupby("entity", sort=False)["time"].diff()
        if (steps < 0).any():
            backwards = pd.unique(table.loc[steps.index[steps < 0], "entity"])
            raise ValueError(
                "Survey times must be non-decreasing in survey order; times "
                f"decrease within entities: {', '.join(map(repr, backwards))}."
            )

        # Exact symmetry from here on
        d = (d + d.T) / 2.0
        np.fill_diagonal(d, 0.0)

        for arr in (d, entities, surveys, times):
            arr.flags.writeable = False

        object.__setattr__(self, "distances", d)
        object.__setattr__(self, "entities", entities)
        object.__setattr__(self, "surveys", surveys)
        object.__setattr__(self, "times", times)

    def __repr__(self) -> str:
        return (
            f"Trajectories(n_observations={self.n_observations}, "
            f"n_entities={len(self.entity_labels)})"
        )

    @property
    def n_observations(self) -> int:
        """Number of observations (rows of the dissimilarity matrix)."""
        return int(self.distances.shape[0])

    @property
    def entity_labels(self) -> list[Any]:
        """Entity labels in order of first appearance."""
        return list(pd.unique(pd.Series(self.entities, dtype=object)))

    @property
    def n_per_entity(self) -> pd.Series:
        """Number of observations of each entity."""
        return pd.Series(
            [len(self.indices(e)) for e in self.entity_labels],
            index=pd.Index(self.entity_labels, name="entity"),
            name="n",
        )

    @property
    def observations(self) -> pd.DataFrame:
        """Observation table with one row per matrix index."""
        return pd.DataFrame(
            {
                "entity": self.entities,
                "survey": self.surveys,
                "time": self.times,
            }
        )

    def indices(self, entity: Any) -> NDArray[np.intp]:
        """Matrix indices of an entity's observations, ordered by survey.

        Parameters
        ----------
        entity : hashable
            Entity label.

        Returns
        -------
        NDArray[np.intp]
            Row indices into :attr:`distances`.

        Raises
        ------
        KeyError
            If the entity does not exist.
        """
        idx = np.flatnonzero(self.entities == entity)
        if idx.size == 0:
            raise KeyError(f"Unknown entity {entity!r}")
        order = np.argsort(self.surveys[idx], kind="stable")
        return idx[order]

    def entity_times(self, entity: Any) -> NDArray[np.float64]:
        """Survey-ordered times of an entity."""
        return self.times[self.indices(entity)]

    def entity_surveys(self, entity: Any) -> NDArray[np.int64]:
        """Sorted survey indices of an entity."""
        return self.surveys[self.indices(entity)]

    def segments(self, entity: Any) -> list[tuple[int, int]]:
        """Consecutive index pairs forming the entity's segments."""
        idx = self.indices(entity)
        return [(int(a), int(b)) for a, b in zip(idx[:-1], idx[1:])]

    def with_distances(self, distances: NDArray[np.float64]) -> Trajectories:
        """Return a copy bound to a new dissimilarity matrix of the same shape."""
        if np.shape(distances) != self.distances.shape:
            raise DimensionMismatchError(
                f"New dissimilarity matrix has shape {np.shape(distances)}, "
                f"expected {self.distances.shape}."
            )
        return replace(self, distances=distances)


def _resolve_surveys_and_times(
    entities: NDArray[np.object_],
    surveys: ArrayLike | None,
    times: ArrayLike | None,
) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
    """Fill in missing surveys and times once, at construction.

    - surveys and times missing: surveys are the 1-based rank of appearance
      within each entity and times equal surveys.
    - only times missing: times equal surveys.
    - only surveys missing: surveys are the 1-based rank of time within each
      entity.
    """
    n = len(entities)
    groups = pd.Series(entities, dtype=object)

    if surveys is not None:
        surveys_arr = np.asarray(surveys).ravel()
        if len(surveys_arr) != n:
            raise DimensionMismatchError(
                f"Length of surveys ({len(surveys_arr)}) does not match the "
                f"number of entities ({n})."
            )
    if times is not None:
        times_arr = np.asarray(times, dtype=np.float64).ravel()
        if len(times_arr) != n:
            raise DimensionMismatchError(
                f"Length of times ({len(times_arr)}) does not match the "
                f"number of entities ({n})."
            )

    if surveys is None and times is None:
        surveys_arr = groups.groupby(groups, sort=False).cumcount().to_numpy() + 1
        times_arr = surveys_arr.astype(np.float64)
    elif times is None:
        times_arr = surveys_arr.astype(np.float64)
    elif surveys is None:
        ranks = pd.Series(times_arr).groupby(groups.to_numpy(), sort=False)
        surveys_arr = ranks.rank(method="first").to_numpy()

    return np.asarray(surveys_arr), times_arr


def define_trajectories(
    d: ArrayLike | pd.DataFrame,
    entities: ArrayLike,
    surveys: ArrayLike | None = None,
    times: ArrayLike | None = None,
) -> Trajectories:
    """
    Bind a dissimilarity matrix to trajectory metadata.

    Parameters
    ----------
    d : array-like, shape (n, n) or (n * (n - 1) / 2,)
        Dissimilarities between ecological states. Square matrices,
        DataFrames and condensed vectors (as returned by
        :func:`scipy.spatial.distance.pdist`) are accepted. How the
        dissimilarities were produced is irrelevant to this package.
    entities : array-like, shape (n,)
        Entity (site, individual, community) of each observation.
    surveys : array-like of int, shape (n,), optional
        Survey index of each observation, defining the order within an
        entity. Defaults to the rank of ``times`` within each entity, or to
        the order of appearance when ``times`` is also missing.
    times : array-like of float, shape (n,), optional
        Survey times. Defaults to ``surveys``.

    Returns
    -------
    Trajectories
        Immutable collection with surveys and times fully resolved.

    Raises
    ------
    DimensionMismatchError
        If input sizes disagree or the matrix is not square.
    DuplicateSurveyError
        If two observations of the same entity share a survey index.
    ValueError
        If the matrix is invalid or an entity's times decrease in survey
        order.

    Examples
    --------
    >>> import numpy as np
    >>> from ecotraj.trajectories import define_trajectories
    >>> d = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, 1.0], [2.0, 1.0, 0.0]])
    >>> x = define_trajectories(d, entities=["s1", "s1", "s1"], times=[2000, 2005, 2010])
    >>> x.surveys
    array([1, 2, 3])
    """
    matrix = _as_square_matrix(d)
    entities_arr = np.array(entities, dtype=object).ravel()
    if len(entities_arr) != matrix.shape[0]:
        raise DimensionMismatchError(
            f"Length of entities ({len(entities_arr)}) does not match the "
            f"number of rows of the dissimilarity matrix ({matrix.shape[0]})."
        )

    surveys_arr, times_arr = _resolve_surveys_and_times(entities_arr, surveys, times)
    x = Trajectories(
        distances=matrix,
        entities=entities_arr,
        surveys=surveys_arr,
        times=times_arr,
    )
    logger.debug(
        "Defined %d trajectories over %d observations",
        len(x.entity_labels),
        x.n_observations,
    )
    return x


def subset_trajectories(
    x: Trajectories,
    entities: Sequence[Any] | None = None,
    surveys: Sequence[int] | None = None,
) -> Trajectories:
    """
    Select a subset of entities and/or surveys.

    Parameters
    ----------
    x : Trajectories
        Source collection.
    entities : sequence, optional
        Entities to keep, in output order. Defaults to all entities.
    surveys : sequence of int, optional
        Survey indices to keep within each selected entity. Defaults to all.

    Returns
    -------
    Trajectories
        New collection. Surveys are renumbered 1..k within each entity;
        times are preserved.

    Raises
    ------
    EmptySelectionError
        If a named entity is absent, a named survey is absent from every
        selected entity, or the selection contains no observation.
    """
    labels = x.entity_labels
    if entities is None:
        selected = labels
    else:
        selected = list(entities)
        missing = [e for e in selected if e not in labels]
        if missing:
            raise EmptySelectionError(f"Entities not found: {missing}.")

    rows: list[int] = []
    for entity in selected:
        idx = x.indices(entity)
        if surveys is not None:
            idx = idx[np.isin(x.surveys[idx], np.asarray(surveys))]
        rows.extend(int(i) for i in idx)

    if surveys is not None:
        kept = set(x.surveys[rows].tolist()) if rows else set()
        missing_surveys = [s for s in surveys if s not in kept]
        if missing_surveys:
            raise EmptySelectionError(f"Surveys not found: {missing_surveys}.")

    if not rows:
        raise EmptySelectionError("Selection contains no observations.")

    rows_arr = np.asarray(rows, dtype=np.intp)
    new_entities = x.entities[rows_arr]
    renumbered = (
        pd.Series(new_entities, dtype=object)
        .groupby(new_entities, sort=False)
        .cumcount()
        .to_numpy()
        + 1
    )
    return Trajectories(
        distances=x.distances[np.ix_(rows_arr, rows_arr)],
        entities=new_entities,
        surveys=renumbered,
        times=x.times[rows_arr],
    )


def is_synchronous(x: Trajectories, *, tol: float = 1e-8) -> bool:
    """
    Check whether all trajectories share survey counts and times.

    Parameters
    ----------
    x : Trajectories
        Collection to check.
    tol : float, default=1e-8
        Absolute tolerance when comparing times.

    Returns
    -------
    bool
        True if every entity has the same number of observations and
        identical times at each survey rank.
    """
    reference: NDArray[np.float64] | None = None
    for entity in x.entity_labels:
        entity_times = x.entity_times(entity)
        if reference is None:
            reference = entity_times
            continue
        if len(entity_times) != len(reference):
            return False
        if not np.allclose(entity_times, reference, rtol=0.0, atol=tol):
            return False
    return True
