"""Shared test fixtures for the ecotraj test suite.

Fixture Naming Convention
=========================

Fixtures are built from explicit coordinates turned into Euclidean
dissimilarities with ``pdist``/``squareform``, so that expected values can be
worked out by hand:

    - {shape}_trajectory: a single entity (e.g. linear_trajectory)
    - {relation}_trajectories: several entities with a known geometric
      relation (e.g. reversed_trajectories, parallel_trajectories)
    - random_{what}: seeded random collections for invariance checks
"""

import os

import numpy as np
import pytest
from hypothesis import Phase, Verbosity, settings
from numpy.typing import NDArray
from scipy.spatial.distance import pdist, squareform

from ecotraj import Trajectories, define_trajectories

# =============================================================================
# Hypothesis Configuration for Performance
# =============================================================================
# Register Hypothesis profiles for different testing scenarios:
# - "ci": Fast profile for CI pipelines (fewer examples, no deadline)
# - "dev": Standard development profile (moderate examples)
# - "thorough": Full property testing (many examples, for pre-release)

settings.register_profile(
    "ci",
    max_examples=10,
    deadline=None,  # Disable deadline in CI (variable performance)
    suppress_health_check=[],
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
    verbosity=Verbosity.quiet,
)

settings.register_profile(
    "dev",
    max_examples=25,
    deadline=5000,  # 5 second deadline
    verbosity=Verbosity.normal,
)

settings.register_profile(
    "thorough",
    max_examples=100,
    deadline=None,
    verbosity=Verbosity.verbose,
)

# Load profile based on environment variable (default to "dev")
# Set HYPOTHESIS_PROFILE=ci in CI environments for faster tests
_profile = os.environ.get("HYPOTHESIS_PROFILE", "dev")
settings.load_profile(_profile)

# =============================================================================
# Test Configuration Constants
# =============================================================================

DEFAULT_SEED = 42

# Tolerance for quantities reconstructed from Gram matrices
GRAM_TOLERANCE = 1e-8

# Offset between the parallel trajectories fixture
PARALLEL_OFFSET = 5.0


def euclidean(coords: NDArray[np.float64]) -> NDArray[np.float64]:
    """Square Euclidean distance matrix of a coordinate array."""
    return squareform(pdist(np.asarray(coords, dtype=np.float64)))


# =============================================================================
# --- Fixtures ---
# =============================================================================
@pytest.fixture
def line_coords() -> NDArray[np.float64]:
    """Four equally spaced collinear states (0,0) -> (0,3)."""
    return np.array([[0.0, 0.0], [0.0, 1.0], [0.0, 2.0], [0.0, 3.0]])


@pytest.fixture
def linear_trajectory(line_coords: NDArray[np.float64]) -> Trajectories:
    """Single straight trajectory with unit segments and times 0..3."""
    return define_trajectories(
        euclidean(line_coords), entities=["A"] * 4, times=[0.0, 1.0, 2.0, 3.0]
    )


@pytest.fixture
def right_angle_trajectory() -> Trajectories:
    """Three states turning by 90 degrees at the middle one."""
    coords = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]])
    return define_trajectories(euclidean(coords), entities=["A"] * 3)


@pytest.fixture
def reversed_trajectories(line_coords: NDArray[np.float64]) -> Trajectories:
    """Entity B traverses the same states as A in reverse survey order."""
    coords = np.vstack([line_coords, line_coords[::-1]])
    return define_trajectories(euclidean(coords), entities=["A"] * 4 + ["B"] * 4)


@pytest.fixture
def parallel_trajectories(line_coords: NDArray[np.float64]) -> Trajectories:
    """Two synchronous straight trajectories, B shifted sideways from A."""
    offset = line_coords + np.array([PARALLEL_OFFSET, 0.0])
    coords = np.vstack([line_coords, offset])
    return define_trajectories(
        euclidean(coords),
        entities=["A"] * 4 + ["B"] * 4,
        times=[0.0, 1.0, 2.0, 3.0] * 2,
    )


@pytest.fixture
def random_coords() -> NDArray[np.float64]:
    """Seeded 3D coordinates for three entities of five states each."""
    rng = np.random.default_rng(DEFAULT_SEED)
    return rng.normal(size=(15, 3)) * 10.0


@pytest.fixture
def random_trajectories(random_coords: NDArray[np.float64]) -> Trajectories:
    """Synchronous random collection of three five-state trajectories."""
    return define_trajectories(
        euclidean(random_coords),
        entities=["s1"] * 5 + ["s2"] * 5 + ["s3"] * 5,
        times=[2000.0, 2002.0, 2004.0, 2006.0, 2008.0] * 3,
    )


@pytest.fixture
def semimetric_matrix() -> NDArray[np.float64]:
    """Three states violating the triangle inequality (5 > 1 + 1)."""
    return np.array([[0.0, 1.0, 5.0], [1.0, 0.0, 1.0], [5.0, 1.0, 0.0]])
