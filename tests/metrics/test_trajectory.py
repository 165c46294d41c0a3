"""Tests for single-trajectory metrics.

The straight four-state trajectory (0,0) -> (0,3) is the reference scenario:
unit segments, path length 3, zero turning angles and directionality 1.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose
from scipy.spatial.distance import pdist, squareform

from ecotraj import define_trajectories
from ecotraj.errors import ZeroDurationError
from ecotraj.metrics.trajectory import (
    trajectory_angles,
    trajectory_directionality,
    trajectory_internal_variation,
    trajectory_lengths,
    trajectory_metrics,
    trajectory_projection,
    trajectory_speeds,
    trajectory_variability,
)


def _trajectories(coords, entities, **kwargs):
    return define_trajectories(squareform(pdist(np.asarray(coords, float))), entities, **kwargs)


class TestTrajectoryLengths:
    """Tests for trajectory_lengths()."""

    def test_linear(self, linear_trajectory):
        lengths = trajectory_lengths(linear_trajectory)
        assert list(lengths.columns) == ["S1", "S2", "S3", "path"]
        assert lengths.index.name == "entity"
        assert_allclose(lengths.loc["A"], [1.0, 1.0, 1.0, 3.0])

    def test_shorter_trajectories_padded_with_nan(self):
        x = _trajectories(
            [[0, 0], [0, 1], [0, 2], [5, 0], [5, 2]], ["A", "A", "A", "B", "B"]
        )
        lengths = trajectory_lengths(x)
        assert lengths.loc["B", "S1"] == pytest.approx(2.0)
        assert np.isnan(lengths.loc["B", "S2"])
        assert lengths.loc["B", "path"] == pytest.approx(2.0)

    def test_single_state_has_zero_path(self):
        x = _trajectories([[0, 0], [1, 1], [2, 2]], ["A", "A", "B"])
        assert trajectory_lengths(x).loc["B", "path"] == 0.0

    def test_relative_to_initial(self, linear_trajectory):
        lengths = trajectory_lengths(linear_trajectory, relative_to_initial=True)
        assert list(lengths.columns) == ["L1_2", "L1_3", "L1_4", "path"]
        assert_allclose(lengths.loc["A"], [1.0, 2.0, 3.0, 3.0])

    def test_all_states(self, linear_trajectory):
        lengths = trajectory_lengths(linear_trajectory, all_states=True)
        assert list(lengths.columns) == [
            "L1_2",
            "L1_3",
            "L1_4",
            "L2_3",
            "L2_4",
            "L3_4",
            "path",
        ]
        assert lengths.loc["A", "L2_4"] == pytest.approx(2.0)

    def test_reversal_preserves_path_length(self, reversed_trajectories):
        lengths = trajectory_lengths(reversed_trajectories)
        assert lengths.loc["A", "path"] == pytest.approx(lengths.loc["B", "path"])


class TestTrajectorySpeeds:
    """Tests for trajectory_speeds()."""

    def test_constant_speed(self, line_coords):
        x = _trajectories(line_coords, ["A"] * 4, times=[0.0, 2.0, 4.0, 6.0])
        speeds = trajectory_speeds(x)
        assert_allclose(speeds.loc["A"], [0.5, 0.5, 0.5, 0.5])

    def test_uneven_times(self, line_coords):
        x = _trajectories(line_coords, ["A"] * 4, times=[0.0, 1.0, 3.0, 6.0])
        speeds = trajectory_speeds(x)
        assert_allclose(speeds.loc["A"], [1.0, 0.5, 1.0 / 3.0, 0.5])

    @pytest.fixture
    def simultaneous(self, line_coords):
        return _trajectories(
            line_coords, ["A"] * 4, surveys=[1, 2, 3, 4], times=[0.0, 0.0, 1.0, 2.0]
        )

    def test_zero_duration_nan(self, simultaneous):
        speeds = trajectory_speeds(simultaneous)
        assert np.isnan(speeds.loc["A", "S1"])
        assert speeds.loc["A", "S2"] == pytest.approx(1.0)
        assert speeds.loc["A", "path"] == pytest.approx(1.5)

    def test_zero_duration_inf(self, simultaneous):
        speeds = trajectory_speeds(simultaneous, zero_duration="inf")
        assert np.isinf(speeds.loc["A", "S1"])

    def test_zero_duration_raise(self, simultaneous):
        with pytest.raises(ZeroDurationError):
            trajectory_speeds(simultaneous, zero_duration="raise")

    def test_invalid_policy(self, linear_trajectory):
        with pytest.raises(ValueError, match="zero_duration"):
            trajectory_speeds(linear_trajectory, zero_duration="skip")

    def test_single_state_speed_is_nan(self):
        x = _trajectories([[0, 0], [1, 1], [2, 2]], ["A", "A", "B"])
        assert np.isnan(trajectory_speeds(x).loc["B", "path"])


class TestTrajectoryAngles:
    """Tests for trajectory_angles()."""

    def test_straight_trajectory(self, linear_trajectory):
        angles = trajectory_angles(linear_trajectory)
        assert list(angles.columns) == ["S1-S2", "S2-S3", "mean", "sd", "rho"]
        assert_allclose(angles.loc["A", ["S1-S2", "S2-S3"]], [0.0, 0.0], atol=1e-6)
        assert angles.loc["A", "rho"] == pytest.approx(1.0)

    def test_right_angle(self, right_angle_trajectory):
        angles = trajectory_angles(right_angle_trajectory)
        assert angles.loc["A", "S1-S2"] == pytest.approx(90.0)
        assert angles.loc["A", "mean"] == pytest.approx(90.0)

    def test_reversal(self):
        x = _trajectories([[0, 0], [1, 0], [0, 0.5]], ["A"] * 3)
        assert trajectory_angles(x).loc["A", "S1-S2"] == pytest.approx(
            180.0 - np.degrees(np.arctan2(0.5, 1.0))
        )

    def test_reversed_trajectory_has_same_angles(self, random_coords):
        coords = np.vstack([random_coords[:5], random_coords[:5][::-1]])
        x = _trajectories(coords, ["A"] * 5 + ["B"] * 5)
        angles = trajectory_angles(x)
        forward = angles.loc["A", ["S1-S2", "S2-S3", "S3-S4"]].to_numpy()
        backward = angles.loc["B", ["S1-S2", "S2-S3", "S3-S4"]].to_numpy()
        assert_allclose(forward, backward[::-1])

    def test_all_triplets(self, linear_trajectory):
        angles = trajectory_angles(linear_trajectory, all_triplets=True)
        assert list(angles.columns) == [
            "1-2-3",
            "1-2-4",
            "1-3-4",
            "2-3-4",
            "mean",
            "sd",
            "rho",
        ]
        assert_allclose(angles.loc["A", ["1-2-3", "1-3-4"]], [0.0, 0.0], atol=1e-6)

    def test_relative_to_initial(self, right_angle_trajectory):
        angles = trajectory_angles(right_angle_trajectory, relative_to_initial=True)
        # seen from (0,0): direction to (1,0) vs direction to (1,1)
        assert angles.loc["A", "R2-3"] == pytest.approx(45.0)

    def test_degenerate_triplet_is_nan(self):
        x = _trajectories([[0, 0], [1, 0], [1, 0], [2, 0]], ["A"] * 4)
        angles = trajectory_angles(x)
        assert np.isnan(angles.loc["A", "S1-S2"])
        assert np.isnan(angles.loc["A", "S2-S3"])
        assert np.isnan(angles.loc["A", "mean"])

    def test_too_short_for_angles(self):
        x = _trajectories([[0, 0], [1, 0]], ["A"] * 2)
        angles = trajectory_angles(x)
        assert list(angles.columns) == ["mean", "sd", "rho"]
        assert np.isnan(angles.loc["A", "mean"])

    def test_non_metric_input(self, semimetric_matrix):
        x = define_trajectories(semimetric_matrix, ["A"] * 3)
        angle = trajectory_angles(x).loc["A", "S1-S2"]
        assert angle == pytest.approx(0.0, abs=1e-6)


class TestTrajectoryDirectionality:
    """Tests for trajectory_directionality()."""

    def test_straight_is_one(self, linear_trajectory):
        directionality = trajectory_directionality(linear_trajectory)
        assert directionality.name == "directionality"
        assert directionality.loc["A"] == pytest.approx(1.0)

    def test_zigzag_is_lower(self):
        x = _trajectories([[0, 0], [1, 1], [2, 0], [3, 1]], ["A"] * 4)
        value = trajectory_directionality(x).loc["A"]
        assert 0.0 < value < 1.0

    def test_back_and_forth_is_lowest(self):
        zigzag = _trajectories([[0, 0], [1, 1], [2, 0], [3, 1]], ["A"] * 4)
        back_and_forth = _trajectories([[0, 0], [1, 0], [0, 0.01], [1, 0.02]], ["A"] * 4)
        assert (
            trajectory_directionality(back_and_forth).loc["A"]
            < trajectory_directionality(zigzag).loc["A"]
        )

    def test_degenerate_triplets_skipped(self):
        x = _trajectories([[0, 0], [1, 0], [1, 0], [2, 0]], ["A"] * 4)
        assert trajectory_directionality(x).loc["A"] == pytest.approx(1.0)

    def test_fewer_than_three_states(self):
        x = _trajectories([[0, 0], [1, 0], [5, 5], [6, 5], [7, 5]], ["A"] * 2 + ["B"] * 3)
        directionality = trajectory_directionality(x)
        assert np.isnan(directionality.loc["A"])
        assert directionality.loc["B"] == pytest.approx(1.0)


class TestTrajectoryInternalVariation:
    """Tests for trajectory_internal_variation()."""

    def test_linear(self, linear_trajectory):
        variation = trajectory_internal_variation(linear_trajectory)
        # centroid (0, 1.5): 2.25 + 0.25 + 0.25 + 2.25
        assert variation.loc["A", "ss"] == pytest.approx(5.0)
        assert variation.loc["A", "variance"] == pytest.approx(5.0 / 3.0)
        assert_allclose(
            variation.loc["A", ["T1", "T2", "T3", "T4"]], [0.45, 0.05, 0.05, 0.45]
        )

    def test_absolute_contributions(self, linear_trajectory):
        variation = trajectory_internal_variation(linear_trajectory, relative=False)
        assert_allclose(
            variation.loc["A", ["T1", "T2", "T3", "T4"]], [2.25, 0.25, 0.25, 2.25]
        )

    def test_single_state(self):
        x = _trajectories([[0, 0], [1, 0], [5, 5]], ["A", "A", "B"])
        variation = trajectory_internal_variation(x)
        assert variation.loc["B", "ss"] == 0.0
        assert np.isnan(variation.loc["B", "variance"])

    def test_variability_alias(self, random_trajectories):
        pd.testing.assert_frame_equal(
            trajectory_variability(random_trajectories),
            trajectory_internal_variation(random_trajectories),
        )


class TestTrajectoryProjection:
    """Tests for trajectory_projection()."""

    def test_self_projection(self, linear_trajectory):
        table = trajectory_projection(linear_trajectory)
        assert table.index.name == "state"
        assert_allclose(table["relative_position"], [0.0, 1 / 3, 2 / 3, 1.0])
        assert_allclose(table["distance_to_trajectory"], 0.0, atol=1e-12)
        assert not table["out_of_range"].any()

    def test_projection_onto_reference(self):
        coords = [[0, 0], [0, 1], [0, 2], [0, 3], [1, 1.5], [1, 3], [1, 4]]
        x = _trajectories(coords, ["A"] * 4 + ["B"] * 3)
        table = trajectory_projection(x, reference="A")
        assert list(table.index) == [4, 5, 6]
        assert_allclose(table["relative_position"], [0.5, 1.0, 1.0])
        assert_allclose(table["distance_to_trajectory"], [1.0, 1.0, np.sqrt(2.0)])
        assert table["out_of_range"].tolist() == [False, False, True]
        assert table["segment"].tolist() == [2, 3, 3]

    def test_explicit_targets(self, linear_trajectory):
        table = trajectory_projection(linear_trajectory, target=[2])
        assert list(table.index) == [2]
        assert table.loc[2, "entity"] == "A"
        assert table.loc[2, "survey"] == 3


class TestTrajectoryMetrics:
    """Tests for trajectory_metrics()."""

    def test_linear(self, linear_trajectory):
        metrics = trajectory_metrics(linear_trajectory)
        assert list(metrics.columns) == [
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
        ]
        row = metrics.loc["A"]
        assert row["n"] == 4
        assert row["duration"] == pytest.approx(3.0)
        assert row["length"] == pytest.approx(3.0)
        assert row["mean_speed"] == pytest.approx(1.0)
        assert row["directionality"] == pytest.approx(1.0)
        assert row["internal_ss"] == pytest.approx(5.0)

    def test_one_row_per_entity(self, random_trajectories):
        metrics = trajectory_metrics(random_trajectories)
        assert list(metrics.index) == ["s1", "s2", "s3"]
        assert metrics["n"].dtype == np.int64
        assert (metrics["directionality"].between(0.0, 1.0)).all()
