"""Tests for circular summaries of trajectory angles."""

from __future__ import annotations

import numpy as np
import pytest

from ecotraj.metrics.circular import circular_summary, mean_resultant_length


class TestMeanResultantLength:
    """Tests for mean_resultant_length()."""

    def test_identical_angles(self):
        assert mean_resultant_length([0.3, 0.3, 0.3]) == pytest.approx(1.0)

    def test_opposite_angles_cancel(self):
        assert mean_resultant_length([0.0, np.pi]) == pytest.approx(0.0, abs=1e-12)

    def test_degrees(self):
        assert mean_resultant_length([0.0, 90.0], angle_unit="deg") == pytest.approx(
            np.sqrt(2.0) / 2.0
        )

    def test_nan_ignored(self):
        assert mean_resultant_length([0.0, np.nan, 0.0]) == pytest.approx(1.0)

    def test_empty_is_nan(self):
        assert np.isnan(mean_resultant_length([]))
        assert np.isnan(mean_resultant_length([np.nan]))


class TestCircularSummary:
    """Tests for circular_summary()."""

    def test_all_zero(self):
        assert circular_summary([0.0, 0.0, 0.0]) == (0.0, 0.0, 1.0)

    def test_mean_wraps_around_zero(self):
        mean, _, rho = circular_summary([350.0, 10.0])
        assert min(mean, 360.0 - mean) == pytest.approx(0.0, abs=1e-9)
        assert rho == pytest.approx(np.cos(np.radians(10.0)))

    def test_mean_in_range(self):
        mean, sd, rho = circular_summary([30.0, 60.0, 90.0])
        assert mean == pytest.approx(60.0)
        assert sd > 0.0
        assert 0.0 < rho < 1.0

    def test_radians(self):
        mean, _, _ = circular_summary([np.pi / 4, np.pi / 4], angle_unit="rad")
        assert mean == pytest.approx(np.pi / 4)

    def test_sd_matches_resultant_length(self):
        angles = [10.0, 40.0, 100.0]
        _, sd, rho = circular_summary(angles)
        assert sd == pytest.approx(np.degrees(np.sqrt(-2.0 * np.log(rho))))

    def test_all_nan(self):
        assert all(np.isnan(v) for v in circular_summary([np.nan, np.nan]))
