"""Tests for marker data, markers reference and coordinate references."""
import math

import numpy as np
import pytest

from marker_ik.reference import (
    Constant, PiecewiseLinearFunction, MarkerData, MarkersReference, CoordinateReference
)


@pytest.fixture
def marker_data():
    times = [0.0, 0.1, 0.2]
    positions = np.zeros((3, 2, 3))
    positions[:, 0, 0] = [0.0, 1.0, 2.0]
    positions[:, 1, 1] = [5.0, 6.0, 7.0]
    positions[1, 1] = np.nan  # "b" occluded at t = 0.1
    return MarkerData(times, ["a", "b"], positions)


class TestMarkerData:

    def test_shape_validation(self):
        with pytest.raises(ValueError):
            MarkerData([0.0, 0.1], ["a"], np.zeros((3, 1, 3)))

    def test_times_must_increase(self):
        with pytest.raises(ValueError):
            MarkerData([0.0, 0.0], ["a"], np.zeros((2, 1, 3)))

    def test_duplicate_names(self):
        with pytest.raises(ValueError):
            MarkerData([0.0], ["a", "a"], np.zeros((1, 2, 3)))

    def test_nearest_frame(self, marker_data):
        assert marker_data.get_frame_index(0.0) == 0
        assert marker_data.get_frame_index(0.04) == 0
        assert marker_data.get_frame_index(0.06) == 1
        assert marker_data.get_frame_index(0.2) == 2

    def test_time_outside_range(self, marker_data):
        with pytest.raises(ValueError):
            marker_data.get_frame_index(0.5)
        with pytest.raises(ValueError):
            marker_data.get_frame_index(-0.1)

    def test_trajectory_lookup(self, marker_data):
        np.testing.assert_allclose(marker_data.get_marker_trajectory("a")[:, 0], [0.0, 1.0, 2.0])
        with pytest.raises(KeyError):
            marker_data.get_marker_trajectory("zzz")
        assert marker_data.get_time_range() == (0.0, 0.2)


class TestMarkersReference:

    def test_default_and_explicit_weights(self, marker_data):
        ref = MarkersReference(marker_data, marker_weights={"b": 4.0}, default_weight=2.0)
        np.testing.assert_allclose(ref.get_weights(), [2.0, 4.0])
        ref.set_default_weight(0.5)
        np.testing.assert_allclose(ref.get_weights(), [0.5, 4.0])

    def test_unknown_marker_weight(self, marker_data):
        ref = MarkersReference(marker_data)
        with pytest.raises(KeyError):
            ref.set_marker_weight("zzz", 1.0)

    def test_negative_weight(self, marker_data):
        with pytest.raises(ValueError):
            MarkersReference(marker_data, default_weight=-1.0)

    def test_values_and_active(self, marker_data):
        ref = MarkersReference(marker_data)
        assert ref.get_names() == ["a", "b"]
        np.testing.assert_allclose(ref.get_values(0.2)[0], [2.0, 0.0, 0.0])
        assert ref.get_active(0.0).tolist() == [True, True]
        assert ref.get_active(0.1).tolist() == [True, False]

    def test_values_are_copies(self, marker_data):
        ref = MarkersReference(marker_data)
        ref.get_values(0.0)[0, 0] = 99.0
        assert marker_data.positions[0, 0, 0] == 0.0


class TestCoordinateReference:

    def test_constant(self):
        ref = CoordinateReference("theta", Constant(0.25))
        assert ref.get_value(0.0) == ref.get_value(10.0) == 0.25

    def test_number_is_wrapped(self):
        ref = CoordinateReference("theta", 0.5, weight=3.0)
        assert ref.get_value(1.0) == 0.5
        assert ref.get_weight() == 3.0

    def test_piecewise_linear(self):
        ref = CoordinateReference("theta", PiecewiseLinearFunction([0.0, 1.0], [0.0, 2.0]))
        assert ref.get_value(0.5) == pytest.approx(1.0)
        assert ref.get_value(-1.0) == pytest.approx(0.0)
        assert ref.get_value(3.0) == pytest.approx(2.0)

    def test_piecewise_linear_validation(self):
        with pytest.raises(ValueError):
            PiecewiseLinearFunction([1.0, 0.0], [0.0, 1.0])
        with pytest.raises(ValueError):
            PiecewiseLinearFunction([], [])

    def test_weights(self):
        ref = CoordinateReference("theta", 0.0)
        with pytest.raises(ValueError):
            ref.set_weight(-0.1)
        with pytest.raises(ValueError):
            ref.set_weight(float('nan'))
        ref.set_weight(math.inf)
        assert ref.get_weight() == math.inf
