"""Tests for the goal assembly table."""
import math

import numpy as np
import pytest

from marker_ik.reference import CoordinateReference, MarkerData, MarkersReference
from marker_ik.solver import (
    ConfigurationError, DimensionMismatchError, GoalAssemblyTable, GoalKind
)


@pytest.fixture
def table(pendulum):
    return GoalAssemblyTable.build(pendulum, ["m0", "mR", "mL"], ["theta"])


class TestBuild:

    def test_markers_then_coordinates(self, table):
        assert len(table) == 4
        assert table.get_names() == ["m0", "mR", "mL", "theta"]
        assert table.get_names(GoalKind.MARKER) == ["m0", "mR", "mL"]
        assert table.get_names(GoalKind.COORDINATE) == ["theta"]
        assert [g.index for g in table] == [0, 1, 2, 3]
        assert table[3].kind is GoalKind.COORDINATE

    def test_default_weight_is_one(self, table):
        np.testing.assert_array_equal(table.get_weights(), np.ones(4))

    def test_initial_weights(self, pendulum):
        table = GoalAssemblyTable.build(pendulum, ["m0", "mR"], ["theta"],
                                        marker_weights=[2.0, 3.0], coordinate_weights=[math.inf])
        np.testing.assert_array_equal(table.get_weights(GoalKind.MARKER), [2.0, 3.0])
        assert [g.name for g in table.prescribed_goals()] == ["theta"]

    def test_unknown_coordinate(self, pendulum):
        with pytest.raises(ConfigurationError):
            GoalAssemblyTable.build(pendulum, ["m0"], ["phi"])

    def test_unknown_marker(self, pendulum):
        with pytest.raises(ConfigurationError):
            GoalAssemblyTable.build(pendulum, ["m0", "elsewhere"], [])

    def test_duplicate_goal(self, pendulum):
        with pytest.raises(ConfigurationError):
            GoalAssemblyTable.build(pendulum, ["m0", "m0"], [])

    def test_weight_count_mismatch(self, pendulum):
        with pytest.raises(DimensionMismatchError):
            GoalAssemblyTable.build(pendulum, ["m0", "mR"], [], marker_weights=[1.0])

    def test_infinite_marker_weight_rejected(self, pendulum):
        with pytest.raises(ConfigurationError):
            GoalAssemblyTable.build(pendulum, ["m0"], [], marker_weights=[math.inf])


class TestWeights:

    def test_set_marker_weights_in_place(self, table):
        goals_before = list(table)
        table.set_weights([1.0, 10.0, 1.0], GoalKind.MARKER)
        np.testing.assert_array_equal(table.get_weights(), [1.0, 10.0, 1.0, 1.0])
        assert all(a is b for a, b in zip(goals_before, table))

    def test_set_all_weights(self, table):
        table.set_weights([0.0, 1.0, 2.0, 3.0])
        np.testing.assert_array_equal(table.get_weights(), [0.0, 1.0, 2.0, 3.0])

    def test_length_mismatch(self, table):
        with pytest.raises(DimensionMismatchError):
            table.set_weights([1.0, 2.0], GoalKind.MARKER)
        with pytest.raises(DimensionMismatchError):
            table.set_weights([1.0, 2.0, 3.0])

    def test_weight_matrix_rejected(self, table):
        with pytest.raises(DimensionMismatchError):
            table.set_weights([[1.0, 2.0, 3.0]], GoalKind.MARKER)
        np.testing.assert_array_equal(table.get_weights(GoalKind.MARKER), [1.0, 1.0, 1.0])

    def test_negative_weight_leaves_table_untouched(self, table):
        with pytest.raises(ConfigurationError):
            table.set_weights([1.0, -2.0, 5.0], GoalKind.MARKER)
        np.testing.assert_array_equal(table.get_weights(GoalKind.MARKER), [1.0, 1.0, 1.0])

    def test_set_single_weight(self, table):
        table.set_weight(GoalKind.MARKER, "mL", 7.0)
        assert table[table.index_of(GoalKind.MARKER, "mL")].weight == 7.0
        with pytest.raises(KeyError):
            table.index_of(GoalKind.COORDINATE, "mL")

    def test_name_index_is_read_only(self, table):
        assert table.name_to_index[(GoalKind.MARKER, "mR")] == 1
        with pytest.raises(TypeError):
            table.name_to_index[(GoalKind.MARKER, "new")] = 4


class TestRefreshTargets:

    def test_targets_and_inactive_markers(self, pendulum):
        positions = np.arange(18, dtype=float).reshape(2, 3, 3)
        positions[1, 2] = np.nan
        reference = MarkersReference(MarkerData([0.0, 1.0], ["m0", "mR", "mL"], positions))
        table = GoalAssemblyTable.build(pendulum, reference.get_names(), ["theta"], reference.get_weights())
        coords = [CoordinateReference("theta", 0.3)]

        table.refresh_targets(0.0, reference, coords)
        np.testing.assert_array_equal(table.marker_targets(), positions[0])
        np.testing.assert_array_equal(table.coordinate_targets(), [0.3])
        assert table.active_mask().all()

        table.refresh_targets(1.0, reference, coords)
        assert table.active_mask(GoalKind.MARKER).tolist() == [True, True, False]
        # stored weight untouched, effective weight zero
        assert table.get_weights(GoalKind.MARKER)[2] == 1.0
        assert table.effective_weights(GoalKind.MARKER)[2] == 0.0

    def test_prescribed_goal_has_zero_effective_weight(self, pendulum):
        table = GoalAssemblyTable.build(pendulum, [], ["theta"], coordinate_weights=[math.inf])
        assert table.effective_weights().tolist() == [0.0]

    def test_reference_flags_mark_marker_inactive(self, pendulum):
        class FlaggedReference(MarkersReference):
            def get_active(self, time):
                active = super().get_active(time)
                active[1] = False
                return active

        positions = np.arange(9, dtype=float).reshape(1, 3, 3)
        reference = FlaggedReference(MarkerData([0.0], ["m0", "mR", "mL"], positions))
        table = GoalAssemblyTable.build(pendulum, reference.get_names(), [])

        table.refresh_targets(0.0, reference, [])

        assert table.active_mask().tolist() == [True, False, True]
        np.testing.assert_array_equal(table.marker_targets()[1], positions[0, 1])
        assert table.effective_weights(GoalKind.MARKER).tolist() == [1.0, 0.0, 1.0]
