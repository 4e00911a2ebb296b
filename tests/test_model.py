"""Tests for the joint tree, markers and the model forward map."""
import numpy as np
import pytest

from marker_ik.model import (
    FixedJoint, RevoluteJoint, PrismaticJoint, Marker, State, KinematicModel, build_ik_chain
)


class TestJoints:

    def test_zero_axis_rejected(self):
        with pytest.raises(ValueError):
            RevoluteJoint("bad", [0, 0, 0], [0, 0, 0])

    def test_axis_is_normalized(self):
        joint = PrismaticJoint("slide", [0, 0, 0], [0, 3.0, 4.0])
        np.testing.assert_allclose(joint.axis, [0, 0.6, 0.8])

    def test_inverted_limits_rejected(self):
        with pytest.raises(ValueError):
            RevoluteJoint("knee", [0, 0, 0], [0, 0, 1], limits=(1.0, -1.0))

    def test_clamped_by_default_when_limited(self):
        joint = RevoluteJoint("knee", [0, 0, 0], [0, 0, 1], limits=(-0.5, 0.5))
        assert joint.clamped
        assert joint.clamp(2.0) == pytest.approx(0.5)

    def test_unclamped_range_not_enforced(self):
        joint = RevoluteJoint("knee", [0, 0, 0], [0, 0, 1], limits=(-0.5, 0.5), clamped=False)
        assert joint.clamp(2.0) == pytest.approx(2.0)

    def test_coordinate_name_defaults_to_joint_name(self):
        assert RevoluteJoint("hip", [0, 0, 0], [1, 0, 0]).coordinate_name == "hip"
        assert RevoluteJoint("hip", [0, 0, 0], [1, 0, 0], coordinate_name="hip_flexion").coordinate_name == "hip_flexion"

    def test_fixed_joint_quaternion_rotation(self):
        # 90 deg about z
        half = np.sqrt(0.5)
        frame = FixedJoint("frame", [1.0, 0, 0], [half, 0, 0, half])
        frame.update_global_transform()
        np.testing.assert_allclose(frame.transform_point(np.array([1.0, 0, 0])), [1.0, 1.0, 0], atol=1e-12)

    def test_jacobian_columns_are_linear(self):
        hinge = RevoluteJoint("hinge", [0, 0, 0], [0, 0, 1])
        slide = PrismaticJoint("slide", [0, 0, 0], [0, 1, 0])
        hinge.update_global_transform()
        slide.update_global_transform()
        np.testing.assert_allclose(hinge.compute_jacobian_column(np.array([1.0, 0, 0])), [0, 1.0, 0])
        np.testing.assert_allclose(slide.compute_jacobian_column(np.array([1.0, 0, 0])), [0, 1.0, 0])

    def test_bad_quaternion_rejected(self):
        with pytest.raises(ValueError):
            FixedJoint("frame", [0, 0, 0], [0, 0, 0, 0])


class TestChain:

    def test_chain_skips_fixed_joints(self, two_link_arm):
        lower = two_link_arm.get_joint("lower")
        chain = build_ik_chain(two_link_arm.root, lower)
        assert [j.name for j in chain] == ["slider", "shoulder", "elbow"]

    def test_chain_requires_path(self):
        a = FixedJoint("a", [0, 0, 0])
        b = FixedJoint("b", [0, 0, 0])
        with pytest.raises(ValueError):
            build_ik_chain(a, b)


class TestKinematicModel:

    def test_coordinates_in_tree_order(self, two_link_arm):
        assert two_link_arm.get_coordinate_names() == ["slider", "shoulder", "elbow", "wrist"]
        assert two_link_arm.get_coordinate_index("elbow") == 2

    def test_unknown_names(self, pendulum):
        assert pendulum.has_coordinate("theta")
        assert not pendulum.has_coordinate("phi")
        with pytest.raises(KeyError):
            pendulum.get_coordinate_index("phi")
        with pytest.raises(KeyError):
            pendulum.get_marker("nope")

    def test_duplicate_marker_rejected(self, pendulum):
        with pytest.raises(ValueError):
            pendulum.add_marker(Marker("m0", pendulum.get_joint("ball")))

    def test_marker_on_foreign_frame_rejected(self, pendulum):
        other = FixedJoint("ball", [0, 0, 0])
        with pytest.raises(ValueError):
            pendulum.add_marker(Marker("stray", other))

    def test_duplicate_coordinate_rejected(self):
        ground = FixedJoint("ground", [0, 0, 0])
        ground.add_child(RevoluteJoint("a", [0, 0, 0], [0, 0, 1], coordinate_name="q"))
        ground.add_child(RevoluteJoint("b", [0, 0, 0], [0, 0, 1], coordinate_name="q"))
        with pytest.raises(ValueError):
            KinematicModel(ground)

    def test_pendulum_marker_locations(self, pendulum):
        names = pendulum.get_marker_names()
        at_rest = pendulum.compute_marker_locations(np.array([0.0]), names)
        np.testing.assert_allclose(at_rest, [[0, 0, 0], [0.01, 0, 0], [-0.02, 0, 0]], atol=1e-12)

        swung = pendulum.compute_marker_locations(np.array([np.pi / 2]), names)
        np.testing.assert_allclose(swung[0], [1.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(swung[1], [1.0, 1.01, 0.0], atol=1e-12)

    def test_jacobian_matches_finite_differences(self, two_link_arm):
        names = two_link_arm.get_marker_names()
        q = np.array([0.3, 0.4, -0.7, 0.2])
        _, jacobian = two_link_arm.evaluate(q, names)

        h = 1e-6
        for i in range(len(q)):
            dq = np.zeros_like(q)
            dq[i] = h
            plus = two_link_arm.compute_marker_locations(q + dq, names)
            minus = two_link_arm.compute_marker_locations(q - dq, names)
            np.testing.assert_allclose(jacobian[:, :, i], (plus - minus) / (2 * h), atol=1e-7)

    def test_unobserved_coordinate_has_zero_column(self, two_link_arm):
        _, jacobian = two_link_arm.evaluate(np.zeros(4), two_link_arm.get_marker_names())
        assert np.all(jacobian[:, :, 3] == 0.0)

    def test_realize_checks_shape(self, pendulum):
        with pytest.raises(ValueError):
            pendulum.realize(np.zeros(2))

    def test_state_and_clamping(self, two_link_arm):
        state = two_link_arm.init_state(0.5)
        assert state.time == 0.5
        np.testing.assert_array_equal(state.q, np.zeros(4))

        two_link_arm.set_coordinate_value(state, "elbow", 10.0)
        assert two_link_arm.get_coordinate_value(state, "elbow") == pytest.approx(2.5)

        lower, upper = two_link_arm.get_coordinate_bounds()
        assert lower[0] == -1.0 and upper[0] == 1.0
        assert np.isinf(lower[1]) and np.isinf(upper[1])
        np.testing.assert_allclose(two_link_arm.clamp(np.array([5.0, 5.0, -5.0, 0.0])), [1.0, 5.0, -2.5, 0.0])

    def test_locked_coordinates_not_free(self, pendulum):
        assert pendulum.free_coordinate_mask().tolist() == [True]
        pendulum.get_coordinate("theta").locked = True
        assert pendulum.free_coordinate_mask().tolist() == [False]

    def test_state_copy_is_independent(self):
        state = State(1.0, [0.1, 0.2])
        other = state.copy()
        other.q[0] = 5.0
        assert state.q[0] == pytest.approx(0.1)
