"""Shared fixtures: a one-DoF pendulum with three markers and a planar two-link arm."""
import numpy as np
import pytest

from marker_ik.model import FixedJoint, RevoluteJoint, PrismaticJoint, Marker, State, KinematicModel
from marker_ik.data_io import generate_marker_data
from marker_ik.reference import MarkersReference


def construct_pendulum_with_markers() -> KinematicModel:
    """
    Hinge 1 m above the ground origin, rotating about z. The ball frame sits
    1 m below the hinge, so the ball centre is at the origin when theta = 0.
    """
    ground = FixedJoint("ground", [0.0, 0.0, 0.0])
    hinge = RevoluteJoint("hinge", [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], coordinate_name="theta")
    ball = FixedJoint("ball", [0.0, -1.0, 0.0])
    ground.add_child(hinge)
    hinge.add_child(ball)

    markers = [
        Marker("m0", ball, [0.0, 0.0, 0.0]),
        Marker("mR", ball, [0.01, 0.0, 0.0]),   # shifted right 1 cm
        Marker("mL", ball, [-0.02, 0.0, 0.0]),  # shifted left 2 cm
    ]
    return KinematicModel(ground, markers, name="pendulum")


def construct_two_link_arm() -> KinematicModel:
    """
    Planar arm: slider along x, shoulder and elbow about z, 0.5 m links.
    An unobserved wrist joint carries no markers.
    """
    ground = FixedJoint("ground", [0.0, 0.0, 0.0])
    slider = PrismaticJoint("slider", [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], limits=(-1.0, 1.0))
    shoulder = RevoluteJoint("shoulder", [0.0, 0.2, 0.0], [0.0, 0.0, 1.0])
    upper = FixedJoint("upper", [0.5, 0.0, 0.0])
    elbow = RevoluteJoint("elbow", [0.0, 0.0, 0.0], [0.0, 0.0, 1.0], limits=(-2.5, 2.5))
    lower = FixedJoint("lower", [0.5, 0.0, 0.0])
    wrist = RevoluteJoint("wrist", [0.0, 0.0, 0.0], [0.0, 1.0, 0.0])
    ground.add_child(slider)
    slider.add_child(shoulder)
    shoulder.add_child(upper)
    upper.add_child(elbow)
    elbow.add_child(lower)
    lower.add_child(wrist)

    markers = [
        Marker("base", slider, [0.0, 0.0, 0.05]),
        Marker("upper_mid", upper, [-0.25, 0.03, 0.0]),
        Marker("elbow_lat", upper, [0.0, 0.0, 0.0]),
        Marker("lower_mid", lower, [-0.25, -0.03, 0.0]),
        Marker("tip", lower, [0.0, 0.0, 0.0]),
    ]
    return KinematicModel(ground, markers, name="two_link")


@pytest.fixture
def pendulum():
    return construct_pendulum_with_markers()


@pytest.fixture
def two_link_arm():
    return construct_two_link_arm()


@pytest.fixture
def make_states():
    """states(model, coordinate_rows, times) -> list of State"""
    def _make(model, coordinate_rows, times):
        return [State(t, np.asarray(row, dtype=float).reshape(model.num_coordinates))
                for t, row in zip(times, coordinate_rows)]
    return _make


@pytest.fixture
def pendulum_markers_reference(pendulum):
    """Noise-free markers at theta = 0.123456789, single frame at t = 0."""
    state = State(0.0, [0.123456789])
    return MarkersReference(generate_marker_data(pendulum, [state]), default_weight=1.0)
