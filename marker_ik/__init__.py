"""
marker_ik: 基于标记点与坐标参考的加权逆运动学求解

    from marker_ik import InverseKinematicsSolver, MarkersReference
    ik_solver = InverseKinematicsSolver(model, markers_reference, coordinate_references)
    ik_solver.set_accuracy(1e-6)
    ik_solver.assemble(state)
    errors = ik_solver.compute_current_marker_errors()
"""

from .model import (
    JointNode,
    FixedJoint,
    RevoluteJoint,
    PrismaticJoint,
    Marker,
    State,
    KinematicModel
)
from .reference import (
    Constant,
    PiecewiseLinearFunction,
    MarkerData,
    MarkersReference,
    CoordinateReference
)
from .solver import (
    ConfigurationError,
    DimensionMismatchError,
    ConvergenceError,
    SolverSettings,
    GoalKind,
    InverseKinematicsSolver,
    solve_trajectory
)

__version__ = "0.1.0"

__all__ = [
    'JointNode',
    'FixedJoint',
    'RevoluteJoint',
    'PrismaticJoint',
    'Marker',
    'State',
    'KinematicModel',
    'Constant',
    'PiecewiseLinearFunction',
    'MarkerData',
    'MarkersReference',
    'CoordinateReference',
    'ConfigurationError',
    'DimensionMismatchError',
    'ConvergenceError',
    'SolverSettings',
    'GoalKind',
    'InverseKinematicsSolver',
    'solve_trajectory'
]
