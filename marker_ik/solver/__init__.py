"""
求解层 (Solver Layer)
目标表、加权最小二乘优化、误差报告与逐帧驱动
"""

from .errors import (
    IKError,
    ConfigurationError,
    DimensionMismatchError,
    ConvergenceError
)
from .settings import SolverSettings
from .goals import Goal, GoalKind, GoalAssemblyTable
from .ik_core import (
    stack_residuals,
    stack_jacobian,
    row_weights,
    weighted_cost,
    damped_min_norm_step,
    clip_step_norm,
    project_step
)
from .optimizer import LeastSquaresOptimizer, OptimizerReport, SolveMode
from .inverse_kinematics_solver import InverseKinematicsSolver
from .trajectory import FrameResult, solve_trajectory

__all__ = [
    'IKError',
    'ConfigurationError',
    'DimensionMismatchError',
    'ConvergenceError',
    'SolverSettings',
    'Goal',
    'GoalKind',
    'GoalAssemblyTable',
    'stack_residuals',
    'stack_jacobian',
    'row_weights',
    'weighted_cost',
    'damped_min_norm_step',
    'clip_step_norm',
    'project_step',
    'LeastSquaresOptimizer',
    'OptimizerReport',
    'SolveMode',
    'InverseKinematicsSolver',
    'FrameResult',
    'solve_trajectory'
]
