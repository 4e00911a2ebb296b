"""
加权最小二乘优化器
阻尼最小二乘 (Levenberg-Marquardt) + 最小范数 Gauss-Newton 收敛判据

ASSEMBLE 与 TRACK 共用同一套残差/权重计算，仅初始阻尼、信赖域与迭代预算不同。
"""
import logging
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .errors import ConvergenceError
from .goals import GoalAssemblyTable, GoalKind
from .ik_core import (
    stack_residuals,
    stack_jacobian,
    row_weights,
    weighted_cost,
    damped_min_norm_step,
    clip_step_norm,
    project_step
)
from .settings import SolverSettings, check_accuracy

logger = logging.getLogger(__name__)


class SolveMode(Enum):
    ASSEMBLE = "assemble"
    TRACK = "track"


@dataclass
class OptimizerReport:
    mode: SolveMode
    converged: bool
    iterations: int
    cost: float
    step_size: float
    damping: float


class LeastSquaresOptimizer:

    def __init__(self, model, table: GoalAssemblyTable, settings: SolverSettings):
        """
        :param model: KinematicModel
        :param table: 目标表（构造后顺序不再变化，可缓存索引）
        :param settings: 求解参数
        """
        self.model = model
        self.table = table
        self.settings = settings
        self.accuracy = settings.accuracy

        self._marker_names = table.get_names(GoalKind.MARKER)
        self._coordinate_indices = np.array(
            [model.get_coordinate_index(name) for name in table.get_names(GoalKind.COORDINATE)], dtype=int)
        # 上一次求解结束时的阻尼，作为 TRACK 的热启动
        self._damping = settings.track_damping

    def set_accuracy(self, tolerance: float):
        self.accuracy = check_accuracy(tolerance)

    def evaluate(self, q: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        :return: (残差 (3m + c,), 雅可比 (3m + c, n))
        """
        positions, marker_jacobian = self.model.evaluate(q, self._marker_names)
        residuals = stack_residuals(positions, self.table.marker_targets(),
                                    q[self._coordinate_indices], self.table.coordinate_targets())
        jacobian = stack_jacobian(marker_jacobian, self._coordinate_indices, self.model.num_coordinates)
        return residuals, jacobian

    def current_row_weights(self) -> np.ndarray:
        return row_weights(self.table.effective_weights(GoalKind.MARKER),
                           self.table.effective_weights(GoalKind.COORDINATE))

    def cost(self, q: np.ndarray) -> float:
        residuals, _ = self.evaluate(q)
        return weighted_cost(residuals, self.current_row_weights())

    def solve(self, q: np.ndarray, free_mask: np.ndarray, mode: SolveMode) -> Tuple[np.ndarray, OptimizerReport]:
        """
        从 q 出发求解。

        :param q: 初始坐标向量（不修改）
        :param free_mask: 参与求解的坐标
        :param mode: ASSEMBLE 或 TRACK
        :return: (最优坐标, 报告)。ASSEMBLE 未收敛时抛出 ConvergenceError，
                 TRACK 未收敛时返回 converged=False 的报告，由调用方升级为 ASSEMBLE
        """
        s = self.settings
        if mode is SolveMode.ASSEMBLE:
            max_iterations, max_step, damping = s.assemble_max_iterations, s.assemble_max_step, s.assemble_damping
        else:
            max_iterations, max_step, damping = s.track_max_iterations, s.track_max_step, self._damping

        lower, upper = self.model.get_coordinate_bounds()
        free = np.flatnonzero(free_mask)
        sqrt_w = self.current_row_weights()

        q = np.minimum(np.maximum(np.asarray(q, dtype=np.float64).copy(), lower), upper)
        residuals, jacobian = self.evaluate(q)
        cost = weighted_cost(residuals, sqrt_w)

        converged = free.size == 0
        step_size = 0.0
        iteration = 0

        while not converged and iteration < max_iterations:
            iteration += 1
            Jw = sqrt_w[:, None] * jacobian[:, free]
            rw = sqrt_w * residuals

            # 无阻尼的最小范数步：投影后足够小即认为已到达驻点
            gn_step = clip_step_norm(damped_min_norm_step(Jw, rw, 0.0, s.rcond), max_step)
            q_trial = project_step(q, free, gn_step, lower, upper)
            step_size = float(np.max(np.abs(q_trial - q)))
            if step_size <= self.accuracy:
                trial_residuals, trial_jacobian = self.evaluate(q_trial)
                trial_cost = weighted_cost(trial_residuals, sqrt_w)
                if trial_cost <= cost:
                    q, residuals, jacobian, cost = q_trial, trial_residuals, trial_jacobian, trial_cost
                converged = True
                break

            lm_step = clip_step_norm(damped_min_norm_step(Jw, rw, damping, s.rcond), max_step)
            q_trial = project_step(q, free, lm_step, lower, upper)
            trial_residuals, trial_jacobian = self.evaluate(q_trial)
            trial_cost = weighted_cost(trial_residuals, sqrt_w)

            logger.debug("%s iter %d: cost=%.6e trial=%.6e gn_step=%.3e damping=%.1e",
                         mode.value, iteration, cost, trial_cost, step_size, damping)

            if trial_cost < cost:
                q, residuals, jacobian, cost = q_trial, trial_residuals, trial_jacobian, trial_cost
                damping = max(damping / s.damping_factor, s.damping_min)
            else:
                # 拒绝该步，保留当前最优状态并增大阻尼
                damping *= s.damping_factor
                if damping > s.damping_max:
                    logger.debug("%s stalled after %d iterations (damping %.1e)", mode.value, iteration, damping)
                    break

        self._damping = float(np.clip(damping, s.damping_min, max(s.assemble_damping, s.track_damping)))
        # 保证模型内部变换与返回的坐标一致
        self.model.realize(q)

        report = OptimizerReport(mode, converged, iteration, cost, step_size, damping)
        if not converged and mode is SolveMode.ASSEMBLE:
            raise ConvergenceError(
                f"Failed to reach accuracy {self.accuracy:g} within {iteration} iterations "
                f"(last step {step_size:.3e}, cost {cost:.6e})", report)
        return q, report
