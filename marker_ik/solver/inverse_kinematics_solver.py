"""
逆运动学求解器
绑定一个模型、一个标记点参考和一组坐标参考；构造时建立目标表，之后只更新目标值与权重。
"""
import logging
import numpy as np
from typing import List, Optional, Sequence

from ..model import KinematicModel, State
from ..reference import Constant, CoordinateReference, MarkersReference
from .errors import ConfigurationError, DimensionMismatchError
from .goals import GoalAssemblyTable, GoalKind
from .optimizer import LeastSquaresOptimizer, OptimizerReport, SolveMode
from .settings import SolverSettings

logger = logging.getLogger(__name__)


class InverseKinematicsSolver:

    def __init__(self, model: KinematicModel, markers_reference: MarkersReference,
                 coordinate_references: Sequence[CoordinateReference] = (),
                 settings: Optional[SolverSettings] = None):
        """
        :param model: 运动学模型
        :param markers_reference: 标记点参考（名称顺序即标记点目标顺序）
        :param coordinate_references: 坐标参考
        :param settings: 求解参数，默认 SolverSettings()
        :raises ConfigurationError: 参考中的标记点/坐标名称在模型中不存在
        """
        self.model = model
        self.markers_reference = markers_reference
        self.coordinate_references: List[CoordinateReference] = list(coordinate_references)
        self.settings = settings or SolverSettings()

        self.table = GoalAssemblyTable.build(
            model,
            markers_reference.get_names(),
            [ref.name for ref in self.coordinate_references],
            marker_weights=markers_reference.get_weights(),
            coordinate_weights=[ref.get_weight() for ref in self.coordinate_references],
        )
        self.optimizer = LeastSquaresOptimizer(model, self.table, self.settings)
        self.last_report: Optional[OptimizerReport] = None
        self._state: Optional[State] = None

        logger.info("IK solver bound to model '%s': %d markers, %d coordinate references",
                    model.name, len(self.get_marker_names()), len(self.coordinate_references))

    # ------------------------
    # 配置
    # ------------------------
    def set_accuracy(self, tolerance: float):
        self.optimizer.set_accuracy(tolerance)

    def get_accuracy(self) -> float:
        return self.optimizer.accuracy

    # ------------------------
    # 求解
    # ------------------------
    def assemble(self, state: State):
        """
        以 state 当前坐标为初值完整求解；成功后原地更新 state.q

        :raises ConvergenceError: 未在迭代预算内达到精度（state 不变）
        """
        self._solve(state, SolveMode.ASSEMBLE)

    def track(self, state: State):
        """
        假设 state 已接近最优（例如上一帧的解）进行增量求解；
        缩减的预算内未收敛时自动升级为 assemble

        :raises ConvergenceError: 升级后的 assemble 仍未收敛
        """
        self._solve(state, SolveMode.TRACK)

    def _solve(self, state: State, mode: SolveMode):
        if state.q.shape != (self.model.num_coordinates,):
            raise DimensionMismatchError(self.model.num_coordinates, state.q.size, "coordinates")

        self.table.refresh_targets(state.time, self.markers_reference, self.coordinate_references)

        q0 = state.q.copy()
        free_mask = self.model.free_coordinate_mask()
        for goal in self.table.prescribed_goals():
            i = self.model.get_coordinate_index(goal.name)
            q0[i] = self.model.coordinates[i].clamp(goal.target)
            free_mask[i] = False

        q, report = self.optimizer.solve(q0, free_mask, mode)
        if not report.converged:
            logger.warning("track() did not converge within %d iterations at t=%g; re-solving with assemble()",
                           report.iterations, state.time)
            q, report = self.optimizer.solve(q, free_mask, SolveMode.ASSEMBLE)

        state.q[:] = q
        self._state = state
        self.last_report = report
        logger.debug("%s at t=%g converged in %d iterations (cost %.6e)",
                     mode.value, state.time, report.iterations, report.cost)

    # ------------------------
    # 权重与参考更新
    # ------------------------
    def get_marker_names(self) -> List[str]:
        """标记点目标顺序；与 update_marker_weights 的权重向量一一对应"""
        return self.table.get_names(GoalKind.MARKER)

    def get_coordinate_reference_names(self) -> List[str]:
        return self.table.get_names(GoalKind.COORDINATE)

    def get_marker_weights(self) -> np.ndarray:
        return self.table.get_weights(GoalKind.MARKER)

    def update_marker_weights(self, weights: Sequence[float]):
        """
        按 get_marker_names() 的顺序整体替换标记点权重；下一次求解生效

        :raises DimensionMismatchError: 长度与标记点数量不一致
        """
        self.table.set_weights(weights, GoalKind.MARKER)

    def update_marker_weight(self, name: str, weight: float):
        self.table.set_weight(GoalKind.MARKER, name, weight)

    def update_coordinate_reference(self, name: str, value: float, weight: Optional[float] = None):
        """
        将坐标参考替换为常值 value，可同时修改权重
        """
        try:
            index = self.get_coordinate_reference_names().index(name)
        except ValueError:
            raise ConfigurationError(f"No coordinate reference named '{name}'") from None
        reference = self.coordinate_references[index]
        if weight is not None:
            self.table.set_weight(GoalKind.COORDINATE, name, weight)
            reference.set_weight(weight)
        reference.set_value_function(Constant(value))

    # ------------------------
    # 误差报告（只读，不加权）
    # ------------------------
    def _require_state(self) -> State:
        if self._state is None:
            raise RuntimeError("No solution available; call assemble() or track() first")
        return self._state

    def compute_current_marker_locations(self) -> np.ndarray:
        """(m, 3) 当前解下的模型标记点位置"""
        state = self._require_state()
        return self.model.compute_marker_locations(state.q, self.get_marker_names())

    def compute_current_squared_marker_errors(self) -> np.ndarray:
        """
        每个标记点模型位置与目标之间距离的平方；无效的标记点为 NaN
        """
        diff = self.compute_current_marker_locations() - self.table.marker_targets()
        squared = np.sum(diff * diff, axis=1)
        squared[~self.table.active_mask(GoalKind.MARKER)] = np.nan
        return squared

    def compute_current_marker_errors(self) -> np.ndarray:
        """每个标记点模型位置与目标之间的欧氏距离；缺失的标记点为 NaN"""
        return np.sqrt(self.compute_current_squared_marker_errors())

    def compute_current_marker_error(self, name: str) -> float:
        return float(self.compute_current_marker_errors()[self.table.index_of(GoalKind.MARKER, name)])

    def compute_current_coordinate_errors(self) -> np.ndarray:
        """每个坐标参考 |q - target|"""
        state = self._require_state()
        indices = [self.model.get_coordinate_index(name) for name in self.get_coordinate_reference_names()]
        return np.abs(state.q[indices] - self.table.coordinate_targets())

    def compute_current_goal_errors(self, kind: Optional[GoalKind] = None) -> np.ndarray:
        """
        按目标表顺序的误差：标记点为距离，坐标为绝对差；kind 给定时只返回该类
        """
        if kind is GoalKind.MARKER:
            return self.compute_current_marker_errors()
        if kind is GoalKind.COORDINATE:
            return self.compute_current_coordinate_errors()
        return np.concatenate([self.compute_current_marker_errors(), self.compute_current_coordinate_errors()])

    def get_num_markers_in_use(self) -> int:
        """上一次求解时刻有效的标记点数量"""
        self._require_state()
        return int(np.count_nonzero(self.table.active_mask(GoalKind.MARKER)))

    def is_marker_active(self, name: str) -> bool:
        return self.table[self.table.index_of(GoalKind.MARKER, name)].active
