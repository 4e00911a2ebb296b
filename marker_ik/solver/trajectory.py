"""
逐帧求解：第一帧 assemble，之后每帧 track，状态在帧间原地延续
"""
import logging
import numpy as np
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ..model import State
from .optimizer import OptimizerReport

logger = logging.getLogger(__name__)

WeightSchedule = Callable[[int, float], Optional[Sequence[float]]]


@dataclass
class FrameResult:
    time: float
    coordinates: np.ndarray
    report: OptimizerReport
    marker_errors: Optional[np.ndarray] = None

    @property
    def total_squared_error(self) -> float:
        if self.marker_errors is None:
            return float('nan')
        return float(np.nansum(self.marker_errors ** 2))

    @property
    def rms_error(self) -> float:
        if self.marker_errors is None or np.all(np.isnan(self.marker_errors)):
            return float('nan')
        return float(np.sqrt(np.nanmean(self.marker_errors ** 2)))

    @property
    def max_error(self) -> float:
        if self.marker_errors is None or np.all(np.isnan(self.marker_errors)):
            return float('nan')
        return float(np.nanmax(self.marker_errors))

    def max_error_index(self) -> Optional[int]:
        if self.marker_errors is None or np.all(np.isnan(self.marker_errors)):
            return None
        return int(np.nanargmax(self.marker_errors))


def solve_trajectory(ik_solver, state: State, times: Sequence[float],
                     weight_schedule: Optional[WeightSchedule] = None,
                     report_errors: bool = True) -> List[FrameResult]:
    """
    对按时间排序的各帧依次求解

    :param ik_solver: InverseKinematicsSolver
    :param state: 初始状态（作为第一帧的初值，之后每帧原地更新）
    :param times: 帧时间序列
    :param weight_schedule: 可选，weight_schedule(frame_index, time) 返回新的标记点权重或 None
    :param report_errors: 是否记录每帧的标记点误差
    :return: 每帧的求解结果
    """
    results: List[FrameResult] = []
    for i, time in enumerate(times):
        state.time = float(time)
        if weight_schedule is not None:
            weights = weight_schedule(i, state.time)
            if weights is not None:
                ik_solver.update_marker_weights(weights)

        if i == 0:
            ik_solver.assemble(state)
        else:
            ik_solver.track(state)

        errors = ik_solver.compute_current_marker_errors() if report_errors else None
        results.append(FrameResult(state.time, state.q.copy(), ik_solver.last_report, errors))

        if i % 10 == 0:
            logger.info("frame %d/%d (t=%g) solved in %d iterations",
                        i, len(times), state.time, ik_solver.last_report.iterations)
    return results
