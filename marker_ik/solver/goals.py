"""
目标表 (Goal Assembly Table)
构造时确定全部目标及其顺序：先标记点，后坐标参考。之后只修改目标值与权重，
不增删、不重排，因此外部按位置对齐的权重向量在求解器生命周期内始终有效。
"""
import logging
import math
import numpy as np
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .errors import ConfigurationError, DimensionMismatchError

logger = logging.getLogger(__name__)


class GoalKind(Enum):
    MARKER = "marker"
    COORDINATE = "coordinate"


@dataclass
class Goal:
    """
    单个目标。标记点目标的 target 为 Vec3，坐标目标为标量。
    active 为 False 时本次求解的有效权重为 0，但 weight 本身不变。
    """
    name: str
    kind: GoalKind
    index: int
    weight: float = 1.0
    target: Union[np.ndarray, float, None] = None
    active: bool = True

    @property
    def effective_weight(self) -> float:
        if not self.active or math.isinf(self.weight):
            return 0.0
        return self.weight

    @property
    def prescribed(self) -> bool:
        return self.kind is GoalKind.COORDINATE and math.isinf(self.weight)


def _check_weight(kind: GoalKind, name: str, weight: float) -> float:
    weight = float(weight)
    if math.isnan(weight) or weight < 0:
        raise ConfigurationError(f"Weight of {kind.value} goal '{name}' must be non-negative, got {weight}")
    if math.isinf(weight) and kind is GoalKind.MARKER:
        raise ConfigurationError(f"Weight of marker goal '{name}' must be finite")
    return weight


class GoalAssemblyTable:

    def __init__(self, goals: List[Goal]):
        self._goals = goals
        self._num_markers = sum(1 for g in goals if g.kind is GoalKind.MARKER)
        index: Dict[Tuple[GoalKind, str], int] = {}
        for i, goal in enumerate(goals):
            key = (goal.kind, goal.name)
            if key in index:
                raise ConfigurationError(f"Duplicate {goal.kind.value} goal '{goal.name}'")
            if goal.index != i:
                raise ConfigurationError(f"Goal '{goal.name}' has index {goal.index}, expected {i}")
            if (goal.kind is GoalKind.MARKER) != (i < self._num_markers):
                raise ConfigurationError("Marker goals must precede coordinate goals")
            index[key] = i
        self._index = MappingProxyType(index)

    @classmethod
    def build(cls, model, marker_names: Sequence[str], coordinate_names: Sequence[str],
              marker_weights: Optional[Sequence[float]] = None,
              coordinate_weights: Optional[Sequence[float]] = None) -> 'GoalAssemblyTable':
        """
        为每个标记点和每个坐标参考各建一个目标（先标记点后坐标）

        :param model: KinematicModel
        :param marker_names: 标记点名称（来自标记点参考）
        :param coordinate_names: 坐标参考名称
        :param marker_weights: 初始标记点权重，默认 1.0
        :param coordinate_weights: 初始坐标权重，默认 1.0
        """
        for name in marker_names:
            if not model.has_marker(name):
                raise ConfigurationError(f"Marker '{name}' is not defined in model '{model.name}'")
        for name in coordinate_names:
            if not model.has_coordinate(name):
                raise ConfigurationError(f"Coordinate '{name}' is not defined in model '{model.name}'")

        marker_weights = [1.0] * len(marker_names) if marker_weights is None else list(marker_weights)
        coordinate_weights = [1.0] * len(coordinate_names) if coordinate_weights is None else list(coordinate_weights)
        if len(marker_weights) != len(marker_names):
            raise DimensionMismatchError(len(marker_names), len(marker_weights), "marker weights")
        if len(coordinate_weights) != len(coordinate_names):
            raise DimensionMismatchError(len(coordinate_names), len(coordinate_weights), "coordinate weights")

        goals: List[Goal] = []
        for name, weight in zip(marker_names, marker_weights):
            goals.append(Goal(name, GoalKind.MARKER, len(goals),
                              _check_weight(GoalKind.MARKER, name, weight), np.full(3, np.nan)))
        for name, weight in zip(coordinate_names, coordinate_weights):
            goals.append(Goal(name, GoalKind.COORDINATE, len(goals),
                              _check_weight(GoalKind.COORDINATE, name, weight), np.nan))

        logger.debug("Built goal table with %d marker and %d coordinate goals",
                     len(marker_names), len(coordinate_names))
        return cls(goals)

    # ------------------------
    # 只读访问
    # ------------------------
    def __len__(self) -> int:
        return len(self._goals)

    def __iter__(self):
        return iter(self._goals)

    def __getitem__(self, i: int) -> Goal:
        return self._goals[i]

    @property
    def marker_slice(self) -> slice:
        return slice(0, self._num_markers)

    @property
    def coordinate_slice(self) -> slice:
        return slice(self._num_markers, len(self._goals))

    @property
    def name_to_index(self):
        """(kind, name) -> 位置 的只读映射"""
        return self._index

    def _slice(self, kind: Optional[GoalKind]) -> slice:
        if kind is None:
            return slice(0, len(self._goals))
        return self.marker_slice if kind is GoalKind.MARKER else self.coordinate_slice

    def goals(self, kind: Optional[GoalKind] = None) -> List[Goal]:
        return self._goals[self._slice(kind)]

    def get_names(self, kind: Optional[GoalKind] = None) -> List[str]:
        return [g.name for g in self.goals(kind)]

    def index_of(self, kind: GoalKind, name: str) -> int:
        try:
            return self._index[(kind, name)]
        except KeyError:
            raise KeyError(f"No {kind.value} goal named '{name}'") from None

    def get_weights(self, kind: Optional[GoalKind] = None) -> np.ndarray:
        return np.array([g.weight for g in self.goals(kind)], dtype=np.float64)

    def effective_weights(self, kind: Optional[GoalKind] = None) -> np.ndarray:
        """参与优化的权重：无效标记点与指定坐标为 0"""
        return np.array([g.effective_weight for g in self.goals(kind)], dtype=np.float64)

    def active_mask(self, kind: Optional[GoalKind] = None) -> np.ndarray:
        return np.array([g.active for g in self.goals(kind)], dtype=bool)

    def marker_targets(self) -> np.ndarray:
        """(m, 3)"""
        return np.array([g.target for g in self.goals(GoalKind.MARKER)], dtype=np.float64).reshape(-1, 3)

    def coordinate_targets(self) -> np.ndarray:
        return np.array([g.target for g in self.goals(GoalKind.COORDINATE)], dtype=np.float64)

    def prescribed_goals(self) -> List[Goal]:
        return [g for g in self.goals(GoalKind.COORDINATE) if g.prescribed]

    # ------------------------
    # 原地修改
    # ------------------------
    def set_weights(self, weights: Sequence[float], kind: Optional[GoalKind] = None):
        """
        按表顺序覆盖权重；kind 给定时只对应该类目标的子序列

        :raises DimensionMismatchError: 长度不一致
        """
        goals = self.goals(kind)
        weights = np.asarray(weights, dtype=np.float64)
        what = f"{kind.value} weights" if kind is not None else "weights"
        if weights.ndim != 1:
            raise DimensionMismatchError(len(goals), weights.shape, what)
        if len(weights) != len(goals):
            raise DimensionMismatchError(len(goals), len(weights), what)
        checked = [_check_weight(g.kind, g.name, w) for g, w in zip(goals, weights)]
        for goal, weight in zip(goals, checked):
            goal.weight = weight

    def set_weight(self, kind: GoalKind, name: str, weight: float):
        goal = self._goals[self.index_of(kind, name)]
        goal.weight = _check_weight(kind, name, weight)

    def refresh_targets(self, time: float, markers_reference, coordinate_references):
        """
        从参考中读取 time 时刻的目标值并写入对应目标。
        参考标记为无效或采样缺失的标记点标记为 inactive（有效权重为 0），存储的权重不变。
        """
        marker_goals = self.goals(GoalKind.MARKER)
        if marker_goals:
            values = markers_reference.get_values(time)
            flags = np.asarray(markers_reference.get_active(time), dtype=bool)
            if len(values) != len(marker_goals):
                raise DimensionMismatchError(len(marker_goals), len(values), "marker values")
            if len(flags) != len(marker_goals):
                raise DimensionMismatchError(len(marker_goals), len(flags), "marker active flags")
            for goal, value, flag in zip(marker_goals, values, flags):
                active = bool(flag) and not bool(np.any(np.isnan(value)))
                if goal.active and not active:
                    logger.warning("Marker '%s' has no data at t=%g; ignored until it reappears", goal.name, time)
                goal.active = active
                goal.target = value

        coordinate_goals = self.goals(GoalKind.COORDINATE)
        if len(coordinate_references) != len(coordinate_goals):
            raise DimensionMismatchError(len(coordinate_goals), len(coordinate_references), "coordinate references")
        for goal, reference in zip(coordinate_goals, coordinate_references):
            goal.target = reference.get_value(time)
