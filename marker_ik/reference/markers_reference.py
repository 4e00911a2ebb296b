"""
标记点参考：按时间提供目标位置、权重及是否有效
"""
import math
import numpy as np
from typing import Dict, List, Optional, Tuple

from .marker_data import MarkerData


def _check_weight(weight: float) -> float:
    weight = float(weight)
    if math.isnan(weight) or weight < 0:
        raise ValueError(f"Marker weight must be non-negative, got {weight}")
    return weight


class MarkersReference:

    def __init__(self, marker_data: MarkerData,
                 marker_weights: Optional[Dict[str, float]] = None,
                 default_weight: float = 1.0):
        """
        :param marker_data: 标记点轨迹
        :param marker_weights: 单独指定的标记点权重（权重集）
        :param default_weight: 未单独指定的标记点使用的默认权重
        """
        self.marker_data = marker_data
        self._default_weight = _check_weight(default_weight)
        self._weight_set: Dict[str, float] = {}
        for name, weight in (marker_weights or {}).items():
            self.set_marker_weight(name, weight)

    def get_names(self) -> List[str]:
        return self.marker_data.get_marker_names()

    def get_num_refs(self) -> int:
        return len(self.marker_data.marker_names)

    def get_default_weight(self) -> float:
        return self._default_weight

    def set_default_weight(self, weight: float):
        self._default_weight = _check_weight(weight)

    def set_marker_weight(self, name: str, weight: float):
        if name not in self.marker_data.marker_names:
            raise KeyError(f"Marker '{name}' not found in marker data")
        self._weight_set[name] = _check_weight(weight)

    def get_weights(self) -> np.ndarray:
        """按 get_names() 顺序返回权重"""
        return np.array([self._weight_set.get(name, self._default_weight) for name in self.get_names()],
                        dtype=np.float64)

    def get_values(self, time: float) -> np.ndarray:
        """(m, 3) 最近一帧的标记点位置，缺失为 NaN"""
        return self.marker_data.get_frame(self.marker_data.get_frame_index(time)).copy()

    def get_active(self, time: float) -> np.ndarray:
        """(m,) 该时刻有有效采样的标记点为 True"""
        return ~np.any(np.isnan(self.get_values(time)), axis=1)

    def get_valid_time_range(self) -> Tuple[float, float]:
        return self.marker_data.get_time_range()
