"""
标记点轨迹数据：时间列 + 每个标记点的 (T, 3) 轨迹
缺失（被遮挡）的采样用 NaN 表示
"""
import numpy as np
from typing import List, Sequence, Tuple


class MarkerData:

    def __init__(self, times: Sequence[float], marker_names: Sequence[str], positions: np.ndarray):
        """
        :param times: 采样时间，严格递增 (T,)
        :param marker_names: 标记点名称 (m,)
        :param positions: 标记点位置 (T, m, 3)
        """
        self.times = np.asarray(times, dtype=np.float64).reshape(-1)
        self.marker_names: List[str] = list(marker_names)
        self.positions = np.asarray(positions, dtype=np.float64)

        if len(self.times) == 0:
            raise ValueError("MarkerData needs at least one frame")
        if np.any(np.diff(self.times) <= 0):
            raise ValueError("MarkerData times must be strictly increasing")
        if len(set(self.marker_names)) != len(self.marker_names):
            raise ValueError(f"Duplicate marker names in {self.marker_names}")
        expected = (len(self.times), len(self.marker_names), 3)
        if self.positions.shape != expected:
            raise ValueError(f"positions must have shape {expected}, got {self.positions.shape}")

    def get_num_frames(self) -> int:
        return len(self.times)

    def get_marker_names(self) -> List[str]:
        return list(self.marker_names)

    def get_times(self) -> np.ndarray:
        return self.times.copy()

    def get_time_range(self) -> Tuple[float, float]:
        return float(self.times[0]), float(self.times[-1])

    def get_frame_index(self, time: float) -> int:
        """
        返回距离 time 最近的帧号；time 超出数据时间范围时报错
        """
        t0, t1 = self.get_time_range()
        eps = 1e-9 * max(1.0, abs(t0), abs(t1))
        if time < t0 - eps or time > t1 + eps:
            raise ValueError(f"Time {time} is outside of the marker data range [{t0}, {t1}]")

        i = int(np.searchsorted(self.times, time))
        if i == 0:
            return 0
        if i >= len(self.times):
            return len(self.times) - 1
        return i if (self.times[i] - time) < (time - self.times[i - 1]) else i - 1

    def get_frame(self, index: int) -> np.ndarray:
        """(m, 3) 某一帧全部标记点位置"""
        return self.positions[index]

    def get_marker_trajectory(self, name: str) -> np.ndarray:
        try:
            k = self.marker_names.index(name)
        except ValueError:
            raise KeyError(f"Marker '{name}' not found in marker data") from None
        return self.positions[:, k, :]
