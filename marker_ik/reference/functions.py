"""
坐标参考值的时间函数
"""
import numpy as np
from typing import Sequence


class Constant:
    """常值函数 f(t) = value"""

    def __init__(self, value: float):
        self.value = float(value)

    def __call__(self, time: float) -> float:
        return self.value

    def __repr__(self):
        return f"Constant({self.value})"


class PiecewiseLinearFunction:
    """
    关键帧之间线性插值；区间外保持端点值
    """

    def __init__(self, times: Sequence[float], values: Sequence[float]):
        self.times = np.asarray(times, dtype=np.float64)
        self.values = np.asarray(values, dtype=np.float64)
        if self.times.ndim != 1 or self.times.shape != self.values.shape:
            raise ValueError(f"times and values must be 1-D with equal length, got {self.times.shape} and {self.values.shape}")
        if len(self.times) == 0:
            raise ValueError("PiecewiseLinearFunction needs at least one keyframe")
        if np.any(np.diff(self.times) <= 0):
            raise ValueError("Keyframe times must be strictly increasing")

    def __call__(self, time: float) -> float:
        return float(np.interp(time, self.times, self.values))
