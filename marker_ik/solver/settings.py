"""
求解参数
"""
import math
from dataclasses import dataclass, fields
from typing import Any, Dict

from .errors import ConfigurationError


@dataclass
class SolverSettings:
    accuracy: float = 1e-5                   # 收敛判据：投影后的 Gauss-Newton 步长最大分量
    assemble_max_iterations: int = 1000
    track_max_iterations: int = 25
    assemble_damping: float = 1e-3           # LM 初始阻尼（相对 σ_max²）
    track_damping: float = 1e-8
    assemble_max_step: float = 1.0           # 单步最大范数（信赖域）
    track_max_step: float = 0.25
    damping_factor: float = 10.0
    damping_min: float = 1e-12
    damping_max: float = 1e8
    rcond: float = 1e-12                     # 小于 rcond * σ_max 的奇异值视为 0

    def __post_init__(self):
        check_accuracy(self.accuracy)
        if self.assemble_max_iterations < 1 or self.track_max_iterations < 1:
            raise ConfigurationError("Iteration budgets must be at least 1")
        if self.damping_factor <= 1.0:
            raise ConfigurationError(f"damping_factor must be > 1, got {self.damping_factor}")
        if not 0 < self.damping_min <= self.damping_max:
            raise ConfigurationError("Expected 0 < damping_min <= damping_max")
        if self.assemble_max_step <= 0 or self.track_max_step <= 0:
            raise ConfigurationError("Maximum step sizes must be positive")

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'SolverSettings':
        """从配置字典中挑选已知字段，其余忽略"""
        kwargs = {}
        for f in fields(cls):
            if f.name in config:
                kwargs[f.name] = type(f.default)(config[f.name])
        return cls(**kwargs)


def check_accuracy(tolerance: float) -> float:
    tolerance = float(tolerance)
    if not math.isfinite(tolerance) or tolerance <= 0:
        raise ConfigurationError(f"Accuracy must be a positive finite number, got {tolerance}")
    return tolerance
