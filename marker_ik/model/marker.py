"""
标记点与模型状态
"""
import numpy as np
from dataclasses import dataclass, field

from .joint import JointNode


@dataclass
class Marker:
    """
    固定在某个关节坐标系（刚体）上的标记点

    :param name: 标记点名称
    :param frame: 挂载的关节坐标系
    :param location: 在挂载坐标系中的位置 (Vec3)
    """
    name: str
    frame: JointNode
    location: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        self.location = np.asarray(self.location, dtype=np.float64)
        if self.location.shape != (3,):
            raise ValueError(f"Marker '{self.name}' location must be a 3-vector, got shape {self.location.shape}")

    def world_location(self) -> np.ndarray:
        """基于挂载坐标系当前的 global_transform 计算世界坐标"""
        return self.frame.transform_point(self.location)


@dataclass
class State:
    """
    时间 + 广义坐标向量。求解器原地修改 q。
    """
    time: float
    q: np.ndarray

    def __post_init__(self):
        self.q = np.array(self.q, dtype=np.float64).reshape(-1)

    def copy(self) -> 'State':
        return State(self.time, self.q.copy())
