"""
模型层 (Model Layer)
关节树、标记点与广义坐标，负责正向运动学与标记点雅可比

导出：
- JointNode: 抽象基类，定义所有关节的通用接口
- FixedJoint: 固定关节，无自由度，用于地面、刚体坐标系或静态偏移
- CoordinateJoint: 单自由度关节基类（一个广义坐标）
- RevoluteJoint: 旋转关节，绕固定轴旋转
- PrismaticJoint: 移动关节，沿固定轴滑动
- Marker / State: 标记点、模型状态
- KinematicModel: 模型整体，提供正向映射 evaluate()
"""

from .joint import (
    JointNode,
    FixedJoint,
    CoordinateJoint,
    RevoluteJoint,
    PrismaticJoint
)
from .marker import Marker, State
from .kinematic_model import KinematicModel, build_ik_chain

__all__ = [
    'JointNode',
    'FixedJoint',
    'CoordinateJoint',
    'RevoluteJoint',
    'PrismaticJoint',
    'Marker',
    'State',
    'KinematicModel',
    'build_ik_chain'
]
