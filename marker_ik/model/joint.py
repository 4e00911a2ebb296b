"""
关节类层次结构实现
每个可动关节 (RevoluteJoint / PrismaticJoint) 对应模型的一个广义坐标
"""
import numpy as np
from abc import ABC, abstractmethod
from typing_extensions import override
from typing import Optional, Tuple, List

from ..utils import normalize_quaternion, quaternion_to_rotation_matrix


class JointNode(ABC):
    """
    所有关节类型的抽象基类，定义求解器接口。
    """

    def __init__(self, name: str, offset: np.ndarray):
        """
        初始化关节节点

        :param name: 关节名称
        :param offset: 相对父级的静态位移 (Vec3)
        """
        self.name = name
        self.parent: Optional['JointNode'] = None
        self.children: List['JointNode'] = []
        self.local_offset: np.ndarray = np.asarray(offset, dtype=np.float64)
        self.global_transform: np.ndarray = np.identity(4, dtype=np.float64)

    def add_child(self, child: 'JointNode'):
        """
        添加子节点
        """
        child.parent = self
        self.children.append(child)

    @abstractmethod
    def get_local_matrix(self) -> np.ndarray:
        """
        根据当前内部变量计算局部变换矩阵。

        :return: 4x4 局部变换矩阵
        """
        pass

    def append_to_ik_chain(self, ik_chain: List['JointNode']):
        """
        将节点添加到IK链列表的末尾；默认无自由度，跳过

        :param ik_chain: IK链列表（引用传递，直接修改）
        """
        pass

    def update_global_transform(self):
        """
        递归更新此关节及其所有子关节的 global_transform。
        """
        local_transform = self.get_local_matrix()

        if self.parent is None:
            self.global_transform = local_transform
        else:
            # global = parent_global @ local
            self.global_transform = self.parent.global_transform @ local_transform

        for child in self.children:
            child.update_global_transform()

    def transform_point(self, location: np.ndarray) -> np.ndarray:
        """
        将本关节坐标系下的点变换到世界坐标系

        :param location: 局部坐标 (Vec3)
        :return: 世界坐标 (Vec3)
        """
        return self.global_transform[:3, :3] @ location + self.global_transform[:3, 3]

    def __repr__(self):
        return f"<{self.__class__.__name__}: {self.name}>"


def _normalize_axis(axis: np.ndarray) -> np.ndarray:
    axis = np.asarray(axis, dtype=np.float64)
    axis_norm = np.linalg.norm(axis)
    if axis_norm > 1e-6:
        return axis / axis_norm
    raise ValueError(f"Axis vector is not a unit vector and too small to be normalized: {axis}")


class CoordinateJoint(JointNode):
    """
    单自由度关节的公共部分：一个广义坐标 q 及其范围、锁定、钳位属性
    """

    def __init__(self, name: str, offset: np.ndarray, axis: np.ndarray,
                 limits: Optional[Tuple[float, float]] = None,
                 coordinate_name: Optional[str] = None,
                 locked: bool = False,
                 clamped: Optional[bool] = None,
                 default_value: float = 0.0):
        """
        :param name: 关节名称
        :param offset: 相对父级的静态位移 (Vec3)
        :param axis: 关节轴（局部坐标系，不能为零向量。程序自动归一化）
        :param limits: 坐标范围 [min, max]，None 表示无约束
        :param coordinate_name: 广义坐标名称，默认与关节同名
        :param locked: 锁定的坐标不参与求解，保持当前值
        :param clamped: 写入坐标值时是否钳位到 limits；默认在给出 limits 时启用
        :param default_value: 坐标默认值
        """
        super().__init__(name, offset)
        self.axis = _normalize_axis(axis)
        if limits is not None:
            min_val, max_val = float(limits[0]), float(limits[1])
            if min_val > max_val:
                raise ValueError(f"Invalid limits for joint '{name}': {limits}")
            limits = (min_val, max_val)
        self.limits: Optional[Tuple[float, float]] = limits
        self.coordinate_name = coordinate_name or name
        self.locked = bool(locked)
        self.clamped = (limits is not None) if clamped is None else bool(clamped)
        self.default_value = float(default_value)
        self.q: float = self.clamp(self.default_value)

    def clamp(self, value: float) -> float:
        """按范围钳位坐标值（未启用钳位时原样返回）"""
        if self.clamped and self.limits is not None:
            min_val, max_val = self.limits
            return float(np.clip(value, min_val, max_val))
        return float(value)

    def world_axis(self) -> np.ndarray:
        """关节轴在世界坐标系中的方向"""
        R_world = self.global_transform[:3, :3]
        z_i = R_world @ self.axis
        z_i_norm = np.linalg.norm(z_i)
        if z_i_norm > 1e-6:
            return z_i / z_i_norm
        raise ValueError(f"Axis vector is not a unit vector and too small to be normalized: {z_i}")

    @abstractmethod
    def compute_jacobian_column(self, point: np.ndarray) -> np.ndarray:
        """
        世界坐标系下的点 point 对本关节坐标的偏导 (3,)

        :param point: 世界坐标系中的点位置 (Vec3)
        """
        pass

    @override
    def append_to_ik_chain(self, ik_chain: List['JointNode']):
        ik_chain.append(self)


class RevoluteJoint(CoordinateJoint):
    """
    旋转关节 - 绕固定轴旋转的铰链，坐标单位为弧度
    """

    def get_local_matrix(self) -> np.ndarray:
        """生成绕 axis 旋转 q 的矩阵"""
        local_transform = np.identity(4, dtype=np.float64)

        # 四元数 [w, x, y, z]
        half_theta = self.q / 2.0
        xyz = self.axis * np.sin(half_theta)
        quat = np.array([np.cos(half_theta), xyz[0], xyz[1], xyz[2]])

        local_transform[:3, :3] = quaternion_to_rotation_matrix(quat)
        local_transform[:3, 3] = self.local_offset
        return local_transform

    def compute_jacobian_column(self, point: np.ndarray) -> np.ndarray:
        """
        计算雅可比列向量: J_i = z_i cross (p - p_i)
        所有变量必须处于世界坐标系下
        """
        z_i = self.world_axis()
        p_i = self.global_transform[:3, 3]
        return np.cross(z_i, point - p_i)


class PrismaticJoint(CoordinateJoint):
    """
    移动关节 - 沿固定轴滑动的滑块，坐标单位为米
    """

    def get_local_matrix(self) -> np.ndarray:
        """生成沿 axis 平移 q 的矩阵: T = [I | offset + q * axis]"""
        local_transform = np.identity(4, dtype=np.float64)
        local_transform[:3, 3] = self.local_offset + self.q * self.axis
        return local_transform

    def compute_jacobian_column(self, point: np.ndarray) -> np.ndarray:
        """
        计算雅可比列向量: J_i = z_i
        """
        return self.world_axis()


class FixedJoint(JointNode):
    """
    固定关节 - 无变量的结构连接（地面、刚体坐标系、标记点挂载坐标系）
    quaternion 表示固定的本地旋转姿态（[w, x, y, z]）
    """

    def __init__(self, name: str, offset: np.ndarray, quaternion: Optional[np.ndarray] = None):
        """
        初始化固定关节

        :param name: 关节名称
        :param offset: 相对父级的静态位移 (Vec3)
        :param quaternion: 本地旋转（四元数，格式为[w, x, y, z]），None 表示无旋转
        """
        super().__init__(name, offset)
        if quaternion is None:
            self.quaternion = np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64)
        else:
            self.quaternion = normalize_quaternion(quaternion)

    def get_local_matrix(self) -> np.ndarray:
        """
        返回本地变换矩阵：先旋转，再平移
        """
        local_transform = np.identity(4, dtype=np.float64)
        local_transform[:3, :3] = quaternion_to_rotation_matrix(self.quaternion)
        local_transform[:3, 3] = self.local_offset
        return local_transform
