"""
四元数工具函数
本项目统一使用 [w, x, y, z] 顺序；scipy 的 Rotation 使用 [x, y, z, w]
"""
import numpy as np
from typing import Union

from scipy.spatial.transform import Rotation as R

QuaternionLike = Union[np.ndarray, list, tuple]


def normalize_quaternion(quaternion: QuaternionLike) -> np.ndarray:
    """
    归一化四元数

    :param quaternion: 四元数 [w, x, y, z]
    :return: 单位四元数
    """
    quaternion = np.asarray(quaternion, dtype=np.float64)
    if quaternion.shape != (4,):
        raise ValueError(f"Quaternion must be a 4-element array, got shape {quaternion.shape}")

    norm = np.linalg.norm(quaternion)
    if norm < 1e-10:
        raise ValueError(f"Quaternion norm too small: {norm}, cannot normalize")
    return quaternion / norm


def quaternion_to_rotation_matrix(quaternion: QuaternionLike) -> np.ndarray:
    """
    将四元数转换为旋转矩阵

    :param quaternion: 四元数，格式为 [w, x, y, z]
    :return: 3x3 旋转矩阵
    """
    w, x, y, z = normalize_quaternion(quaternion)

    return np.array([
        [1 - 2 * (y * y + z * z),     2 * (x * y - w * z),     2 * (x * z + w * y)],
        [    2 * (x * y + w * z), 1 - 2 * (x * x + z * z),     2 * (y * z - w * x)],
        [    2 * (x * z - w * y),     2 * (y * z + w * x), 1 - 2 * (x * x + y * y)]
    ], dtype=np.float64)


def euler_to_quaternion(euler_deg: QuaternionLike) -> np.ndarray:
    """
    XYZ 内旋欧拉角（度）转四元数 [w, x, y, z]
    """
    x, y, z, w = R.from_euler('XYZ', np.asarray(euler_deg, dtype=np.float64), degrees=True).as_quat()
    return np.array([w, x, y, z], dtype=np.float64)
