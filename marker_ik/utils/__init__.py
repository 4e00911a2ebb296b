"""
工具函数
"""

from .quaternion_utils import (
    normalize_quaternion,
    quaternion_to_rotation_matrix,
    euler_to_quaternion
)

__all__ = [
    'normalize_quaternion',
    'quaternion_to_rotation_matrix',
    'euler_to_quaternion'
]
