"""
参考数据层 (Reference Layer)
按时间提供标记点目标位置与坐标目标值
"""

from .functions import Constant, PiecewiseLinearFunction
from .marker_data import MarkerData
from .markers_reference import MarkersReference
from .coordinate_reference import CoordinateReference

__all__ = [
    'Constant',
    'PiecewiseLinearFunction',
    'MarkerData',
    'MarkersReference',
    'CoordinateReference'
]
