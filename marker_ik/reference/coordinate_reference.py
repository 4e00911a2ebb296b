"""
坐标参考：按时间提供某个广义坐标的目标值与权重
权重为 inf 时该坐标在求解中被直接指定为参考值（不再是自由坐标）
"""
import math
from typing import Callable, Union

from .functions import Constant

ValueFunction = Union[Callable[[float], float], float]


class CoordinateReference:

    def __init__(self, name: str, function: ValueFunction, weight: float = 1.0):
        """
        :param name: 模型中的坐标名称
        :param function: f(time) -> 目标值；传入数值时视为常值
        :param weight: 权重（>= 0，可以为 inf）
        """
        self.name = name
        self.set_value_function(function)
        self.set_weight(weight)

    def set_value_function(self, function: ValueFunction):
        if callable(function):
            self.function = function
        else:
            self.function = Constant(function)

    def get_value(self, time: float) -> float:
        return float(self.function(time))

    def get_weight(self) -> float:
        return self.weight

    def set_weight(self, weight: float):
        weight = float(weight)
        if math.isnan(weight) or weight < 0:
            raise ValueError(f"Coordinate reference weight must be non-negative, got {weight}")
        self.weight = weight

    def __repr__(self):
        return f"CoordinateReference({self.name!r}, {self.function!r}, weight={self.weight})"
