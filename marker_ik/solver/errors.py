"""
求解器异常
"""


class IKError(Exception):
    """marker_ik 求解相关异常的基类"""


class ConfigurationError(IKError, ValueError):
    """构造或配置错误：未知的标记点/坐标名称、非法权重或精度"""


class DimensionMismatchError(IKError, ValueError):
    """权重向量长度与目标表不一致"""

    def __init__(self, expected: int, actual: int, what: str = "weights"):
        super().__init__(f"Expected {expected} {what}, got {actual}")
        self.expected = expected
        self.actual = actual


class ConvergenceError(IKError, RuntimeError):
    """在迭代预算内未达到指定精度"""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report
