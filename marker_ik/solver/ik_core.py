"""
IK核心数值运算
均为 (坐标, 目标, 权重) 的纯函数，不依赖模型或参考对象，便于单独测试
"""
import numpy as np
from scipy import linalg
from typing import Sequence


def stack_residuals(marker_positions: np.ndarray, marker_targets: np.ndarray,
                    coordinate_values: np.ndarray, coordinate_targets: np.ndarray) -> np.ndarray:
    """
    组合残差向量：每个标记点 3 行 (p - t)，每个坐标 1 行 (q - t)
    目标为 NaN（标记点缺失）的行置 0

    :param marker_positions: (m, 3) 当前标记点位置
    :param marker_targets: (m, 3) 目标位置
    :param coordinate_values: (c,) 当前坐标值
    :param coordinate_targets: (c,) 目标值
    :return: (3m + c,) 残差
    """
    marker_residuals = (np.asarray(marker_positions, dtype=np.float64)
                        - np.asarray(marker_targets, dtype=np.float64)).reshape(-1)
    coordinate_residuals = (np.asarray(coordinate_values, dtype=np.float64)
                            - np.asarray(coordinate_targets, dtype=np.float64)).reshape(-1)
    residuals = np.concatenate([marker_residuals, coordinate_residuals])
    residuals[np.isnan(residuals)] = 0.0
    return residuals


def stack_jacobian(marker_jacobian: np.ndarray, coordinate_indices: Sequence[int],
                   num_coordinates: int) -> np.ndarray:
    """
    组合雅可比矩阵 (3m + c, n)，坐标目标的行为对应坐标的单位行

    :param marker_jacobian: (m, 3, n) 标记点位置对坐标的雅可比
    :param coordinate_indices: 每个坐标目标对应的坐标索引
    :param num_coordinates: n
    """
    marker_jacobian = np.asarray(marker_jacobian, dtype=np.float64)
    marker_rows = marker_jacobian.reshape(3 * marker_jacobian.shape[0], num_coordinates)
    coordinate_rows = np.zeros((len(coordinate_indices), num_coordinates), dtype=np.float64)
    coordinate_rows[np.arange(len(coordinate_indices)), np.asarray(coordinate_indices, dtype=int)] = 1.0
    return np.vstack([marker_rows, coordinate_rows])


def row_weights(marker_weights: np.ndarray, coordinate_weights: np.ndarray) -> np.ndarray:
    """
    每行的 sqrt(w)：标记点权重重复 3 次（x, y, z 三行）
    """
    weights = np.concatenate([np.repeat(np.asarray(marker_weights, dtype=np.float64), 3),
                              np.asarray(coordinate_weights, dtype=np.float64)])
    return np.sqrt(weights)


def weighted_cost(residuals: np.ndarray, sqrt_weights: np.ndarray) -> float:
    """目标函数 sum_i w_i * rho_i"""
    weighted = sqrt_weights * residuals
    return float(weighted @ weighted)


def damped_min_norm_step(J: np.ndarray, r: np.ndarray, damping: float = 0.0,
                         rcond: float = 1e-12) -> np.ndarray:
    """
    求解 min ||J δ + r||² + λ σ_max² ||δ||²（λ = damping）

    基于 SVD：δ = -V diag(σ / (σ² + λσ_max²)) Uᵀ r。
    小于 rcond * σ_max 的奇异值被丢弃，因此 damping = 0 时得到最小范数
    Gauss-Newton 步；任何目标都观测不到的方向上增量为 0。

    :param J: (rows, k) 已加权的雅可比
    :param r: (rows,) 已加权的残差
    :return: (k,) 增量
    """
    num_vars = J.shape[1]
    if J.size == 0:
        return np.zeros(num_vars)

    U, s, Vt = linalg.svd(J, full_matrices=False)
    if s.size == 0 or s[0] <= 0.0:
        return np.zeros(num_vars)

    keep = s > rcond * s[0]
    lam = damping * s[0] ** 2
    filter_factors = np.zeros_like(s)
    filter_factors[keep] = s[keep] / (s[keep] ** 2 + lam)
    return -(Vt.T @ (filter_factors * (U.T @ r)))


def clip_step_norm(step: np.ndarray, max_step: float) -> np.ndarray:
    """步长范数超过 max_step 时等比例缩放"""
    norm = np.linalg.norm(step)
    if norm > max_step:
        return step * (max_step / norm)
    return step


def project_step(q: np.ndarray, free_indices: np.ndarray, step: np.ndarray,
                 lower: np.ndarray, upper: np.ndarray) -> np.ndarray:
    """
    在自由坐标上施加增量并投影到坐标范围内，返回新的坐标向量
    """
    q_new = q.copy()
    q_new[free_indices] += step
    return np.minimum(np.maximum(q_new, lower), upper)
