"""
无界面求解入口：读取配置 -> 加载模型与标记点数据 -> 逐帧求解 -> 导出 JSON

用法: python -m marker_ik.run_solver config.json
"""
import json
import os
import sys
import time
from typing import List, Optional

import numpy as np

from .data_io import (
    load_skeleton,
    load_marker_data,
    load_coordinate_references,
    export_motion
)
from .logging_config import setup_logging
from .reference import MarkersReference
from .solver import (
    ConfigurationError,
    ConvergenceError,
    InverseKinematicsSolver,
    SolverSettings,
    solve_trajectory
)


def select_times(times: np.ndarray, time_range: Optional[List[float]]) -> np.ndarray:
    """按 time_range [start, end] 截取帧时间"""
    if time_range is None:
        return times
    start, end = time_range
    return times[(times >= start) & (times <= end)]


def run_solver(config_path: str = "config.json") -> int:
    # 1. 加载配置
    if not os.path.exists(config_path):
        print(f"❌ 找不到配置文件: {config_path}")
        return 1

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    setup_logging(config.get('log_level', 'INFO'), config.get('log_file'))

    print("----------- Marker IK Solver Headless -----------")
    print(f"配置加载: {config_path}")

    skeleton_path = config.get('skeleton_path')
    marker_data_path = config.get('marker_data_path')
    output_path = config.get('output_path', 'motion.json')

    try:
        settings = SolverSettings.from_dict(config)
    except (ValueError, TypeError) as e:
        print(f"❌ 求解参数无效: {e}")
        return 1

    # 2. 加载模型与数据
    print(f"正在加载模型: {skeleton_path} ...")
    try:
        model = load_skeleton(skeleton_path)
    except (OSError, ValueError, KeyError, TypeError) as e:
        print(f"❌ 模型加载失败: {e}")
        return 1
    print(f"模型 '{model.name}': {model.num_coordinates} 个坐标, {len(model.markers)} 个标记点")

    print(f"正在加载标记点数据: {marker_data_path} ...")
    try:
        marker_data = load_marker_data(marker_data_path)
        markers_reference = MarkersReference(
            marker_data,
            marker_weights=config.get('marker_weights'),
            default_weight=config.get('default_marker_weight', 1.0)
        )
        coordinate_references = load_coordinate_references(config.get('coordinate_references', []))
    except (OSError, ValueError, KeyError, TypeError) as e:
        print(f"❌ 参考数据加载失败: {e}")
        return 1
    print(f"标记点数据加载成功，共 {marker_data.get_num_frames()} 帧")

    # 3. 构建求解器
    try:
        ik_solver = InverseKinematicsSolver(model, markers_reference, coordinate_references, settings)
    except ConfigurationError as e:
        print(f"❌ 求解器构建失败: {e}")
        return 1

    times = select_times(marker_data.get_times(), config.get('time_range'))
    if len(times) == 0:
        print("❌ 指定的时间范围内没有数据帧")
        return 1

    state = model.init_state(float(times[0]))
    for name, value in config.get('initial_coordinates', {}).items():
        model.set_coordinate_value(state, name, value)

    # 4. 逐帧求解
    start_time = time.time()
    try:
        frames = solve_trajectory(ik_solver, state, times)
    except ConvergenceError as e:
        print(f"❌ 求解失败 (t={state.time:g}): {e}")
        return 1
    duration = time.time() - start_time
    print(f"求解完成，共 {len(frames)} 帧，耗时: {duration:.2f} 秒")

    # 5. 导出结果
    print(f"正在导出到: {output_path} ...")
    export_motion(frames, model.get_coordinate_names(), output_path, ik_solver.get_marker_names())
    print("✅ 任务完成！")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    return run_solver(argv[0] if argv else "config.json")


if __name__ == "__main__":
    sys.exit(main())
