"""
数据交换功能实现（JSON）
骨骼/标记点定义、标记点轨迹、坐标参考与求解结果
"""
import json
import logging
import os
import math
import numpy as np
from typing import Any, Dict, List, Optional, Sequence

from .model import (
    JointNode,
    FixedJoint,
    RevoluteJoint,
    PrismaticJoint,
    Marker,
    State,
    KinematicModel
)
from .reference import CoordinateReference, MarkerData, PiecewiseLinearFunction
from .utils import euler_to_quaternion

logger = logging.getLogger(__name__)


def build_skeleton(data: Dict[str, Any]) -> KinematicModel:
    """
    由骨骼定义字典构建模型

    :param data: {"name", "root_name", "joints": [...], "markers": [...]}
    :return: KinematicModel
    """
    root_name = data['root_name']
    joints_data = data['joints']

    joint_map: Dict[str, JointNode] = {}

    for joint_data in joints_data:
        name = joint_data['name']
        joint_type = joint_data['type']
        offset = np.array(joint_data.get('offset', [0.0, 0.0, 0.0]), dtype=np.float64)

        if name in joint_map:
            raise ValueError(f"Duplicate joint name '{name}'")

        if joint_type == 'fixed':
            quat = None
            if joint_data.get('quaternion') is not None:
                quat = np.array(joint_data['quaternion'], dtype=np.float64)
            elif joint_data.get('euler') is not None:
                quat = euler_to_quaternion(joint_data['euler'])
            joint = FixedJoint(name, offset, quat)
        elif joint_type in ('revolute', 'prismatic'):
            limits = None
            if joint_data.get('limits') is not None:
                limits = tuple(joint_data['limits'])
            joint_cls = RevoluteJoint if joint_type == 'revolute' else PrismaticJoint
            joint = joint_cls(
                name, offset, np.array(joint_data['axis'], dtype=np.float64), limits,
                coordinate_name=joint_data.get('coordinate'),
                locked=joint_data.get('locked', False),
                clamped=joint_data.get('clamped'),
                default_value=joint_data.get('default_value', 0.0)
            )
        else:
            raise ValueError(f"Unknown joint type: {joint_type}")

        joint_map[name] = joint

    # 建立父子关系
    for joint_data in joints_data:
        name = joint_data['name']
        parent_name = joint_data.get('parent')

        if parent_name is not None:
            if parent_name not in joint_map:
                raise ValueError(f"Parent '{parent_name}' not found for joint '{name}'")
            joint_map[parent_name].add_child(joint_map[name])

    if root_name not in joint_map:
        raise ValueError(f"Root node '{root_name}' not found")

    markers = []
    for marker_data in data.get('markers', []):
        frame_name = marker_data['frame']
        if frame_name not in joint_map:
            raise ValueError(f"Frame '{frame_name}' not found for marker '{marker_data['name']}'")
        markers.append(Marker(marker_data['name'], joint_map[frame_name],
                              np.array(marker_data.get('location', [0.0, 0.0, 0.0]), dtype=np.float64)))

    return KinematicModel(joint_map[root_name], markers, name=data.get('name', 'model'))


def load_skeleton(json_path: str) -> KinematicModel:
    """
    从 skeleton.json 加载骨骼与标记点定义
    """
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return build_skeleton(data)


def marker_data_from_dict(data: Dict[str, Any]) -> MarkerData:
    """
    :param data: {"times": [...], "markers": {name: [[x, y, z] 或 null, ...]}}
    """
    times = np.asarray(data['times'], dtype=np.float64)
    names = list(data['markers'].keys())
    positions = np.full((len(times), len(names), 3), np.nan)
    for k, name in enumerate(names):
        samples = data['markers'][name]
        if len(samples) != len(times):
            raise ValueError(f"Marker '{name}' has {len(samples)} samples, expected {len(times)}")
        for i, sample in enumerate(samples):
            if sample is not None:
                positions[i, k] = sample
    return MarkerData(times, names, positions)


def load_marker_data(json_path: str) -> MarkerData:
    with open(json_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return marker_data_from_dict(data)


def save_marker_data(marker_data: MarkerData, json_path: str):
    """将标记点轨迹写为 JSON（NaN 写为 null）"""
    markers = {}
    for k, name in enumerate(marker_data.marker_names):
        markers[name] = [None if np.any(np.isnan(p)) else [float(v) for v in p]
                         for p in marker_data.positions[:, k]]
    output = {'times': [float(t) for t in marker_data.times], 'markers': markers}
    with open(json_path, 'w', encoding='utf-8') as f:
        json.dump(output, f, indent=2, ensure_ascii=False)


def _parse_weight(value: Any) -> float:
    if isinstance(value, str) and value.lower() in ('inf', 'infinity'):
        return math.inf
    return float(value)


def load_coordinate_references(items: Sequence[Dict[str, Any]]) -> List[CoordinateReference]:
    """
    由配置项构建坐标参考

    :param items: [{"name": str, "value": float 或 "keyframes": [[t, v], ...], "weight": float 或 "inf"}]
    """
    references = []
    for item in items:
        if 'keyframes' in item:
            keyframes = np.asarray(item['keyframes'], dtype=np.float64).reshape(-1, 2)
            function = PiecewiseLinearFunction(keyframes[:, 0], keyframes[:, 1])
        elif 'value' in item:
            function = float(item['value'])
        else:
            raise ValueError(f"Coordinate reference '{item.get('name')}' needs 'value' or 'keyframes'")
        references.append(CoordinateReference(item['name'], function, _parse_weight(item.get('weight', 1.0))))
    return references


def generate_marker_data(model: KinematicModel, states: Sequence[State],
                         noise_radius: float = 0.0, fixed: bool = False,
                         seed: int = 0) -> MarkerData:
    """
    由已知状态序列生成合成标记点轨迹

    :param model: 运动学模型（使用其全部标记点）
    :param states: 按时间排序的状态
    :param noise_radius: 高斯噪声的尺度；为 0 时不加噪声
    :param fixed: True 时所有帧、所有标记点使用同一个噪声偏移
    :param seed: 随机种子，保证可复现
    """
    rng = np.random.default_rng(seed)
    names = model.get_marker_names()
    times = [state.time for state in states]
    positions = np.array([model.compute_marker_locations(state.q, names) for state in states])

    offset = noise_radius * rng.standard_normal(3)
    if noise_radius >= np.finfo(float).eps:
        for i in range(positions.shape[0]):
            for k in range(positions.shape[1]):
                if not fixed:
                    offset = noise_radius * rng.standard_normal(3)
                positions[i, k] += offset

    return MarkerData(times, names, positions)


def _finite_or_none(value: float) -> Optional[float]:
    return None if math.isnan(value) else float(value)


def export_motion(frames, coordinate_names: Sequence[str], output_path: str,
                  marker_names: Optional[Sequence[str]] = None):
    """
    导出求解结果 JSON

    :param frames: solve_trajectory 返回的 FrameResult 列表
    :param coordinate_names: 坐标名称（与 FrameResult.coordinates 顺序一致）
    :param output_path: 输出文件路径
    :param marker_names: 标记点名称，用于标注最大误差标记点
    """
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

    frames_output = []
    for frame in frames:
        frame_out = {
            'time': float(frame.time),
            'coordinates': {name: float(v) for name, v in zip(coordinate_names, frame.coordinates)},
            'iterations': int(frame.report.iterations),
        }
        if frame.marker_errors is not None:
            worst = frame.max_error_index()
            frame_out['marker_error'] = {
                'total_squared': _finite_or_none(frame.total_squared_error),
                'rms': _finite_or_none(frame.rms_error),
                'max': _finite_or_none(frame.max_error),
                'max_marker': None if (worst is None or marker_names is None) else marker_names[worst],
            }
        frames_output.append(frame_out)

    output = {'coordinate_names': list(coordinate_names), 'frames': frames_output}
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(output, f, indent=2, ensure_ascii=False)
    logger.info("Wrote %d frames to %s", len(frames_output), output_path)
