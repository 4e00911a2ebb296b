"""
运动学模型：关节树 + 标记点
提供广义坐标管理与正向映射（标记点世界坐标及其对坐标的雅可比）
"""
import logging
import numpy as np
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .joint import JointNode, CoordinateJoint
from .marker import Marker, State

logger = logging.getLogger(__name__)


def build_ik_chain(root: JointNode, frame: JointNode) -> List[CoordinateJoint]:
    """
    构建IK Chain：从根节点 root 到坐标系 frame 路径上的所有可动关节的有序列表。
    路径包含 root 与 frame 本身；FixedJoint 会被自动跳过。

    :param root: 链的根节点
    :param frame: 链的终点（标记点挂载的坐标系）
    :return: 仅包含1-DoF节点（RevoluteJoint或PrismaticJoint）的列表
    """
    path: List[JointNode] = []
    current = frame

    while current is not None:
        path.append(current)
        if current is root:
            break
        current = current.parent

    if path[-1] is not root:
        raise ValueError(f"Cannot find path from {root.name} to {frame.name}")

    path.reverse()

    ik_chain: List[JointNode] = []
    for node in path:
        node.append_to_ik_chain(ik_chain)
    return ik_chain


class KinematicModel:
    """
    关节树模型。广义坐标按关节树深度优先顺序排列。
    """

    def __init__(self, root: JointNode, markers: Optional[Iterable[Marker]] = None,
                 name: str = "model"):
        self.name = name
        self.root = root
        self.joints: Dict[str, JointNode] = {}
        self.coordinates: List[CoordinateJoint] = []

        stack = [root]
        while stack:
            node = stack.pop()
            if node.name in self.joints:
                raise ValueError(f"Duplicate joint name '{node.name}'")
            self.joints[node.name] = node
            if isinstance(node, CoordinateJoint):
                self.coordinates.append(node)
            stack.extend(reversed(node.children))

        self._coordinate_index: Dict[str, int] = {}
        for i, joint in enumerate(self.coordinates):
            if joint.coordinate_name in self._coordinate_index:
                raise ValueError(f"Duplicate coordinate name '{joint.coordinate_name}'")
            self._coordinate_index[joint.coordinate_name] = i

        self.markers: Dict[str, Marker] = {}
        # 标记点名称 -> IK链上各关节的坐标索引
        self._chain_indices: Dict[str, List[int]] = {}
        for marker in markers or []:
            self.add_marker(marker)

        self.root.update_global_transform()
        logger.debug("Model '%s': %d joints, %d coordinates, %d markers",
                     name, len(self.joints), len(self.coordinates), len(self.markers))

    # ------------------------
    # 坐标
    # ------------------------
    @property
    def num_coordinates(self) -> int:
        return len(self.coordinates)

    def get_coordinate_names(self) -> List[str]:
        return [joint.coordinate_name for joint in self.coordinates]

    def has_coordinate(self, name: str) -> bool:
        return name in self._coordinate_index

    def get_coordinate_index(self, name: str) -> int:
        try:
            return self._coordinate_index[name]
        except KeyError:
            raise KeyError(f"Coordinate '{name}' not found in model '{self.name}'") from None

    def get_coordinate(self, name: str) -> CoordinateJoint:
        return self.coordinates[self.get_coordinate_index(name)]

    def get_joint(self, name: str) -> JointNode:
        try:
            return self.joints[name]
        except KeyError:
            raise KeyError(f"Joint '{name}' not found in model '{self.name}'") from None

    def init_state(self, time: float = 0.0) -> State:
        """以各坐标默认值构造初始状态"""
        return State(time, [joint.clamp(joint.default_value) for joint in self.coordinates])

    def get_coordinate_value(self, state: State, name: str) -> float:
        return float(state.q[self.get_coordinate_index(name)])

    def set_coordinate_value(self, state: State, name: str, value: float):
        """写入坐标值（启用钳位的坐标会被限制在范围内）"""
        i = self.get_coordinate_index(name)
        state.q[i] = self.coordinates[i].clamp(value)

    def get_coordinate_bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        返回 (lower, upper)；未钳位的坐标为 (-inf, inf)
        """
        lower = np.full(self.num_coordinates, -np.inf)
        upper = np.full(self.num_coordinates, np.inf)
        for i, joint in enumerate(self.coordinates):
            if joint.clamped and joint.limits is not None:
                lower[i], upper[i] = joint.limits
        return lower, upper

    def clamp(self, q: np.ndarray) -> np.ndarray:
        lower, upper = self.get_coordinate_bounds()
        return np.minimum(np.maximum(q, lower), upper)

    def free_coordinate_mask(self) -> np.ndarray:
        """未锁定的坐标为 True"""
        return np.array([not joint.locked for joint in self.coordinates], dtype=bool)

    # ------------------------
    # 标记点
    # ------------------------
    def add_marker(self, marker: Marker):
        if marker.name in self.markers:
            raise ValueError(f"Duplicate marker name '{marker.name}'")
        if self.joints.get(marker.frame.name) is not marker.frame:
            raise ValueError(f"Frame '{marker.frame.name}' of marker '{marker.name}' is not part of model '{self.name}'")
        chain = build_ik_chain(self.root, marker.frame)
        self._chain_indices[marker.name] = [self._coordinate_index[j.coordinate_name] for j in chain]
        self.markers[marker.name] = marker

    def get_marker_names(self) -> List[str]:
        return list(self.markers.keys())

    def has_marker(self, name: str) -> bool:
        return name in self.markers

    def get_marker(self, name: str) -> Marker:
        try:
            return self.markers[name]
        except KeyError:
            raise KeyError(f"Marker '{name}' not found in model '{self.name}'") from None

    # ------------------------
    # 正向映射
    # ------------------------
    def realize(self, q: np.ndarray):
        """
        将坐标向量写入关节并刷新全树变换（FK）
        """
        q = np.asarray(q, dtype=np.float64)
        if q.shape != (self.num_coordinates,):
            raise ValueError(f"Expected {self.num_coordinates} coordinates, got shape {q.shape}")
        for joint, value in zip(self.coordinates, q):
            joint.q = float(value)
        self.root.update_global_transform()

    def compute_marker_locations(self, q: np.ndarray, marker_names: Sequence[str]) -> np.ndarray:
        """
        :return: (m, 3) 标记点世界坐标
        """
        self.realize(q)
        locations = np.zeros((len(marker_names), 3), dtype=np.float64)
        for k, name in enumerate(marker_names):
            locations[k] = self.get_marker(name).world_location()
        return locations

    def evaluate(self, q: np.ndarray, marker_names: Sequence[str]) -> Tuple[np.ndarray, np.ndarray]:
        """
        正向映射：标记点世界坐标及其对广义坐标的雅可比

        :param q: 坐标向量 (n,)
        :param marker_names: 需要求值的标记点
        :return: (positions (m, 3), jacobian (m, 3, n))
        """
        positions = self.compute_marker_locations(q, marker_names)
        jacobian = np.zeros((len(marker_names), 3, self.num_coordinates), dtype=np.float64)
        for k, name in enumerate(marker_names):
            for idx in self._chain_indices[name]:
                jacobian[k, :, idx] = self.coordinates[idx].compute_jacobian_column(positions[k])
        return positions, jacobian
