"""Flat, query-optimised view of a robot scene graph.

The index is a pure function of the tree: it is rebuilt wholesale on load
and on structural edits and never patched. Everything here answers
relationship queries in O(1) so per-frame code never has to walk the tree.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from rigforge.constants import JOINT_SYNC_TOLERANCE
from rigforge.core.material import Material
from rigforge.core.math_utils import Vec3
from rigforge.core.scene_graph import JointNode, LinkNode, SceneNode

logger = logging.getLogger(__name__)


@dataclass
class JointLimit:
    lower: float
    upper: float
    effort: Optional[float] = None
    velocity: Optional[float] = None
    # False when lower/upper were filled in with defaults
    explicit: bool = True


@dataclass
class JointData:
    """Flattened joint properties plus the meshes the joint moves."""
    joint_type: str
    axis: Vec3
    limit: JointLimit
    affected_meshes: list[SceneNode] = field(default_factory=list)


@dataclass
class InertialData:
    mass: float
    center_of_mass: tuple[float, float, float]
    # ixx, ixy, ixz, iyy, iyz, izz
    inertia: dict[str, float]
    origin_xyz: tuple[float, float, float]
    origin_rpy: tuple[float, float, float]
    # Mass-less frames such as imu/lidar mounts
    is_sensor: bool = False


@dataclass(eq=False)
class SceneIndex:
    links: dict[str, LinkNode] = field(default_factory=dict)
    joints: dict[str, JointNode] = field(default_factory=dict)
    joint_data: dict[str, JointData] = field(default_factory=dict)
    link_inertials: dict[str, InertialData] = field(default_factory=dict)
    links_visual: dict[str, list[SceneNode]] = field(default_factory=dict)
    links_collision: dict[str, list[SceneNode]] = field(default_factory=dict)
    joint_affected_meshes: dict[str, set[SceneNode]] = field(default_factory=dict)
    mesh_to_link: dict[SceneNode, str] = field(default_factory=dict)
    mesh_is_collider: dict[SceneNode, bool] = field(default_factory=dict)
    kinematic_meshes: set[SceneNode] = field(default_factory=set)
    static_meshes: set[SceneNode] = field(default_factory=set)
    original_materials: dict[SceneNode, Material] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # O(1) lookups
    # ------------------------------------------------------------------

    @property
    def meshes(self) -> list[SceneNode]:
        """Every indexed mesh, in traversal order."""
        return list(self.mesh_is_collider)

    def get_link(self, link_name: str) -> Optional[LinkNode]:
        return self.links.get(link_name)

    def get_joint(self, joint_name: str) -> Optional[JointNode]:
        return self.joints.get(joint_name)

    def get_joint_data(self, joint_name: str) -> Optional[JointData]:
        return self.joint_data.get(joint_name)

    def get_link_inertial(self, link_name: str) -> Optional[InertialData]:
        return self.link_inertials.get(link_name)

    def get_link_meshes(self, link_name: str, subtype: str = "visual") -> list[SceneNode]:
        if subtype == "collision":
            return self.links_collision.get(link_name, [])
        return self.links_visual.get(link_name, [])

    def get_joint_affected_meshes(self, joint_name: str) -> set[SceneNode]:
        return self.joint_affected_meshes.get(joint_name, set())

    def is_mesh_collision(self, node: SceneNode) -> bool:
        flag = node.user_data.get("is_collision_mesh")
        if flag is not None:
            return bool(flag)
        return self.mesh_is_collider.get(node, False)

    def contains(self, node: SceneNode) -> bool:
        return node in self.mesh_is_collider

    def find_parent_link(self, node: SceneNode) -> Optional[str]:
        """Owning link name of *node*.

        Uses the build-time annotation or the reverse map. Nodes added
        after the last rebuild miss both and fall back to an ancestor walk.
        """
        name = node.user_data.get("parent_link_name")
        if name:
            return name
        name = self.mesh_to_link.get(node)
        if name:
            return name

        logger.debug("Index miss for %r, walking ancestors", node)
        current: Optional[SceneNode] = node
        while current is not None:
            if current.is_gizmo:
                return None
            link_name = current.user_data.get("link_name")
            if link_name:
                return link_name
            if current.is_link and current.name:
                return current.name
            if current.name in self.links:
                return current.name
            current = current.parent
        return None

    def find_link_meshes(self, link_name: str, subtype: str = "visual") -> list[SceneNode]:
        """Per-link meshes with a subtree walk when the bucket is empty.

        An empty bucket is normal for freshly added links before the next
        rebuild; the walk stops at child joints and nested links so only
        this link's own geometry is returned.
        """
        meshes = self.get_link_meshes(link_name, subtype)
        if meshes:
            return meshes
        link = self.links.get(link_name)
        if link is None:
            return []

        want_collision = subtype == "collision"
        found: list[SceneNode] = []
        stack = list(link.children)
        while stack:
            node = stack.pop()
            if node.is_joint or node.is_link or node.is_gizmo:
                continue
            if node.mesh is not None:
                is_collider = bool(node.user_data.get("is_collision_mesh")) or any(
                    a.is_collider for a in _path_to(node, link)
                )
                if is_collider == want_collision:
                    found.append(node)
            stack.extend(node.children)
        if found:
            logger.debug("Fallback traversal found %d %s meshes for %s",
                         len(found), subtype, link_name)
        return found

    # ------------------------------------------------------------------
    # Joint value sync
    # ------------------------------------------------------------------

    def sync_joint_angles(self, joint_angles: dict[str, float]) -> bool:
        """Push joint values into the tree. Returns True if anything moved."""
        changed = False
        for joint_name, angle in joint_angles.items():
            joint = self.joints.get(joint_name)
            if joint is None:
                continue
            if abs(joint.angle - angle) > JOINT_SYNC_TOLERANCE:
                if joint.set_joint_value(angle):
                    changed = True
        return changed


def _path_to(node: SceneNode, stop: SceneNode):
    current: Optional[SceneNode] = node
    while current is not None and current is not stop:
        yield current
        current = current.parent
