"""Scene graph with hierarchical transforms and typed robot nodes.

Node types carry class-level markers (``is_link``, ``is_joint``,
``is_collider``, ``is_visual``) that loaders rely on; anything else a loader
wants to say about a node goes into ``user_data``.
"""

import math
from typing import Callable, Iterator, Optional

import numpy as np

from rigforge.core.math_utils import (
    Mat4, Vec3, Quat,
    mat4_identity, mat4_compose, mat4_translation, mat4_from_quaternion,
    quat_identity, quat_from_axis_angle, quat_from_euler, vec3,
)
from rigforge.core.mesh import MeshInstance

JOINT_TYPES = ("fixed", "revolute", "continuous", "prismatic")


class SceneNode:
    """A node in the scene graph hierarchy.

    position, quaternion, scale -> local matrix.
    World matrix = parent.world_matrix @ local_matrix.
    """

    is_link = False
    is_joint = False
    is_collider = False
    is_visual = False

    def __init__(self, name: str = ""):
        self.name = name
        self.parent: Optional["SceneNode"] = None
        self.children: list["SceneNode"] = []

        # Transform
        self.position: Vec3 = vec3()
        self.quaternion: Quat = quat_identity()
        self.scale: Vec3 = vec3(1, 1, 1)

        # Matrices
        self.local_matrix: Mat4 = mat4_identity()
        self.world_matrix: Mat4 = mat4_identity()

        self.visible: bool = True

        # Optional mesh attached to this node (makes it a mesh leaf)
        self.mesh: Optional[MeshInstance] = None

        # Loader / index annotations
        self.user_data: dict = {}

        # False once the node's matrices have been frozen
        self.matrix_auto_update: bool = True

        # Precise intersection skips nodes with this cleared
        self.raycast_enabled: bool = True

        self._matrix_dirty: bool = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @property
    def is_gizmo(self) -> bool:
        return bool(self.user_data.get("is_gizmo"))

    def add(self, child: "SceneNode") -> "SceneNode":
        """Add a child node. Removes from previous parent if any."""
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        child._matrix_dirty = True
        return self

    def remove(self, child: "SceneNode") -> "SceneNode":
        """Remove a child node."""
        if child in self.children:
            self.children.remove(child)
            child.parent = None
        return self

    def set_position(self, x: float, y: float, z: float) -> "SceneNode":
        self.position = vec3(x, y, z)
        self._matrix_dirty = True
        return self

    def set_quaternion(self, q: Quat) -> "SceneNode":
        self.quaternion = q.copy()
        self._matrix_dirty = True
        return self

    def set_rpy(self, roll: float, pitch: float, yaw: float) -> "SceneNode":
        """Set orientation from fixed-axis roll/pitch/yaw."""
        return self.set_quaternion(quat_from_euler(roll, pitch, yaw, "ZYX"))

    def update_local_matrix(self) -> None:
        """Recompute local matrix from position, quaternion, scale."""
        self.local_matrix = mat4_compose(self.position, self.quaternion, self.scale)
        self._matrix_dirty = False

    def update_world_matrix(self, force: bool = False) -> None:
        """Recursively update world matrices for this node and all descendants.

        Frozen nodes (``matrix_auto_update == False``) keep their cached
        matrices unless *force* is set.
        """
        if self.matrix_auto_update or force:
            if self._matrix_dirty or force:
                self.update_local_matrix()

            if self.parent is not None:
                self.world_matrix = self.parent.world_matrix @ self.local_matrix
            else:
                self.world_matrix = self.local_matrix.copy()

        for child in self.children:
            child.update_world_matrix(force=force)

    def update_ancestors(self) -> None:
        """Bring this node's world matrix up to date from the root down."""
        chain = [self] + list(self.ancestors())
        for node in reversed(chain):
            if node.matrix_auto_update:
                if node._matrix_dirty:
                    node.update_local_matrix()
                if node.parent is not None:
                    node.world_matrix = node.parent.world_matrix @ node.local_matrix
                else:
                    node.world_matrix = node.local_matrix.copy()

    def ancestors(self) -> Iterator["SceneNode"]:
        """Yield parent, grandparent, ... up to the root."""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def traverse(self, callback: Callable[["SceneNode"], None]) -> None:
        """Visit this node and all descendants depth-first."""
        callback(self)
        for child in self.children:
            child.traverse(callback)

    def traverse_visible(self, callback: Callable[["SceneNode"], None]) -> None:
        """Visit only visible nodes depth-first."""
        if not self.visible:
            return
        callback(self)
        for child in self.children:
            child.traverse_visible(callback)

    def iter_nodes(self) -> Iterator["SceneNode"]:
        """Pre-order iterator over this node and all descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, name: str) -> Optional["SceneNode"]:
        """Find first descendant with given name."""
        if self.name == name:
            return self
        for child in self.children:
            found = child.find(name)
            if found is not None:
                return found
        return None

    def get_world_position(self) -> Vec3:
        """Extract world position from world matrix."""
        return self.world_matrix[:3, 3].copy()

    def mark_dirty(self) -> None:
        """Mark this node and all descendants as needing matrix update."""
        self._matrix_dirty = True
        for child in self.children:
            child.mark_dirty()


class LinkNode(SceneNode):
    """A rigid body. ``inertial`` is opaque loader metadata."""

    is_link = True

    def __init__(self, name: str = "", inertial: Optional[dict] = None):
        super().__init__(name)
        self.inertial = inertial


class JointNode(SceneNode):
    """A 1-DOF (or fixed) connector between a parent and a child link.

    The node's own position/quaternion hold the joint origin; the joint
    value is applied on top of it, about/along ``axis`` in the joint frame.
    """

    is_joint = True

    def __init__(
        self,
        name: str = "",
        joint_type: str = "fixed",
        axis=None,
        limit: Optional[dict] = None,
    ):
        super().__init__(name)
        self.joint_type = joint_type
        self.axis = axis
        self.limit = limit
        self.angle: float = 0.0

    @property
    def is_movable(self) -> bool:
        return self.joint_type in ("revolute", "continuous", "prismatic")

    def unit_axis(self) -> Vec3:
        """Axis as a unit vector, (0, 0, 1) when missing or degenerate."""
        try:
            a = np.asarray(self.axis, dtype=np.float64).reshape(3)
        except (TypeError, ValueError):
            return vec3(0, 0, 1)
        n = np.linalg.norm(a)
        if not np.isfinite(n) or n < 1e-10:
            return vec3(0, 0, 1)
        return a / n

    def set_joint_value(self, value: float) -> bool:
        """Set the joint value and re-pose. Returns True if it changed."""
        if not self.is_movable or not math.isfinite(value):
            return False
        if value == self.angle:
            return False
        self.angle = float(value)
        self._matrix_dirty = True
        return True

    def update_local_matrix(self) -> None:
        origin = mat4_compose(self.position, self.quaternion, self.scale)
        if self.joint_type in ("revolute", "continuous"):
            motion = mat4_from_quaternion(quat_from_axis_angle(self.unit_axis(), self.angle))
        elif self.joint_type == "prismatic":
            offset = self.unit_axis() * self.angle
            motion = mat4_translation(*offset)
        else:
            motion = mat4_identity()
        self.local_matrix = origin @ motion
        self._matrix_dirty = False


class VisualGroup(SceneNode):
    """Wrapper holding a link's visual geometry."""

    is_visual = True


class CollisionGroup(SceneNode):
    """Wrapper holding a link's collision geometry."""

    is_collider = True


class RobotRoot(SceneNode):
    """Root of a loaded articulated model."""

    def __init__(self, name: str = "robot"):
        super().__init__(name)


class Scene(SceneNode):
    """Root scene node."""

    def __init__(self):
        super().__init__(name="scene")

    def update(self) -> None:
        """Update all world matrices in the scene."""
        self.update_world_matrix(force=False)

    def collect_meshes(self) -> list[tuple[MeshInstance, Mat4]]:
        """Collect all visible meshes with their world transforms."""
        result = []

        def _collect(node: SceneNode):
            if node.mesh is not None and not node.mesh.disposed:
                result.append((node.mesh, node.world_matrix))

        self.traverse_visible(_collect)
        return result
