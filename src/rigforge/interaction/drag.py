"""Pointer-ray -> single joint value conversion for direct manipulation."""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from rigforge import constants
from rigforge.core.math_utils import (
    Ray, Vec3, clamp, normalize, project_on_plane, signed_angle,
)
from rigforge.core.scene_graph import JointNode, SceneNode
from rigforge.index.scene_index import JointData, JointLimit

logger = logging.getLogger(__name__)


def revolute_delta(prev_point: Vec3, new_point: Vec3, pivot: Vec3, axis: Vec3) -> float:
    """Signed rotation about *axis* taking *prev_point* to *new_point*.

    Both points are projected onto the plane through *pivot* normal to
    *axis* (unit). Degenerate projections give 0.
    """
    a = project_on_plane(prev_point, axis, pivot) - pivot
    b = project_on_plane(new_point, axis, pivot) - pivot
    return signed_angle(a, b, axis)


def prismatic_delta(prev_point: Vec3, new_point: Vec3, axis: Vec3) -> float:
    return float(np.dot(new_point - prev_point, axis))


def clamp_joint_value(value: float, joint_type: str, limit: Optional[JointLimit]) -> float:
    """Apply the joint's limits.

    Revolute joints always clamp (to the default range when the model gave
    none). Prismatic joints clamp only to limits the model supplied.
    Continuous joints never clamp.
    """
    if joint_type == "revolute":
        if limit is None:
            return clamp(value, constants.DEFAULT_JOINT_LOWER, constants.DEFAULT_JOINT_UPPER)
        return clamp(value, limit.lower, limit.upper)
    if joint_type == "prismatic" and limit is not None and limit.explicit:
        return clamp(value, limit.lower, limit.upper)
    return value


def joint_world_axis(joint: JointNode) -> tuple[Vec3, Vec3]:
    """World pivot and unit world axis of *joint*.

    Revolute axes are taken in the joint frame (parent frame plus origin),
    which the joint's own rotation leaves unchanged. Prismatic axes are
    taken in the parent's world frame.
    """
    joint.update_ancestors()
    m = joint.world_matrix
    pivot = m[:3, 3].copy()
    if joint.joint_type == "prismatic":
        parent = joint.parent
        rotation = parent.world_matrix[:3, :3] if parent is not None else np.eye(3)
    else:
        rotation = m[:3, :3]
    axis = normalize(rotation @ joint.unit_axis())
    return pivot, axis


def find_drag_joint(node: SceneNode) -> Optional[JointNode]:
    """Nearest non-fixed joint above *node*, stopping at editor overlays."""
    for ancestor in node.ancestors():
        if ancestor.is_gizmo:
            return None
        if ancestor.is_joint and ancestor.joint_type != "fixed":
            return ancestor
    return None


@dataclass
class DragSession:
    """One press-drag-release gesture on a single joint."""
    joint: JointNode
    ray: Ray
    hit_distance: float
    start_value: float
    value: float = 0.0
    joint_data: Optional[JointData] = None

    def __post_init__(self):
        self.value = self.start_value

    @property
    def joint_name(self) -> str:
        return self.joint.name

    @property
    def accumulated_delta(self) -> float:
        return self.value - self.start_value

    def update(self, new_ray: Ray) -> float:
        """Move the joint for a new pointer ray and return its value."""
        prev_point = self.ray.at(self.hit_distance)
        new_point = new_ray.at(self.hit_distance)
        joint_type = self.joint.joint_type
        pivot, axis = joint_world_axis(self.joint)

        if joint_type in ("revolute", "continuous"):
            delta = revolute_delta(prev_point, new_point, pivot, axis)
        elif joint_type == "prismatic":
            delta = prismatic_delta(prev_point, new_point, axis)
        else:
            delta = 0.0

        limit = self.joint_data.limit if self.joint_data is not None else None
        self.value = clamp_joint_value(self.value + delta, joint_type, limit)
        self.joint.set_joint_value(self.value)
        self.ray = new_ray
        return self.value
