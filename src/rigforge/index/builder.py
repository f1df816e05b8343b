"""Build a SceneIndex from a robot scene graph in one traversal."""

import logging
import math
import re
from typing import Any, Optional

import numpy as np

from rigforge import constants
from rigforge.core.scene_graph import JOINT_TYPES, JointNode, LinkNode, SceneNode
from rigforge.index.classifier import (
    Classification, classify_mesh, collect_moving_joints, resolve_owning_link,
)
from rigforge.index.scene_index import InertialData, JointData, JointLimit, SceneIndex

logger = logging.getLogger(__name__)

_SENSOR_RE = re.compile(constants.SENSOR_NAME_PATTERN, re.IGNORECASE)

_INERTIA_KEYS = ("ixx", "ixy", "ixz", "iyy", "iyz", "izz")


def _as_float(value: Any, default: Optional[float]) -> Optional[float]:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    return f if math.isfinite(f) else default


def _as_vec3(value: Any, default=(0.0, 0.0, 0.0)) -> tuple[float, float, float]:
    try:
        a = np.asarray(value, dtype=np.float64).reshape(3)
    except (TypeError, ValueError):
        return tuple(default)
    if not np.all(np.isfinite(a)):
        return tuple(default)
    return (float(a[0]), float(a[1]), float(a[2]))


def normalize_axis(axis: Any) -> np.ndarray:
    """Unit joint axis; (0, 0, 1) for missing, zero or non-finite input."""
    try:
        a = np.asarray(axis, dtype=np.float64).reshape(3)
    except (TypeError, ValueError):
        return np.array(constants.DEFAULT_JOINT_AXIS)
    n = float(np.linalg.norm(a))
    if not math.isfinite(n) or n < 1e-10:
        return np.array(constants.DEFAULT_JOINT_AXIS)
    return a / n


def extract_joint_data(joint: JointNode) -> JointData:
    """Flatten a joint node into JointData, defaulting anything malformed.

    Unknown joint types become ``fixed`` on the node itself so that later
    ancestor walks agree with the index.
    """
    if joint.joint_type not in JOINT_TYPES:
        logger.warning("Joint %s has unknown type %r, treating as fixed",
                       joint.name, joint.joint_type)
        joint.joint_type = "fixed"

    limit = joint.limit if isinstance(joint.limit, dict) else {}
    lower = _as_float(limit.get("lower"), None)
    upper = _as_float(limit.get("upper"), None)
    explicit = lower is not None and upper is not None
    if lower is None:
        lower = constants.DEFAULT_JOINT_LOWER
    if upper is None:
        upper = constants.DEFAULT_JOINT_UPPER
    if lower > upper:
        logger.warning("Joint %s limits reversed (%s > %s), swapping", joint.name, lower, upper)
        lower, upper = upper, lower

    return JointData(
        joint_type=joint.joint_type,
        axis=normalize_axis(joint.axis),
        limit=JointLimit(
            lower=lower,
            upper=upper,
            effort=_as_float(limit.get("effort"), None),
            velocity=_as_float(limit.get("velocity"), None),
            explicit=explicit,
        ),
    )


def extract_inertial_data(link: SceneNode) -> Optional[InertialData]:
    """Read inertial metadata from a link, if the loader attached any."""
    raw = getattr(link, "inertial", None)
    if raw is None:
        raw = link.user_data.get("inertial")
    if not isinstance(raw, dict):
        return None

    mass = _as_float(raw.get("mass"), 0.0)
    origin = raw.get("origin") if isinstance(raw.get("origin"), dict) else {}
    xyz = _as_vec3(origin.get("xyz"))
    rpy = _as_vec3(origin.get("rpy"))
    inertia_raw = raw.get("inertia") if isinstance(raw.get("inertia"), dict) else {}
    inertia = {k: _as_float(inertia_raw.get(k), 0.0) for k in _INERTIA_KEYS}

    return InertialData(
        mass=mass,
        center_of_mass=xyz,
        inertia=inertia,
        origin_xyz=xyz,
        origin_rpy=rpy,
        is_sensor=mass <= 0.0 or bool(_SENSOR_RE.search(link.name or "")),
    )


class SceneIndexBuilder:
    """Walks a robot tree once and produces a fresh SceneIndex.

    Traversal is pre-order, so a link or joint is always registered before
    any mesh beneath it. Editor overlays (``user_data["is_gizmo"]``) and
    everything under them are skipped.
    """

    def build(
        self,
        root: SceneNode,
        show_visual: bool = True,
        show_collision: bool = False,
    ) -> SceneIndex:
        index = SceneIndex()
        mesh_joints: list[tuple[SceneNode, list[JointNode]]] = []

        stack = [root]
        while stack:
            node = stack.pop()
            if node.is_gizmo:
                continue
            stack.extend(reversed(node.children))

            if node.is_link:
                self._register_link(index, node)
            elif node.is_joint:
                self._register_joint(index, node)

            if node.mesh is not None:
                joints = self._register_mesh(index, node, show_visual, show_collision)
                mesh_joints.append((node, joints))

        # Invert per-mesh ancestor lists into joint -> meshes
        for mesh_node, joints in mesh_joints:
            for joint in joints:
                index.joint_affected_meshes.setdefault(joint.name, set()).add(mesh_node)
                data = index.joint_data.get(joint.name)
                if data is not None:
                    data.affected_meshes.append(mesh_node)

        logger.info(
            "Indexed %d links, %d joints, %d meshes (%d kinematic, %d static)",
            len(index.links), len(index.joints), len(index.mesh_is_collider),
            len(index.kinematic_meshes), len(index.static_meshes),
        )
        return index

    def _register_link(self, index: SceneIndex, link: LinkNode) -> None:
        if link.name in index.links:
            logger.warning("Duplicate link name %r, keeping the first", link.name)
            return
        index.links[link.name] = link
        link.user_data["is_link"] = True
        link.user_data["link_name"] = link.name
        inertial = extract_inertial_data(link)
        if inertial is not None:
            index.link_inertials[link.name] = inertial

    def _register_joint(self, index: SceneIndex, joint: JointNode) -> None:
        if joint.name in index.joints:
            logger.warning("Duplicate joint name %r, keeping the first", joint.name)
            return
        index.joints[joint.name] = joint
        index.joint_data[joint.name] = extract_joint_data(joint)

    def _register_mesh(
        self,
        index: SceneIndex,
        node: SceneNode,
        show_visual: bool,
        show_collision: bool,
    ) -> list[JointNode]:
        is_collider = classify_mesh(node) is Classification.COLLISION
        owner = resolve_owning_link(node, index.links)
        joints = collect_moving_joints(node)

        index.mesh_is_collider[node] = is_collider
        if owner is not None:
            index.mesh_to_link[node] = owner
            bucket = index.links_collision if is_collider else index.links_visual
            bucket.setdefault(owner, []).append(node)
        else:
            logger.debug("Mesh %r has no owning link", node)

        if joints:
            index.kinematic_meshes.add(node)
        else:
            index.static_meshes.add(node)

        # A swapped-in display material is never the original
        original = node.user_data.get("original_material", node.mesh.material)
        index.original_materials[node] = original

        node.user_data.update(
            parent_link_name=owner,
            is_collision_mesh=is_collider,
            is_visual_mesh=not is_collider,
            is_in_kinematic_chain=bool(joints),
            affecting_joints=[j.name for j in joints],
        )
        node.visible = show_collision if is_collider else show_visual
        return joints
