"""Built-in demo arm used when no model loader is configured."""

import math
from typing import Optional

from rigforge.core.material import Material
from rigforge.core.mesh import BufferGeometry, MeshInstance
from rigforge.core.scene_graph import (
    CollisionGroup, JointNode, LinkNode, RobotRoot, SceneNode, VisualGroup,
)
from rigforge.scene.primitives import make_box, make_cylinder, make_sphere


def _mesh_node(name: str, geometry: BufferGeometry, material: Material,
               xyz=(0.0, 0.0, 0.0)) -> SceneNode:
    node = SceneNode(name)
    node.mesh = MeshInstance(name=name, geometry=geometry, material=material)
    node.set_position(*xyz)
    return node


def make_link(
    name: str,
    visual: BufferGeometry,
    collision: Optional[BufferGeometry],
    color: int,
    xyz=(0.0, 0.0, 0.0),
    inertial: Optional[dict] = None,
) -> LinkNode:
    """Link with one visual and (optionally) one collision mesh at *xyz*."""
    link = LinkNode(name, inertial=inertial)
    visual_group = VisualGroup(f"{name}_visual")
    visual_group.add(_mesh_node(f"{name}_visual_mesh", visual, Material.from_hex(color), xyz))
    link.add(visual_group)
    if collision is not None:
        collision_group = CollisionGroup(f"{name}_collision")
        collision_group.add(_mesh_node(
            f"{name}_collision_mesh", collision, Material.from_hex(color), xyz,
        ))
        link.add(collision_group)
    return link


def make_joint(name: str, joint_type: str, parent: LinkNode, child: LinkNode,
               xyz=(0.0, 0.0, 0.0), rpy=(0.0, 0.0, 0.0), axis=(0.0, 0.0, 1.0),
               limit: Optional[dict] = None) -> JointNode:
    joint = JointNode(name, joint_type=joint_type, axis=axis, limit=limit)
    joint.set_position(*xyz)
    joint.set_rpy(*rpy)
    joint.add(child)
    parent.add(joint)
    return joint


def _inertial(mass: float, com_z: float, i: float) -> dict:
    return {
        "mass": mass,
        "origin": {"xyz": (0.0, 0.0, com_z), "rpy": (0.0, 0.0, 0.0)},
        "inertia": {"ixx": i, "iyy": i, "izz": i, "ixy": 0.0, "ixz": 0.0, "iyz": 0.0},
    }


def build_demo_robot() -> RobotRoot:
    """Four-link arm: revolute shoulder and elbow, prismatic slide,
    continuous wrist, and a fixed camera mount."""
    root = RobotRoot("demo_arm")

    base = make_link("base_link", make_cylinder(0.12, 0.1), make_cylinder(0.13, 0.1),
                     0x475569, xyz=(0, 0, 0.05), inertial=_inertial(4.0, 0.05, 0.02))
    root.add(base)

    upper = make_link("upper_arm", make_box(0.08, 0.08, 0.4), make_box(0.09, 0.09, 0.42),
                      0x3B82F6, xyz=(0, 0, 0.2), inertial=_inertial(1.5, 0.2, 0.01))
    make_joint("shoulder", "revolute", base, upper, xyz=(0, 0, 0.1),
               axis=(0, 0, 1), limit={"lower": -math.pi / 2, "upper": math.pi / 2})

    fore = make_link("forearm", make_box(0.06, 0.06, 0.3), make_box(0.07, 0.07, 0.32),
                     0x10B981, xyz=(0, 0, 0.15), inertial=_inertial(0.8, 0.15, 0.005))
    make_joint("elbow", "revolute", upper, fore, xyz=(0, 0, 0.4),
               axis=(0, 1, 0), limit={"lower": -2.0, "upper": 2.0})

    slide = make_link("slider", make_box(0.04, 0.04, 0.12), make_box(0.05, 0.05, 0.12),
                      0xF59E0B, xyz=(0, 0, 0.06), inertial=_inertial(0.3, 0.06, 0.001))
    make_joint("extend", "prismatic", fore, slide, xyz=(0, 0, 0.3),
               axis=(0, 0, 1), limit={"lower": 0.0, "upper": 0.1})

    hand = make_link("hand", make_sphere(0.04), make_sphere(0.045),
                     0xEF4444, inertial=_inertial(0.2, 0.0, 0.0005))
    make_joint("wrist", "continuous", slide, hand, xyz=(0, 0, 0.14), axis=(0, 0, 1))

    camera = make_link("camera_link", make_box(0.03, 0.05, 0.02), None,
                       0x111827, inertial=_inertial(0.0, 0.0, 0.0))
    make_joint("camera_mount", "fixed", hand, camera, xyz=(0.05, 0, 0))

    return root


def load_demo(token=None) -> RobotRoot:
    """Loader callable for ``ModelSession.load``."""
    return build_demo_robot()
