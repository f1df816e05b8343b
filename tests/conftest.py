"""Shared fixtures: a small articulated robot built from primitives."""

import pytest

from rigforge.core.material import Material
from rigforge.core.mesh import MeshInstance
from rigforge.core.scene_graph import (
    CollisionGroup, JointNode, LinkNode, RobotRoot, SceneNode, VisualGroup,
)
from rigforge.scene.primitives import make_box


def make_mesh_node(name, size=(0.2, 0.2, 0.2), xyz=(0.0, 0.0, 0.0)):
    node = SceneNode(name)
    node.mesh = MeshInstance(name=name, geometry=make_box(*size), material=Material(name=name))
    node.set_position(*xyz)
    return node


def build_test_robot():
    """
    base (visual + collision group)
      shoulder: revolute z, +-1.57, origin (0, 0, 1)
        upper (visual, mesh under "leg_collision")
          collision_detector: link nested without a joint (visual mesh)
          elbow: revolute y, no limits, origin (1, 0, 0)
            fore (visual)
      sensor_mount: fixed
        imu_link (visual, mass 0)
      gizmo overlay with a mesh
    """
    root = RobotRoot("robot")
    base = LinkNode("base", inertial={"mass": 2.0, "inertia": {"ixx": 0.1}})
    root.add(base)
    vis = VisualGroup("base_visual")
    vis.add(make_mesh_node("base_mesh", size=(0.4, 0.4, 0.2)))
    base.add(vis)
    col = CollisionGroup("base_collision")
    col.add(make_mesh_node("base_col_mesh", size=(0.4, 0.4, 0.2)))
    base.add(col)

    shoulder = JointNode("shoulder", "revolute", axis=(0, 0, 1),
                         limit={"lower": -1.57, "upper": 1.57})
    shoulder.set_position(0, 0, 1)
    base.add(shoulder)
    upper = LinkNode("upper")
    shoulder.add(upper)
    upper_vis = VisualGroup("upper_visual")
    upper_vis.add(make_mesh_node("upper_mesh", xyz=(0.5, 0, 0)))
    upper.add(upper_vis)
    leg = SceneNode("leg_collision")
    leg.add(make_mesh_node("leg_mesh"))
    upper.add(leg)
    detector = LinkNode("collision_detector")
    detector.add(make_mesh_node("detector_mesh"))
    upper.add(detector)

    elbow = JointNode("elbow", "revolute", axis=(0, 1, 0))
    elbow.set_position(1, 0, 0)
    upper.add(elbow)
    fore = LinkNode("fore")
    elbow.add(fore)
    fore_vis = VisualGroup("fore_visual")
    fore_vis.add(make_mesh_node("fore_mesh", xyz=(0.5, 0, 0)))
    fore.add(fore_vis)

    mount = JointNode("sensor_mount", "fixed")
    mount.set_position(0, 0, 0.3)
    base.add(mount)
    imu = LinkNode("imu_link", inertial={"mass": 0.0})
    mount.add(imu)
    imu.add(make_mesh_node("imu_mesh", size=(0.05, 0.05, 0.05)))

    gizmo = SceneNode("transform_gizmo")
    gizmo.user_data["is_gizmo"] = True
    gizmo.add(make_mesh_node("gizmo_arrow"))
    base.add(gizmo)

    root.update_world_matrix(force=True)
    return root


@pytest.fixture
def robot():
    return build_test_robot()


@pytest.fixture
def robot_factory():
    return build_test_robot


@pytest.fixture
def nodes(robot):
    """Name -> node lookup for the test robot."""
    return {n.name: n for n in robot.iter_nodes()}


@pytest.fixture
def mesh_factory():
    return make_mesh_node
