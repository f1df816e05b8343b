"""Tests for SceneIndexBuilder."""

import math

import numpy as np

from rigforge.core.scene_graph import JointNode, LinkNode, RobotRoot
from rigforge.index.builder import (
    SceneIndexBuilder, extract_inertial_data, extract_joint_data, normalize_axis,
)


def _mesh_names(nodes):
    return sorted(n.name for n in nodes)


def test_links_and_joints_registered(robot):
    index = SceneIndexBuilder().build(robot)
    assert set(index.links) == {"base", "upper", "collision_detector", "fore", "imu_link"}
    assert set(index.joints) == {"shoulder", "elbow", "sensor_mount"}
    assert index.links["base"].user_data["link_name"] == "base"


def test_every_mesh_in_exactly_one_bucket_and_one_set(robot):
    index = SceneIndexBuilder().build(robot)
    meshes = index.meshes
    assert len(meshes) == 7

    visual = [m for bucket in index.links_visual.values() for m in bucket]
    collision = [m for bucket in index.links_collision.values() for m in bucket]
    assert len(visual) + len(collision) == len(meshes)
    assert set(visual).isdisjoint(collision)
    assert set(visual) | set(collision) == set(meshes)

    assert index.kinematic_meshes.isdisjoint(index.static_meshes)
    assert index.kinematic_meshes | index.static_meshes == set(meshes)


def test_gizmo_subtree_is_not_indexed(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    assert nodes["gizmo_arrow"] not in index.mesh_is_collider
    assert "gizmo_arrow" not in _mesh_names(index.meshes)


def test_classification_precision(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    assert index.mesh_is_collider[nodes["leg_mesh"]] is True
    assert index.mesh_is_collider[nodes["detector_mesh"]] is False
    assert index.mesh_is_collider[nodes["base_col_mesh"]] is True
    assert _mesh_names(index.links_collision["upper"]) == ["leg_mesh"]
    assert _mesh_names(index.links_visual["collision_detector"]) == ["detector_mesh"]


def test_nested_revolute_affects_both_joints(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    fore = nodes["fore_mesh"]
    assert fore in index.get_joint_affected_meshes("shoulder")
    assert fore in index.get_joint_affected_meshes("elbow")
    assert _mesh_names(index.get_joint_affected_meshes("shoulder")) == [
        "detector_mesh", "fore_mesh", "leg_mesh", "upper_mesh",
    ]
    assert _mesh_names(index.get_joint_affected_meshes("elbow")) == ["fore_mesh"]
    assert fore.user_data["affecting_joints"] == ["elbow", "shoulder"]


def test_fixed_joint_children_are_static(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    assert nodes["imu_mesh"] in index.static_meshes
    assert index.get_joint_affected_meshes("sensor_mount") == set()
    assert _mesh_names(index.static_meshes) == ["base_col_mesh", "base_mesh", "imu_mesh"]


def test_mesh_annotations(robot, nodes):
    SceneIndexBuilder().build(robot)
    ud = nodes["leg_mesh"].user_data
    assert ud["parent_link_name"] == "upper"
    assert ud["is_collision_mesh"] is True
    assert ud["is_visual_mesh"] is False
    assert ud["is_in_kinematic_chain"] is True


def test_initial_visibility_follows_toggles(robot, nodes):
    SceneIndexBuilder().build(robot, show_visual=True, show_collision=False)
    assert nodes["base_mesh"].visible
    assert not nodes["base_col_mesh"].visible


def test_original_materials_snapshot(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    node = nodes["upper_mesh"]
    assert index.original_materials[node] is node.mesh.material


def test_joint_defaults(robot):
    index = SceneIndexBuilder().build(robot)
    elbow = index.get_joint_data("elbow")
    assert elbow.limit.lower == -math.pi
    assert elbow.limit.upper == math.pi
    assert elbow.limit.explicit is False
    shoulder = index.get_joint_data("shoulder")
    assert shoulder.limit.explicit is True
    np.testing.assert_array_almost_equal(shoulder.axis, [0, 0, 1])


def test_malformed_joint_is_defaulted():
    joint = JointNode("weird", joint_type="ball", axis=("x", 1), limit={"lower": 2.0, "upper": -1.0})
    data = extract_joint_data(joint)
    assert data.joint_type == "fixed"
    assert joint.joint_type == "fixed"
    np.testing.assert_array_equal(data.axis, [0, 0, 1])
    assert (data.limit.lower, data.limit.upper) == (-1.0, 2.0)


def test_partial_limit_defaults_missing_bound():
    joint = JointNode("j", "revolute", limit={"upper": 0.5, "effort": "lots"})
    data = extract_joint_data(joint)
    assert data.limit.lower == -math.pi
    assert data.limit.upper == 0.5
    assert data.limit.effort is None
    assert data.limit.explicit is False


def test_normalize_axis():
    np.testing.assert_array_almost_equal(normalize_axis((0, 2, 0)), [0, 1, 0])
    np.testing.assert_array_equal(normalize_axis((float("nan"), 0, 0)), [0, 0, 1])
    np.testing.assert_array_equal(normalize_axis(None), [0, 0, 1])


def test_inertial_and_sensor_detection(robot):
    index = SceneIndexBuilder().build(robot)
    base = index.get_link_inertial("base")
    assert base.mass == 2.0
    assert base.inertia["ixx"] == 0.1
    assert base.inertia["izz"] == 0.0
    assert not base.is_sensor
    assert index.get_link_inertial("imu_link").is_sensor
    assert index.get_link_inertial("upper") is None


def test_sensor_by_name_with_mass():
    link = LinkNode("front_lidar", inertial={"mass": 0.5, "origin": {"xyz": [0, 0, 0.1]}})
    data = extract_inertial_data(link)
    assert data.is_sensor
    assert data.center_of_mass == (0.0, 0.0, 0.1)


def test_orphan_mesh_in_partition_but_no_bucket(robot):
    from rigforge.core.mesh import MeshInstance
    from rigforge.core.scene_graph import SceneNode
    from rigforge.scene.primitives import make_box

    orphan = SceneNode("orphan")
    orphan.mesh = MeshInstance(name="orphan", geometry=make_box(1, 1, 1))
    root = RobotRoot()
    root.add(orphan)
    index = SceneIndexBuilder().build(root)
    assert orphan in index.static_meshes
    assert orphan not in index.mesh_to_link
    assert index.links_visual == {}


def test_rebuild_returns_new_index(robot):
    builder = SceneIndexBuilder()
    first = builder.build(robot)
    second = builder.build(robot)
    assert first is not second
    assert set(first.meshes) == set(second.meshes)
