"""Tests for joint drag math."""

import math

import numpy as np
import pytest

from rigforge.core.math_utils import Ray, vec3
from rigforge.core.scene_graph import JointNode, LinkNode
from rigforge.index.builder import SceneIndexBuilder, extract_joint_data
from rigforge.interaction.drag import (
    DragSession, clamp_joint_value, find_drag_joint, joint_world_axis,
    prismatic_delta, revolute_delta,
)
from rigforge.index.scene_index import JointLimit


def _down_ray(x, y, z=5.0):
    return Ray(origin=vec3(x, y, z), direction=vec3(0, 0, -1))


def test_revolute_quarter_turn():
    delta = revolute_delta(vec3(1, 0, 1), vec3(0, 1, 3), vec3(0, 0, 1), vec3(0, 0, 1))
    assert delta == pytest.approx(math.pi / 2)
    back = revolute_delta(vec3(0, 1, 1), vec3(1, 0, 1), vec3(0, 0, 1), vec3(0, 0, 1))
    assert back == pytest.approx(-math.pi / 2)


def test_revolute_point_on_axis_gives_zero():
    assert revolute_delta(vec3(0, 0, 2), vec3(1, 0, 1), vec3(0, 0, 1), vec3(0, 0, 1)) == 0.0


def test_prismatic_ignores_motion_off_axis():
    delta = prismatic_delta(vec3(0, 0, 0), vec3(0.3, 0.4, 0.2), vec3(0, 0, 1))
    assert delta == pytest.approx(0.2)


def test_clamp_policy():
    limit = JointLimit(-1.57, 1.57)
    assert clamp_joint_value(1.4 + 0.5, "revolute", limit) == 1.57
    assert clamp_joint_value(10.0, "revolute", None) == pytest.approx(math.pi)
    assert clamp_joint_value(10.0, "continuous", limit) == 10.0
    assert clamp_joint_value(0.2, "prismatic", JointLimit(0.0, 0.1)) == 0.1
    assert clamp_joint_value(0.2, "prismatic", JointLimit(-math.pi, math.pi, explicit=False)) == 0.2


def test_joint_world_axis_follows_parent(robot, nodes):
    nodes["shoulder"].set_joint_value(math.pi / 2)
    pivot, axis = joint_world_axis(nodes["elbow"])
    np.testing.assert_array_almost_equal(pivot, [0, 1, 1])
    np.testing.assert_array_almost_equal(axis, [-1, 0, 0])


def test_find_drag_joint(nodes):
    assert find_drag_joint(nodes["leg_mesh"]) is nodes["shoulder"]
    assert find_drag_joint(nodes["fore_mesh"]) is nodes["elbow"]
    assert find_drag_joint(nodes["imu_mesh"]) is None
    assert find_drag_joint(nodes["gizmo_arrow"]) is None


def test_drag_session_revolute_clamps(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    joint = nodes["shoulder"]
    session = DragSession(joint, _down_ray(1, 0), 4.0, start_value=1.4,
                          joint_data=index.get_joint_data("shoulder"))
    assert session.value == 1.4
    value = session.update(_down_ray(0, 1))
    assert value == 1.57
    assert joint.angle == 1.57
    assert session.accumulated_delta == pytest.approx(0.17)


def test_drag_session_accumulates_across_moves(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    session = DragSession(nodes["shoulder"], _down_ray(1, 0), 4.0, start_value=0.0,
                          joint_data=index.get_joint_data("shoulder"))
    c, s = math.cos(0.3), math.sin(0.3)
    session.update(_down_ray(c, s))
    c2, s2 = math.cos(0.6), math.sin(0.6)
    value = session.update(_down_ray(c2, s2))
    assert value == pytest.approx(0.6)


def test_drag_session_continuous_is_unbounded():
    joint = JointNode("wrist", "continuous", axis=(0, 0, 1))
    session = DragSession(joint, _down_ray(1, 0), 5.0, start_value=3.0,
                          joint_data=extract_joint_data(joint))
    value = session.update(_down_ray(0, 1))
    assert value == pytest.approx(3.0 + math.pi / 2)


@pytest.mark.parametrize("limit, expected", [
    ({"lower": 0.0, "upper": 0.1}, 0.1),
    (None, 0.2),
])
def test_drag_session_prismatic(limit, expected):
    joint = JointNode("slide", "prismatic", axis=(0, 0, 1), limit=limit)
    ray0 = Ray(origin=vec3(-5, 0, 0), direction=vec3(1, 0, 0))
    ray1 = Ray(origin=vec3(-5, 0.3, 0.2), direction=vec3(1, 0, 0))
    session = DragSession(joint, ray0, 5.0, start_value=0.0,
                          joint_data=extract_joint_data(joint))
    assert session.update(ray1) == pytest.approx(expected)


def _tilted_joint(joint_type):
    parent = LinkNode("carriage")
    joint = JointNode("slide", joint_type, axis=(0, 0, 1))
    joint.set_rpy(math.pi / 2, 0, 0)
    parent.add(joint)
    return joint


def test_prismatic_axis_uses_parent_frame():
    joint = _tilted_joint("prismatic")
    _, axis = joint_world_axis(joint)
    np.testing.assert_array_almost_equal(axis, [0, 0, 1])

    ray0 = Ray(origin=vec3(-5, 0, 0), direction=vec3(1, 0, 0))
    ray1 = Ray(origin=vec3(-5, 0, 0.2), direction=vec3(1, 0, 0))
    session = DragSession(joint, ray0, 5.0, start_value=0.0,
                          joint_data=extract_joint_data(joint))
    assert session.update(ray1) == pytest.approx(0.2)


def test_revolute_axis_uses_joint_frame():
    joint = _tilted_joint("revolute")
    _, axis = joint_world_axis(joint)
    np.testing.assert_array_almost_equal(axis, [0, -1, 0])
