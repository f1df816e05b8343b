"""Tests for static matrix freezing."""

import math

import numpy as np

from rigforge.index.builder import SceneIndexBuilder
from rigforge.index.freeze import freeze_static_matrices, unfreeze_all, update_kinematic_chain


def test_only_static_meshes_are_frozen(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    assert freeze_static_matrices(index) == 3
    for name in ("base_mesh", "base_col_mesh", "imu_mesh"):
        assert nodes[name].matrix_auto_update is False
    for name in ("upper_mesh", "leg_mesh", "detector_mesh", "fore_mesh"):
        assert nodes[name].matrix_auto_update is True


def test_frozen_world_matrix_is_current(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    freeze_static_matrices(index)
    np.testing.assert_array_almost_equal(nodes["imu_mesh"].get_world_position(), [0, 0, 0.3])


def test_frozen_mesh_ignores_later_updates_until_unfrozen(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    freeze_static_matrices(index)
    nodes["base"].set_position(5, 0, 0)
    robot.update_world_matrix()
    np.testing.assert_array_almost_equal(nodes["base_mesh"].get_world_position(), [0, 0, 0])

    unfreeze_all(index)
    robot.update_world_matrix()
    np.testing.assert_array_almost_equal(nodes["base_mesh"].get_world_position(), [5, 0, 0])


def test_update_kinematic_chain_moves_descendants(robot, nodes):
    index = SceneIndexBuilder().build(robot)
    freeze_static_matrices(index)
    nodes["shoulder"].set_joint_value(math.pi / 2)
    update_kinematic_chain(index, "shoulder")
    np.testing.assert_array_almost_equal(nodes["upper_mesh"].get_world_position(), [0, 0.5, 1])
    np.testing.assert_array_almost_equal(nodes["fore_mesh"].get_world_position(), [0, 1.5, 1])
    np.testing.assert_array_almost_equal(nodes["base_mesh"].get_world_position(), [0, 0, 0])


def test_update_unknown_joint_is_noop(robot):
    index = SceneIndexBuilder().build(robot)
    update_kinematic_chain(index, "nope")


def test_rebuild_then_freeze(robot, nodes, mesh_factory):
    index = SceneIndexBuilder().build(robot)
    freeze_static_matrices(index)
    unfreeze_all(index)
    late = mesh_factory("late_mesh")
    nodes["base_visual"].add(late)

    rebuilt = SceneIndexBuilder().build(robot)
    assert freeze_static_matrices(rebuilt) == 4
    for node in rebuilt.static_meshes:
        assert node.matrix_auto_update is False
    for node in rebuilt.kinematic_meshes:
        assert node.matrix_auto_update is True
    assert late.matrix_auto_update is False
