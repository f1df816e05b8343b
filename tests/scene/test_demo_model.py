"""Tests for primitive geometry and the demo arm."""

import numpy as np
import pytest

from rigforge.index.builder import SceneIndexBuilder
from rigforge.scene.demo_model import build_demo_robot, load_demo
from rigforge.scene.primitives import make_box, make_cylinder, make_sphere


def test_box_bounds_and_counts():
    box = make_box(1.0, 2.0, 3.0)
    lo, hi = box.bounding_box()
    np.testing.assert_array_almost_equal(lo, [-0.5, -1.0, -1.5])
    np.testing.assert_array_almost_equal(hi, [0.5, 1.0, 1.5])
    assert box.vertex_count == 24
    assert box.triangle_count == 12


def test_box_faces_point_outward():
    tris = make_box(1.0, 1.0, 1.0).triangles()
    normals = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    centers = tris.mean(axis=1)
    assert np.all(np.einsum("ij,ij->i", normals, centers) > 0)


def test_cylinder_runs_along_z():
    lo, hi = make_cylinder(0.5, 2.0, segments=12).bounding_box()
    assert hi[2] == pytest.approx(1.0)
    assert lo[2] == pytest.approx(-1.0)
    assert hi[0] == pytest.approx(0.5)


def test_sphere_radius():
    positions = make_sphere(0.3).positions.reshape(-1, 3)
    np.testing.assert_allclose(np.linalg.norm(positions, axis=1), 0.3, rtol=1e-5)


def test_demo_robot_indexes():
    index = SceneIndexBuilder().build(build_demo_robot())
    assert set(index.joints) == {"shoulder", "elbow", "extend", "wrist", "camera_mount"}
    assert index.get_joint_data("extend").limit.explicit
    assert not index.get_joint_data("wrist").limit.explicit
    assert index.get_link_inertial("camera_link").is_sensor
    assert index.get_link_meshes("camera_link", "collision") == []
    # everything below the shoulder moves with it
    assert index.static_meshes == set(index.get_link_meshes("base_link")) | set(
        index.get_link_meshes("base_link", "collision"))


def test_load_demo_accepts_token():
    assert load_demo(object()).name == "demo_arm"
