"""Two-phase ray picking against indexed meshes."""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from rigforge.constants import BOUNDING_BOX_MARGIN
from rigforge.core.math_utils import (
    Ray, Vec3, intersect_ray_triangles, mat4_inverse, ray_intersects_box,
)
from rigforge.core.scene_graph import SceneNode
from rigforge.core.state import InteractionMode
from rigforge.index.scene_index import SceneIndex

logger = logging.getLogger(__name__)


@dataclass
class Hit:
    distance: float
    point: Vec3
    node: SceneNode
    face_index: int


def _effectively_visible(node: SceneNode) -> bool:
    if not node.visible:
        return False
    return all(a.visible for a in node.ancestors())


def world_bounds(nodes: Iterable[SceneNode]) -> Optional[tuple[Vec3, Vec3]]:
    """World-space AABB enclosing every mesh in *nodes*."""
    lo = np.full(3, np.inf)
    hi = np.full(3, -np.inf)
    found = False
    for node in nodes:
        mesh = node.mesh
        if mesh is None or mesh.disposed or mesh.geometry.vertex_count == 0:
            continue
        bmin, bmax = mesh.geometry.bounding_box()
        corners = np.array([
            [x, y, z] for x in (bmin[0], bmax[0])
            for y in (bmin[1], bmax[1]) for z in (bmin[2], bmax[2])
        ])
        m = node.world_matrix
        world = corners @ m[:3, :3].T + m[:3, 3]
        lo = np.minimum(lo, world.min(axis=0))
        hi = np.maximum(hi, world.max(axis=0))
        found = True
    if not found:
        return None
    return lo, hi


class Raycaster:
    """Coarse model-bounds test followed by per-triangle intersection.

    The model bounds are cached and padded by *margin* so a slightly
    out-of-date box still contains animating geometry. Call
    ``invalidate_bounds`` after loads and structural edits.
    """

    def __init__(self, margin: float = BOUNDING_BOX_MARGIN):
        self.margin = margin
        self._bounds: Optional[tuple[Vec3, Vec3]] = None
        self._bounds_valid = False

    def invalidate_bounds(self) -> None:
        self._bounds_valid = False

    def model_bounds(self, index: SceneIndex) -> Optional[tuple[Vec3, Vec3]]:
        if not self._bounds_valid:
            bounds = world_bounds(index.mesh_is_collider)
            if bounds is not None:
                lo, hi = bounds
                bounds = (lo - self.margin, hi + self.margin)
            self._bounds = bounds
            self._bounds_valid = True
        return self._bounds

    def hits_model_bounds(self, ray: Ray, index: SceneIndex) -> bool:
        bounds = self.model_bounds(index)
        if bounds is None:
            return False
        return ray_intersects_box(ray, bounds[0], bounds[1])

    def intersect(
        self,
        ray: Ray,
        index: SceneIndex,
        mode: Optional[InteractionMode] = None,
    ) -> list[Hit]:
        """All hits on raycastable meshes, nearest first.

        With *mode* set, only meshes of that class are considered.
        """
        want_collision = None if mode is None else mode is InteractionMode.COLLISION
        hits: list[Hit] = []
        for node, is_collider in index.mesh_is_collider.items():
            if want_collision is not None and is_collider != want_collision:
                continue
            hit = self.intersect_node(ray, node)
            if hit is not None:
                hits.append(hit)
        hits.sort(key=lambda h: h.distance)
        return hits

    def intersect_node(self, ray: Ray, node: SceneNode) -> Optional[Hit]:
        mesh = node.mesh
        if mesh is None or mesh.disposed or not node.raycast_enabled or node.is_gizmo:
            return None
        if not _effectively_visible(node):
            return None

        # Unnormalised local direction keeps t in world units
        inv = mat4_inverse(node.world_matrix)
        local = Ray(
            origin=inv[:3, :3] @ ray.origin + inv[:3, 3],
            direction=inv[:3, :3] @ ray.direction,
        )
        bmin, bmax = mesh.geometry.bounding_box()
        if not ray_intersects_box(local, bmin, bmax):
            return None

        result = intersect_ray_triangles(
            local, mesh.geometry.triangles(), double_sided=True,
        )
        if result is None:
            return None
        distance, face = result
        return Hit(distance=distance, point=ray.at(distance), node=node, face_index=face)

    def nearest(
        self,
        ray: Ray,
        index: SceneIndex,
        mode: Optional[InteractionMode] = None,
    ) -> Optional[Hit]:
        hits = self.intersect(ray, index, mode)
        return hits[0] if hits else None
