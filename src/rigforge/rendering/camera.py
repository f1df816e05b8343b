"""Perspective camera with view/projection matrices and pointer rays."""

import math

import numpy as np

from rigforge.core.math_utils import (
    Mat4,
    Ray,
    Vec3,
    mat4_identity,
    mat4_inverse,
    mat4_look_at,
    mat4_perspective,
    normalize,
    vec3,
)
from rigforge.constants import DEFAULT_CAMERA_POS, DEFAULT_CAMERA_TARGET, DEFAULT_CAMERA_UP


class Camera:
    """A perspective camera that produces view and projection matrices.

    Parameters
    ----------
    fov : float
        Vertical field-of-view in degrees.
    near : float
        Near clipping plane distance.
    far : float
        Far clipping plane distance.
    """

    def __init__(
        self,
        fov: float = 50.0,
        near: float = 0.01,
        far: float = 100.0,
    ) -> None:
        self.fov = fov
        self.near = near
        self.far = far
        self.aspect: float = 1.0

        self.position: Vec3 = vec3(*DEFAULT_CAMERA_POS)
        self.target: Vec3 = vec3(*DEFAULT_CAMERA_TARGET)
        self.up: Vec3 = vec3(*DEFAULT_CAMERA_UP)

        # Bumped whenever the view or projection changes; pointer code
        # compares it to detect camera motion.
        self.revision: int = 0

        self._view_dirty: bool = True
        self._proj_dirty: bool = True
        self._view: Mat4 = mat4_identity()
        self._proj: Mat4 = mat4_identity()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_aspect(self, width: int, height: int) -> None:
        """Update the aspect ratio from viewport dimensions."""
        if height > 0:
            self.aspect = width / height
            self._proj_dirty = True
            self.revision += 1

    def get_view_matrix(self) -> Mat4:
        if self._view_dirty:
            self._view = mat4_look_at(self.position, self.target, self.up)
            self._view_dirty = False
        return self._view

    def get_projection_matrix(self) -> Mat4:
        if self._proj_dirty:
            self._proj = mat4_perspective(math.radians(self.fov), self.aspect, self.near, self.far)
            self._proj_dirty = False
        return self._proj

    def get_view_projection(self) -> Mat4:
        """Return ``projection @ view``."""
        return self.get_projection_matrix() @ self.get_view_matrix()

    def ray_from_ndc(self, ndc_x: float, ndc_y: float) -> Ray:
        """World-space ray from the eye through a point in normalised device coords."""
        inv = mat4_inverse(self.get_view_projection())
        far = inv @ np.array([ndc_x, ndc_y, 1.0, 1.0])
        far = far[:3] / far[3]
        return Ray(origin=self.position.copy(), direction=normalize(far - self.position))

    def ray_from_screen(self, x: float, y: float, width: int, height: int) -> Ray:
        """Ray through a pixel; (0, 0) is the top-left corner."""
        ndc_x = (2.0 * x / max(width, 1)) - 1.0
        ndc_y = 1.0 - (2.0 * y / max(height, 1))
        return self.ray_from_ndc(ndc_x, ndc_y)

    # ------------------------------------------------------------------
    # Convenience mutators (mark view dirty)
    # ------------------------------------------------------------------

    def look_at(self, eye: Vec3, target: Vec3, up: Vec3 | None = None) -> None:
        self.position = np.asarray(eye, dtype=np.float64).copy()
        self.target = np.asarray(target, dtype=np.float64).copy()
        if up is not None:
            self.up = np.asarray(up, dtype=np.float64).copy()
        self.mark_view_dirty()

    def set_position(self, x: float, y: float, z: float) -> None:
        self.position = vec3(x, y, z)
        self.mark_view_dirty()

    def set_target(self, x: float, y: float, z: float) -> None:
        self.target = vec3(x, y, z)
        self.mark_view_dirty()

    def mark_view_dirty(self) -> None:
        """Call after externally modifying ``position`` or ``target``."""
        self._view_dirty = True
        self.revision += 1
