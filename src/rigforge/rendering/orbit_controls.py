"""Mouse-driven orbit, pan, and zoom around a Z-up target."""

import math

import numpy as np

from rigforge.core.math_utils import Vec3, vec3, clamp
from rigforge.rendering.camera import Camera


class OrbitControls:
    """Orbits the camera around a target point.

    Spherical coordinates: *theta* is the azimuth in the XY plane and
    *phi* the angle down from +Z.
    """

    BUTTON_LEFT = 1
    BUTTON_MIDDLE = 2
    BUTTON_RIGHT = 3

    def __init__(self, camera: Camera) -> None:
        self.camera = camera
        self.target: Vec3 = camera.target.copy()

        self._theta: float = 0.0
        self._phi: float = math.pi / 2
        self._radius: float = 0.0

        self.min_radius: float = 0.1
        self.max_radius: float = 50.0
        self.min_phi: float = 0.05
        self.max_phi: float = math.pi - 0.05

        self.rotate_speed: float = 0.005
        self.pan_speed: float = 0.05
        self.zoom_speed: float = 0.1

        self._active_button: int | None = None
        self._last_x: float = 0.0
        self._last_y: float = 0.0

        self._sync_from_camera()

    @property
    def active(self) -> bool:
        return self._active_button is not None

    # ------------------------------------------------------------------
    # Mouse event handlers
    # ------------------------------------------------------------------

    def on_mouse_press(self, x: float, y: float, button: int) -> None:
        """Begin an orbit (left), pan (right), or zoom (middle) drag."""
        self._active_button = button
        self._last_x = x
        self._last_y = y

    def on_mouse_move(self, x: float, y: float) -> None:
        if self._active_button is None:
            return

        dx = x - self._last_x
        dy = y - self._last_y
        self._last_x = x
        self._last_y = y

        if self._active_button == self.BUTTON_LEFT:
            self._orbit(dx, dy)
        elif self._active_button == self.BUTTON_RIGHT:
            self._pan(dx, dy)
        elif self._active_button == self.BUTTON_MIDDLE:
            self._zoom_drag(dy)

    def on_mouse_release(self) -> None:
        self._active_button = None

    def on_scroll(self, delta: float) -> None:
        """Zoom in/out via scroll wheel. Positive *delta* zooms in."""
        factor = 1.0 - delta * self.zoom_speed
        self._radius = clamp(self._radius * factor, self.min_radius, self.max_radius)
        self._apply_to_camera()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _orbit(self, dx: float, dy: float) -> None:
        self._theta -= dx * self.rotate_speed
        self._phi = clamp(self._phi - dy * self.rotate_speed, self.min_phi, self.max_phi)
        self._apply_to_camera()

    def _pan(self, dx: float, dy: float) -> None:
        """Pan the camera (and target) perpendicular to the view direction."""
        dist = float(np.linalg.norm(self.camera.position - self.target))
        view = self.camera.get_view_matrix()
        right = vec3(view[0, 0], view[0, 1], view[0, 2])
        up = vec3(view[1, 0], view[1, 1], view[1, 2])

        pan = (-dx * right + dy * up) * self.pan_speed * dist * 0.02
        self.target = self.target + pan
        self._apply_to_camera()

    def _zoom_drag(self, dy: float) -> None:
        factor = 1.0 + dy * 0.005
        self._radius = clamp(self._radius * factor, self.min_radius, self.max_radius)
        self._apply_to_camera()

    def _sync_from_camera(self) -> None:
        offset = self.camera.position - self.target
        self._radius = float(np.linalg.norm(offset))
        if self._radius < 1e-6:
            self._radius = 1.0
            return

        n = offset / self._radius
        self._phi = math.acos(clamp(float(n[2]), -1.0, 1.0))
        self._theta = math.atan2(float(n[1]), float(n[0]))

    def _apply_to_camera(self) -> None:
        sin_phi = math.sin(self._phi)
        x = self._radius * sin_phi * math.cos(self._theta)
        y = self._radius * sin_phi * math.sin(self._theta)
        z = self._radius * math.cos(self._phi)

        self.camera.position = self.target + vec3(x, y, z)
        self.camera.target = self.target.copy()
        self.camera.mark_view_dirty()
