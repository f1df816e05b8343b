"""PySide6 QOpenGLWidget bridging Qt input and the robot viewer."""

import logging
import traceback
from typing import Optional

from PySide6.QtCore import QTimer, Qt
from PySide6.QtGui import QMouseEvent, QSurfaceFormat, QWheelEvent
from PySide6.QtOpenGLWidgets import QOpenGLWidget

from rigforge.constants import TARGET_FPS
from rigforge.core.mesh import MeshInstance
from rigforge.core.scene_graph import Scene
from rigforge.interaction.pointer import PointerInteractionController
from rigforge.rendering.camera import Camera
from rigforge.rendering.orbit_controls import OrbitControls
from rigforge.rendering.renderer import GLRenderer

logger = logging.getLogger(__name__)


def create_gl_format() -> QSurfaceFormat:
    """OpenGL 3.3 core-profile surface format with multisampling."""
    fmt = QSurfaceFormat()
    fmt.setVersion(3, 3)
    fmt.setProfile(QSurfaceFormat.OpenGLContextProfile.CoreProfile)
    fmt.setSamples(4)
    fmt.setDepthBufferSize(24)
    fmt.setSwapBehavior(QSurfaceFormat.SwapBehavior.DoubleBuffer)
    return fmt


class GLViewport(QOpenGLWidget):
    """Renders a Scene and routes the pointer to picking or orbiting.

    Left presses that start a joint drag are owned by the pointer
    controller; every other press orbits, pans or zooms the camera.
    """

    def __init__(self, scene: Scene, camera: Camera, parent=None) -> None:
        super().__init__(parent)
        self.setFormat(create_gl_format())

        self.scene = scene
        self.camera = camera
        self.renderer = GLRenderer()
        self.orbit_controls = OrbitControls(camera)
        self.controller: Optional[PointerInteractionController] = None

        self._timer = QTimer(self)
        self._timer.setInterval(int(1000 / TARGET_FPS))
        self._timer.timeout.connect(self._on_timer)

        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(True)

    # ------------------------------------------------------------------
    # QOpenGLWidget overrides
    # ------------------------------------------------------------------

    def initializeGL(self) -> None:
        try:
            logger.info("GLViewport: initialising OpenGL.")
            self.renderer.init_gl()
            self._timer.start()
        except Exception:
            logger.error("initializeGL failed:\n%s", traceback.format_exc())

    def resizeGL(self, w: int, h: int) -> None:
        dpr = self.devicePixelRatio()
        self.renderer.resize(int(w * dpr), int(h * dpr))
        if self.controller is not None:
            self.controller.set_viewport(w, h)
        else:
            self.camera.set_aspect(w, h)

    def paintGL(self) -> None:
        try:
            self.renderer.render(self.scene, self.camera)
        except Exception:
            logger.error("paintGL failed:\n%s", traceback.format_exc())

    # ------------------------------------------------------------------
    # Mouse events
    # ------------------------------------------------------------------

    def mousePressEvent(self, event: QMouseEvent) -> None:
        button = self._qt_button_to_int(event.button())
        pos = event.position()
        if self.controller is not None and button == OrbitControls.BUTTON_LEFT:
            self.controller.on_mouse_press(pos.x(), pos.y(), button)
            if self.controller.is_dragging:
                event.accept()
                return
        if button is not None:
            self.orbit_controls.on_mouse_press(pos.x(), pos.y(), button)
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        pos = event.position()
        consumed = False
        if self.controller is not None:
            consumed = self.controller.on_mouse_move(pos.x(), pos.y())
        if not consumed:
            self.orbit_controls.on_mouse_move(pos.x(), pos.y())
        self.update()
        event.accept()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        pos = event.position()
        if self.controller is not None:
            self.controller.on_mouse_release(pos.x(), pos.y())
        self.orbit_controls.on_mouse_release()
        event.accept()

    def wheelEvent(self, event: QWheelEvent) -> None:
        # angleDelta().y() is +/-120 per notch
        self.orbit_controls.on_scroll(event.angleDelta().y() / 120.0)
        self.update()
        event.accept()

    def leaveEvent(self, event) -> None:
        if self.controller is not None:
            self.controller.on_mouse_leave()
        super().leaveEvent(event)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def release_mesh(self, mesh: MeshInstance) -> None:
        """Dispose hook: free a mesh's GPU buffers with our context current."""
        self.makeCurrent()
        try:
            self.renderer.remove_mesh(mesh)
        finally:
            self.doneCurrent()

    def cleanup(self) -> None:
        """Release GL resources. Call before the widget is destroyed."""
        self._timer.stop()
        self.makeCurrent()
        self.renderer.destroy()
        self.doneCurrent()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_timer(self) -> None:
        if self.controller is not None:
            self.controller.on_frame()
        self.update()

    @staticmethod
    def _qt_button_to_int(qt_button) -> int | None:
        if qt_button == Qt.MouseButton.LeftButton:
            return OrbitControls.BUTTON_LEFT
        if qt_button == Qt.MouseButton.MiddleButton:
            return OrbitControls.BUTTON_MIDDLE
        if qt_button == Qt.MouseButton.RightButton:
            return OrbitControls.BUTTON_RIGHT
        return None
