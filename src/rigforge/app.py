"""RigForge application entry point.

Wires the scene graph, model session, pointer interaction and the GL
viewport into a single window.
"""

# Disable PyOpenGL's per-call error checking BEFORE any GL imports.
# macOS Metal translation layer leaves stale GL errors that cause
# PyOpenGL's automatic error checker to raise on every GL call.
import OpenGL
OpenGL.ERROR_CHECKING = False

import asyncio
import logging
import sys

from PySide6.QtGui import QAction, QSurfaceFormat
from PySide6.QtWidgets import QApplication, QMainWindow

from rigforge.core.config_loader import load_viewer_config
from rigforge.core.events import EventBus, EventType
from rigforge.core.scene_graph import Scene
from rigforge.core.state import InteractionMode, StateManager, ViewMode
from rigforge.coordination.loading_pipeline import ModelSession
from rigforge.interaction.highlight import HighlightManager
from rigforge.interaction.pointer import PointerInteractionController
from rigforge.interaction.raycaster import Raycaster
from rigforge.rendering.camera import Camera
from rigforge.rendering.gl_widget import GLViewport, create_gl_format
from rigforge.scene.demo_model import load_demo

logger = logging.getLogger(__name__)


def _log_events(event_bus: EventBus) -> None:
    event_bus.subscribe(EventType.HOVER_CHANGED,
                        lambda link_name: logger.debug("hover: %s", link_name))
    event_bus.subscribe(EventType.SELECTION_CHANGED,
                        lambda kind, id, subtype: logger.info("selected %s %s (%s)", kind, id, subtype))
    event_bus.subscribe(EventType.JOINT_COMMIT,
                        lambda joint_name, value: logger.info("%s = %.4f", joint_name, value))
    event_bus.subscribe(EventType.LOADING_FAILED,
                        lambda error: logger.error("load failed: %s", error))


def _add_toggle(window: QMainWindow, toolbar, text: str, checked: bool, slot) -> QAction:
    action = QAction(text, window)
    action.setCheckable(True)
    action.setChecked(checked)
    action.toggled.connect(slot)
    toolbar.addAction(action)
    return action


def main():
    """Launch the RigForge viewer."""
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    QSurfaceFormat.setDefaultFormat(create_gl_format())
    app = QApplication(sys.argv)

    config = load_viewer_config()

    event_bus = EventBus()
    state = StateManager()
    state.display = config.display_settings()
    state.tool_mode = config.tool
    state.view_mode = config.view
    _log_events(event_bus)

    scene = Scene()
    camera = Camera(fov=config.camera_fov)
    highlighter = HighlightManager(state.display)
    controller = PointerInteractionController(
        camera, state, event_bus, highlighter,
        raycaster=Raycaster(margin=config.bounding_box_margin),
        move_threshold=config.mouse_move_threshold,
    )

    gl_widget = GLViewport(scene, camera)
    gl_widget.controller = controller
    session = ModelSession(scene, event_bus, state.display, release=gl_widget.release_mesh)
    event_bus.subscribe(EventType.INDEX_REBUILT,
                        lambda index: controller.set_index(index, session.root))

    window = QMainWindow()
    window.setWindowTitle("RigForge")
    window.setCentralWidget(gl_widget)
    toolbar = window.addToolBar("View")
    _add_toggle(window, toolbar, "Visual", state.display.show_visual,
                lambda on: session.set_display(show_visual=on))
    _add_toggle(window, toolbar, "Collision", state.display.show_collision,
                lambda on: session.set_display(show_collision=on))
    _add_toggle(window, toolbar, "Edit collision", state.display.mode is InteractionMode.COLLISION,
                lambda on: controller.set_mode(InteractionMode.COLLISION if on else InteractionMode.VISUAL))

    def _set_detail(on: bool) -> None:
        state.view_mode = ViewMode.DETAIL if on else ViewMode.SKELETON

    _add_toggle(window, toolbar, "Detail", state.view_mode is ViewMode.DETAIL, _set_detail)

    if asyncio.run(session.load(load_demo)) is None:
        logger.error("No model loaded")

    window.resize(1280, 800)
    window.show()

    exit_code = app.exec()
    session.close()
    gl_widget.cleanup()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
