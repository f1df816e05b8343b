"""Pointer hover, selection and joint dragging over the robot model.

Handlers are framework-neutral; the Qt viewport forwards mouse events in
widget pixel coordinates and calls ``on_frame`` once per rendered frame.
"""

import logging
from typing import Optional

from rigforge.constants import MOUSE_MOVE_THRESHOLD
from rigforge.core.events import EventBus, EventType
from rigforge.core.math_utils import Ray
from rigforge.core.scene_graph import SceneNode
from rigforge.core.state import InteractionMode, StateManager, ToolMode, ViewMode
from rigforge.index.scene_index import SceneIndex
from rigforge.interaction.drag import DragSession, find_drag_joint
from rigforge.interaction.highlight import HighlightManager
from rigforge.interaction.raycaster import Hit, Raycaster
from rigforge.rendering.camera import Camera

logger = logging.getLogger(__name__)


class PointerInteractionController:
    """Idle -> Hovering -> Dragging -> Idle state machine for one pointer."""

    BUTTON_LEFT = 1

    def __init__(
        self,
        camera: Camera,
        state: StateManager,
        event_bus: EventBus,
        highlighter: HighlightManager,
        raycaster: Optional[Raycaster] = None,
        move_threshold: float = MOUSE_MOVE_THRESHOLD,
    ) -> None:
        self.camera = camera
        self.state = state
        self.event_bus = event_bus
        self.highlighter = highlighter
        self.raycaster = raycaster or Raycaster()
        self.move_threshold = move_threshold

        self.index: Optional[SceneIndex] = None
        self.root: Optional[SceneNode] = None
        self._width = 1
        self._height = 1

        self._pointer: Optional[tuple[float, float]] = None
        self._last_sample: Optional[tuple[float, float]] = None
        self._hover_pending = False
        self._camera_revision = camera.revision
        self._tool_mode: ToolMode = state.tool_mode

        self._hovered_link: Optional[str] = None
        self._selected_link: Optional[str] = None
        self._drag: Optional[DragSession] = None

        # Counts precise hover casts; lets callers verify throttling
        self.hover_casts = 0

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    @property
    def hovered_link(self) -> Optional[str]:
        return self._hovered_link

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    @property
    def drag_session(self) -> Optional[DragSession]:
        return self._drag

    def set_viewport(self, width: int, height: int) -> None:
        self._width = max(int(width), 1)
        self._height = max(int(height), 1)
        self.camera.set_aspect(self._width, self._height)

    def set_index(self, index: Optional[SceneIndex], root: Optional[SceneNode] = None) -> None:
        """Point the controller at a freshly built index.

        Hover and selection state from the previous model is dropped.
        """
        self._drag = None
        self.highlighter.revert_all()
        self.index = index
        self.root = root
        self._hovered_link = None
        self._selected_link = None
        self.state.hovered_link = None
        self.state.selection.clear()
        self.raycaster.invalidate_bounds()
        self._hover_pending = True

    def set_mode(self, mode: InteractionMode) -> None:
        if mode is self.state.display.mode:
            return
        self.highlighter.set_mode(mode)
        self._refresh_highlights()
        self._hover_pending = True
        self.event_bus.publish(EventType.MODE_CHANGED, mode=mode)

    # ------------------------------------------------------------------
    # Mouse event handlers
    # ------------------------------------------------------------------

    def on_mouse_move(self, x: float, y: float) -> bool:
        """Returns True if the move was consumed by a drag."""
        if self._drag is not None:
            self._pointer = (x, y)
            self._update_drag(self._ray(x, y))
            return True

        if self._last_sample is not None:
            dx = x - self._last_sample[0]
            dy = y - self._last_sample[1]
            if dx * dx + dy * dy < self.move_threshold * self.move_threshold:
                return False
        self._last_sample = (x, y)
        self._pointer = (x, y)
        self._hover_pending = True
        return False

    def on_mouse_press(self, x: float, y: float, button: int = BUTTON_LEFT) -> bool:
        """Select under the pointer and maybe start a joint drag.

        Returns True if the press landed on the model.
        """
        if button != self.BUTTON_LEFT or self.index is None:
            return False
        if not self.state.tool_mode.allows_selection:
            return False

        self._pointer = (x, y)
        ray = self._ray(x, y)
        hit = self._pick(ray)
        if hit is None:
            return False

        link_name = self.index.find_parent_link(hit.node)
        if link_name is not None:
            self._select(link_name, hit)

        if self.state.display.mode is InteractionMode.VISUAL:
            joint = find_drag_joint(hit.node)
            if joint is not None:
                self._drag = DragSession(
                    joint=joint,
                    ray=ray,
                    hit_distance=hit.distance,
                    start_value=joint.angle,
                    joint_data=self.index.get_joint_data(joint.name),
                )
                logger.debug("Drag started on %s at %.4f", joint.name, joint.angle)
                self.event_bus.publish(EventType.DRAG_STARTED, joint_name=joint.name)
        return True

    def on_mouse_release(self, x: float = 0.0, y: float = 0.0) -> bool:
        """Commit an active drag. Returns True if one was open."""
        drag = self._drag
        if drag is None:
            return False
        self._drag = None
        self.state.joint_values[drag.joint_name] = drag.value
        self.raycaster.invalidate_bounds()
        self._hover_pending = True
        self.event_bus.publish(EventType.JOINT_COMMIT, joint_name=drag.joint_name, value=drag.value)
        return True

    def on_mouse_leave(self) -> None:
        self.on_mouse_release()
        self._pointer = None
        self._last_sample = None
        self._set_hover(None)

    # ------------------------------------------------------------------
    # Per-frame update
    # ------------------------------------------------------------------

    def on_frame(self) -> None:
        """Run at most one hover raycast, and only if something changed."""
        if self._drag is not None:
            return
        camera_moved = self.camera.revision != self._camera_revision
        tool_changed = self.state.tool_mode is not self._tool_mode
        if not (self._hover_pending or camera_moved or tool_changed):
            return
        self._hover_pending = False
        self._camera_revision = self.camera.revision
        self._tool_mode = self.state.tool_mode
        self._update_hover()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ray(self, x: float, y: float) -> Ray:
        return self.camera.ray_from_screen(x, y, self._width, self._height)

    def _pick(self, ray: Ray) -> Optional[Hit]:
        if self.root is not None:
            self.root.update_world_matrix()
        return self.raycaster.nearest(ray, self.index, self.state.display.mode)

    def _update_hover(self) -> None:
        if self.index is None or self._pointer is None:
            return
        if self.state.view_mode is ViewMode.HARDWARE or not self.state.tool_mode.allows_hover:
            self._set_hover(None)
            return

        ray = self._ray(*self._pointer)
        if self.root is not None:
            self.root.update_world_matrix()
        if not self.raycaster.hits_model_bounds(ray, self.index):
            self._set_hover(None)
            return

        self.hover_casts += 1
        hit = self.raycaster.nearest(ray, self.index, self.state.display.mode)
        link_name = self.index.find_parent_link(hit.node) if hit is not None else None
        self._set_hover(link_name)

    def _set_hover(self, link_name: Optional[str]) -> None:
        if link_name == self._hovered_link:
            return
        self._hovered_link = link_name
        self.state.hovered_link = link_name
        self._refresh_highlights()
        self.event_bus.publish(EventType.HOVER_CHANGED, link_name=link_name)

    def _refresh_highlights(self) -> None:
        """Re-derive overlays: the selected link, then the hovered one."""
        self.highlighter.revert_all()
        if self.index is None:
            return
        for link_name in (self._selected_link, self._hovered_link):
            if link_name is not None:
                self.highlighter.highlight_link(self.index, link_name)

    def _select(self, link_name: str, hit: Hit) -> None:
        subtype = "collision" if self.index.is_mesh_collision(hit.node) else "visual"
        link = self.index.get_link(link_name)
        parent = link.parent if link is not None else None

        if self.state.view_mode is ViewMode.DETAIL or parent is None or not parent.is_joint:
            kind, ident, sub = "link", link_name, subtype
        else:
            kind, ident, sub = "joint", parent.name, None

        selection = self.state.selection
        selection.kind, selection.id, selection.subtype = kind, ident, sub
        # Joint selections leave the link unhighlighted
        self._selected_link = link_name if kind == "link" else None
        self._refresh_highlights()
        self.event_bus.publish(EventType.SELECTION_CHANGED, kind=kind, id=ident, subtype=sub)

    def _update_drag(self, ray: Ray) -> None:
        drag = self._drag
        value = drag.update(ray)
        self.event_bus.publish(EventType.JOINT_LIVE_UPDATE, joint_name=drag.joint_name, value=value)
