"""Tests for the pointer interaction state machine."""

import pytest

from rigforge.coordination.visibility import apply_visibility
from rigforge.core.events import EventBus, EventType
from rigforge.core.material import HIGHLIGHT_MATERIAL
from rigforge.core.state import InteractionMode, StateManager, ToolMode, ViewMode
from rigforge.index.builder import SceneIndexBuilder
from rigforge.interaction.highlight import HighlightManager
from rigforge.interaction.pointer import PointerInteractionController
from rigforge.rendering.camera import Camera

CENTER = (100, 100)


class Recorder:
    def __init__(self, bus):
        self.events = []
        for event_type in EventType:
            bus.subscribe(event_type, self._make(event_type))

    def _make(self, event_type):
        def handler(**data):
            self.events.append((event_type, data))
        return handler

    def of(self, event_type):
        return [data for kind, data in self.events if kind is event_type]


@pytest.fixture
def rig(robot):
    """Controller looking straight down at the upper arm mesh."""
    state = StateManager()
    bus = EventBus()
    camera = Camera()
    camera.look_at((0.5, 0.0, 5.0), (0.5, 0.0, 0.0), (0.0, 1.0, 0.0))
    index = SceneIndexBuilder().build(robot)
    apply_visibility(index, state.display)
    controller = PointerInteractionController(
        camera, state, bus, HighlightManager(state.display),
    )
    controller.set_viewport(200, 200)
    controller.set_index(index, robot)
    return controller, state, Recorder(bus), index


def test_hover_highlights_link(rig, nodes):
    controller, state, rec, _ = rig
    controller.on_mouse_move(*CENTER)
    controller.on_frame()
    assert controller.hovered_link == "upper"
    assert state.hovered_link == "upper"
    assert rec.of(EventType.HOVER_CHANGED) == [{"link_name": "upper"}]
    assert nodes["upper_mesh"].mesh.material is HIGHLIGHT_MATERIAL


def test_one_cast_per_frame_and_only_when_needed(rig):
    controller, _, _, _ = rig
    controller.on_mouse_move(*CENTER)
    controller.on_mouse_move(CENTER[0] + 10, CENTER[1])
    controller.on_frame()
    assert controller.hover_casts == 1
    controller.on_frame()
    assert controller.hover_casts == 1


def test_small_moves_are_ignored(rig):
    controller, _, _, _ = rig
    controller.on_mouse_move(*CENTER)
    controller.on_frame()
    controller.on_mouse_move(CENTER[0] + 1, CENTER[1] + 1)
    controller.on_frame()
    assert controller.hover_casts == 1
    controller.on_mouse_move(CENTER[0] + 5, CENTER[1])
    controller.on_frame()
    assert controller.hover_casts == 2


def test_camera_motion_triggers_recast(rig):
    controller, _, _, _ = rig
    controller.on_mouse_move(*CENTER)
    controller.on_frame()
    controller.camera.set_position(0.5, 0.0, 5.0)
    controller.on_frame()
    assert controller.hover_casts == 2


def test_leaving_model_bounds_clears_hover(rig, nodes):
    controller, _, rec, _ = rig
    own = nodes["upper_mesh"].mesh.material
    controller.on_mouse_move(*CENTER)
    controller.on_frame()
    controller.on_mouse_move(0, 0)
    controller.on_frame()
    assert controller.hovered_link is None
    assert controller.hover_casts == 1
    assert rec.of(EventType.HOVER_CHANGED)[-1] == {"link_name": None}
    assert nodes["upper_mesh"].mesh.material is not HIGHLIGHT_MATERIAL
    assert nodes["upper_mesh"].mesh.material is own


def test_hardware_view_disables_hover(rig):
    controller, state, _, _ = rig
    state.view_mode = ViewMode.HARDWARE
    controller.on_mouse_move(*CENTER)
    controller.on_frame()
    assert controller.hovered_link is None
    assert controller.hover_casts == 0


def test_click_selects_joint_in_skeleton_view(rig):
    controller, state, rec, _ = rig
    assert controller.on_mouse_press(*CENTER)
    assert rec.of(EventType.SELECTION_CHANGED) == [
        {"kind": "joint", "id": "shoulder", "subtype": None},
    ]
    assert state.selection.kind == "joint"
    # the clicked link is not highlighted when its joint is selected
    assert controller.highlighter.count == 0


def test_click_selects_link_in_detail_view(rig, nodes):
    controller, state, rec, _ = rig
    state.view_mode = ViewMode.DETAIL
    controller.on_mouse_press(*CENTER)
    assert rec.of(EventType.SELECTION_CHANGED) == [
        {"kind": "link", "id": "upper", "subtype": "visual"},
    ]
    assert nodes["upper_mesh"].mesh.material is HIGHLIGHT_MATERIAL


def test_view_tool_does_not_select(rig):
    controller, state, rec, _ = rig
    state.tool_mode = ToolMode.VIEW
    assert not controller.on_mouse_press(*CENTER)
    assert rec.of(EventType.SELECTION_CHANGED) == []


def test_press_on_empty_space(rig):
    controller, _, _, _ = rig
    assert not controller.on_mouse_press(0, 0)
    assert not controller.is_dragging


def test_drag_lifecycle(rig, nodes):
    controller, state, rec, _ = rig
    controller.on_mouse_press(*CENTER)
    assert controller.is_dragging
    assert rec.of(EventType.DRAG_STARTED) == [{"joint_name": "shoulder"}]

    # screen up is +Y: counter-clockwise about the shoulder's +Z
    assert controller.on_mouse_move(CENTER[0], CENTER[1] - 20)
    live = rec.of(EventType.JOINT_LIVE_UPDATE)
    assert len(live) == 1
    value = live[0]["value"]
    assert 0.0 < value <= 1.57
    assert nodes["shoulder"].angle == value

    controller.on_frame()
    assert controller.hover_casts == 0

    assert controller.on_mouse_release()
    assert not controller.is_dragging
    assert rec.of(EventType.JOINT_COMMIT) == [{"joint_name": "shoulder", "value": value}]
    assert state.joint_values["shoulder"] == value
    assert not controller.on_mouse_release()


def test_collision_mode_click_does_not_drag(rig, robot):
    controller, state, rec, index = rig
    state.display.show_collision = True
    state.view_mode = ViewMode.DETAIL
    controller.camera.look_at((0.0, 0.0, 5.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    controller.set_mode(InteractionMode.COLLISION)
    apply_visibility(index, state.display)

    assert rec.of(EventType.MODE_CHANGED) == [{"mode": InteractionMode.COLLISION}]
    assert controller.on_mouse_press(*CENTER)
    assert not controller.is_dragging
    assert rec.of(EventType.SELECTION_CHANGED) == [
        {"kind": "link", "id": "upper", "subtype": "collision"},
    ]


def test_set_index_drops_hover_and_selection(rig, robot):
    controller, state, _, _ = rig
    controller.on_mouse_move(*CENTER)
    controller.on_frame()
    controller.on_mouse_press(*CENTER)
    controller.on_mouse_release()
    controller.set_index(SceneIndexBuilder().build(robot), robot)
    assert controller.hovered_link is None
    assert state.selection.kind is None
    assert controller.highlighter.count == 0
