"""Viewer state: display toggles, interaction modes and joint values."""

from dataclasses import dataclass, field
from enum import Enum


class InteractionMode(Enum):
    """Which geometry class is interactive (and highlighted)."""
    VISUAL = "visual"
    COLLISION = "collision"


class ToolMode(Enum):
    VIEW = "view"
    SELECT = "select"
    TRANSLATE = "translate"
    ROTATE = "rotate"
    UNIVERSAL = "universal"
    MEASURE = "measure"

    @property
    def allows_selection(self) -> bool:
        return self in (ToolMode.SELECT, ToolMode.TRANSLATE, ToolMode.ROTATE, ToolMode.UNIVERSAL)

    @property
    def allows_hover(self) -> bool:
        return self is ToolMode.VIEW or self.allows_selection


class ViewMode(Enum):
    """Skeleton: clicks select joints. Detail: clicks select links.
    Hardware: hover detection is disabled."""
    SKELETON = "skeleton"
    DETAIL = "detail"
    HARDWARE = "hardware"


@dataclass
class DisplaySettings:
    """Global visual/collision toggles the display pass reads from."""
    show_visual: bool = True
    show_collision: bool = False
    mode: InteractionMode = InteractionMode.VISUAL
    # link-name -> False hides that link's visual meshes
    link_visibility: dict[str, bool] = field(default_factory=dict)

    def is_link_visible(self, link_name: str) -> bool:
        return self.link_visibility.get(link_name, True)


@dataclass
class Selection:
    kind: str | None = None      # "link" | "joint"
    id: str | None = None
    subtype: str | None = None   # "visual" | "collision"

    def clear(self) -> None:
        self.kind = None
        self.id = None
        self.subtype = None


class StateManager:
    """Central state container."""

    def __init__(self):
        self.display = DisplaySettings()
        self.tool_mode = ToolMode.SELECT
        self.view_mode = ViewMode.SKELETON
        self.selection = Selection()
        self.hovered_link: str | None = None
        # Last committed value per joint, for history/undo consumers
        self.joint_values: dict[str, float] = {}
