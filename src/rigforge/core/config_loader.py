"""JSON config file loading utilities."""

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

from rigforge import constants
from rigforge.core.state import DisplaySettings, InteractionMode, ToolMode, ViewMode

logger = logging.getLogger(__name__)


def load_json(path: Path) -> Any:
    """Load and return parsed JSON from a file."""
    with open(path) as f:
        return json.load(f)


@dataclass
class ViewerConfig:
    """Tunables read from ``viewer.json``; every field has a default."""
    show_visual: bool = True
    show_collision: bool = False
    interaction_mode: str = InteractionMode.VISUAL.value
    tool_mode: str = ToolMode.SELECT.value
    view_mode: str = ViewMode.SKELETON.value
    mouse_move_threshold: float = constants.MOUSE_MOVE_THRESHOLD
    bounding_box_margin: float = constants.BOUNDING_BOX_MARGIN
    camera_fov: float = 50.0

    def display_settings(self) -> DisplaySettings:
        return DisplaySettings(
            show_visual=self.show_visual,
            show_collision=self.show_collision,
            mode=_enum_or_default(InteractionMode, self.interaction_mode, InteractionMode.VISUAL),
        )

    @property
    def tool(self) -> ToolMode:
        return _enum_or_default(ToolMode, self.tool_mode, ToolMode.SELECT)

    @property
    def view(self) -> ViewMode:
        return _enum_or_default(ViewMode, self.view_mode, ViewMode.SKELETON)


def _enum_or_default(enum_cls, value, default):
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning("Unknown %s %r, using %s", enum_cls.__name__, value, default.value)
        return default


def parse_viewer_config(data: Any) -> ViewerConfig:
    """Build a ViewerConfig from parsed JSON.

    Unknown keys are ignored and values of the wrong type fall back to the
    field default.
    """
    config = ViewerConfig()
    if not isinstance(data, dict):
        logger.warning("Viewer config is not an object, using defaults")
        return config
    for f in fields(ViewerConfig):
        if f.name not in data:
            continue
        value = data[f.name]
        default = getattr(config, f.name)
        if isinstance(default, bool):
            ok = isinstance(value, bool)
        elif isinstance(default, float):
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            value = float(value) if ok else value
        else:
            ok = isinstance(value, type(default))
        if ok:
            setattr(config, f.name, value)
        else:
            logger.warning("Ignoring config key %s=%r (expected %s)",
                           f.name, value, type(default).__name__)
    return config


def load_viewer_config(path: Optional[Path] = None) -> ViewerConfig:
    """Load the viewer config; a missing or unreadable file yields defaults."""
    path = path or constants.DEFAULT_CONFIG_FILE
    if not Path(path).exists():
        return ViewerConfig()
    try:
        return parse_viewer_config(load_json(path))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Failed to read viewer config %s: %s", path, e)
        return ViewerConfig()
