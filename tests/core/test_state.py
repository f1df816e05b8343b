"""Tests for state management and viewer config."""

import json

from rigforge.core.config_loader import load_viewer_config, parse_viewer_config
from rigforge.core.state import (
    DisplaySettings, InteractionMode, StateManager, ToolMode, ViewMode,
)


def test_display_defaults():
    d = DisplaySettings()
    assert d.show_visual is True
    assert d.show_collision is False
    assert d.mode is InteractionMode.VISUAL
    assert d.is_link_visible("anything")


def test_tool_modes_that_select():
    assert ToolMode.SELECT.allows_selection
    assert ToolMode.UNIVERSAL.allows_selection
    assert not ToolMode.VIEW.allows_selection
    assert not ToolMode.MEASURE.allows_selection
    assert ToolMode.VIEW.allows_hover


def test_state_manager_selection_clear():
    state = StateManager()
    state.selection.kind = "link"
    state.selection.id = "base"
    state.selection.clear()
    assert state.selection.kind is None
    assert state.selection.id is None


def test_parse_config_ignores_unknown_and_bad_types():
    config = parse_viewer_config({
        "show_collision": True,
        "mouse_move_threshold": 4,
        "bounding_box_margin": "wide",
        "something_else": 1,
    })
    assert config.show_collision is True
    assert config.mouse_move_threshold == 4.0
    assert config.bounding_box_margin == 0.05


def test_config_enum_fallback():
    config = parse_viewer_config({"interaction_mode": "collision", "view_mode": "bogus"})
    assert config.display_settings().mode is InteractionMode.COLLISION
    assert config.view is ViewMode.SKELETON


def test_parse_config_non_object():
    assert parse_viewer_config([1, 2]).show_visual is True


def test_load_missing_config_gives_defaults(tmp_path):
    config = load_viewer_config(tmp_path / "nope.json")
    assert config.tool is ToolMode.SELECT


def test_load_config_file(tmp_path):
    path = tmp_path / "viewer.json"
    path.write_text(json.dumps({"tool_mode": "view", "show_visual": False}))
    config = load_viewer_config(path)
    assert config.tool is ToolMode.VIEW
    assert config.display_settings().show_visual is False


def test_load_corrupt_config_gives_defaults(tmp_path):
    path = tmp_path / "viewer.json"
    path.write_text("{not json")
    assert load_viewer_config(path).show_collision is False
