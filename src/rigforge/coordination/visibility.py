"""Display toggles -> mesh visibility, material and raycast flags."""

import logging
from typing import Optional

from rigforge.constants import RENDER_ORDER_COLLISION, RENDER_ORDER_DEFAULT
from rigforge.core.material import COLLISION_BASE_MATERIAL, Material, is_shared_material
from rigforge.core.scene_graph import SceneNode
from rigforge.core.state import DisplaySettings, InteractionMode
from rigforge.index.scene_index import SceneIndex

logger = logging.getLogger(__name__)


def _wrappers_follow(node: SceneNode, marker: str, visible: bool) -> None:
    """Propagate *visible* to the group wrappers directly above a mesh."""
    for ancestor in node.ancestors():
        if ancestor.is_link or ancestor.is_joint:
            break
        if getattr(ancestor, marker) or ancestor.user_data.get(marker):
            ancestor.visible = visible


def style_collision_mesh(
    node: SceneNode,
    settings: DisplaySettings,
    original: Optional[Material] = None,
    restyle_material: bool = True,
) -> None:
    """Put a collision mesh into its resting display state.

    Meshes carrying a highlight overlay keep their material and render
    order; only visibility and raycast flags follow the toggles. With
    *restyle_material* off the current material is left as it is.
    """
    mesh = node.mesh
    shown = settings.show_collision
    node.visible = shown
    _wrappers_follow(node, "is_collider", shown)
    node.raycast_enabled = shown and settings.mode is InteractionMode.COLLISION

    if node.user_data.get("highlighted"):
        return

    if restyle_material:
        if shown:
            if mesh.material is not COLLISION_BASE_MATERIAL:
                if not is_shared_material(mesh.material):
                    node.user_data["original_material"] = mesh.material
                mesh.material = COLLISION_BASE_MATERIAL
        else:
            if original is None:
                original = node.user_data.get("original_material")
            if original is not None and is_shared_material(mesh.material):
                mesh.material = original
    mesh.render_order = RENDER_ORDER_COLLISION if shown else RENDER_ORDER_DEFAULT


def style_visual_mesh(node: SceneNode, settings: DisplaySettings) -> None:
    """Put a visual mesh into its resting display state."""
    link_name = node.user_data.get("parent_link_name")
    shown = settings.show_visual and (link_name is None or settings.is_link_visible(link_name))
    node.visible = shown
    _wrappers_follow(node, "is_visual", shown)
    node.raycast_enabled = shown
    if not node.user_data.get("highlighted"):
        node.mesh.render_order = RENDER_ORDER_DEFAULT


def apply_visibility(index: SceneIndex, settings: DisplaySettings) -> None:
    """Restyle every indexed mesh from the current display settings."""
    for node, is_collider in index.mesh_is_collider.items():
        if node.mesh is None or node.mesh.disposed:
            continue
        if is_collider:
            style_collision_mesh(node, settings, index.original_materials.get(node))
        else:
            style_visual_mesh(node, settings)
    logger.debug("Visibility: visual=%s collision=%s mode=%s",
                 settings.show_visual, settings.show_collision, settings.mode.value)
