"""Hover and selection material overlays with exact revert."""

import logging
from typing import Iterable, Optional

from rigforge.constants import RENDER_ORDER_HIGHLIGHT
from rigforge.coordination.visibility import style_collision_mesh, style_visual_mesh
from rigforge.core.material import (
    COLLISION_HIGHLIGHT_MATERIAL, HIGHLIGHT_MATERIAL, Material, is_shared_material,
)
from rigforge.core.scene_graph import SceneNode
from rigforge.core.state import DisplaySettings, InteractionMode
from rigforge.index.scene_index import SceneIndex

logger = logging.getLogger(__name__)


class HighlightManager:
    """Swaps overlay materials onto meshes and restores them.

    The originals map holds, per highlighted mesh, the material it had
    before its first highlight. An entry leaves the map only when that
    material has been put back. Visual and collision highlights never
    coexist.
    """

    def __init__(self, display: DisplaySettings):
        self.display = display
        self._originals: dict[SceneNode, Material] = {}
        self._mode: Optional[InteractionMode] = None

    @property
    def count(self) -> int:
        return len(self._originals)

    @property
    def mode(self) -> Optional[InteractionMode]:
        """Mode of the outstanding highlights, None when there are none."""
        return self._mode if self._originals else None

    def is_highlighted(self, node: SceneNode) -> bool:
        return node in self._originals

    def apply(
        self,
        meshes: Iterable[SceneNode],
        overlay: Optional[Material] = None,
        mode: Optional[InteractionMode] = None,
    ) -> int:
        """Overlay *meshes*; returns how many were touched."""
        mode = mode or self.display.mode
        if self._originals and self._mode is not mode:
            logger.warning("Highlight mode %s requested while %s highlights are active, reverting",
                           mode.value, self._mode.value)
            self.revert_all()
        self._mode = mode

        if overlay is None:
            overlay = COLLISION_HIGHLIGHT_MATERIAL if mode is InteractionMode.COLLISION \
                else HIGHLIGHT_MATERIAL

        touched = 0
        for node in meshes:
            mesh = node.mesh
            if mesh is None or mesh.disposed:
                continue
            if node not in self._originals:
                self._originals[node] = mesh.material
                if not is_shared_material(mesh.material):
                    # Lets an index rebuilt mid-highlight find the real material
                    node.user_data["original_material"] = mesh.material
            mesh.material = overlay
            node.user_data["highlighted"] = True

            if node.user_data.get("is_collision_mesh"):
                if self.display.show_collision:
                    node.visible = True
                    if node.parent is not None:
                        node.parent.visible = True
                mesh.render_order = RENDER_ORDER_HIGHLIGHT
            elif self.display.show_visual:
                node.visible = True
                if node.parent is not None:
                    node.parent.visible = True
            touched += 1
        return touched

    def revert_all(self) -> None:
        """Restore every highlighted mesh and restyle it from current toggles.

        The restored material is kept as is; only visibility, render order
        and raycast flags are recomputed.
        """
        for node, original in self._originals.items():
            node.user_data.pop("highlighted", None)
            mesh = node.mesh
            if mesh is None or mesh.disposed:
                continue
            mesh.material = original
            if node.user_data.get("is_collision_mesh"):
                style_collision_mesh(node, self.display, restyle_material=False)
            else:
                style_visual_mesh(node, self.display)
        self._originals.clear()
        self._mode = None

    def highlight_link(
        self,
        index: SceneIndex,
        link_name: str,
        mode: Optional[InteractionMode] = None,
        overlay: Optional[Material] = None,
    ) -> int:
        mode = mode or self.display.mode
        subtype = "collision" if mode is InteractionMode.COLLISION else "visual"
        meshes = index.find_link_meshes(link_name, subtype)
        if not meshes:
            logger.debug("No %s meshes to highlight for link %s", subtype, link_name)
        return self.apply(meshes, overlay, mode)

    def highlight_mesh(
        self,
        node: SceneNode,
        index: SceneIndex,
        mode: Optional[InteractionMode] = None,
        overlay: Optional[Material] = None,
    ) -> int:
        """Highlight one mesh, ignoring it if its class is not interactive."""
        mode = mode or self.display.mode
        if index.is_mesh_collision(node) != (mode is InteractionMode.COLLISION):
            return 0
        return self.apply([node], overlay, mode)

    def set_mode(self, mode: InteractionMode) -> None:
        if self._originals:
            self.revert_all()
        self.display.mode = mode
