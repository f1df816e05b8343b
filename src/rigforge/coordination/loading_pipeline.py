"""Cancellable model loading and structural editing for one viewer session."""

import inspect
import logging
from typing import Any, Callable, Optional

import numpy as np

from rigforge.core.events import EventBus, EventType
from rigforge.core.material import Material, is_shared_material
from rigforge.core.mesh import BufferGeometry, MeshInstance
from rigforge.core.scene_graph import JOINT_TYPES, JointNode, LinkNode, Scene, SceneNode
from rigforge.core.state import DisplaySettings
from rigforge.coordination.visibility import apply_visibility
from rigforge.index.builder import SceneIndexBuilder
from rigforge.index.freeze import freeze_static_matrices, unfreeze_all
from rigforge.index.scene_index import SceneIndex

logger = logging.getLogger(__name__)


class AbortToken:
    """Handed to a loader; set once a newer load supersedes it."""

    def __init__(self):
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        self._aborted = True


def dispose_tree(
    root: Optional[SceneNode],
    release: Optional[Callable[[MeshInstance], None]] = None,
    release_material: Optional[Callable[[Material], None]] = None,
) -> int:
    """Free every mesh under *root*. Returns the number disposed.

    *release* is called per mesh before its buffers are dropped (the
    renderer uses it to delete GPU objects). *release_material* is called
    once per distinct material, never for the shared overlay presets.
    """
    if root is None:
        return 0
    disposed = 0
    seen: set[int] = set()
    for node in root.iter_nodes():
        mesh = node.mesh
        if mesh is None or mesh.disposed:
            continue
        if release is not None:
            release(mesh)
        if release_material is not None:
            for material in (mesh.material, node.user_data.get("original_material")):
                if material is None or is_shared_material(material) or id(material) in seen:
                    continue
                seen.add(id(material))
                release_material(material)
        mesh.dispose()
        disposed += 1
    return disposed


class ModelSession:
    """Owns the loaded robot, its index and the load/abort lifecycle.

    Every load, rebuild and edit leaves the session with an index that
    matches the attached tree: build, freeze and the visibility pass all
    finish before a new root is attached to the scene.
    """

    def __init__(
        self,
        scene: Scene,
        event_bus: EventBus,
        display: Optional[DisplaySettings] = None,
        builder: Optional[SceneIndexBuilder] = None,
        release: Optional[Callable[[MeshInstance], None]] = None,
    ):
        self.scene = scene
        self.event_bus = event_bus
        self.display = display or DisplaySettings()
        self.builder = builder or SceneIndexBuilder()
        self.release = release

        self.root: Optional[SceneNode] = None
        self.index: Optional[SceneIndex] = None
        self._token: Optional[AbortToken] = None

        # Raycast flags depend on the interaction mode
        event_bus.subscribe(EventType.MODE_CHANGED, self._on_mode_changed)

    def _on_mode_changed(self, mode) -> None:
        self.display.mode = mode
        if self.index is not None:
            apply_visibility(self.index, self.display)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, loader: Callable[[AbortToken], Any]) -> Optional[SceneIndex]:
        """Run *loader* and attach its tree, superseding any load in flight.

        *loader* receives the load's AbortToken and returns a root node or
        an awaitable of one. Returns the new index, or None if this load
        was superseded or failed.
        """
        if self._token is not None:
            self._token.abort()
        token = AbortToken()
        self._token = token
        self.event_bus.publish(EventType.LOADING_STARTED)

        try:
            root = loader(token)
            if inspect.isawaitable(root):
                root = await root
        except Exception as e:
            if token.aborted:
                logger.debug("Superseded load raised %s, ignoring", e)
                return None
            logger.error("Model load failed: %s", e, exc_info=True)
            self.event_bus.publish(EventType.LOADING_FAILED, error=str(e))
            return None

        if token.aborted:
            n = dispose_tree(root, self.release)
            logger.info("Discarded superseded load (%d meshes disposed)", n)
            return None
        if root is None:
            logger.error("Loader returned no model")
            self.event_bus.publish(EventType.LOADING_FAILED, error="loader returned no model")
            return None

        index = self._index_tree(root)
        if token.aborted:
            dispose_tree(root, self.release)
            return None

        self._attach(root, index)
        self.event_bus.publish(EventType.INDEX_REBUILT, index=index)
        self.event_bus.publish(EventType.LOADING_COMPLETE, root=root, index=index)
        return index

    def abort(self) -> None:
        if self._token is not None:
            self._token.abort()

    def _index_tree(self, root: SceneNode) -> SceneIndex:
        root.update_world_matrix(force=True)
        index = self.builder.build(
            root,
            show_visual=self.display.show_visual,
            show_collision=self.display.show_collision,
        )
        freeze_static_matrices(index)
        apply_visibility(index, self.display)
        return index

    def _attach(self, root: SceneNode, index: SceneIndex) -> None:
        previous = self.root
        if previous is not None:
            self.scene.remove(previous)
            dispose_tree(previous, self.release)
        self.root = root
        self.index = index
        self.scene.add(root)
        root.update_world_matrix(force=True)

    def close(self) -> None:
        """Abort any load and dispose the attached model."""
        self.abort()
        if self.root is not None:
            self.scene.remove(self.root)
            dispose_tree(self.root, self.release)
        self.root = None
        self.index = None

    # ------------------------------------------------------------------
    # Structural edits (full rebuild)
    # ------------------------------------------------------------------

    def rebuild(self) -> SceneIndex:
        """Replace the index with a fresh one built from the current tree."""
        if self.root is None:
            raise RuntimeError("No model loaded")
        if self.index is not None:
            unfreeze_all(self.index)
        self.index = self._index_tree(self.root)
        self.event_bus.publish(EventType.INDEX_REBUILT, index=self.index)
        return self.index

    def add_link(
        self,
        parent_link: str,
        link_name: str,
        joint_name: str,
        joint_type: str = "fixed",
        axis=None,
        limit: Optional[dict] = None,
        origin: Optional[dict] = None,
    ) -> LinkNode:
        """Attach a new link under *parent_link* through a new joint."""
        parent = self._require_link(parent_link)
        if link_name in self.index.links:
            raise ValueError(f"Link {link_name!r} already exists")
        if joint_name in self.index.joints:
            raise ValueError(f"Joint {joint_name!r} already exists")
        if joint_type not in JOINT_TYPES:
            raise ValueError(f"Unknown joint type {joint_type!r}")

        joint = JointNode(joint_name, joint_type=joint_type, axis=axis, limit=limit)
        origin = origin or {}
        joint.set_position(*origin.get("xyz", (0.0, 0.0, 0.0)))
        joint.set_rpy(*origin.get("rpy", (0.0, 0.0, 0.0)))
        link = LinkNode(link_name)
        joint.add(link)
        parent.add(joint)

        logger.info("Added link %s under %s via %s joint %s",
                    link_name, parent_link, joint_type, joint_name)
        self.rebuild()
        return link

    def remove_link(self, link_name: str) -> int:
        """Remove a link, its subtree and the joint that carried it.

        Returns the number of meshes disposed.
        """
        link = self._require_link(link_name)
        target = link.parent if link.parent is not None and link.parent.is_joint else link
        if target is self.root:
            raise ValueError("Cannot remove the root link")
        if target.parent is not None:
            target.parent.remove(target)

        n = dispose_tree(target, self.release)
        logger.info("Removed link %s (%d meshes disposed)", link_name, n)
        self.rebuild()
        return n

    def _require_link(self, link_name: str) -> LinkNode:
        if self.index is None:
            raise RuntimeError("No model loaded")
        link = self.index.get_link(link_name)
        if link is None:
            raise KeyError(link_name)
        return link

    # ------------------------------------------------------------------
    # Non-structural edits (index stays valid)
    # ------------------------------------------------------------------

    def set_mesh_origin(self, node: SceneNode, xyz) -> None:
        node.set_position(*xyz)
        if not node.matrix_auto_update:
            # Frozen: refresh the cached matrices by hand
            node.update_local_matrix()
            parent_world = node.parent.world_matrix if node.parent is not None else np.eye(4)
            node.world_matrix = parent_world @ node.local_matrix

    def set_mesh_geometry(self, node: SceneNode, geometry: BufferGeometry) -> None:
        if node.mesh is None:
            raise ValueError(f"{node!r} has no mesh")
        node.mesh.set_geometry(geometry)

    # ------------------------------------------------------------------
    # Display toggles
    # ------------------------------------------------------------------

    def set_display(
        self,
        show_visual: Optional[bool] = None,
        show_collision: Optional[bool] = None,
    ) -> None:
        if show_visual is not None:
            self.display.show_visual = show_visual
        if show_collision is not None:
            self.display.show_collision = show_collision
        if self.index is not None:
            apply_visibility(self.index, self.display)
        self.event_bus.publish(
            EventType.VISIBILITY_CHANGED,
            show_visual=self.display.show_visual,
            show_collision=self.display.show_collision,
        )

    def set_link_visible(self, link_name: str, visible: bool) -> None:
        self.display.link_visibility[link_name] = visible
        if self.index is not None:
            apply_visibility(self.index, self.display)
