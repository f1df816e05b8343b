"""Freeze matrices of meshes no joint can move.

Static meshes get their local and world matrices computed once and then
opt out of per-frame updates. Must be re-run after every index rebuild.
"""

import logging

from rigforge.index.scene_index import SceneIndex

logger = logging.getLogger(__name__)


def freeze_static_matrices(index: SceneIndex) -> int:
    """Freeze every static mesh in *index*. Returns how many were frozen."""
    frozen = 0
    for node in index.static_meshes:
        if node in index.kinematic_meshes:
            logger.warning("Mesh %r is both static and kinematic, not freezing", node)
            continue
        node.update_ancestors()
        node.update_local_matrix()
        if node.parent is not None:
            node.world_matrix = node.parent.world_matrix @ node.local_matrix
        else:
            node.world_matrix = node.local_matrix.copy()
        node.matrix_auto_update = False
        frozen += 1
    logger.debug("Froze %d static meshes", frozen)
    return frozen


def unfreeze_all(index: SceneIndex) -> None:
    """Hand every indexed mesh back to per-frame matrix updates."""
    for node in index.mesh_is_collider:
        node.matrix_auto_update = True
        node._matrix_dirty = True


def update_kinematic_chain(index: SceneIndex, joint_name: str) -> None:
    """Recompute world matrices below a joint after its value changed."""
    joint = index.joints.get(joint_name)
    if joint is None:
        logger.debug("update_kinematic_chain: unknown joint %s", joint_name)
        return
    joint.update_ancestors()
    for child in joint.children:
        child.update_world_matrix()
