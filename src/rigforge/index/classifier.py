"""Mesh classification and ownership resolution.

Classification is an ordered list of predicates; the first one that
returns a verdict wins and anything left undecided is visual. Structural
markers set by the loader always beat naming conventions.
"""

import re
from enum import Enum
from typing import Callable, Container, Iterator, Optional

from rigforge.core.scene_graph import JointNode, SceneNode

# The word must end a name or a "/" path segment, optionally with a numeric
# suffix: "leg_collision", "collision/box" and "arm_col_2" match,
# "collision_detector" and "colour" do not.
COLLISION_NAME_PATTERN = re.compile(
    r"(?:^|[_/])(?:collision|collider|col)(?:_\d+)?(?:/|$)", re.IGNORECASE,
)


class Classification(Enum):
    VISUAL = "visual"
    COLLISION = "collision"


Predicate = Callable[[SceneNode], Optional[Classification]]


def _path(node: SceneNode) -> Iterator[SceneNode]:
    """The node itself followed by its ancestors."""
    yield node
    yield from node.ancestors()


def structural_marker(node: SceneNode) -> Optional[Classification]:
    for n in _path(node):
        if n.is_collider:
            return Classification.COLLISION
        if n.user_data.get("is_collider") or n.user_data.get("is_collision_mesh"):
            return Classification.COLLISION
    return None


def naming_convention(node: SceneNode) -> Optional[Classification]:
    for n in _path(node):
        if n.name and COLLISION_NAME_PATTERN.search(n.name):
            return Classification.COLLISION
    return None


DEFAULT_PIPELINE: tuple[Predicate, ...] = (structural_marker, naming_convention)


def classify_mesh(node: SceneNode, pipeline=DEFAULT_PIPELINE) -> Classification:
    for predicate in pipeline:
        verdict = predicate(node)
        if verdict is not None:
            return verdict
    return Classification.VISUAL


def is_gizmo_path(node: SceneNode) -> bool:
    """True if *node* or any ancestor is an editor overlay."""
    return any(n.is_gizmo for n in _path(node))


def resolve_owning_link(node: SceneNode, known_links: Container[str] = ()) -> Optional[str]:
    """Name of the nearest link above *node*, or None for orphans."""
    for n in node.ancestors():
        if n.is_link or n.user_data.get("is_link"):
            return n.name
        if n.name and n.name in known_links:
            return n.name
    return None


def collect_moving_joints(node: SceneNode) -> list[JointNode]:
    """Non-fixed joint ancestors of *node*, nearest first."""
    return [
        n for n in node.ancestors()
        if n.is_joint and getattr(n, "joint_type", "fixed") != "fixed"
    ]
