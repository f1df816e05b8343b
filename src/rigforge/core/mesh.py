"""Mesh data structures for geometry storage (no GL dependencies)."""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from rigforge.core.material import Material


@dataclass
class BufferGeometry:
    """Stores vertex attribute arrays for a mesh.

    All arrays use float32 for GL compatibility.
    positions: Nx3 flat array (x,y,z per vertex)
    normals: Nx3 flat array
    indices: triangle index array (uint32), optional for non-indexed geometry
    """
    positions: NDArray[np.float32]
    normals: NDArray[np.float32]
    indices: Optional[NDArray[np.uint32]] = None
    vertex_count: int = 0

    def __post_init__(self):
        if self.vertex_count == 0:
            self.vertex_count = len(self.positions) // 3

    @property
    def triangle_count(self) -> int:
        if self.indices is not None:
            return len(self.indices) // 3
        return self.vertex_count // 3

    @property
    def has_indices(self) -> bool:
        return self.indices is not None and len(self.indices) > 0

    def compute_normals(self) -> None:
        """Compute per-vertex normals by accumulating face normals."""
        pos = self.positions.reshape(-1, 3).astype(np.float64)
        norms = np.zeros_like(pos)

        if self.has_indices:
            idx = self.indices.reshape(-1, 3)
        else:
            idx = np.arange(len(pos) - len(pos) % 3).reshape(-1, 3)
        face_n = np.cross(pos[idx[:, 1]] - pos[idx[:, 0]], pos[idx[:, 2]] - pos[idx[:, 0]])
        for corner in range(3):
            np.add.at(norms, idx[:, corner], face_n)

        lengths = np.linalg.norm(norms, axis=1, keepdims=True)
        lengths = np.maximum(lengths, 1e-10)
        norms /= lengths
        self.normals = norms.ravel().astype(np.float32)

    def triangles(self) -> NDArray[np.float64]:
        """Return local-space triangles as an (N, 3, 3) float64 array."""
        pos = self.positions.reshape(-1, 3).astype(np.float64)
        if self.has_indices:
            idx = self.indices.reshape(-1, 3)
            return pos[idx]
        usable = len(pos) - len(pos) % 3
        return pos[:usable].reshape(-1, 3, 3)

    def bounding_box(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Local-space axis-aligned bounds as (min, max)."""
        pos = self.positions.reshape(-1, 3).astype(np.float64)
        if len(pos) == 0:
            zero = np.zeros(3, dtype=np.float64)
            return zero, zero.copy()
        return pos.min(axis=0), pos.max(axis=0)

    def clone(self) -> "BufferGeometry":
        """Create a deep copy."""
        return BufferGeometry(
            positions=self.positions.copy(),
            normals=self.normals.copy(),
            indices=self.indices.copy() if self.indices is not None else None,
            vertex_count=self.vertex_count,
        )


@dataclass(eq=False)
class MeshInstance:
    """A mesh with material, linking geometry to rendering properties."""
    name: str
    geometry: BufferGeometry
    material: Material = field(default_factory=Material)
    # Draw order bucket; higher draws later (on top)
    render_order: int = 0
    # GL handle (set by renderer)
    gl_handle: object = None
    # Flag for geometry updates
    needs_update: bool = True
    # Set once GPU and CPU buffers have been released
    disposed: bool = False

    def set_geometry(self, geometry: BufferGeometry) -> None:
        self.geometry = geometry
        self.needs_update = True

    def dispose(self) -> None:
        """Release the GPU handle (if any) and drop vertex data."""
        if self.disposed:
            return
        handle = self.gl_handle
        if handle is not None and hasattr(handle, "destroy"):
            handle.destroy()
        self.gl_handle = None
        self.geometry = BufferGeometry(
            positions=np.zeros(0, dtype=np.float32),
            normals=np.zeros(0, dtype=np.float32),
        )
        self.disposed = True
