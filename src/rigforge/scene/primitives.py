"""Procedural geometry for the primitive shapes robot descriptions use.

Boxes are centred on the origin; cylinders run along +Z as in URDF.
"""

import math

import numpy as np

from rigforge.core.mesh import BufferGeometry


def _pack(positions, normals, indices) -> BufferGeometry:
    return BufferGeometry(
        positions=np.asarray(positions, dtype=np.float32).ravel(),
        normals=np.asarray(normals, dtype=np.float32).ravel(),
        indices=np.asarray(indices, dtype=np.uint32),
    )


def make_box(size_x: float, size_y: float, size_z: float) -> BufferGeometry:
    """Box with flat-shaded faces (24 verts, 12 tris)."""
    half = np.array([size_x, size_y, size_z], dtype=np.float64) / 2.0
    positions = []
    normals = []
    indices = []

    # One quad per signed axis; (u, v) span the face so u x v points outward
    for axis in range(3):
        u_axis = (axis + 1) % 3
        v_axis = (axis + 2) % 3
        for sign in (1.0, -1.0):
            normal = np.zeros(3)
            normal[axis] = sign
            base = len(positions)
            for du, dv in ((-1, -1), (1, -1), (1, 1), (-1, 1)):
                corner = np.zeros(3)
                corner[axis] = sign * half[axis]
                corner[u_axis] = du * half[u_axis]
                corner[v_axis] = dv * sign * half[v_axis]
                positions.append(corner)
                normals.append(normal)
            indices.extend([base, base + 1, base + 2, base, base + 2, base + 3])

    return _pack(positions, normals, indices)


def make_cylinder(radius: float, length: float, segments: int = 16) -> BufferGeometry:
    """Capped cylinder along Z, centred at the origin."""
    positions = []
    normals = []
    indices = []
    half = length / 2.0
    angles = [2.0 * math.pi * i / segments for i in range(segments + 1)]

    for theta in angles:
        c, s = math.cos(theta), math.sin(theta)
        positions.append((radius * c, radius * s, -half))
        normals.append((c, s, 0.0))
        positions.append((radius * c, radius * s, half))
        normals.append((c, s, 0.0))
    for i in range(segments):
        b = i * 2
        indices.extend([b, b + 2, b + 1, b + 1, b + 2, b + 3])

    for z, nz in ((half, 1.0), (-half, -1.0)):
        center = len(positions)
        positions.append((0.0, 0.0, z))
        normals.append((0.0, 0.0, nz))
        for theta in angles[:-1]:
            positions.append((radius * math.cos(theta), radius * math.sin(theta), z))
            normals.append((0.0, 0.0, nz))
        for i in range(segments):
            a = center + 1 + i
            b = center + 1 + (i + 1) % segments
            indices.extend([center, a, b] if nz > 0 else [center, b, a])

    return _pack(positions, normals, indices)


def make_sphere(radius: float, segments: int = 16, rings: int = 8) -> BufferGeometry:
    """UV sphere centred at the origin."""
    positions = []
    normals = []
    indices = []
    for r in range(rings + 1):
        phi = math.pi * r / rings
        for s in range(segments + 1):
            theta = 2.0 * math.pi * s / segments
            n = (math.sin(phi) * math.cos(theta), math.sin(phi) * math.sin(theta), math.cos(phi))
            normals.append(n)
            positions.append(tuple(radius * c for c in n))
    row = segments + 1
    for r in range(rings):
        for s in range(segments):
            a = r * row + s
            b = a + row
            indices.extend([a, b, a + 1, a + 1, b, b + 1])
    return _pack(positions, normals, indices)
