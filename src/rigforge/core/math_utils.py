"""NumPy-backed math utilities: Vec3, Quaternion, Mat4, rays.

Vectors are plain numpy arrays; quaternions are [x, y, z, w] arrays.
Matrices are 4x4 numpy arrays acting on column vectors (OpenGL convention).
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray

# Type aliases
Vec3 = NDArray[np.float64]
Mat3 = NDArray[np.float64]
Mat4 = NDArray[np.float64]
Quat = NDArray[np.float64]  # [x, y, z, w]

# Below this length a vector is treated as zero
EPSILON = 1e-10


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> Vec3:
    return np.array([x, y, z], dtype=np.float64)


def mat4_identity() -> Mat4:
    return np.eye(4, dtype=np.float64)


def mat4_translation(x: float, y: float, z: float) -> Mat4:
    m = np.eye(4, dtype=np.float64)
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return m


def mat4_from_quaternion(q: Quat) -> Mat4:
    """Convert quaternion [x,y,z,w] to 4x4 rotation matrix."""
    x, y, z, w = q
    m = np.eye(4, dtype=np.float64)
    m[0, 0] = 1 - 2 * (y * y + z * z)
    m[0, 1] = 2 * (x * y - z * w)
    m[0, 2] = 2 * (x * z + y * w)
    m[1, 0] = 2 * (x * y + z * w)
    m[1, 1] = 1 - 2 * (x * x + z * z)
    m[1, 2] = 2 * (y * z - x * w)
    m[2, 0] = 2 * (x * z - y * w)
    m[2, 1] = 2 * (y * z + x * w)
    m[2, 2] = 1 - 2 * (x * x + y * y)
    return m


def mat4_compose(position: Vec3, quaternion: Quat, scale: Vec3) -> Mat4:
    """Compose TRS matrix from position, quaternion rotation, and scale."""
    m = mat4_from_quaternion(quaternion)
    m[:3, 0] *= scale[0]
    m[:3, 1] *= scale[1]
    m[:3, 2] *= scale[2]
    m[0, 3] = position[0]
    m[1, 3] = position[1]
    m[2, 3] = position[2]
    return m


def mat4_perspective(fov_rad: float, aspect: float, near: float, far: float) -> Mat4:
    """Create perspective projection matrix."""
    f = 1.0 / np.tan(fov_rad / 2.0)
    m = np.zeros((4, 4), dtype=np.float64)
    m[0, 0] = f / aspect
    m[1, 1] = f
    m[2, 2] = (far + near) / (near - far)
    m[2, 3] = (2 * far * near) / (near - far)
    m[3, 2] = -1.0
    return m


def mat4_look_at(eye: Vec3, target: Vec3, up: Vec3) -> Mat4:
    """Create view matrix (camera look-at)."""
    f = normalize(target - eye)
    s = normalize(np.cross(f, up))
    # Forward parallel to up: pick another up vector
    if np.linalg.norm(s) < 1e-6:
        alt_up = np.array([0.0, 0.0, -1.0]) if abs(f[1]) > 0.9 else np.array([0.0, 1.0, 0.0])
        s = normalize(np.cross(f, alt_up))
    u = np.cross(s, f)
    m = np.eye(4, dtype=np.float64)
    m[0, :3] = s
    m[1, :3] = u
    m[2, :3] = -f
    m[0, 3] = -np.dot(s, eye)
    m[1, 3] = -np.dot(u, eye)
    m[2, 3] = np.dot(f, eye)
    return m


def mat4_inverse(m: Mat4) -> Mat4:
    return np.linalg.inv(m)


def mat3_normal(m: Mat4) -> Mat3:
    """Extract normal matrix (inverse transpose of upper-left 3x3)."""
    return np.linalg.inv(m[:3, :3]).T


# Quaternion operations

def quat_identity() -> Quat:
    return np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)


def quat_from_euler(x: float, y: float, z: float, order: str = "XYZ") -> Quat:
    """Create quaternion from Euler angles (radians).

    ``"ZYX"`` with ``(roll, pitch, yaw)`` gives the fixed-axis RPY
    convention used by robot description formats.
    """
    cx, sx = np.cos(x / 2), np.sin(x / 2)
    cy, sy = np.cos(y / 2), np.sin(y / 2)
    cz, sz = np.cos(z / 2), np.sin(z / 2)

    if order == "XYZ":
        return np.array([
            sx * cy * cz + cx * sy * sz,
            cx * sy * cz - sx * cy * sz,
            cx * cy * sz + sx * sy * cz,
            cx * cy * cz - sx * sy * sz,
        ], dtype=np.float64)
    elif order == "ZYX":
        return np.array([
            sx * cy * cz - cx * sy * sz,
            cx * sy * cz + sx * cy * sz,
            cx * cy * sz - sx * sy * cz,
            cx * cy * cz + sx * sy * sz,
        ], dtype=np.float64)
    else:
        raise ValueError(f"Unsupported Euler order: {order}")


def quat_from_axis_angle(axis: Vec3, angle: float) -> Quat:
    """Create quaternion from axis-angle."""
    half = angle / 2
    s = np.sin(half)
    a = normalize(axis)
    return np.array([a[0] * s, a[1] * s, a[2] * s, np.cos(half)], dtype=np.float64)


# Vector operations

def normalize(v: Vec3) -> Vec3:
    n = np.linalg.norm(v)
    if n < EPSILON:
        return np.zeros_like(v)
    return v / n


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def project_on_plane(point: Vec3, normal: Vec3, plane_point: Vec3) -> Vec3:
    """Orthogonally project *point* onto the plane through *plane_point*.

    *normal* must be unit length.
    """
    return point - np.dot(point - plane_point, normal) * normal


def signed_angle(a: Vec3, b: Vec3, axis: Vec3) -> float:
    """Angle from *a* to *b*, signed by the right-hand rule around *axis*.

    Uses ``atan2(|a x b|, a . b)`` so it stays accurate near 0 and pi.
    Returns 0.0 when either vector is (numerically) zero.
    """
    if np.linalg.norm(a) < EPSILON or np.linalg.norm(b) < EPSILON:
        return 0.0
    cross = np.cross(a, b)
    angle = float(np.arctan2(np.linalg.norm(cross), np.dot(a, b)))
    direction = float(np.sign(np.dot(cross, axis)))
    return direction * angle


# Rays

@dataclass
class Ray:
    """A half-line ``origin + t * direction`` with unit *direction*."""
    origin: Vec3
    direction: Vec3

    def at(self, t: float) -> Vec3:
        return self.origin + self.direction * t

    def copy(self) -> "Ray":
        return Ray(self.origin.copy(), self.direction.copy())


def ray_intersects_box(ray: Ray, box_min: Vec3, box_max: Vec3) -> bool:
    """Slab test against an axis-aligned box."""
    t_near = -np.inf
    t_far = np.inf
    for i in range(3):
        o = ray.origin[i]
        d = ray.direction[i]
        if abs(d) < EPSILON:
            if o < box_min[i] or o > box_max[i]:
                return False
            continue
        t1 = (box_min[i] - o) / d
        t2 = (box_max[i] - o) / d
        if t1 > t2:
            t1, t2 = t2, t1
        t_near = max(t_near, t1)
        t_far = min(t_far, t2)
        if t_near > t_far:
            return False
    return t_far >= 0.0


def intersect_ray_triangles(
    ray: Ray,
    triangles: NDArray,
    double_sided: bool = True,
) -> Optional[tuple[float, int]]:
    """Vectorized Moller-Trumbore test of a ray against (N, 3, 3) triangles.

    Returns ``(distance, triangle_index)`` of the nearest hit in front of
    the ray origin, or None.
    """
    if len(triangles) == 0:
        return None
    v0 = triangles[:, 0, :]
    e1 = triangles[:, 1, :] - v0
    e2 = triangles[:, 2, :] - v0

    p = np.cross(ray.direction, e2)          # (N, 3)
    det = np.einsum("ij,ij->i", e1, p)       # (N,)
    if double_sided:
        valid = np.abs(det) > EPSILON
    else:
        valid = det > EPSILON
    inv_det = np.zeros_like(det)
    inv_det[valid] = 1.0 / det[valid]

    s = ray.origin - v0
    u = np.einsum("ij,ij->i", s, p) * inv_det
    q = np.cross(s, e1)
    v = (q @ ray.direction) * inv_det
    t = np.einsum("ij,ij->i", e2, q) * inv_det

    hit = valid & (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0) & (t > EPSILON)
    if not np.any(hit):
        return None
    idx = np.flatnonzero(hit)
    best = idx[np.argmin(t[idx])]
    return float(t[best]), int(best)
