"""Vector geometry primitives shared by detectors and measurement builders.

Scalar helpers take anything array-like of length 3 and return plain floats /
float64 arrays. Numeric policy for degenerate input:

  * a zero-length vector has angle 0 to anything,
  * a dihedral with collinear atoms (undefined plane) is 0,
  * nothing here raises for degenerate geometry; only ``as_vec3`` validates.
"""
from __future__ import annotations

import math
from typing import Any, Sequence, Tuple

import numpy as np

from utils.errors import InvalidPositionError

Vec3 = Tuple[float, float, float]

_EPS = 1e-12


def as_vec3(point: Any, name: str = "point") -> np.ndarray:
    """Validate and coerce a position into a float64 (3,) array."""
    if point is None:
        raise InvalidPositionError(f"{name} is missing")
    try:
        arr = np.asarray(point, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidPositionError(f"{name} is not numeric: {point!r}") from exc
    if arr.shape != (3,):
        raise InvalidPositionError(f"{name} must be a 3-vector, got shape {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidPositionError(f"{name} contains non-finite values: {point!r}")
    return arr


def to_tuple(v: np.ndarray) -> Vec3:
    return (float(v[0]), float(v[1]), float(v[2]))


def unit(v: np.ndarray) -> np.ndarray:
    """Unit vector, or the zero vector when ``v`` has no length."""
    v = np.asarray(v, dtype=np.float64)
    n = float(np.linalg.norm(v))
    if n < _EPS:
        return np.zeros(3)
    return v / n


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    return float(np.linalg.norm(np.asarray(b, dtype=np.float64) - np.asarray(a, dtype=np.float64)))


def midpoint(a: Sequence[float], b: Sequence[float]) -> np.ndarray:
    return (np.asarray(a, dtype=np.float64) + np.asarray(b, dtype=np.float64)) / 2.0


def angle_between(v1: np.ndarray, v2: np.ndarray) -> float:
    """Angle in degrees in [0, 180] between two vectors (0 if either is zero)."""
    n1 = float(np.linalg.norm(v1))
    n2 = float(np.linalg.norm(v2))
    if n1 < _EPS or n2 < _EPS:
        return 0.0
    cos = float(np.dot(v1, v2)) / (n1 * n2)
    return math.degrees(math.acos(max(-1.0, min(1.0, cos))))


def angle_degrees(a: Sequence[float], vertex: Sequence[float], c: Sequence[float]) -> float:
    """Three-point angle a-vertex-c in degrees, clamped to [0, 180]."""
    v = np.asarray(vertex, dtype=np.float64)
    return angle_between(np.asarray(a, dtype=np.float64) - v, np.asarray(c, dtype=np.float64) - v)


def dihedral_degrees(p1: Sequence[float], p2: Sequence[float],
                     p3: Sequence[float], p4: Sequence[float]) -> float:
    """Signed torsion p1-p2-p3-p4 in degrees within [-180, 180] (IUPAC sign)."""
    a, b, c, d = (np.asarray(p, dtype=np.float64) for p in (p1, p2, p3, p4))
    b1 = b - a
    b2 = c - b
    b3 = d - c
    n1 = np.cross(b1, b2)
    n2 = np.cross(b2, b3)
    if np.linalg.norm(n1) < _EPS or np.linalg.norm(n2) < _EPS:
        return 0.0
    y = float(np.linalg.norm(b2)) * float(np.dot(b1, n2))
    x = float(np.dot(n1, n2))
    value = math.degrees(math.atan2(y, x))
    return max(-180.0, min(180.0, value))


def any_perpendicular(v: np.ndarray) -> np.ndarray:
    """Some unit vector perpendicular to ``v`` (z axis for the zero vector)."""
    u = unit(v)
    if not u.any():
        return np.array([0.0, 0.0, 1.0])
    helper = np.array([1.0, 0.0, 0.0]) if abs(u[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    return unit(np.cross(u, helper))


def angle_frame(a: Sequence[float], vertex: Sequence[float], c: Sequence[float]
                ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (start_direction, normal, bisector) unit vectors for an angle at vertex.

    Collinear or zero-length arms still yield a usable frame: the normal falls
    back to any perpendicular of the first arm, and a 180° bisector lies in the
    plane perpendicular to the arms. Zero-length arms give a zero bisector so
    the label lands on the vertex.
    """
    v = np.asarray(vertex, dtype=np.float64)
    ua = unit(np.asarray(a, dtype=np.float64) - v)
    uc = unit(np.asarray(c, dtype=np.float64) - v)
    if not ua.any() or not uc.any():
        start = ua if ua.any() else (uc if uc.any() else np.array([1.0, 0.0, 0.0]))
        return start, any_perpendicular(start), np.zeros(3)
    normal = unit(np.cross(ua, uc))
    if not normal.any():
        normal = any_perpendicular(ua)
    bisector = unit(ua + uc)
    if not bisector.any():
        bisector = unit(np.cross(normal, ua))
    return ua, normal, bisector


def ring_geometry(coords: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Return (center, normal) for a ring set of coordinates.

    Uses SVD plane fit; the normal is flipped to positive z so nearly parallel
    planes compare without sign-induced angle jumps.
    """
    coords = np.asarray(coords, dtype=np.float64)
    center = coords.mean(axis=0)
    if coords.shape[0] < 3:
        return center, np.array([0.0, 0.0, 1.0])
    _, _, vh = np.linalg.svd(coords - center)
    normal = vh[-1]
    if normal[2] < 0:
        normal = -normal
    return center, unit(normal)


def plane_angle(n1: np.ndarray, n2: np.ndarray) -> float:
    """Acute angle in degrees between two planes given their normals."""
    cos = abs(float(np.dot(unit(n1), unit(n2))))
    return math.degrees(math.acos(min(1.0, cos)))


def angles_between(v1: np.ndarray, v2: np.ndarray) -> np.ndarray:
    """Row-wise angles (degrees) between (N,3) vector arrays; broadcasting allowed.

    Rows where either vector has zero length produce 0.
    """
    v1 = np.asarray(v1, dtype=np.float64)
    v2 = np.asarray(v2, dtype=np.float64)
    n1 = np.linalg.norm(v1, axis=-1)
    n2 = np.linalg.norm(v2, axis=-1)
    denom = n1 * n2
    safe = denom > _EPS
    dots = np.sum(v1 * v2, axis=-1)
    cos = np.divide(dots, denom, out=np.ones_like(dots, dtype=np.float64), where=safe)
    return np.degrees(np.arccos(np.clip(cos, -1.0, 1.0)))


__all__ = [
    "Vec3", "as_vec3", "to_tuple", "unit", "distance", "midpoint",
    "angle_between", "angle_degrees", "dihedral_degrees", "any_perpendicular",
    "angle_frame", "ring_geometry", "plane_angle", "angles_between",
]
