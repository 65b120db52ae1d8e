"""Renderer-neutral geometry descriptors.

Every descriptor carries the part id it is registered under (e.g. ``m1-line``)
and a class-level ``kind`` tag renderer adapters can dispatch on.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class Line:
    id: str
    start: Vec3
    end: Vec3
    color: str
    width: float = 0.1
    style: str = "solid"  # solid | dashed
    dash_length: float = 0.0

    kind = "line"

    @property
    def length(self) -> float:
        return float(np.linalg.norm(np.subtract(self.end, self.start)))


@dataclass(frozen=True)
class Arc:
    """Circular arc around ``center`` in the plane orthogonal to ``normal``.

    Angles are in degrees, measured from ``start_direction`` towards the
    second arm of the measured angle.
    """
    id: str
    center: Vec3
    radius: float
    start_angle: float
    end_angle: float
    normal: Vec3
    start_direction: Vec3
    segments: int = 32
    color: str = "#FFFF00"

    kind = "arc"

    def points(self) -> List[Vec3]:
        """Polyline approximation with ``segments + 1`` points."""
        c = np.asarray(self.center)
        u = np.asarray(self.start_direction)
        w = np.cross(np.asarray(self.normal), u)
        out: List[Vec3] = []
        for k in range(self.segments + 1):
            t = math.radians(self.start_angle + (self.end_angle - self.start_angle) * k / self.segments)
            p = c + self.radius * (math.cos(t) * u + math.sin(t) * w)
            out.append((float(p[0]), float(p[1]), float(p[2])))
        return out


@dataclass(frozen=True)
class Plane:
    """Triangle spanned by three consecutive dihedral atoms."""
    id: str
    points: Tuple[Vec3, Vec3, Vec3]
    color: str
    opacity: float = 0.3

    kind = "plane"


@dataclass(frozen=True)
class PlanePair:
    plane1_points: Tuple[Vec3, Vec3, Vec3]
    plane2_points: Tuple[Vec3, Vec3, Vec3]


@dataclass(frozen=True)
class Label:
    id: str
    text: str
    position: Vec3
    billboard: bool = True
    style: Dict[str, Any] = field(default_factory=dict)

    kind = "label"


__all__ = ["Vec3", "Line", "Arc", "Plane", "PlanePair", "Label"]
