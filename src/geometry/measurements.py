"""Distance / angle / dihedral measurement geometry.

``MeasurementGeometryBuilder`` turns 2, 3 or 4 positions into renderer
descriptors plus a formatted label, and registers them as one handle in a
``VisualizationRegistry``. Sub-part ids follow ``<id>-line``, ``<id>-arc``,
``<id>-plane1``, ``<id>-plane2`` and ``<id>-label``.

Validation happens before anything is created: duplicate id, then point
count, then every position (missing, not a 3-vector, non-finite).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from geometry.core import (Vec3, angle_degrees, angle_frame, as_vec3, dihedral_degrees,
                           distance, midpoint, to_tuple)
from geometry.primitives import Arc, Label, Line, Plane, PlanePair
from performance.timing import time_block
from utils.config import AppConfig, MeasurementConfig
from utils.errors import ArityError, DuplicateIdError, NotFoundError, ValidationError
from visualization.registry import VisualizationHandle, VisualizationRegistry

DISTANCE = "distance"
ANGLE = "angle"
DIHEDRAL = "dihedral"

ARITY = {DISTANCE: 2, ANGLE: 3, DIHEDRAL: 4}
UNITS = {DISTANCE: "Å", ANGLE: "°", DIHEDRAL: "°"}

MEASUREMENT_KIND = "measurement"


def format_distance(value: float) -> str:
    return f"{value:.1f} Å"


def format_angle(value: float) -> str:
    return f"{value:.1f}°"


@dataclass(frozen=True)
class Measurement:
    id: str
    type: str
    points: Tuple[Vec3, ...]
    value: float

    @property
    def unit(self) -> str:
        return UNITS[self.type]

    @property
    def label_text(self) -> str:
        return format_distance(self.value) if self.type == DISTANCE else format_angle(self.value)


@dataclass(frozen=True)
class DistanceMeasurement(Measurement):
    @property
    def atom_a(self) -> Vec3:
        return self.points[0]

    @property
    def atom_b(self) -> Vec3:
        return self.points[1]


@dataclass(frozen=True)
class AngleMeasurement(Measurement):
    @property
    def vertex(self) -> Vec3:
        return self.points[1]


@dataclass(frozen=True)
class DihedralMeasurement(Measurement):
    @property
    def axis(self) -> Tuple[Vec3, Vec3]:
        return self.points[1], self.points[2]


@dataclass(frozen=True)
class DistanceResult:
    line_id: str
    label_id: str
    measurement: DistanceMeasurement
    line: Line
    label: Label


@dataclass(frozen=True)
class AngleResult:
    arc_id: str
    label_id: str
    measurement: AngleMeasurement
    arc: Arc
    label: Label


@dataclass(frozen=True)
class DihedralResult:
    plane1_id: str
    plane2_id: str
    label_id: str
    measurement: DihedralMeasurement
    planes: PlanePair
    label: Label


MeasurementResult = Union[DistanceResult, AngleResult, DihedralResult]


class MeasurementGeometryBuilder:
    def __init__(self, registry: VisualizationRegistry,
                 config: Optional[Union[AppConfig, MeasurementConfig]] = None):
        self.registry = registry
        if isinstance(config, AppConfig):
            config = config.measurements
        self.config: MeasurementConfig = config or MeasurementConfig()

    # ----------------------------------------------------------- validation
    def _check_new_id(self, measurement_id: str) -> None:
        if not measurement_id:
            raise ValidationError("measurement id must be a non-empty string")
        if measurement_id in self.registry:
            raise DuplicateIdError(measurement_id)

    @staticmethod
    def _validate_points(kind: str, points: Sequence[Any]) -> List[np.ndarray]:
        if kind not in ARITY:
            raise ValidationError(f"invalid measurement type '{kind}' (expected one of {', '.join(ARITY)})")
        if points is None:
            raise ArityError(kind, ARITY[kind], 0)
        points = list(points)
        if len(points) != ARITY[kind]:
            raise ArityError(kind, ARITY[kind], len(points))
        return [as_vec3(p, f"{kind} point {i + 1}") for i, p in enumerate(points)]

    def _label(self, label_id: str, text: str, position: np.ndarray) -> Label:
        return Label(
            id=label_id,
            text=text,
            position=to_tuple(position),
            billboard=self.config.label_billboard,
            style=dict(self.config.label_style),
        )

    # ------------------------------------------------------------- geometry
    def _distance_parts(self, mid: str, pts: List[np.ndarray], color: str) -> DistanceResult:
        a, b = pts
        value = distance(a, b)
        measurement = DistanceMeasurement(mid, DISTANCE, (to_tuple(a), to_tuple(b)), value)
        line = Line(id=f"{mid}-line", start=to_tuple(a), end=to_tuple(b), color=color,
                    width=self.config.line_width, style=self.config.line_style)
        label = self._label(f"{mid}-label", measurement.label_text, midpoint(a, b))
        return DistanceResult(line.id, label.id, measurement, line, label)

    def _angle_parts(self, mid: str, pts: List[np.ndarray], color: str) -> AngleResult:
        a, vertex, c = pts
        value = angle_degrees(a, vertex, c)
        start_dir, normal, bisector = angle_frame(a, vertex, c)
        radius = self.config.arc_radius
        measurement = AngleMeasurement(mid, ANGLE, tuple(to_tuple(p) for p in pts), value)
        arc = Arc(
            id=f"{mid}-arc",
            center=to_tuple(vertex),
            radius=radius,
            start_angle=0.0,
            end_angle=value,
            normal=to_tuple(normal),
            start_direction=to_tuple(start_dir),
            segments=self.config.arc_segments,
            color=color,
        )
        label = self._label(f"{mid}-label", measurement.label_text, vertex + bisector * radius)
        return AngleResult(arc.id, label.id, measurement, arc, label)

    def _dihedral_parts(self, mid: str, pts: List[np.ndarray], color: str) -> DihedralResult:
        p1, p2, p3, p4 = pts
        value = dihedral_degrees(p1, p2, p3, p4)
        measurement = DihedralMeasurement(mid, DIHEDRAL, tuple(to_tuple(p) for p in pts), value)
        planes = PlanePair(
            plane1_points=(to_tuple(p1), to_tuple(p2), to_tuple(p3)),
            plane2_points=(to_tuple(p2), to_tuple(p3), to_tuple(p4)),
        )
        label = self._label(f"{mid}-label", measurement.label_text, midpoint(p2, p3))
        return DihedralResult(f"{mid}-plane1", f"{mid}-plane2", label.id, measurement, planes, label)

    def _descriptors(self, result: MeasurementResult, color: str) -> List[Any]:
        if isinstance(result, DistanceResult):
            return [result.line, result.label]
        if isinstance(result, AngleResult):
            return [result.arc, result.label]
        opacity = self.config.plane_opacity
        return [
            Plane(result.plane1_id, result.planes.plane1_points, color, opacity),
            Plane(result.plane2_id, result.planes.plane2_points, color, opacity),
            result.label,
        ]

    def _compute(self, kind: str, mid: str, pts: List[np.ndarray], color: str) -> MeasurementResult:
        if kind == DISTANCE:
            return self._distance_parts(mid, pts, color)
        if kind == ANGLE:
            return self._angle_parts(mid, pts, color)
        return self._dihedral_parts(mid, pts, color)

    # ---------------------------------------------------------------- build
    def _build(self, kind: str, measurement_id: str, points: Sequence[Any],
               color: Optional[str]) -> MeasurementResult:
        self._check_new_id(measurement_id)
        pts = self._validate_points(kind, points)
        color = color or self.config.default_color
        with time_block(f"measurement.{kind}"):
            result = self._compute(kind, measurement_id, pts, color)
            self.registry.create(
                measurement_id,
                self._descriptors(result, color),
                kind=MEASUREMENT_KIND,
                metadata={'measurement': result.measurement, 'type': kind, 'color': color},
            )
        logger.debug(f"built {kind} '{measurement_id}' = {result.measurement.label_text}")
        return result

    def build_distance(self, measurement_id: str, point_a, point_b, color: Optional[str] = None) -> DistanceResult:
        return self._build(DISTANCE, measurement_id, [point_a, point_b], color)

    def build_angle(self, measurement_id: str, point_a, vertex, point_c, color: Optional[str] = None) -> AngleResult:
        return self._build(ANGLE, measurement_id, [point_a, vertex, point_c], color)

    def build_dihedral(self, measurement_id: str, p1, p2, p3, p4, color: Optional[str] = None) -> DihedralResult:
        return self._build(DIHEDRAL, measurement_id, [p1, p2, p3, p4], color)

    def render(self, measurement_id: str, kind: str, points: Sequence[Any],
               color: Optional[str] = None) -> MeasurementResult:
        """Generic entry point: dispatch on ``kind`` with exact arity checks."""
        if kind not in ARITY:
            raise ValidationError(f"invalid measurement type '{kind}' (expected one of {', '.join(ARITY)})")
        return self._build(kind, measurement_id, points, color)

    def update(self, measurement_id: str, points: Sequence[Any]) -> MeasurementResult:
        """Recompute an existing measurement for moved points (same kind, same color)."""
        handle = self._require(measurement_id)
        kind = handle.metadata['type']
        pts = self._validate_points(kind, points)
        color = handle.metadata.get('color', self.config.default_color)
        result = self._compute(kind, measurement_id, pts, color)
        self.registry.update(measurement_id, self._descriptors(result, color),
                             metadata={'measurement': result.measurement})
        return result

    # ------------------------------------------------------------ lifecycle
    def _require(self, measurement_id: str) -> VisualizationHandle:
        handle = self.registry.get(measurement_id)
        if handle is None or handle.kind != MEASUREMENT_KIND:
            raise NotFoundError(measurement_id, what="measurement")
        return handle

    def measurement(self, measurement_id: str) -> Measurement:
        return self._require(measurement_id).metadata['measurement']

    def get(self, part_id: str) -> Optional[Any]:
        """Descriptor registered under a sub-part id, or None."""
        found = self.registry.find_part(part_id)
        if found is None or found[0].kind != MEASUREMENT_KIND:
            return None
        return found[1]

    def is_visible(self, measurement_id: str) -> bool:
        return self._require(measurement_id).visible

    def set_visibility(self, measurement_id: str, visible: bool) -> None:
        self._require(measurement_id)
        self.registry.set_visibility(measurement_id, visible)

    def remove(self, measurement_id: str) -> None:
        self._require(measurement_id)
        self.registry.remove(measurement_id)

    def list_measurements(self) -> List[Measurement]:
        return [h.metadata['measurement'] for h in self.registry.list_all(MEASUREMENT_KIND)]

    def clear(self) -> int:
        ids = [h.id for h in self.registry.list_all(MEASUREMENT_KIND)]
        result = self.registry.remove_many(ids)
        if result.failed:
            raise next(iter(result.failed.values()))
        return len(result.succeeded)

    def summary(self) -> Dict[str, Any]:
        return {m.id: {'type': m.type, 'value': round(m.value, 3), 'label': m.label_text}
                for m in self.list_measurements()}


__all__ = [
    "MeasurementGeometryBuilder", "Measurement", "DistanceMeasurement", "AngleMeasurement",
    "DihedralMeasurement", "DistanceResult", "AngleResult", "DihedralResult",
    "format_distance", "format_angle", "DISTANCE", "ANGLE", "DIHEDRAL", "ARITY",
]
