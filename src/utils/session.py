"""Analysis session: one structure plus everything needed to analyse and draw it.

A session owns its own VisualizationRegistry, so measurements and rendered
interactions from one session never leak into another. Use it as a context
manager to have the registry cleared on exit.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from loguru import logger

from analysis.base import DetectionOptions, Interaction
from analysis.detector import FocusLike, InteractionDetector
from analysis.structure import Atom, Structure
from analysis.tables import interactions_to_frame
from geometry.measurements import ARITY, MeasurementGeometryBuilder, MeasurementResult
from performance.timing import TimingCollector, collect_into
from utils.config import AppConfig, load_config
from utils.errors import ArityError
from visualization.interactions import InteractionRenderer
from visualization.registry import BatchResult, VisualizationRegistry
from visualization.renderer import RendererAdapter

_KIND_BY_ARITY = {n: kind for kind, n in ARITY.items()}


class AnalysisSession:
    """Manages the analysis state of a single structure."""

    def __init__(self, structure: Structure, config: Optional[AppConfig] = None,
                 renderer: Optional[RendererAdapter] = None):
        self.session_id = str(uuid.uuid4())
        self.created_at = datetime.now().isoformat()
        self.structure = structure
        self.config = config or load_config()
        self.registry = VisualizationRegistry(renderer)
        self.detector = InteractionDetector(self.config)
        self.measurements = MeasurementGeometryBuilder(self.registry, self.config)
        self.interactions = InteractionRenderer(self.registry, self.config)
        self.last_interactions: List[Interaction] = []
        self.timings = TimingCollector()
        self._closed = False
        logger.debug(f"session {self.session_id} opened for '{structure.name}' ({len(structure)} atoms)")

    def __enter__(self) -> "AnalysisSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def spatial_index(self):
        return self.structure.spatial_index

    @property
    def closed(self) -> bool:
        return self._closed

    def detect(self, focus: Optional[FocusLike] = None,
               options: Optional[DetectionOptions] = None) -> List[Interaction]:
        with collect_into(self.timings):
            self.last_interactions = self.detector.detect(self.structure, focus, options)
        return self.last_interactions

    def detect_and_render(self, focus: Optional[FocusLike] = None,
                          options: Optional[DetectionOptions] = None) -> BatchResult:
        """Detect, drop previously rendered interactions, then render the new ones."""
        interactions = self.detect(focus, options)
        self.interactions.clear()
        return self.interactions.render_many(interactions)

    def measure(self, measurement_id: str, atoms: Sequence[Any],
                color: Optional[str] = None) -> MeasurementResult:
        """Measure between 2, 3 or 4 atoms (or raw positions); the count picks the kind."""
        atoms = list(atoms)
        kind = _KIND_BY_ARITY.get(len(atoms))
        if kind is None:
            raise ArityError("any", "2, 3 or 4", len(atoms))
        points = [a.position if isinstance(a, Atom) else a for a in atoms]
        with collect_into(self.timings):
            return self.measurements.render(measurement_id, kind, points, color)

    def interactions_table(self) -> pd.DataFrame:
        return interactions_to_frame(self.last_interactions)

    def summary(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'created_at': self.created_at,
            'structure': self.structure.name,
            'atoms': len(self.structure),
            'interactions': len(self.last_interactions),
            'funnels': self.detector.funnel_summary(),
            'visualizations': self.registry.get_statistics(),
            'measurements': self.measurements.summary(),
            'timings_ms': self.timings.totals_ms(),
        }

    def close(self) -> None:
        if self._closed:
            return
        removed = self.registry.clear()
        self._closed = True
        self.timings.log_report()
        logger.debug(f"session {self.session_id} closed ({removed} visualizations removed)")


__all__ = ["AnalysisSession"]
