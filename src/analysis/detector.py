"""Public detection entry point.

``InteractionDetector.detect(structure, focus, options)`` gathers candidate
atoms (whole structure, or the focal residue plus everything within
``search_radius`` of its centroid) and dispatches to the registered
per-type detectors. Detection never mutates the structure; the structure's
SpatialIndex is built once and reused by every detector and call.
"""
from __future__ import annotations

import weakref
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from loguru import logger

from analysis.base import HYDROGEN_BOND, DetectionOptions, FocusResidue, Interaction
from analysis.hydrogen_inference import HydrogenInferrer
from analysis.registry import get_detector, list_interaction_keys
from analysis.structure import Structure
from performance.timing import time_block
from utils.config import AppConfig, load_config
from utils.instrumentation import DetectionFunnel

FocusLike = Union[FocusResidue, Tuple[str, int], Mapping[str, Any]]


def _coerce_focus(focus: FocusLike) -> FocusResidue:
    if isinstance(focus, FocusResidue):
        return focus
    if isinstance(focus, Mapping):
        return FocusResidue(chain_id=str(focus['chain_id']), residue_seq=int(focus['residue_seq']))
    chain_id, residue_seq = focus
    return FocusResidue(chain_id=str(chain_id), residue_seq=int(residue_seq))


class InteractionDetector:
    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or load_config()
        self._detectors = {key: get_detector(key, self.config) for key in list_interaction_keys()}
        # One HydrogenInferrer per live structure so inferred positions are computed once
        self._inferrers: "weakref.WeakKeyDictionary[Structure, HydrogenInferrer]" = weakref.WeakKeyDictionary()
        self.last_funnels: Dict[str, DetectionFunnel] = {}

    def candidate_atoms(self, structure: Structure, focus: Optional[FocusLike],
                        search_radius: float) -> Optional[List[int]]:
        """Atom indices considered for detection; None means the whole structure."""
        if focus is None:
            return None
        focus = _coerce_focus(focus)
        own = structure.residue_atom_indices(focus.chain_id, focus.residue_seq)
        center = structure.residue_center(focus.chain_id, focus.residue_seq)
        nearby = structure.spatial_index.query(center, search_radius)
        return sorted(set(nearby).union(own))

    def inferrer_for(self, structure: Structure) -> HydrogenInferrer:
        inferrer = self._inferrers.get(structure)
        if inferrer is None:
            inferrer = HydrogenInferrer(structure, self.config)
            self._inferrers[structure] = inferrer
        return inferrer

    def detect(self, structure: Structure, focus: Optional[FocusLike] = None,
               options: Optional[DetectionOptions] = None) -> List[Interaction]:
        options = options or DetectionOptions()
        self.last_funnels = {}
        if len(structure) == 0:
            return []
        candidates = self.candidate_atoms(structure, focus, options.search_radius)
        results: List[Interaction] = []
        for key in options.types:
            detector = self._detectors[key]
            typed = options.with_type(key)
            with time_block(f"detect.{key}", items=len(structure) if candidates is None else len(candidates)):
                if key == HYDROGEN_BOND:
                    inferrer = self.inferrer_for(structure) if options.infer_hydrogens else None
                    found = detector.detect(structure, candidates, typed, inferrer=inferrer)
                else:
                    found = detector.detect(structure, candidates, typed)
            if detector.last_funnel is not None:
                self.last_funnels[key] = detector.last_funnel
            results.extend(found)
        logger.debug(
            f"detect(type={options.type}, focus={focus}, candidates="
            f"{'all' if candidates is None else len(candidates)}) -> {len(results)} interactions")
        return results

    def detect_hydrogen_bonds(self, structure: Structure, focus: Optional[FocusLike] = None,
                              **option_overrides) -> List[Interaction]:
        """Convenience wrapper: ``detect`` restricted to hydrogen bonds."""
        return self.detect(structure, focus, DetectionOptions(type=HYDROGEN_BOND, **option_overrides))

    def funnel_summary(self) -> Dict[str, Dict[str, Any]]:
        return {k: f.as_dict() for k, f in self.last_funnels.items()}


__all__ = ["InteractionDetector"]
