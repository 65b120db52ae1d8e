"""Common detector interface and registration decorator.

Each interaction type is implemented by one detector class annotated with
``@register_detector(<interaction type>)``. ``analysis.registry`` imports the
detector modules so that the registry is fully populated before lookup.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from analysis.base import DetectionOptions, Interaction
from analysis.structure import Atom, Structure
from utils.instrumentation import DetectionFunnel
from utils.settings import get_settings

# Interaction type -> detector class
DETECTOR_REGISTRY: Dict[str, type] = {}


def register_detector(key: str) -> Callable[[type], type]:
    """Decorator registering a detector class under an interaction type key."""

    def _decorator(cls: type) -> type:
        DETECTOR_REGISTRY[key] = cls
        cls.interaction_type = key
        return cls

    return _decorator


class BaseDetector:
    """Shared plumbing: config access, cutoff resolution, log gating."""

    interaction_type = ""

    def __init__(self, config):
        self.config = config
        self.interaction_config = config.interactions
        self.last_funnel: Optional[DetectionFunnel] = None

    def max_distance(self, options: DetectionOptions) -> float:
        if options.max_distance is not None:
            return float(options.max_distance)
        return float(self.interaction_config.default_max_distance(self.interaction_type))

    def candidate_indices(self, structure: Structure, candidates: Optional[Sequence[int]]) -> Sequence[int]:
        return range(len(structure)) if candidates is None else candidates

    def neighbor_pairs(self, structure: Structure, sources: List[Atom], target_mask: np.ndarray,
                       radius: float, symmetric: bool = False) -> List[Tuple[Atom, Atom]]:
        """(source, target) atom pairs within ``radius``, never within one residue.

        ``target_mask`` is a boolean array over structure indices. With
        ``symmetric`` (sources and targets drawn from the same set) each unordered
        pair is produced once.
        """
        if not sources:
            return []
        pairs: List[Tuple[Atom, Atom]] = []
        neighbor_lists = structure.spatial_index.query_many(
            [structure.coords[a.index] for a in sources], radius)
        for source, neighbors in zip(sources, neighbor_lists):
            for idx in neighbors:
                if not target_mask[idx] or idx == source.index:
                    continue
                if symmetric and idx < source.index:
                    continue
                target = structure[idx]
                if target.residue_key == source.residue_key:
                    continue
                pairs.append((source, target))
        return pairs

    def _log_summary(self, message: str) -> None:
        if get_settings().verbose_detector_logs:
            logger.info(message)
        else:
            logger.debug(message)


__all__ = ["DETECTOR_REGISTRY", "register_detector", "BaseDetector"]
