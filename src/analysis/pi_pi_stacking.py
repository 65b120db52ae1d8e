"""
π-π stacking interaction detection.
Detects aromatic stacking between ring systems of PHE, TYR, TRP and HIS.

Geometry (all angular / offset bounds come from InteractionConfig):
  * ring centroid distance <= max distance (default 5.0 Å)
  * inter-plane angle < pi_pi_angle_cutoff      -> parallel
      lateral offset < pi_pi_face_offset         -> face_to_face
      otherwise                                  -> offset
  * inter-plane angle > pi_pi_perpendicular_angle -> edge_to_face
  * anything in between                          -> offset
"""

import time
from typing import List, Optional, Sequence

import numpy as np

from analysis.base import PI_STACKING, DetectionOptions, Interaction
from analysis.base_detector import BaseDetector, register_detector
from analysis.structure import Structure
from analysis.structure_index import AromaticRingRecord, build_aromatic_ring_index
from geometry.core import plane_angle, to_tuple
from geometry.spatial_index import SpatialIndex
from utils.instrumentation import DetectionFunnel


@register_detector(PI_STACKING)
class PiPiDetector(BaseDetector):
    """Detects π-π stacking interactions between aromatic rings."""

    def __init__(self, config):
        super().__init__(config)
        cfg = self.interaction_config
        self.angle_cutoff = cfg.pi_pi_angle_cutoff
        self.perpendicular_angle = cfg.pi_pi_perpendicular_angle
        self.face_offset = cfg.pi_pi_face_offset
        self.offset_cutoff = cfg.pi_pi_offset_cutoff
        self.offset_max_angle = cfg.pi_pi_offset_max_angle

    def detect(self, structure: Structure, candidates: Optional[Sequence[int]] = None,
               options: Optional[DetectionOptions] = None) -> List[Interaction]:
        options = options or DetectionOptions(type=PI_STACKING)
        funnel = DetectionFunnel(PI_STACKING)
        self.last_funnel = funnel
        if len(structure) == 0:
            return []
        cutoff = self.max_distance(options)

        t_pair = time.perf_counter()
        index = build_aromatic_ring_index(structure, candidates)
        n = len(index)
        if n < 2:
            funnel.extra['rings'] = n
            return []
        ring_index = SpatialIndex(index.centers)
        pairs = [(i, j) for i, neighbors in enumerate(ring_index.query_many(index.centers, cutoff))
                 for j in neighbors if j > i]
        funnel.update_counts(raw=n * (n - 1) // 2, candidate=len(pairs))
        pair_gen_seconds = time.perf_counter() - t_pair

        t_eval = time.perf_counter()
        interactions: List[Interaction] = []
        for i, j in pairs:
            d = float(np.linalg.norm(index.centers[j] - index.centers[i]))
            inter = self._check_pi_pi_interaction(index.rings[i], index.rings[j], d)
            if inter is not None:
                inter.id = f"{PI_STACKING}-{len(interactions) + 1}"
                interactions.append(inter)
        eval_seconds = time.perf_counter() - t_eval

        funnel.update_counts(accepted=len(interactions))
        funnel.extra['rings'] = n
        funnel.finalize(pair_gen_seconds=pair_gen_seconds, eval_seconds=eval_seconds)
        self._log_summary(f"Detected {len(interactions)} π-π interactions among {n} rings")
        return interactions

    def _check_pi_pi_interaction(self, ring1: AromaticRingRecord, ring2: AromaticRingRecord,
                                 distance: float) -> Optional[Interaction]:
        if ring1.residue_key == ring2.residue_key:
            return None
        angle = plane_angle(ring1.normal, ring2.normal)
        offset = self._calculate_offset(ring1, ring2)
        interaction_type = self._classify_pi_pi_type(angle, offset)
        if not self._meets_criteria(interaction_type, angle, offset):
            return None
        return Interaction(
            id="",
            kind=PI_STACKING,
            participants=tuple(ring1.atoms) + tuple(ring2.atoms),
            distance=distance,
            angle=angle,
            strength=self._calculate_pi_pi_strength(distance, angle, offset, interaction_type),
            endpoints=(to_tuple(ring1.center), to_tuple(ring2.center)),
            subtype=interaction_type,
            residues=(ring1.residue_id, ring2.residue_id),
            chains=(ring1.chain_id, ring2.chain_id),
            metadata={'offset': round(offset, 3)},
        )

    def _calculate_offset(self, ring1: AromaticRingRecord, ring2: AromaticRingRecord) -> float:
        """Lateral displacement of ring2's center in ring1's plane."""
        center_vector = ring2.center - ring1.center
        parallel_component = np.dot(center_vector, ring1.normal)
        return float(np.linalg.norm(center_vector - parallel_component * ring1.normal))

    def _classify_pi_pi_type(self, angle: float, offset: float) -> str:
        if angle < self.angle_cutoff:
            return 'face_to_face' if offset < self.face_offset else 'offset'
        if angle > self.perpendicular_angle:
            return 'edge_to_face'
        return 'offset'

    def _meets_criteria(self, interaction_type: str, angle: float, offset: float) -> bool:
        if interaction_type == 'face_to_face':
            return True
        if interaction_type == 'edge_to_face':
            return angle >= (90.0 - self.angle_cutoff)
        return angle <= self.offset_max_angle and offset <= self.offset_cutoff

    def _calculate_pi_pi_strength(self, distance: float, angle: float, offset: float, interaction_type: str) -> str:
        distance_score = max(0.0, (6.0 - distance) / 6.0)
        if interaction_type == 'face_to_face':
            angle_score = max(0.0, (self.angle_cutoff - angle) / self.angle_cutoff)
            offset_score = max(0.0, (3.0 - offset) / 3.0)
            overall_score = (distance_score + angle_score + offset_score) / 3
        elif interaction_type == 'edge_to_face':
            angle_score = max(0.0, (angle - self.perpendicular_angle) / (90.0 - self.perpendicular_angle))
            overall_score = (distance_score + angle_score) / 2
        else:
            overall_score = distance_score * 0.7  # displaced stacking is generally weaker
        if overall_score > 0.7:
            return 'strong'
        if overall_score > 0.4:
            return 'moderate'
        return 'weak'


__all__ = ["PiPiDetector"]
