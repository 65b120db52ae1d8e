"""Cation–π interaction detection.

Heuristic detection:
- Cation groups: LYS (NZ) and ARG (guanidinium centroid of CZ/NH1/NH2).
- Aromatic rings: PHE, TYR, TRP, HIS (shared ring index with the π-π detector).
- Distance criterion: cation center to ring centroid <= 6.0 Å by default.
- Geometry: angle between the ring normal and the centroid→cation vector must not
  exceed ``cation_pi_angle_cutoff`` (45° by default), i.e. the cation sits above
  the ring face rather than beside its edge.

Strength heuristic:
  distance < 4.5 Å => strong
  4.5–5.5 Å => moderate
  else weak
"""
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set

import numpy as np

from analysis.base import CATION_PI, DetectionOptions, Interaction
from analysis.base_detector import BaseDetector, register_detector
from analysis.structure import Atom, ResidueKey, Structure
from analysis.structure_index import build_aromatic_ring_index
from geometry.core import angles_between, to_tuple
from geometry.spatial_index import SpatialIndex
from utils.instrumentation import DetectionFunnel

CATION_GROUPS = {
    'LYS': ('NZ',),
    'ARG': ('CZ', 'NH1', 'NH2'),
}


@dataclass
class CationGroup:
    residue_key: ResidueKey
    residue_id: str
    chain_id: str
    atoms: List[Atom]
    center: np.ndarray


def find_cation_groups(structure: Structure, candidates: Optional[Sequence[int]] = None) -> List[CationGroup]:
    wanted: Optional[Set[int]] = None if candidates is None else set(candidates)
    groups = {}
    for atom in structure:
        names = CATION_GROUPS.get(atom.residue_name)
        if names and atom.atom_name in names:
            groups.setdefault(atom.residue_key, []).append(atom)
    out: List[CationGroup] = []
    for key, atoms in groups.items():
        if wanted is not None and not any(a.index in wanted for a in atoms):
            continue
        out.append(CationGroup(
            residue_key=key,
            residue_id=atoms[0].residue_id,
            chain_id=atoms[0].chain_id,
            atoms=atoms,
            center=structure.coords[[a.index for a in atoms]].mean(axis=0),
        ))
    return out


@register_detector(CATION_PI)
class CationPiDetector(BaseDetector):
    def __init__(self, config):
        super().__init__(config)
        cfg = self.interaction_config
        self.angle_cutoff = cfg.cation_pi_angle_cutoff
        self.strong_cut = cfg.cation_pi_strong_distance
        self.moderate_cut = cfg.cation_pi_moderate_distance

    def classify_strength(self, distance: float) -> str:
        if distance < self.strong_cut:
            return 'strong'
        if distance < self.moderate_cut:
            return 'moderate'
        return 'weak'

    def detect(self, structure: Structure, candidates: Optional[Sequence[int]] = None,
               options: Optional[DetectionOptions] = None) -> List[Interaction]:
        options = options or DetectionOptions(type=CATION_PI)
        funnel = DetectionFunnel(CATION_PI)
        self.last_funnel = funnel
        if len(structure) == 0:
            return []
        cutoff = self.max_distance(options)

        t_pair = time.perf_counter()
        cations = find_cation_groups(structure, candidates)
        rings = build_aromatic_ring_index(structure, candidates)
        if not cations or len(rings) == 0:
            funnel.extra.update({'cations': len(cations), 'rings': len(rings)})
            return []
        cation_centers = np.vstack([c.center for c in cations])
        ring_index = SpatialIndex(rings.centers)
        pairs = [(c, r) for c, near in enumerate(ring_index.query_many(cation_centers, cutoff))
                 for r in near if cations[c].residue_key != rings.rings[r].residue_key]
        funnel.update_counts(raw=len(cations) * len(rings), candidate=len(pairs))
        pair_gen_seconds = time.perf_counter() - t_pair

        t_eval = time.perf_counter()
        interactions: List[Interaction] = []
        ci = np.array([c for c, _ in pairs], dtype=np.intp)
        ri = np.array([r for _, r in pairs], dtype=np.intp)
        offsets = cation_centers[ci] - rings.centers[ri]
        raw = angles_between(rings.normals[ri], offsets)
        angles = np.minimum(raw, 180.0 - raw)
        dists = np.linalg.norm(offsets, axis=1)
        for k, (c, r) in enumerate(pairs):
            angle = float(angles[k])
            if angle > self.angle_cutoff:
                continue
            cation = cations[c]
            ring = rings.rings[r]
            d = float(dists[k])
            interactions.append(Interaction(
                id=f"{CATION_PI}-{len(interactions) + 1}",
                kind=CATION_PI,
                participants=tuple(cation.atoms) + tuple(ring.atoms),
                distance=d,
                angle=angle,
                strength=self.classify_strength(d),
                endpoints=(to_tuple(cation.center), to_tuple(ring.center)),
                residues=(cation.residue_id, ring.residue_id),
                chains=(cation.chain_id, ring.chain_id),
                metadata={'ring_type': ring.ring_type},
            ))
        eval_seconds = time.perf_counter() - t_eval

        funnel.update_counts(accepted=len(interactions))
        funnel.extra.update({'cations': len(cations), 'rings': len(rings)})
        funnel.finalize(pair_gen_seconds=pair_gen_seconds, eval_seconds=eval_seconds)
        self._log_summary(f"Detected {len(interactions)} cation–π interactions")
        return interactions


__all__ = ["CationPiDetector", "CationGroup", "find_cation_groups", "CATION_GROUPS"]
