"""Salt bridge detection.

Charged atoms of basic side chains (LYS NZ, ARG NE/NH1/NH2) are paired with
charged oxygens of acidic side chains (ASP OD1/OD2, GLU OE1/OE2). Only
opposite-charge pairs qualify; one bridge is reported per residue pair, using
its closest atom pair.

Strength heuristic (configurable):
  distance < 3.0 Å => strong
  3.0–3.5 Å => moderate
  else weak
"""
import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from analysis.base import SALT_BRIDGE, DetectionOptions, Interaction
from analysis.base_detector import BaseDetector, register_detector
from analysis.structure import Atom, Structure
from utils.instrumentation import DetectionFunnel

POSITIVE_ATOMS = {
    'LYS': {'NZ'},
    'ARG': {'NE', 'NH1', 'NH2'},
}

NEGATIVE_ATOMS = {
    'ASP': {'OD1', 'OD2'},
    'GLU': {'OE1', 'OE2'},
}


def charge_sign(atom: Atom) -> int:
    """+1 / -1 for charged side-chain atoms, 0 otherwise."""
    if atom.atom_name in POSITIVE_ATOMS.get(atom.residue_name, ()):
        return 1
    if atom.atom_name in NEGATIVE_ATOMS.get(atom.residue_name, ()):
        return -1
    return 0


@register_detector(SALT_BRIDGE)
class SaltBridgeDetector(BaseDetector):
    def __init__(self, config):
        super().__init__(config)
        self.strong_cut = self.interaction_config.salt_bridge_strong_distance
        self.moderate_cut = self.interaction_config.salt_bridge_moderate_distance

    def classify_strength(self, distance: float) -> str:
        if distance < self.strong_cut:
            return 'strong'
        if distance < self.moderate_cut:
            return 'moderate'
        return 'weak'

    def detect(self, structure: Structure, candidates: Optional[Sequence[int]] = None,
               options: Optional[DetectionOptions] = None) -> List[Interaction]:
        options = options or DetectionOptions(type=SALT_BRIDGE)
        funnel = DetectionFunnel(SALT_BRIDGE)
        self.last_funnel = funnel
        if len(structure) == 0:
            return []
        cutoff = self.max_distance(options)

        t_pair = time.perf_counter()
        positives: List[Atom] = []
        negative_mask = np.zeros(len(structure), dtype=bool)
        for idx in self.candidate_indices(structure, candidates):
            sign = charge_sign(structure[idx])
            if sign > 0:
                positives.append(structure[idx])
            elif sign < 0:
                negative_mask[idx] = True
        pairs = self.neighbor_pairs(structure, positives, negative_mask, cutoff)
        funnel.update_counts(raw=len(positives) * int(negative_mask.sum()), candidate=len(pairs))
        pair_gen_seconds = time.perf_counter() - t_pair

        t_eval = time.perf_counter()
        closest: Dict[Tuple, Tuple[float, Atom, Atom]] = {}
        for pos, neg in pairs:
            d = float(np.linalg.norm(structure.coords[neg.index] - structure.coords[pos.index]))
            if d > cutoff:
                continue
            key = (pos.residue_key, neg.residue_key)
            if key not in closest or d < closest[key][0]:
                closest[key] = (d, pos, neg)
        eval_seconds = time.perf_counter() - t_eval

        bridges: List[Interaction] = []
        for n, (d, pos, neg) in enumerate(sorted(closest.values(), key=lambda t: (t[1].index, t[2].index)), start=1):
            bridges.append(Interaction(
                id=f"{SALT_BRIDGE}-{n}",
                kind=SALT_BRIDGE,
                participants=(pos, neg),
                distance=d,
                strength=self.classify_strength(d),
                endpoints=(pos.position, neg.position),
                residues=(pos.residue_id, neg.residue_id),
                chains=(pos.chain_id, neg.chain_id),
                metadata={'positive_atom': pos.label, 'negative_atom': neg.label},
            ))
        funnel.update_counts(accepted=len(bridges))
        funnel.extra.update({'positive_atoms': len(positives), 'negative_atoms': int(negative_mask.sum())})
        funnel.finalize(pair_gen_seconds=pair_gen_seconds, eval_seconds=eval_seconds)
        self._log_summary(f"Detected {len(bridges)} salt bridges")
        return bridges


__all__ = ["SaltBridgeDetector", "charge_sign", "POSITIVE_ATOMS", "NEGATIVE_ATOMS"]
