"""
Hydrophobic contact detection.
Detects non-polar contacts between side-chain carbon / sulfur atoms of hydrophobic residues.
"""
import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from analysis.base import HYDROPHOBIC, DetectionOptions, Interaction
from analysis.base_detector import BaseDetector, register_detector
from analysis.structure import Atom, Structure
from utils.instrumentation import DetectionFunnel


@register_detector(HYDROPHOBIC)
class HydrophobicContactDetector(BaseDetector):
    """Detects hydrophobic contacts; one contact per residue pair (closest atoms)."""

    def __init__(self, config):
        super().__init__(config)
        self.min_separation = int(self.interaction_config.hydrophobic_min_sequence_separation)
        self.strong_cut = self.interaction_config.hydrophobic_strong_distance
        self.moderate_cut = self.interaction_config.hydrophobic_moderate_distance
        # Hydrophobic residues and their key atoms
        self.hydrophobic_atoms = {
            'ALA': {'CB'},
            'VAL': {'CB', 'CG1', 'CG2'},
            'LEU': {'CB', 'CG', 'CD1', 'CD2'},
            'ILE': {'CB', 'CG1', 'CG2', 'CD1'},
            'PHE': {'CB', 'CG', 'CD1', 'CD2', 'CE1', 'CE2', 'CZ'},
            'TRP': {'CB', 'CG', 'CD1', 'CD2', 'CE2', 'CE3', 'CZ2', 'CZ3', 'CH2'},
            'TYR': {'CB', 'CG', 'CD1', 'CD2', 'CE1', 'CE2'},
            'MET': {'CB', 'CG', 'SD', 'CE'},
            'PRO': {'CB', 'CG', 'CD'},
        }

    def _too_local(self, a: Atom, b: Atom) -> bool:
        # Sequence neighbours on one chain are always in contact; skip them
        return a.chain_id == b.chain_id and abs(a.residue_seq - b.residue_seq) < self.min_separation

    def detect(self, structure: Structure, candidates: Optional[Sequence[int]] = None,
               options: Optional[DetectionOptions] = None) -> List[Interaction]:
        options = options or DetectionOptions(type=HYDROPHOBIC)
        funnel = DetectionFunnel(HYDROPHOBIC)
        self.last_funnel = funnel
        if len(structure) == 0:
            return []
        cutoff = self.max_distance(options)

        t_pair = time.perf_counter()
        atoms: List[Atom] = []
        mask = np.zeros(len(structure), dtype=bool)
        for idx in self.candidate_indices(structure, candidates):
            atom = structure[idx]
            if atom.atom_name in self.hydrophobic_atoms.get(atom.residue_name, ()):
                atoms.append(atom)
                mask[idx] = True
        pairs = self.neighbor_pairs(structure, atoms, mask, cutoff, symmetric=True)
        n = len(atoms)
        funnel.update_counts(raw=n * (n - 1) // 2, candidate=len(pairs))
        pair_gen_seconds = time.perf_counter() - t_pair

        t_eval = time.perf_counter()
        closest: Dict[Tuple, Tuple[float, Atom, Atom, int]] = {}
        for a, b in pairs:
            if self._too_local(a, b):
                continue
            d = float(np.linalg.norm(structure.coords[b.index] - structure.coords[a.index]))
            if d > cutoff:
                continue
            first, second = (a, b) if a.residue_key <= b.residue_key else (b, a)
            key = (first.residue_key, second.residue_key)
            count = closest[key][3] + 1 if key in closest else 1
            if key not in closest or d < closest[key][0]:
                closest[key] = (d, first, second, count)
            else:
                closest[key] = closest[key][:3] + (count,)
        eval_seconds = time.perf_counter() - t_eval

        contacts: List[Interaction] = []
        ordered = sorted(closest.values(), key=lambda t: (t[1].index, t[2].index))
        for i, (d, a, b, count) in enumerate(ordered, start=1):
            strength = 'strong' if d < self.strong_cut else 'moderate' if d < self.moderate_cut else 'weak'
            contacts.append(Interaction(
                id=f"{HYDROPHOBIC}-{i}",
                kind=HYDROPHOBIC,
                participants=(a, b),
                distance=d,
                strength=strength,
                endpoints=(a.position, b.position),
                residues=(a.residue_id, b.residue_id),
                chains=(a.chain_id, b.chain_id),
                metadata={'atom_contacts': count},
            ))
        funnel.update_counts(accepted=len(contacts))
        funnel.extra['hydrophobic_atoms'] = n
        funnel.finalize(pair_gen_seconds=pair_gen_seconds, eval_seconds=eval_seconds)
        self._log_summary(f"Detected {len(contacts)} hydrophobic contacts")
        return contacts


__all__ = ["HydrophobicContactDetector"]
