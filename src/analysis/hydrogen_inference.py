"""Hydrogen position estimation for structures without explicit hydrogens.

The hydrogen is placed on the donor's dominant covalent axis: the normalized
sum of unit vectors pointing from each bonded heavy neighbor to the donor.
For a backbone amide N this is the bisector pointing away from CA and the
preceding residue's C; for a terminal group with a single neighbor it is the
continuation of that bond. Bond lengths come from InteractionConfig
(N-H 1.01 Å, O-H 0.96 Å, S-H 1.34 Å, default 1.0 Å).
"""
from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from analysis.base import HydrogenAtom
from analysis.structure import Atom, Structure
from geometry.core import to_tuple, unit

# First hydrogen name per donor atom (PDB naming)
HYDROGEN_NAMES = {
    'N': 'H',
    'ND1': 'HD1',
    'ND2': 'HD21',
    'NE': 'HE',
    'NE1': 'HE1',
    'NE2': 'HE2',
    'NH1': 'HH11',
    'NH2': 'HH21',
    'NZ': 'HZ1',
    'OG': 'HG',
    'OG1': 'HG1',
    'OH': 'HH',
    'SG': 'HG',
}


class HydrogenInferrer:
    def __init__(self, structure: Structure, config):
        self.structure = structure
        self.interaction_config = config.interactions
        self._cache: Dict[int, Optional[HydrogenAtom]] = {}

    def infer(self, donor: Atom) -> Optional[HydrogenAtom]:
        """Estimated hydrogen for ``donor`` or None when it has no bonded heavy neighbor."""
        if donor.index in self._cache:
            return self._cache[donor.index]
        hydrogen = self._place(donor)
        self._cache[donor.index] = hydrogen
        return hydrogen

    def bond_length(self, element: str) -> float:
        cfg = self.interaction_config
        return float(cfg.hydrogen_bond_lengths.get(element, cfg.default_hydrogen_bond_length))

    def _place(self, donor: Atom) -> Optional[HydrogenAtom]:
        coords = self.structure.coords
        origin = coords[donor.index]
        direction = np.zeros(3)
        bonded = 0
        for idx in self.structure.spatial_index.query(origin, self.interaction_config.covalent_bond_cutoff):
            if idx == donor.index:
                continue
            neighbor = self.structure[idx]
            if neighbor.is_hydrogen:
                continue
            if neighbor.residue_key != donor.residue_key and not self._peptide_link(donor, neighbor):
                continue
            direction += unit(origin - coords[idx])
            bonded += 1
        if bonded == 0:
            return None
        axis = unit(direction)
        if not axis.any():
            return None
        position = origin + axis * self.bond_length(donor.element)
        name = HYDROGEN_NAMES.get(donor.atom_name, f"H{donor.atom_name[1:]}")
        return HydrogenAtom(name=name, position=to_tuple(position), inferred=True)

    @staticmethod
    def _peptide_link(donor: Atom, neighbor: Atom) -> bool:
        # Backbone N is covalently bound to the preceding residue's carbonyl C
        return (donor.atom_name == 'N' and neighbor.atom_name == 'C'
                and neighbor.chain_id == donor.chain_id
                and neighbor.residue_seq == donor.residue_seq - 1)


__all__ = ["HydrogenInferrer", "HYDROGEN_NAMES"]
