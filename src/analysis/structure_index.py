"""Aromatic ring index shared by the ring-based detectors (π-π, cation–π).

Rings are extracted once per call into arrays of centers / normals so the
detectors can prune ring pairs with a SpatialIndex over the centers.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

import numpy as np

from analysis.structure import Atom, ResidueKey, Structure
from geometry.core import ring_geometry


@dataclass
class AromaticRingRecord:
    residue_key: ResidueKey
    residue_id: str
    chain_id: str
    ring_type: str
    atoms: List[Atom]
    center: np.ndarray  # (3,)
    normal: np.ndarray  # (3,)


@dataclass
class AromaticRingIndex:
    rings: List[AromaticRingRecord]
    centers: np.ndarray  # (N,3)
    normals: np.ndarray  # (N,3)

    def __len__(self):  # pragma: no cover - trivial
        return len(self.rings)


# TRP indole is treated as one fused ring system
AROMATIC_ATOMS = {
    'PHE': ('CG', 'CD1', 'CD2', 'CE1', 'CE2', 'CZ'),
    'TYR': ('CG', 'CD1', 'CD2', 'CE1', 'CE2', 'CZ'),
    'TRP': ('CG', 'CD1', 'CD2', 'NE1', 'CE2', 'CE3', 'CZ2', 'CZ3', 'CH2'),
    'HIS': ('CG', 'ND1', 'CD2', 'CE1', 'NE2'),
}

MIN_RING_ATOMS = 5


def build_aromatic_ring_index(structure: Structure,
                              candidates: Optional[Sequence[int]] = None) -> AromaticRingIndex:
    """Extract aromatic rings; with ``candidates`` only rings touching that atom set are kept."""
    wanted: Optional[Set[int]] = None if candidates is None else set(candidates)
    by_residue: Dict[ResidueKey, List[Atom]] = {}
    for atom in structure:
        names = AROMATIC_ATOMS.get(atom.residue_name)
        if names and atom.atom_name in names:
            by_residue.setdefault(atom.residue_key, []).append(atom)
    rings: List[AromaticRingRecord] = []
    for key, atoms in by_residue.items():
        if len(atoms) < MIN_RING_ATOMS:
            continue
        if wanted is not None and not any(a.index in wanted for a in atoms):
            continue
        center, normal = ring_geometry(structure.coords[[a.index for a in atoms]])
        rings.append(AromaticRingRecord(
            residue_key=key,
            residue_id=atoms[0].residue_id,
            chain_id=atoms[0].chain_id,
            ring_type=atoms[0].residue_name,
            atoms=atoms,
            center=center,
            normal=normal,
        ))
    if rings:
        centers = np.vstack([r.center for r in rings])
        normals = np.vstack([r.normal for r in rings])
    else:
        centers = np.zeros((0, 3))
        normals = np.zeros((0, 3))
    return AromaticRingIndex(rings=rings, centers=centers, normals=normals)


__all__ = ["AromaticRingRecord", "AromaticRingIndex", "build_aromatic_ring_index", "AROMATIC_ATOMS"]
