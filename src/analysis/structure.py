"""Immutable atom / structure model consumed by every detector.

Atom records arrive pre-parsed (chain, residue sequence number and name, atom
name, element, position). ``Structure.from_biopython`` adapts a Bio.PDB
structure that a loader has already parsed.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import numpy as np
from Bio.PDB.Polypeptide import is_aa

from geometry.spatial_index import SpatialIndex
from utils.errors import InvalidPositionError, ResidueNotFoundError

WATER_RESIDUES = frozenset({'HOH', 'WAT', 'H2O', 'DOD', 'TIP', 'TIP3', 'SOL'})
NUCLEIC_RESIDUES = frozenset({
    'DA', 'DT', 'DG', 'DC', 'DU', 'A', 'U', 'G', 'C',
    'ADE', 'THY', 'GUA', 'CYT', 'URA',
})
BACKBONE_ATOMS = frozenset({'N', 'CA', 'C', 'O', 'OXT', 'H', 'HA'})

ResidueKey = Tuple[str, int]


def is_water(residue_name: str) -> bool:
    return residue_name.upper() in WATER_RESIDUES


def is_nucleic(residue_name: str) -> bool:
    return residue_name.upper() in NUCLEIC_RESIDUES


@lru_cache(maxsize=512)
def is_amino_acid(residue_name: str) -> bool:
    return is_aa(residue_name.upper(), standard=True)


def _guess_element(atom_name: str) -> str:
    letters = [ch for ch in atom_name.strip() if ch.isalpha()]
    return letters[0].upper() if letters else ''


@dataclass(frozen=True)
class Atom:
    """One atom record. ``index`` is its position within the owning Structure."""
    chain_id: str
    residue_seq: int
    residue_name: str
    atom_name: str
    element: str
    position: Tuple[float, float, float]
    index: int = -1

    @property
    def residue_id(self) -> str:
        return f"{self.residue_name}{self.residue_seq}"

    @property
    def residue_key(self) -> ResidueKey:
        return (self.chain_id, self.residue_seq)

    @property
    def is_hydrogen(self) -> bool:
        return self.element in ('H', 'D')

    @property
    def is_backbone(self) -> bool:
        return self.atom_name in BACKBONE_ATOMS and is_amino_acid(self.residue_name)

    @property
    def label(self) -> str:
        return f"{self.chain_id}:{self.residue_id}:{self.atom_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chain_id': self.chain_id,
            'residue_seq': self.residue_seq,
            'residue_name': self.residue_name,
            'residue_id': self.residue_id,
            'atom_name': self.atom_name,
            'element': self.element,
            'position': list(self.position),
        }


AtomLike = Union[Atom, Mapping[str, Any]]


def _coerce_atom(record: AtomLike, index: int) -> Atom:
    if isinstance(record, Atom):
        src = record
        chain_id, seq, resname, name, element, pos = (
            src.chain_id, src.residue_seq, src.residue_name, src.atom_name, src.element, src.position)
    else:
        chain_id = str(record.get('chain_id', 'A'))
        seq = int(record['residue_seq'])
        resname = str(record['residue_name']).strip().upper()
        name = str(record['atom_name']).strip().upper()
        element = str(record.get('element') or '').strip().upper()
        pos = record.get('position')
    if pos is None or len(pos) != 3:
        raise InvalidPositionError(f"atom #{index} has no valid position: {pos!r}")
    position = (float(pos[0]), float(pos[1]), float(pos[2]))
    if not np.all(np.isfinite(position)):
        raise InvalidPositionError(f"atom #{index} has non-finite position {position}")
    return Atom(
        chain_id=chain_id,
        residue_seq=int(seq),
        residue_name=resname,
        atom_name=name,
        element=element or _guess_element(name),
        position=position,
        index=index,
    )


class Structure:
    """Ordered, read-only atom collection with a lazily built SpatialIndex."""

    def __init__(self, atoms: Iterable[AtomLike] = (), name: str = "structure"):
        self.name = name
        self._atoms: Tuple[Atom, ...] = tuple(_coerce_atom(a, i) for i, a in enumerate(atoms))
        if self._atoms:
            coords = np.array([a.position for a in self._atoms], dtype=np.float64)
        else:
            coords = np.zeros((0, 3), dtype=np.float64)
        coords.setflags(write=False)
        self._coords = coords
        self._residues: Dict[ResidueKey, List[int]] = {}
        for atom in self._atoms:
            self._residues.setdefault(atom.residue_key, []).append(atom.index)
        self._index: Optional[SpatialIndex] = None

    @classmethod
    def from_biopython(cls, bio_structure, model_index: int = 0) -> "Structure":
        """Adapt an already parsed Bio.PDB Structure (one model)."""
        models = list(bio_structure)
        if not models:
            return cls((), name=str(bio_structure.get_id()))
        model = models[model_index]
        records: List[Atom] = []
        for chain in model:
            for residue in chain:
                resname = residue.get_resname().strip().upper()
                seq = int(residue.get_id()[1])
                for atom in residue:
                    element = (atom.element or '').strip().upper()
                    records.append(Atom(
                        chain_id=str(chain.get_id()),
                        residue_seq=seq,
                        residue_name=resname,
                        atom_name=atom.get_name().strip().upper(),
                        element=element if element and element != 'X' else _guess_element(atom.get_name()),
                        position=tuple(float(x) for x in atom.get_coord()),
                    ))
        return cls(records, name=str(bio_structure.get_id()))

    def __len__(self) -> int:
        return len(self._atoms)

    def __iter__(self) -> Iterator[Atom]:
        return iter(self._atoms)

    def __getitem__(self, index: int) -> Atom:
        return self._atoms[index]

    @property
    def atoms(self) -> Tuple[Atom, ...]:
        return self._atoms

    @property
    def coords(self) -> np.ndarray:
        return self._coords

    @property
    def spatial_index(self) -> SpatialIndex:
        if self._index is None:
            self._index = SpatialIndex(self._coords)
        return self._index

    def residue_atom_indices(self, chain_id: str, residue_seq: int) -> List[int]:
        try:
            return list(self._residues[(chain_id, int(residue_seq))])
        except KeyError:
            raise ResidueNotFoundError(chain_id, residue_seq) from None

    def residue_center(self, chain_id: str, residue_seq: int) -> np.ndarray:
        idx = self.residue_atom_indices(chain_id, residue_seq)
        return self._coords[idx].mean(axis=0)


__all__ = [
    "Atom", "Structure", "ResidueKey",
    "WATER_RESIDUES", "NUCLEIC_RESIDUES", "BACKBONE_ATOMS",
    "is_water", "is_nucleic", "is_amino_acid",
]
