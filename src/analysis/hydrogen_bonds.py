"""
Hydrogen bond detection.

Donors and acceptors come from residue-specific tables (protein side chains,
backbone amide / carbonyl, nucleic-acid bases, water when requested) plus a
generic rule for ligands: any N/O carrying an explicit hydrogen donates and
any N/O/S/F accepts. Pairs are pruned through the structure's SpatialIndex,
then tested for the donor–acceptor distance window and the D-H...A angle.
"""

import time
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from analysis.base import HYDROGEN_BOND, DetectionOptions, HydrogenAtom, HydrogenBond
from analysis.base_detector import BaseDetector, register_detector
from analysis.hydrogen_inference import HydrogenInferrer
from analysis.structure import Atom, Structure, is_amino_acid, is_nucleic, is_water
from geometry.core import angle_degrees, to_tuple
from utils.instrumentation import DetectionFunnel

# Angle assumed when no hydrogen position is available (ideal linear D-H...A)
IDEAL_ANGLE = 180.0

# Residue name -> canonical base letter
_NUCLEIC_BASE = {
    'DA': 'A', 'A': 'A', 'ADE': 'A',
    'DG': 'G', 'G': 'G', 'GUA': 'G',
    'DC': 'C', 'C': 'C', 'CYT': 'C',
    'DT': 'T', 'THY': 'T',
    'DU': 'U', 'U': 'U', 'URA': 'U',
}

NUCLEIC_DONORS = {
    'A': {'N6'},
    'G': {'N1', 'N2'},
    'C': {'N4'},
    'T': {'N3'},
    'U': {'N3'},
}

NUCLEIC_ACCEPTORS = {
    'A': {'N1', 'N3', 'N7'},
    'G': {'O6', 'N3', 'N7'},
    'C': {'O2', 'N3'},
    'T': {'O2', 'O4'},
    'U': {'O2', 'O4'},
}

NUCLEIC_BACKBONE_ACCEPTORS = {'OP1', 'OP2', 'O1P', 'O2P'}


def classify_strength(distance: float, angle: float, config=None) -> str:
    """strong / moderate / weak from (distance, angle); exact boundaries fall to the weaker bucket."""
    strong_d = getattr(config, 'hbond_strong_distance', 2.8)
    strong_a = getattr(config, 'hbond_strong_angle', 170.0)
    moderate_d = getattr(config, 'hbond_moderate_distance', 3.2)
    moderate_a = getattr(config, 'hbond_moderate_angle', 140.0)
    if distance < strong_d and angle > strong_a:
        return 'strong'
    if distance < moderate_d and angle > moderate_a:
        return 'moderate'
    return 'weak'


def is_nucleic_base_atom(atom: Atom) -> bool:
    base = _NUCLEIC_BASE.get(atom.residue_name, "")
    return atom.atom_name in NUCLEIC_DONORS.get(base, ()) or atom.atom_name in NUCLEIC_ACCEPTORS.get(base, ())


def _is_backbone(atom: Atom) -> bool:
    # Sugar-phosphate atoms of nucleotides count as backbone
    if is_nucleic(atom.residue_name):
        return not is_nucleic_base_atom(atom)
    return atom.is_backbone


def classify_bond_type(donor: Atom, acceptor: Atom) -> str:
    """Bond category from residue identity and backbone / side-chain atom class."""
    if is_nucleic_base_atom(donor) and is_nucleic_base_atom(acceptor):
        return 'base-pair'
    if is_water(donor.residue_name) or is_water(acceptor.residue_name):
        return 'water-mediated'
    donor_bb = _is_backbone(donor)
    acceptor_bb = _is_backbone(acceptor)
    if donor_bb and acceptor_bb:
        return 'backbone-backbone'
    if donor_bb or acceptor_bb:
        return 'backbone-sidechain'
    return 'sidechain-sidechain'


@register_detector(HYDROGEN_BOND)
class HydrogenBondDetector(BaseDetector):
    """Detects hydrogen bonds between candidate atoms of a Structure."""

    def __init__(self, config):
        super().__init__(config)
        self.min_distance = self.interaction_config.hbond_min_distance
        self.angle_cutoff = self.interaction_config.hbond_angle_cutoff
        self.explicit_h_distance = self.interaction_config.hbond_explicit_h_distance
        self._h_cache: Dict[int, List[Atom]] = {}

        self.donors = {
            'ARG': {'NE', 'NH1', 'NH2'},
            'ASN': {'ND2'},
            'GLN': {'NE2'},
            'HIS': {'ND1', 'NE2'},
            'LYS': {'NZ'},
            'SER': {'OG'},
            'THR': {'OG1'},
            'TRP': {'NE1'},
            'TYR': {'OH'},
            'CYS': {'SG'},
        }
        self.acceptors = {
            'ASP': {'OD1', 'OD2'},
            'GLU': {'OE1', 'OE2'},
            'ASN': {'OD1'},
            'GLN': {'OE1'},
            'HIS': {'ND1', 'NE2'},
            'SER': {'OG'},
            'THR': {'OG1'},
            'TYR': {'OH'},
            'MET': {'SD'},
            'CYS': {'SG'},
        }
        self.backbone_donors = {'N'}
        self.backbone_acceptors = {'O', 'OXT'}

    # ------------------------------------------------------------------ roles
    def _is_donor(self, structure: Structure, atom: Atom, include_water: bool) -> bool:
        resname = atom.residue_name
        if is_water(resname):
            return include_water and atom.element == 'O'
        if is_amino_acid(resname):
            if atom.atom_name in self.backbone_donors:
                return resname != 'PRO'
            return atom.atom_name in self.donors.get(resname, ())
        if is_nucleic(resname):
            return atom.atom_name in NUCLEIC_DONORS.get(_NUCLEIC_BASE.get(resname, ''), ())
        return atom.element in ('N', 'O') and bool(self._explicit_hydrogens(structure, atom))

    def _is_acceptor(self, atom: Atom, include_water: bool) -> bool:
        resname = atom.residue_name
        if is_water(resname):
            return include_water and atom.element == 'O'
        if is_amino_acid(resname):
            if atom.atom_name in self.backbone_acceptors:
                return True
            return atom.atom_name in self.acceptors.get(resname, ())
        if is_nucleic(resname):
            base = _NUCLEIC_BASE.get(resname, '')
            return atom.atom_name in NUCLEIC_ACCEPTORS.get(base, ()) or atom.atom_name in NUCLEIC_BACKBONE_ACCEPTORS
        return atom.element in ('N', 'O', 'S', 'F')

    def _explicit_hydrogens(self, structure: Structure, donor: Atom) -> List[Atom]:
        cached = self._h_cache.get(donor.index)
        if cached is not None:
            return cached
        origin = structure.coords[donor.index]
        limit2 = self.explicit_h_distance ** 2
        found = []
        for idx in structure.residue_atom_indices(donor.chain_id, donor.residue_seq):
            atom = structure[idx]
            if not atom.is_hydrogen:
                continue
            diff = structure.coords[idx] - origin
            if float(diff @ diff) <= limit2:
                found.append(atom)
        self._h_cache[donor.index] = found
        return found

    # -------------------------------------------------------------- detection
    def detect(self, structure: Structure, candidates: Optional[Sequence[int]] = None,
               options: Optional[DetectionOptions] = None,
               inferrer: Optional[HydrogenInferrer] = None) -> List[HydrogenBond]:
        options = options or DetectionOptions(type=HYDROGEN_BOND)
        self._h_cache = {}
        funnel = DetectionFunnel(HYDROGEN_BOND)
        self.last_funnel = funnel
        if len(structure) == 0:
            return []

        max_distance = self.max_distance(options)
        min_distance = self.min_distance if options.min_distance is None else float(options.min_distance)
        min_angle = self.angle_cutoff if options.min_angle is None else float(options.min_angle)
        if options.infer_hydrogens and inferrer is None:
            inferrer = HydrogenInferrer(structure, self.config)

        t_pair = time.perf_counter()
        donors: List[Atom] = []
        acceptor_mask = np.zeros(len(structure), dtype=bool)
        for idx in self.candidate_indices(structure, candidates):
            atom = structure[idx]
            if atom.is_hydrogen:
                continue
            if self._is_donor(structure, atom, options.include_water):
                donors.append(atom)
            if self._is_acceptor(atom, options.include_water):
                acceptor_mask[idx] = True
        n_acceptors = int(acceptor_mask.sum())
        pairs = self.neighbor_pairs(structure, donors, acceptor_mask, max_distance)
        funnel.update_counts(raw=len(donors) * n_acceptors, candidate=len(pairs))
        pair_gen_seconds = time.perf_counter() - t_pair

        t_eval = time.perf_counter()
        best: Dict[frozenset, HydrogenBond] = {}
        inferred_count = 0
        for donor, acceptor in pairs:
            d_pos = structure.coords[donor.index]
            a_pos = structure.coords[acceptor.index]
            distance = float(np.linalg.norm(a_pos - d_pos))
            if distance < min_distance or distance > max_distance:
                continue
            hydrogen, angle = self._best_hydrogen(structure, donor, a_pos, inferrer)
            if angle < min_angle:
                continue
            if hydrogen is not None and hydrogen.inferred:
                inferred_count += 1
            bond = HydrogenBond(
                id="",
                kind=HYDROGEN_BOND,
                participants=(donor, acceptor),
                distance=distance,
                angle=angle,
                strength=classify_strength(distance, angle, self.interaction_config),
                endpoints=(to_tuple(d_pos), to_tuple(a_pos)),
                residues=(donor.residue_id, acceptor.residue_id),
                chains=(donor.chain_id, acceptor.chain_id),
                donor=donor,
                acceptor=acceptor,
                hydrogen=hydrogen,
                bond_type=classify_bond_type(donor, acceptor),
            )
            key = frozenset((donor.index, acceptor.index))
            current = best.get(key)
            if current is None or (bond.angle, -bond.distance) > (current.angle, -current.distance):
                best[key] = bond
        eval_seconds = time.perf_counter() - t_eval

        t_build = time.perf_counter()
        bonds = self._resolve_water_bridges(list(best.values()))
        bonds.sort(key=lambda b: (b.donor.index, b.acceptor.index))
        for n, bond in enumerate(bonds, start=1):
            bond.id = f"{HYDROGEN_BOND}-{n}"
        funnel.update_counts(accepted=len(bonds))
        funnel.extra.update({
            'donors': len(donors),
            'acceptors': n_acceptors,
            'inferred_hydrogens': inferred_count,
        })
        funnel.finalize(pair_gen_seconds=pair_gen_seconds, eval_seconds=eval_seconds,
                        build_seconds=time.perf_counter() - t_build)
        self._log_summary(
            f"Detected {len(bonds)} hydrogen bonds (donors={len(donors)}, acceptors={n_acceptors}, "
            f"candidates={funnel.candidate_pairs})")
        return bonds

    def _best_hydrogen(self, structure: Structure, donor: Atom, acceptor_pos: np.ndarray,
                       inferrer: Optional[HydrogenInferrer]) -> Tuple[Optional[HydrogenAtom], float]:
        """Hydrogen giving the most linear D-H...A angle, with that angle."""
        d_pos = structure.coords[donor.index]
        explicit = self._explicit_hydrogens(structure, donor)
        if explicit:
            best_h, best_angle = None, -1.0
            for h in explicit:
                angle = angle_degrees(d_pos, structure.coords[h.index], acceptor_pos)
                if angle > best_angle:
                    best_h, best_angle = h, angle
            return HydrogenAtom(name=best_h.atom_name, position=best_h.position, inferred=False), best_angle
        if inferrer is not None:
            inferred = inferrer.infer(donor)
            if inferred is not None:
                return inferred, angle_degrees(d_pos, inferred.position, acceptor_pos)
        return None, IDEAL_ANGLE

    def _resolve_water_bridges(self, bonds: List[HydrogenBond]) -> List[HydrogenBond]:
        """Keep water bonds only where one water atom bridges two or more distinct residues."""
        partners: Dict[int, Dict[Tuple[str, int], str]] = {}
        water_bonds: Dict[int, List[HydrogenBond]] = {}
        kept: List[HydrogenBond] = []
        for bond in bonds:
            donor_water = is_water(bond.donor.residue_name)
            acceptor_water = is_water(bond.acceptor.residue_name)
            if not donor_water and not acceptor_water:
                kept.append(bond)
                continue
            if donor_water and acceptor_water:
                continue
            water, other = (bond.donor, bond.acceptor) if donor_water else (bond.acceptor, bond.donor)
            partners.setdefault(water.index, {})[other.residue_key] = f"{other.chain_id}:{other.residue_id}"
            water_bonds.setdefault(water.index, []).append(bond)
        for water_index, group in water_bonds.items():
            bridged = partners[water_index]
            if len(bridged) < 2:
                continue
            labels = sorted(bridged.values())
            for bond in group:
                bond.metadata['bridged_residues'] = labels
                bond.metadata['water_atom'] = water_index
                kept.append(bond)
        if water_bonds:
            logger.debug(f"Water bridges: {sum(1 for w in water_bonds if len(partners[w]) >= 2)} of {len(water_bonds)} waters")
        return kept


__all__ = ["HydrogenBondDetector", "classify_strength", "classify_bond_type", "IDEAL_ANGLE"]
