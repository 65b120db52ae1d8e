"""Interaction records and detection options shared by all detectors."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

from analysis.structure import Atom
from utils.errors import ValidationError

HYDROGEN_BOND = "hydrogen-bond"
SALT_BRIDGE = "salt-bridge"
HYDROPHOBIC = "hydrophobic"
PI_STACKING = "pi-stacking"
CATION_PI = "cation-pi"
ALL_TYPES = "all"

INTERACTION_TYPES: Tuple[str, ...] = (HYDROGEN_BOND, SALT_BRIDGE, HYDROPHOBIC, PI_STACKING, CATION_PI)
STRENGTHS: Tuple[str, ...] = ("strong", "moderate", "weak")

BOND_TYPES: Tuple[str, ...] = (
    "backbone-backbone",
    "backbone-sidechain",
    "sidechain-sidechain",
    "base-pair",
    "water-mediated",
)

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class HydrogenAtom:
    """Hydrogen participating in a bond; ``inferred`` marks a computed position."""
    name: str
    position: Vec3
    inferred: bool = False


@dataclass
class Interaction:
    """A detected non-covalent interaction.

    ``participants`` are the atoms defining the interaction (for ring-based
    types these are the ring atoms / cation atom). ``endpoints`` are the two
    anchor positions a renderer draws between.
    """
    id: str
    kind: str
    participants: Tuple[Atom, ...]
    distance: float
    strength: str
    endpoints: Tuple[Vec3, Vec3]
    angle: Optional[float] = None
    subtype: Optional[str] = None
    residues: Tuple[str, str] = ("", "")
    chains: Tuple[str, str] = ("", "")
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.kind,
            'subtype': self.subtype,
            'residue1': self.residues[0],
            'residue2': self.residues[1],
            'chain1': self.chains[0],
            'chain2': self.chains[1],
            'distance': round(self.distance, 3),
            'angle': None if self.angle is None else round(self.angle, 2),
            'strength': self.strength,
            'atoms': [a.label for a in self.participants],
            'endpoints': [list(p) for p in self.endpoints],
            'metadata': dict(self.metadata),
        }


@dataclass
class HydrogenBond(Interaction):
    donor: Optional[Atom] = None
    acceptor: Optional[Atom] = None
    hydrogen: Optional[HydrogenAtom] = None
    bond_type: str = "sidechain-sidechain"

    @property
    def hydrogen_inferred(self) -> bool:
        return self.hydrogen is not None and self.hydrogen.inferred

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out.update({
            'donor_atom': self.donor.label if self.donor else None,
            'acceptor_atom': self.acceptor.label if self.acceptor else None,
            'hydrogen_atom': None if self.hydrogen is None else {
                'name': self.hydrogen.name,
                'position': list(self.hydrogen.position),
                'inferred': self.hydrogen.inferred,
            },
            'bond_type': self.bond_type,
        })
        return out


@dataclass(frozen=True)
class FocusResidue:
    chain_id: str
    residue_seq: int


@dataclass(frozen=True)
class DetectionOptions:
    """Options for ``InteractionDetector.detect``.

    ``max_distance`` of None uses the per-type default from InteractionConfig;
    ``min_angle`` / ``min_distance`` of None use the hydrogen bond defaults.
    """
    type: str = ALL_TYPES
    max_distance: Optional[float] = None
    min_distance: Optional[float] = None
    min_angle: Optional[float] = None
    search_radius: float = 5.0
    include_water: bool = False
    infer_hydrogens: bool = False

    def __post_init__(self):
        if self.type != ALL_TYPES and self.type not in INTERACTION_TYPES:
            raise ValidationError(
                f"unknown interaction type '{self.type}' (expected one of {', '.join(INTERACTION_TYPES)} or 'all')")
        if self.max_distance is not None and self.max_distance <= 0:
            raise ValidationError(f"max_distance must be positive, got {self.max_distance}")
        if self.search_radius < 0:
            raise ValidationError(f"search_radius must be non-negative, got {self.search_radius}")
        if self.min_angle is not None and not 0.0 <= self.min_angle <= 180.0:
            raise ValidationError(f"min_angle must lie in [0, 180], got {self.min_angle}")

    @property
    def types(self) -> List[str]:
        return list(INTERACTION_TYPES) if self.type == ALL_TYPES else [self.type]

    def with_type(self, interaction_type: str) -> "DetectionOptions":
        return replace(self, type=interaction_type)


__all__ = [
    "HYDROGEN_BOND", "SALT_BRIDGE", "HYDROPHOBIC", "PI_STACKING", "CATION_PI", "ALL_TYPES",
    "INTERACTION_TYPES", "STRENGTHS", "BOND_TYPES",
    "HydrogenAtom", "Interaction", "HydrogenBond", "FocusResidue", "DetectionOptions",
]
