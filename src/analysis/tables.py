"""Tabular views of detected interactions (pandas)."""
from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from analysis.base import INTERACTION_TYPES, HydrogenBond, Interaction
from utils.config import get_interaction_display_names

INTERACTION_COLUMNS: List[str] = [
    'ID', 'Interaction_Type', 'Residue_1', 'Chain_1', 'Residue_2', 'Chain_2',
    'Distance_A', 'Angle_deg', 'Strength', 'Bond_Type', 'Atom_1', 'Atom_2',
]


def interactions_to_frame(interactions: Iterable[Interaction]) -> pd.DataFrame:
    """One row per interaction; columns follow ``INTERACTION_COLUMNS``."""
    names = get_interaction_display_names()
    rows = []
    for interaction in interactions:
        atoms = [a.label for a in interaction.participants]
        rows.append({
            'ID': interaction.id,
            'Interaction_Type': names.get(interaction.kind, interaction.kind),
            'Residue_1': interaction.residues[0],
            'Chain_1': interaction.chains[0],
            'Residue_2': interaction.residues[1],
            'Chain_2': interaction.chains[1],
            'Distance_A': round(interaction.distance, 3),
            'Angle_deg': None if interaction.angle is None else round(interaction.angle, 2),
            'Strength': interaction.strength,
            'Bond_Type': interaction.bond_type if isinstance(interaction, HydrogenBond) else '',
            'Atom_1': atoms[0] if atoms else '',
            'Atom_2': atoms[-1] if len(atoms) > 1 else '',
        })
    return pd.DataFrame(rows, columns=INTERACTION_COLUMNS)


def summary_frame(interactions: Iterable[Interaction]) -> pd.DataFrame:
    """Counts per interaction type and strength; every known type gets a row."""
    names = get_interaction_display_names()
    df = interactions_to_frame(interactions)
    counts = pd.crosstab(df['Interaction_Type'], df['Strength']) if not df.empty else pd.DataFrame()
    index = [names[t] for t in INTERACTION_TYPES]
    counts = counts.reindex(index=index, columns=['strong', 'moderate', 'weak'], fill_value=0)
    counts = counts.fillna(0).astype(int)
    counts['Total'] = counts.sum(axis=1)
    counts.index.name = 'Interaction_Type'
    return counts.reset_index()


__all__ = ["interactions_to_frame", "summary_frame", "INTERACTION_COLUMNS"]
