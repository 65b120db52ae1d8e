"""Test configuration ensuring src package discoverability, settings reset & structure builders."""
import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]  # points to src/
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from utils.settings import get_settings  # noqa: E402


def reset_settings_cache():  # convenience for tests toggling env flags
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def atom():
    """Factory for atom records accepted by Structure()."""
    def _atom(chain_id, residue_seq, residue_name, atom_name, position, element=None):
        record = {
            'chain_id': chain_id,
            'residue_seq': residue_seq,
            'residue_name': residue_name,
            'atom_name': atom_name,
            'position': tuple(float(x) for x in position),
        }
        if element:
            record['element'] = element
        return record
    return _atom


def hexagon(center, radius=1.39, plane="xy"):
    """Six ring positions (CG, CD1, CE1, CZ, CE2, CD2 order) around ``center``."""
    center = np.asarray(center, dtype=float)
    out = []
    for k in range(6):
        t = np.radians(60.0 * k)
        u, v = radius * np.cos(t), radius * np.sin(t)
        offset = {'xy': (u, v, 0.0), 'xz': (u, 0.0, v), 'yz': (0.0, u, v)}[plane]
        out.append(center + np.asarray(offset))
    return out


RING_NAMES = ('CG', 'CD1', 'CE1', 'CZ', 'CE2', 'CD2')


@pytest.fixture
def phe_ring(atom):
    """Factory for a PHE residue whose ring is a regular hexagon."""
    def _ring(chain_id, residue_seq, center, plane="xy", residue_name="PHE"):
        return [atom(chain_id, residue_seq, residue_name, name, pos, 'C')
                for name, pos in zip(RING_NAMES, hexagon(center, plane=plane))]
    return _ring


def _synthetic_serine_structure(n_atoms, seed=7, density=12.0):
    """Random SER-rich structure with roughly protein-like atom density (Å^3 per atom)."""
    from analysis.structure import Structure

    rng = np.random.default_rng(seed)
    names = (('N', 'N'), ('CA', 'C'), ('C', 'C'), ('O', 'O'), ('CB', 'C'), ('OG', 'O'))
    side = (n_atoms * density) ** (1.0 / 3.0)
    coords = rng.uniform(0.0, side, size=(n_atoms, 3))
    records = []
    for i in range(n_atoms):
        name, element = names[i % len(names)]
        records.append({
            'chain_id': 'A',
            'residue_seq': i // len(names) + 1,
            'residue_name': 'SER',
            'atom_name': name,
            'element': element,
            'position': tuple(coords[i]),
        })
    return Structure(records, name=f"synthetic-{n_atoms}")


@pytest.fixture
def serine_structure():
    return _synthetic_serine_structure
