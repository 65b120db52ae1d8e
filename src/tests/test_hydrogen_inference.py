"""Hydrogen placement for structures without explicit hydrogens."""
import numpy as np
import pytest

from analysis.hydrogen_inference import HydrogenInferrer
from analysis.detector import InteractionDetector
from analysis.structure import Structure
from utils.config import AppConfig


def _amide(atom, acceptor_position):
    return Structure([
        atom('A', 2, 'GLY', 'N', (0, 0, 0)),
        atom('A', 2, 'GLY', 'CA', (-1.45, 0, 0)),
        atom('A', 10, 'GLY', 'O', acceptor_position),
    ])


def test_single_neighbor_continues_bond_axis(atom):
    s = _amide(atom, (2.9, 0, 0))
    hydrogen = HydrogenInferrer(s, AppConfig()).infer(s[0])
    assert hydrogen is not None
    assert hydrogen.inferred
    assert hydrogen.name == 'H'
    assert hydrogen.position == pytest.approx((1.01, 0.0, 0.0))


def test_peptide_link_uses_previous_carbonyl(atom):
    s = Structure([
        atom('A', 1, 'GLY', 'C', (-0.5, 1.3, 0)),
        atom('A', 2, 'GLY', 'N', (0, 0, 0)),
        atom('A', 2, 'GLY', 'CA', (-1.45, 0, 0)),
    ])
    hydrogen = HydrogenInferrer(s, AppConfig()).infer(s[1])
    h = np.asarray(hydrogen.position)
    assert np.linalg.norm(h) == pytest.approx(1.01)
    # points away from both bonded neighbours
    assert float(np.dot(h, s.coords[0])) < 0
    assert float(np.dot(h, s.coords[2])) < 0


def test_isolated_donor_has_no_inferred_hydrogen(atom):
    s = Structure([atom('A', 1, 'LYS', 'NZ', (0, 0, 0))])
    assert HydrogenInferrer(s, AppConfig()).infer(s[0]) is None


def test_inference_is_cached(atom):
    s = _amide(atom, (2.9, 0, 0))
    inferrer = HydrogenInferrer(s, AppConfig())
    assert inferrer.infer(s[0]) is inferrer.infer(s[0])


def test_bond_length_table():
    inferrer = HydrogenInferrer(Structure([]), AppConfig())
    assert inferrer.bond_length('N') == pytest.approx(1.01)
    assert inferrer.bond_length('O') == pytest.approx(0.96)
    assert inferrer.bond_length('S') == pytest.approx(1.34)
    assert inferrer.bond_length('C') == pytest.approx(1.0)


def test_inferred_hydrogen_changes_acceptance(atom):
    # Off-axis acceptor: ideal-angle fallback accepts, inferred geometry (~116°) rejects
    s = _amide(atom, (2.0, 2.0, 0))
    detector = InteractionDetector(AppConfig())
    without = detector.detect_hydrogen_bonds(s)
    assert len(without) == 1 and without[0].hydrogen is None
    assert detector.detect_hydrogen_bonds(s, infer_hydrogens=True) == []


def test_inferred_hydrogen_reported_on_bond(atom):
    s = _amide(atom, (2.9, 0, 0))
    detector = InteractionDetector(AppConfig())
    bonds = detector.detect_hydrogen_bonds(s, infer_hydrogens=True)
    assert len(bonds) == 1
    bond = bonds[0]
    assert bond.hydrogen_inferred
    assert bond.angle == pytest.approx(180.0)
    # distance stays the donor-acceptor heavy atom distance
    assert bond.distance == pytest.approx(2.9)
    assert detector.last_funnels['hydrogen-bond'].extra['inferred_hydrogens'] == 1
