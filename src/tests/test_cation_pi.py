"""Cation–π detection."""
import pytest

from analysis.base import CATION_PI, DetectionOptions
from analysis.cation_pi_interactions import find_cation_groups
from analysis.detector import InteractionDetector
from analysis.structure import Structure
from utils.config import AppConfig


def _cation_pi(structure, config=None, **kw):
    return InteractionDetector(config or AppConfig()).detect(structure, options=DetectionOptions(type=CATION_PI, **kw))


def test_lysine_above_ring(atom, phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + [atom('A', 30, 'LYS', 'NZ', (0, 0, 4.0))])
    found = _cation_pi(s)
    assert len(found) == 1
    inter = found[0]
    assert inter.distance == pytest.approx(4.0)
    assert inter.angle == pytest.approx(0.0, abs=1e-3)
    assert inter.strength == 'strong'
    assert inter.residues == ('LYS30', 'PHE1')
    assert inter.metadata['ring_type'] == 'PHE'


def test_cation_beside_ring_edge_rejected(atom, phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + [atom('A', 30, 'LYS', 'NZ', (4.0, 0, 0.5))])
    assert _cation_pi(s) == []
    config = AppConfig()
    config.interactions.cation_pi_angle_cutoff = 90.0
    assert len(_cation_pi(s, config)) == 1


def test_arginine_uses_guanidinium_centroid(atom, phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + [
        atom('A', 40, 'ARG', 'CZ', (0, 0, 5.0)),
        atom('A', 40, 'ARG', 'NH1', (1.2, 0, 5.0)),
        atom('A', 40, 'ARG', 'NH2', (-1.2, 0, 5.0)),
    ])
    groups = find_cation_groups(s)
    assert len(groups) == 1 and len(groups[0].atoms) == 3
    found = _cation_pi(s)
    assert len(found) == 1
    assert found[0].distance == pytest.approx(5.0)
    assert found[0].strength == 'moderate'


def test_beyond_cutoff(atom, phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + [atom('A', 30, 'LYS', 'NZ', (0, 0, 6.5))])
    assert _cation_pi(s) == []


def test_distant_rings_are_never_evaluated(atom, phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 2, (40, 0, 0))
                  + [atom('A', 30, 'LYS', 'NZ', (0, 0, 4.0))])
    detector = InteractionDetector(AppConfig())
    found = detector.detect(s, options=DetectionOptions(type=CATION_PI))
    assert [i.residues for i in found] == [('LYS30', 'PHE1')]
    funnel = detector.funnel_summary()[CATION_PI]
    assert funnel['raw_pairs'] == 2
    assert funnel['candidate_pairs'] == 1
