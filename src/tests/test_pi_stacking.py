"""π-π stacking between hexagonal aromatic rings."""
import pytest

from analysis.base import PI_STACKING, DetectionOptions
from analysis.detector import InteractionDetector
from analysis.structure import Structure
from utils.config import AppConfig


def _stacking(structure, config=None, **kw):
    return InteractionDetector(config or AppConfig()).detect(structure, options=DetectionOptions(type=PI_STACKING, **kw))


def test_face_to_face(phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 20, (0, 0, 3.5)))
    found = _stacking(s)
    assert len(found) == 1
    inter = found[0]
    assert inter.id == 'pi-stacking-1'
    assert inter.subtype == 'face_to_face'
    assert abs(inter.distance - 3.5) < 1e-6
    assert inter.angle < 1.0
    assert inter.strength == 'strong'
    assert inter.metadata['offset'] < 0.01
    assert len(inter.participants) == 12
    assert inter.endpoints[1][2] == pytest.approx(3.5)


def test_edge_to_face(phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 20, (0, 0, 4.8), plane='xz'))
    found = _stacking(s)
    assert [i.subtype for i in found] == ['edge_to_face']
    assert found[0].angle > 85.0


def test_displaced_parallel_stack(phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 20, (2.5, 0, 3.4)))
    found = _stacking(s)
    assert [i.subtype for i in found] == ['offset']
    assert 2.4 < found[0].metadata['offset'] < 2.6


def test_too_far_or_too_displaced(phe_ring):
    assert _stacking(Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 20, (0, 0, 5.5)))) == []
    # lateral offset 4.0 exceeds the displaced-stacking bound
    assert _stacking(Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 20, (4.0, 0, 2.5)))) == []


def test_offset_cutoff_is_configurable(phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 20, (2.5, 0, 3.4)))
    config = AppConfig()
    config.interactions.pi_pi_offset_cutoff = 2.0
    assert _stacking(s, config) == []


def test_incomplete_ring_is_ignored(phe_ring):
    partial = phe_ring('A', 20, (0, 0, 3.5))[:3]
    assert _stacking(Structure(phe_ring('A', 1, (0, 0, 0)) + partial)) == []


def test_only_nearby_ring_pairs_are_candidates(phe_ring):
    s = Structure(phe_ring('A', 1, (0, 0, 0)) + phe_ring('A', 20, (0, 0, 3.5))
                  + phe_ring('B', 1, (50, 0, 0)) + phe_ring('B', 20, (50, 0, 3.5)))
    detector = InteractionDetector(AppConfig())
    found = detector.detect(s, options=DetectionOptions(type=PI_STACKING))
    assert [i.residues for i in found] == [('PHE1', 'PHE20'), ('PHE1', 'PHE20')]
    assert [i.chains for i in found] == [('A', 'A'), ('B', 'B')]
    funnel = detector.funnel_summary()[PI_STACKING]
    assert funnel['raw_pairs'] == 6
    assert funnel['candidate_pairs'] == 2
    assert funnel['accepted_pairs'] == 2
