"""InteractionDetector facade: focus handling, type dispatch, options validation."""
import numpy as np
import pytest

from analysis.base import INTERACTION_TYPES, DetectionOptions, FocusResidue
from analysis.detector import InteractionDetector
from analysis.registry import get_detector, list_interaction_keys
from analysis.structure import Structure
from performance.timing import TIMINGS
from utils.config import AppConfig
from utils.errors import ResidueNotFoundError, ValidationError


@pytest.fixture
def two_sites(atom):
    return Structure([
        atom('A', 1, 'GLY', 'N', (0, 0, 0)),
        atom('A', 5, 'GLY', 'O', (2.9, 0, 0)),
        atom('A', 20, 'GLY', 'N', (50, 0, 0)),
        atom('A', 25, 'GLY', 'O', (52.9, 0, 0)),
    ])


@pytest.fixture
def detector():
    return InteractionDetector(AppConfig())


def test_whole_structure(detector, two_sites):
    bonds = detector.detect_hydrogen_bonds(two_sites)
    assert [b.id for b in bonds] == ['hydrogen-bond-1', 'hydrogen-bond-2']


@pytest.mark.parametrize("focus, donor_seq", [
    (FocusResidue('A', 1), 1),
    (('A', 5), 1),
    ({'chain_id': 'A', 'residue_seq': 25}, 20),
])
def test_focus_restricts_candidates(detector, two_sites, focus, donor_seq):
    bonds = detector.detect_hydrogen_bonds(two_sites, focus)
    assert [b.donor.residue_seq for b in bonds] == [donor_seq]


def test_focus_search_radius(detector, two_sites):
    assert detector.detect_hydrogen_bonds(two_sites, ('A', 1), search_radius=0.0) == []
    assert len(detector.detect_hydrogen_bonds(two_sites, ('A', 1), search_radius=3.0)) == 1


def test_missing_focus_residue(detector, two_sites):
    with pytest.raises(ResidueNotFoundError):
        detector.detect(two_sites, focus=('B', 1))


def test_empty_structure_is_not_an_error(detector):
    assert detector.detect(Structure([])) == []
    assert detector.detect(Structure([]), focus=('A', 1)) == []


def test_all_types(detector, atom):
    s = Structure([
        atom('A', 1, 'LYS', 'NZ', (0, 0, 0)),
        atom('A', 8, 'ASP', 'OD1', (2.9, 0, 0)),
    ])
    found = detector.detect(s)
    assert {i.kind for i in found} == {'hydrogen-bond', 'salt-bridge'}
    assert len({i.id for i in found}) == len(found)
    assert set(detector.funnel_summary()) == set(INTERACTION_TYPES)


def test_max_distance_applies_to_every_type(detector, atom):
    s = Structure([
        atom('A', 1, 'LYS', 'NZ', (0, 0, 0)),
        atom('A', 8, 'ASP', 'OD1', (2.9, 0, 0)),
    ])
    assert detector.detect(s, options=DetectionOptions(max_distance=2.8)) == []


def test_detection_does_not_mutate_structure(detector, serine_structure):
    s = serine_structure(300)
    before = s.coords.copy()
    atoms_before = s.atoms
    index = s.spatial_index
    detector.detect(s, options=DetectionOptions(infer_hydrogens=True, include_water=True))
    detector.detect(s)
    assert np.array_equal(before, s.coords)
    assert s.atoms == atoms_before
    assert s.spatial_index is index


def test_detection_is_timed(detector, two_sites):
    TIMINGS.clear()
    detector.detect(two_sites)
    snap = TIMINGS.snapshot()
    for key in INTERACTION_TYPES:
        assert snap[f"detect.{key}"]["calls"] == 1


@pytest.mark.parametrize("kwargs", [
    {'type': 'van-der-waals'},
    {'max_distance': 0.0},
    {'max_distance': -1.0},
    {'search_radius': -0.5},
    {'min_angle': 181.0},
])
def test_invalid_options(kwargs):
    with pytest.raises(ValidationError):
        DetectionOptions(**kwargs)


def test_registry_lookup():
    assert list_interaction_keys() == list(INTERACTION_TYPES)
    assert get_detector('salt-bridge', AppConfig()).interaction_type == 'salt-bridge'
    with pytest.raises(ValidationError):
        get_detector('halogen-bond', AppConfig())
