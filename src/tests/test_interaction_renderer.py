"""Rendering detected interactions through the registry."""
import pytest

from analysis.detector import InteractionDetector
from analysis.structure import Structure
from geometry.primitives import Label, Line
from utils.config import AppConfig
from utils.errors import DuplicateIdError, NotFoundError, ValidationError
from visualization.interactions import InteractionRenderer
from visualization.registry import VisualizationRegistry
from visualization.renderer import InMemoryRenderer


@pytest.fixture
def structure(atom):
    return Structure([
        atom('A', 1, 'GLY', 'N', (0, 0, 0)),
        atom('A', 5, 'GLY', 'O', (2.7, 0, 0)),       # strong
        atom('A', 10, 'GLY', 'N', (20, 0, 0)),
        atom('A', 15, 'GLY', 'O', (23.0, 0, 0)),     # moderate
        atom('A', 20, 'GLY', 'N', (40, 0, 0)),
        atom('A', 25, 'GLY', 'O', (43.4, 0, 0)),     # weak
        atom('A', 30, 'LYS', 'NZ', (60, 0, 0)),
        atom('A', 35, 'ASP', 'OD1', (63.8, 0, 0)),   # salt bridge only (too far for an H-bond)
    ])


@pytest.fixture
def interactions(structure):
    return InteractionDetector(AppConfig()).detect(structure)


@pytest.fixture
def setup():
    renderer = InMemoryRenderer()
    config = AppConfig()
    return renderer, InteractionRenderer(VisualizationRegistry(renderer), config)


def test_render_dashed_line_and_label(setup, interactions):
    renderer, drawer = setup
    strong = next(i for i in interactions if i.kind == 'hydrogen-bond' and i.strength == 'strong')
    handle = drawer.render(strong)
    assert handle.kind == 'interaction'
    line = drawer.registry.find_part(f"{strong.id}-line")[1]
    label = drawer.registry.find_part(f"{strong.id}-label")[1]
    assert isinstance(line, Line) and isinstance(label, Label)
    assert line.style == 'dashed'
    assert line.color == '#00FF00'
    assert label.text == '2.70 Å'
    assert label.position == (1.35, 0.0, 0.0)
    assert handle.metadata['bond_type'] == 'backbone-backbone'
    assert len(renderer) == 2
    with pytest.raises(DuplicateIdError):
        drawer.render(strong)


def test_colour_by_kind_for_non_hbonds(setup, interactions):
    _, drawer = setup
    bridge = next(i for i in interactions if i.kind == 'salt-bridge')
    drawer.render(bridge)
    line = drawer.registry.find_part(f"{bridge.id}-line")[1]
    assert line.color == AppConfig().visualization.interaction_colors['salt-bridge']
    assert 'bond_type' not in drawer.registry.get(bridge.id).metadata


def test_labels_can_be_disabled(interactions):
    config = AppConfig()
    config.visualization.show_labels = False
    drawer = InteractionRenderer(VisualizationRegistry(), config)
    handle = drawer.render(interactions[0])
    assert handle.part_ids == (f"{interactions[0].id}-line",)


def test_strength_grouping_and_filter(setup, interactions):
    renderer, drawer = setup
    result = drawer.render_many(interactions)
    assert result.ok and len(result.succeeded) == len(interactions)
    groups = drawer.bonds_by_strength()
    assert groups['strong'] == ['hydrogen-bond-1']
    assert groups['moderate'] == ['hydrogen-bond-2']
    assert set(groups['weak']) == {'hydrogen-bond-3', 'salt-bridge-1'}

    drawer.filter_by_strength('strong')
    visible = {h.id for h in drawer.handles() if h.visible}
    assert visible == {'hydrogen-bond-1'}

    drawer.filter_by_strength('weak', hide_others=False)
    visible = {h.id for h in drawer.handles() if h.visible}
    assert visible == {'hydrogen-bond-1', 'hydrogen-bond-3', 'salt-bridge-1'}

    with pytest.raises(ValidationError):
        drawer.filter_by_strength('extreme')


def test_show_hide_all_and_statistics(setup, interactions):
    _, drawer = setup
    drawer.render_many(interactions)
    drawer.hide_all()
    stats = drawer.get_statistics()
    assert stats['visible'] == 0 and stats['hidden'] == len(interactions)
    drawer.show_all()
    stats = drawer.get_statistics()
    assert stats['visible'] == len(interactions)
    assert stats['by_strength'] == {'strong': 1, 'moderate': 1, 'weak': 2}
    assert stats['by_interaction_type'] == {'hydrogen-bond': 3, 'salt-bridge': 1}
    assert stats['by_bond_type'] == {'backbone-backbone': 3}


def test_render_many_collects_failures(setup, interactions):
    _, drawer = setup
    drawer.render(interactions[0])
    result = drawer.render_many(interactions)
    assert list(result.failed) == [interactions[0].id]
    assert isinstance(result.failed[interactions[0].id], DuplicateIdError)
    assert len(result.succeeded) == len(interactions) - 1


def test_remove_and_clear(setup, interactions):
    renderer, drawer = setup
    drawer.render_many(interactions)
    drawer.registry.create('m1', [Line('m1-line', (0, 0, 0), (1, 0, 0), '#FFFFFF')])
    drawer.remove('hydrogen-bond-1')
    with pytest.raises(NotFoundError):
        drawer.remove('hydrogen-bond-1')
    with pytest.raises(NotFoundError):
        drawer.set_visibility('m1', False)  # measurements are not interactions
    assert drawer.clear() == len(interactions) - 1
    assert len(renderer) == 1  # only the measurement line remains


def test_update_config_recolours_in_place(setup, interactions):
    renderer, drawer = setup
    drawer.render_many(interactions)
    before = len(renderer)
    result = drawer.update_config(strength_colors={'strong': '#123456'})
    assert result.ok and len(result.succeeded) == len(interactions)
    assert drawer.registry.find_part('hydrogen-bond-1-line')[1].color == '#123456'
    assert drawer.registry.find_part('hydrogen-bond-2-line')[1].color == '#FFFF00'
    assert drawer.config.strength_colors['weak'] == '#FF0000'
    assert len(renderer) == before


def test_update_config_dropping_labels_keeps_hidden_state(setup, interactions):
    renderer, drawer = setup
    drawer.render_many(interactions)
    drawer.set_visibility('hydrogen-bond-1', False)
    assert drawer.update_config(show_labels=False).ok
    handle = drawer.registry.get('hydrogen-bond-1')
    assert handle.part_ids == ('hydrogen-bond-1-line',)
    assert not handle.visible
    assert drawer.registry.get('hydrogen-bond-2').visible
    assert len(renderer) == len(interactions)


def test_update_config_rejects_unknown_options(setup):
    _, drawer = setup
    with pytest.raises(ValidationError):
        drawer.update_config(glow=True)
