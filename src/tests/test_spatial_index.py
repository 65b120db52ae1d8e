"""SpatialIndex: brute-force / KD-tree parity and inclusive radius boundary."""
import os

import numpy as np
import pytest

from geometry.spatial_index import BRUTE_FORCE, KDTREE, SpatialIndex
from utils.settings import get_settings


def _random_coords(n=800, seed=3, side=30.0):
    return np.random.default_rng(seed).uniform(0.0, side, size=(n, 3))


def test_strategy_follows_limit():
    coords = _random_coords(50)
    assert SpatialIndex(coords, brute_force_limit=100).strategy == BRUTE_FORCE
    assert SpatialIndex(coords, brute_force_limit=10).strategy == KDTREE


def test_strategy_limit_from_env(monkeypatch):
    monkeypatch.setenv('LABVIZ_SPATIAL_INDEX_BRUTE_FORCE_LIMIT', '5')
    get_settings.cache_clear()
    assert SpatialIndex(_random_coords(20)).strategy == KDTREE
    monkeypatch.delenv('LABVIZ_SPATIAL_INDEX_BRUTE_FORCE_LIMIT')
    get_settings.cache_clear()
    assert SpatialIndex(_random_coords(20)).strategy == BRUTE_FORCE


@pytest.mark.parametrize("radius", [0.5, 2.5, 4.0, 7.5])
def test_kdtree_matches_brute_force(radius):
    coords = _random_coords()
    brute = SpatialIndex(coords, brute_force_limit=10_000)
    tree = SpatialIndex(coords, brute_force_limit=0)
    origins = coords[::37]
    for origin in origins:
        assert brute.query(origin, radius) == tree.query(origin, radius)
    assert brute.query_many(origins, radius) == tree.query_many(origins, radius)


def test_results_are_exact():
    coords = _random_coords()
    index = SpatialIndex(coords, brute_force_limit=0)
    origin = coords[0]
    hits = set(index.query(origin, 3.0))
    d = np.linalg.norm(coords - origin, axis=1)
    assert hits == set(np.nonzero(d <= 3.0)[0].tolist())


@pytest.mark.parametrize("limit", [0, 10_000])
def test_boundary_is_inclusive(limit):
    coords = np.array([[0.0, 0.0, 0.0], [3.0, 0.0, 0.0], [3.0000001, 0.0, 0.0], [0.0, 0.0, -3.0]])
    index = SpatialIndex(coords, brute_force_limit=limit)
    assert index.query((0.0, 0.0, 0.0), 3.0) == [0, 1, 3]


def test_degenerate_queries():
    empty = SpatialIndex(np.zeros((0, 3)))
    assert len(empty) == 0
    assert empty.query((0, 0, 0), 5.0) == []
    index = SpatialIndex(_random_coords(10))
    assert index.query((0, 0, 0), -1.0) == []
    assert index.query_many([], 2.0) == []


def test_index_does_not_freeze_caller_array():
    coords = _random_coords(10)
    index = SpatialIndex(coords)
    coords[0, 0] = -100.0  # caller keeps a writable array
    assert index.coords[0, 0] != -100.0
    assert not index.coords.flags.writeable


def test_rejects_bad_shape():
    with pytest.raises(ValueError):
        SpatialIndex(np.zeros((4, 2)))
