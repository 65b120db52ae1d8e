"""Radius queries over the atom coordinates of one Structure.

Small structures use a vectorized NumPy scan (O(n) per query but with a
tiny constant); above ``Settings.spatial_index_brute_force_limit`` atoms a
SciPy ``cKDTree`` is built once and reused. Both strategies apply the same
exact inclusive distance filter, so the public result never contains false
positives and never misses an atom at exactly ``radius``.

The index is immutable. A changed structure needs a new index.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import numpy as np
from loguru import logger
from scipy.spatial import cKDTree

from performance.timing import time_function
from utils.settings import get_settings

# Inclusive boundary tolerance (Å) absorbing float rounding at exactly r
RADIUS_EPS = 1e-9

BRUTE_FORCE = "brute_force"
KDTREE = "kdtree"


class SpatialIndex:
    def __init__(self, coords: np.ndarray, brute_force_limit: Optional[int] = None):
        coords = np.array(coords, dtype=np.float64)
        if coords.size == 0:
            coords = coords.reshape(0, 3)
        if coords.ndim != 2 or coords.shape[1] != 3:
            raise ValueError(f"coords must have shape (N, 3), got {coords.shape}")
        self._coords = coords
        self._coords.setflags(write=False)
        limit = get_settings().spatial_index_brute_force_limit if brute_force_limit is None else brute_force_limit
        self._tree: Optional[cKDTree] = None
        if len(coords) > limit:
            self._tree = cKDTree(coords)
            self.strategy = KDTREE
        else:
            self.strategy = BRUTE_FORCE
        logger.debug(f"SpatialIndex built: atoms={len(coords)} strategy={self.strategy}")

    def __len__(self) -> int:
        return self._coords.shape[0]

    @property
    def coords(self) -> np.ndarray:
        return self._coords

    def query(self, origin: Sequence[float], radius: float) -> List[int]:
        """Sorted indices of all atoms with |p - origin| <= radius."""
        if radius < 0 or len(self) == 0:
            return []
        origin = np.asarray(origin, dtype=np.float64)
        if self._tree is not None:
            cand = np.asarray(self._tree.query_ball_point(origin, radius + RADIUS_EPS), dtype=np.intp)
            if cand.size == 0:
                return []
            cand.sort()
            return cand[self._within(cand, origin, radius)].tolist()
        diff = self._coords - origin
        d2 = np.einsum('ij,ij->i', diff, diff)
        return np.nonzero(d2 <= (radius + RADIUS_EPS) ** 2)[0].tolist()

    @time_function(name="spatial_index.query_many")
    def query_many(self, origins: Iterable[Sequence[float]], radius: float) -> List[List[int]]:
        """Batch form of ``query``; one sorted index list per origin."""
        pts = np.asarray(list(origins), dtype=np.float64).reshape(-1, 3)
        if pts.shape[0] == 0:
            return []
        if self._tree is None or radius < 0 or len(self) == 0:
            return [self.query(p, radius) for p in pts]
        out: List[List[int]] = []
        for origin, cand in zip(pts, self._tree.query_ball_point(pts, radius + RADIUS_EPS)):
            if not cand:
                out.append([])
                continue
            cand = np.asarray(sorted(cand), dtype=np.intp)
            out.append(cand[self._within(cand, origin, radius)].tolist())
        return out

    def _within(self, cand: np.ndarray, origin: np.ndarray, radius: float) -> np.ndarray:
        diff = self._coords[cand] - origin
        return np.einsum('ij,ij->i', diff, diff) <= (radius + RADIUS_EPS) ** 2


__all__ = ["SpatialIndex", "RADIUS_EPS", "BRUTE_FORCE", "KDTREE"]
