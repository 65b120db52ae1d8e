"""Renderer boundary.

The core talks to a 3D engine only through the four-method ``RendererAdapter``
protocol. ``InMemoryRenderer`` is the reference adapter: it keeps descriptors
and visibility flags in a dict, which is enough for headless sessions and
tests.
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Dict, List, Protocol, runtime_checkable

from loguru import logger

from utils.errors import RendererError


@runtime_checkable
class RendererAdapter(Protocol):
    def create(self, descriptor: Any) -> str:
        ...

    def update(self, representation_id: str, descriptor: Any) -> None:
        ...

    def set_visible(self, representation_id: str, visible: bool) -> None:
        ...

    def remove(self, representation_id: str) -> None:
        ...


@dataclass
class Representation:
    id: str
    descriptor: Any
    visible: bool = True


class InMemoryRenderer:
    def __init__(self):
        self._reps: Dict[str, Representation] = {}
        self._counter = itertools.count(1)

    def __len__(self) -> int:
        return len(self._reps)

    def __contains__(self, representation_id: str) -> bool:
        return representation_id in self._reps

    def create(self, descriptor: Any) -> str:
        rep_id = f"rep-{next(self._counter)}"
        self._reps[rep_id] = Representation(rep_id, descriptor)
        logger.trace(f"renderer create {rep_id} ({getattr(descriptor, 'kind', type(descriptor).__name__)})")
        return rep_id

    def update(self, representation_id: str, descriptor: Any) -> None:
        self._get(representation_id).descriptor = descriptor

    def set_visible(self, representation_id: str, visible: bool) -> None:
        self._get(representation_id).visible = bool(visible)

    def remove(self, representation_id: str) -> None:
        if self._reps.pop(representation_id, None) is None:
            raise RendererError(f"unknown representation '{representation_id}'")

    def get(self, representation_id: str) -> Representation:
        return self._get(representation_id)

    def is_visible(self, representation_id: str) -> bool:
        return self._get(representation_id).visible

    def representation_ids(self) -> List[str]:
        return list(self._reps)

    def _get(self, representation_id: str) -> Representation:
        try:
            return self._reps[representation_id]
        except KeyError:
            raise RendererError(f"unknown representation '{representation_id}'") from None


__all__ = ["RendererAdapter", "InMemoryRenderer", "Representation"]
