"""Lifecycle registry for everything drawn through the renderer boundary.

The registry is the single owner of visualization state: one immutable
``VisualizationHandle`` per measurement / interaction id, replaced (never
mutated in place) whenever visibility or descriptors change. Lookups by id
and by part id (``m1-line``, ``m1-label`` ...) are dict lookups.

Creation is all-or-nothing: if the renderer fails while creating the n-th
representation for an id, the ones already created are removed before the
original error propagates. Batch operations never stop at the first failure;
per-item errors are collected in a ``BatchResult``.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from utils.errors import DuplicateIdError, NotFoundError, RendererError, ValidationError
from visualization.renderer import InMemoryRenderer, RendererAdapter


@dataclass(frozen=True)
class VisualizationHandle:
    id: str
    representation_ids: Tuple[str, ...]
    visible: bool = True
    kind: str = "measurement"
    part_ids: Tuple[str, ...] = ()
    descriptors: Tuple[Any, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)

    def representation_for(self, part_id: str) -> str:
        return self.representation_ids[self.part_ids.index(part_id)]


@dataclass
class BatchResult:
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class VisualizationRegistry:
    def __init__(self, renderer: Optional[RendererAdapter] = None):
        self.renderer: RendererAdapter = renderer if renderer is not None else InMemoryRenderer()
        self._handles: Dict[str, VisualizationHandle] = {}
        self._parts: Dict[str, str] = {}  # part id -> handle id

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._handles

    # ------------------------------------------------------------- creation
    def register(self, item_id: str, representation_ids: Sequence[str], *, kind: str = "measurement",
                 part_ids: Optional[Sequence[str]] = None, descriptors: Sequence[Any] = (),
                 metadata: Optional[Dict[str, Any]] = None, visible: bool = True) -> VisualizationHandle:
        """Track representations that already exist in the renderer."""
        if item_id in self._handles:
            raise DuplicateIdError(item_id)
        reps = tuple(representation_ids)
        if not reps:
            raise ValidationError(f"cannot register '{item_id}' without representations")
        parts = tuple(part_ids) if part_ids is not None else reps
        if len(parts) != len(reps):
            raise ValidationError(f"'{item_id}': {len(parts)} part ids for {len(reps)} representations")
        if descriptors and len(descriptors) != len(reps):
            raise ValidationError(f"'{item_id}': {len(descriptors)} descriptors for {len(reps)} representations")
        for part in parts:
            if part in self._parts:
                raise DuplicateIdError(part)
        handle = VisualizationHandle(
            id=item_id,
            representation_ids=reps,
            visible=visible,
            kind=kind,
            part_ids=parts,
            descriptors=tuple(descriptors),
            metadata=dict(metadata or {}),
        )
        self._handles[item_id] = handle
        for part in parts:
            self._parts[part] = item_id
        logger.debug(f"registered {kind} '{item_id}' ({len(reps)} representations)")
        return handle

    def create(self, item_id: str, descriptors: Sequence[Any], *, kind: str = "measurement",
               metadata: Optional[Dict[str, Any]] = None) -> VisualizationHandle:
        """Create every descriptor through the renderer, then register them as one handle.

        Each descriptor must carry an ``id`` attribute used as its part id.
        """
        if item_id in self._handles:
            raise DuplicateIdError(item_id)
        if not descriptors:
            raise ValidationError(f"cannot create '{item_id}' without descriptors")
        part_ids = [d.id for d in descriptors]
        for part in part_ids:
            if part in self._parts:
                raise DuplicateIdError(part)
        created: List[str] = []
        try:
            for descriptor in descriptors:
                created.append(self.renderer.create(descriptor))
        except Exception:
            self._rollback(item_id, created)
            raise
        return self.register(item_id, created, kind=kind, part_ids=part_ids,
                             descriptors=descriptors, metadata=metadata)

    def _rollback(self, item_id: str, created: List[str]) -> None:
        for rep_id in reversed(created):
            try:
                self.renderer.remove(rep_id)
            except Exception:
                # original creation error is re-raised by the caller
                logger.opt(exception=True).warning(f"rollback of '{item_id}' could not remove {rep_id}")
        logger.debug(f"rolled back {len(created)} representations for '{item_id}'")

    def update(self, item_id: str, descriptors: Sequence[Any],
               metadata: Optional[Dict[str, Any]] = None) -> VisualizationHandle:
        """Push new descriptors for existing parts (same part ids, same order)."""
        handle = self.require(item_id)
        part_ids = tuple(d.id for d in descriptors)
        if part_ids != handle.part_ids:
            raise ValidationError(f"'{item_id}': update must keep parts {handle.part_ids}, got {part_ids}")
        for rep_id, descriptor in zip(handle.representation_ids, descriptors):
            self.renderer.update(rep_id, descriptor)
        merged = dict(handle.metadata)
        if metadata:
            merged.update(metadata)
        updated = replace(handle, descriptors=tuple(descriptors), metadata=merged)
        self._handles[item_id] = updated
        return updated

    # --------------------------------------------------------------- lookup
    def get(self, item_id: str) -> Optional[VisualizationHandle]:
        return self._handles.get(item_id)

    def require(self, item_id: str) -> VisualizationHandle:
        handle = self._handles.get(item_id)
        if handle is None:
            raise NotFoundError(item_id)
        return handle

    def find_part(self, part_id: str) -> Optional[Tuple[VisualizationHandle, Any]]:
        """(handle, descriptor) owning ``part_id``; descriptor is None if none was stored."""
        owner = self._parts.get(part_id)
        if owner is None:
            return None
        handle = self._handles[owner]
        pos = handle.part_ids.index(part_id)
        descriptor = handle.descriptors[pos] if handle.descriptors else None
        return handle, descriptor

    def list_all(self, kind: Optional[str] = None) -> List[VisualizationHandle]:
        return [h for h in self._handles.values() if kind is None or h.kind == kind]

    # ------------------------------------------------------------- mutation
    def set_visibility(self, item_id: str, visible: bool) -> VisualizationHandle:
        """Toggle every representation of ``item_id``; on renderer failure revert the ones already toggled."""
        handle = self.require(item_id)
        visible = bool(visible)
        changed: List[str] = []
        try:
            for rep_id in handle.representation_ids:
                self.renderer.set_visible(rep_id, visible)
                changed.append(rep_id)
        except Exception:
            for rep_id in changed:
                try:
                    self.renderer.set_visible(rep_id, handle.visible)
                except Exception:
                    logger.opt(exception=True).warning(f"could not restore visibility of {rep_id}")
            raise
        updated = replace(handle, visible=visible)
        self._handles[item_id] = updated
        return updated

    def remove(self, item_id: str) -> None:
        """Forget ``item_id`` and remove all its representations from the renderer."""
        handle = self._handles.pop(item_id, None)
        if handle is None:
            raise NotFoundError(item_id)
        for part in handle.part_ids:
            self._parts.pop(part, None)
        errors = []
        for rep_id in handle.representation_ids:
            try:
                self.renderer.remove(rep_id)
            except Exception as exc:
                errors.append((rep_id, exc))
        logger.debug(f"removed '{item_id}'")
        if errors:
            raise RendererError(
                f"'{item_id}' unregistered but renderer failed to remove "
                + ", ".join(f"{rep} ({exc})" for rep, exc in errors)) from errors[0][1]

    def clear(self) -> int:
        """Remove everything; returns the number of handles removed."""
        result = self.remove_many(list(self._handles))
        if result.failed:
            raise RendererError(f"clear: {len(result.failed)} items failed to remove cleanly") \
                from next(iter(result.failed.values()))
        return len(result.succeeded)

    # ---------------------------------------------------------------- batch
    def _batch(self, ids: Iterable[str], op, label: str) -> BatchResult:
        result = BatchResult()
        for item_id in ids:
            try:
                op(item_id)
            except Exception as exc:
                result.failed[item_id] = exc
            else:
                result.succeeded.append(item_id)
        if result.failed:
            logger.debug(f"{label}: {len(result.failed)} of {len(result.failed) + len(result.succeeded)} failed")
        return result

    def hide_many(self, ids: Iterable[str]) -> BatchResult:
        return self._batch(ids, lambda i: self.set_visibility(i, False), "hide_many")

    def show_many(self, ids: Iterable[str]) -> BatchResult:
        return self._batch(ids, lambda i: self.set_visibility(i, True), "show_many")

    def remove_many(self, ids: Iterable[str]) -> BatchResult:
        return self._batch(ids, self.remove, "remove_many")

    # ----------------------------------------------------------- statistics
    def get_statistics(self) -> Dict[str, Any]:
        handles = list(self._handles.values())
        visible = sum(1 for h in handles if h.visible)
        stats: Dict[str, Any] = {
            'total': len(handles),
            'visible': visible,
            'hidden': len(handles) - visible,
            'representations': sum(len(h.representation_ids) for h in handles),
            'by_kind': dict(Counter(h.kind for h in handles)),
        }
        for key, meta_key in (('by_strength', 'strength'),
                              ('by_interaction_type', 'interaction_type'),
                              ('by_bond_type', 'bond_type')):
            counts = Counter(h.metadata[meta_key] for h in handles if h.metadata.get(meta_key))
            stats[key] = dict(counts)
        return stats


__all__ = ["VisualizationRegistry", "VisualizationHandle", "BatchResult"]
