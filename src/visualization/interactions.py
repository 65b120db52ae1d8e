"""Draw detected interactions as dashed lines with distance labels.

Each interaction becomes one registry handle (``kind='interaction'``) with a
``<id>-line`` part and, when labels are enabled, a ``<id>-label`` part.
Hydrogen bonds are coloured by strength; other kinds by interaction type.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import fields, replace
from typing import Any, Dict, Iterable, List, Optional, Union

from loguru import logger

from analysis.base import HYDROGEN_BOND, STRENGTHS, HydrogenBond, Interaction
from geometry.core import midpoint, to_tuple
from geometry.primitives import Label, Line
from utils.config import AppConfig, VisualizationConfig
from utils.errors import NotFoundError, ValidationError
from visualization.registry import BatchResult, VisualizationHandle, VisualizationRegistry

INTERACTION_KIND = "interaction"
FALLBACK_COLOR = "#CCCCCC"


class InteractionRenderer:
    def __init__(self, registry: VisualizationRegistry,
                 config: Optional[Union[AppConfig, VisualizationConfig]] = None):
        self.registry = registry
        if isinstance(config, AppConfig):
            config = config.visualization
        self.config: VisualizationConfig = config or VisualizationConfig()

    def color_for(self, interaction: Interaction) -> str:
        if interaction.kind == HYDROGEN_BOND and self.config.color_by_strength:
            return self.config.strength_colors.get(interaction.strength, FALLBACK_COLOR)
        return self.config.interaction_colors.get(interaction.kind, FALLBACK_COLOR)

    def _descriptors(self, interaction: Interaction) -> List[Any]:
        start, end = interaction.endpoints
        parts: List[Any] = [Line(
            id=f"{interaction.id}-line",
            start=to_tuple(start),
            end=to_tuple(end),
            color=self.color_for(interaction),
            width=self.config.line_width,
            style="dashed",
            dash_length=self.config.dash_length,
        )]
        if self.config.show_labels:
            parts.append(Label(
                id=f"{interaction.id}-label",
                text=f"{interaction.distance:.2f} Å",
                position=to_tuple(midpoint(start, end)),
            ))
        return parts

    def render(self, interaction: Interaction) -> VisualizationHandle:
        metadata: Dict[str, Any] = {
            'interaction': interaction,
            'interaction_type': interaction.kind,
            'strength': interaction.strength,
        }
        if isinstance(interaction, HydrogenBond):
            metadata['bond_type'] = interaction.bond_type
        return self.registry.create(interaction.id, self._descriptors(interaction),
                                    kind=INTERACTION_KIND, metadata=metadata)

    def render_many(self, interactions: Iterable[Interaction]) -> BatchResult:
        result = BatchResult()
        for interaction in interactions:
            try:
                self.render(interaction)
            except Exception as exc:
                result.failed[interaction.id] = exc
            else:
                result.succeeded.append(interaction.id)
        if result.failed:
            logger.warning(f"{len(result.failed)} interactions could not be rendered")
        logger.debug(f"rendered {len(result.succeeded)} interactions")
        return result

    # -------------------------------------------------------------- lookup
    def _require(self, interaction_id: str) -> VisualizationHandle:
        handle = self.registry.get(interaction_id)
        if handle is None or handle.kind != INTERACTION_KIND:
            raise NotFoundError(interaction_id, what="interaction")
        return handle

    def handles(self) -> List[VisualizationHandle]:
        return self.registry.list_all(INTERACTION_KIND)

    def interaction(self, interaction_id: str) -> Interaction:
        return self._require(interaction_id).metadata['interaction']

    def bonds_by_strength(self) -> Dict[str, List[str]]:
        """Rendered interaction ids grouped under strong / moderate / weak."""
        groups: Dict[str, List[str]] = defaultdict(list)
        for handle in self.handles():
            groups[handle.metadata['strength']].append(handle.id)
        return {s: groups.get(s, []) for s in STRENGTHS}

    # ---------------------------------------------------------- visibility
    def set_visibility(self, interaction_id: str, visible: bool) -> None:
        self._require(interaction_id)
        self.registry.set_visibility(interaction_id, visible)

    def show_all(self) -> BatchResult:
        return self.registry.show_many([h.id for h in self.handles()])

    def hide_all(self) -> BatchResult:
        return self.registry.hide_many([h.id for h in self.handles()])

    def filter_by_strength(self, strength: str, hide_others: bool = True) -> BatchResult:
        """Show interactions of ``strength``; optionally hide everything else."""
        if strength not in STRENGTHS:
            raise ValidationError(f"unknown strength '{strength}' (expected one of {', '.join(STRENGTHS)})")
        groups = self.bonds_by_strength()
        result = self.registry.show_many(groups[strength])
        if hide_others:
            others = [i for s, ids in groups.items() if s != strength for i in ids]
            hidden = self.registry.hide_many(others)
            result.succeeded.extend(hidden.succeeded)
            result.failed.update(hidden.failed)
        return result

    def update_config(self, config: Optional[Union[AppConfig, VisualizationConfig]] = None,
                      **overrides: Any) -> BatchResult:
        """Swap or patch the rendering config, then redraw every rendered interaction.

        Colour tables passed as overrides are merged into the current ones.
        Hidden interactions stay hidden.
        """
        if isinstance(config, AppConfig):
            config = config.visualization
        base = config or self.config
        unknown = set(overrides) - {f.name for f in fields(VisualizationConfig)}
        if unknown:
            raise ValidationError(f"unknown visualization option(s): {', '.join(sorted(unknown))}")
        for key in ('interaction_colors', 'strength_colors'):
            if key in overrides:
                overrides[key] = {**getattr(base, key), **overrides[key]}
        self.config = replace(base, **overrides)

        result = BatchResult()
        for handle in self.handles():
            interaction = handle.metadata['interaction']
            descriptors = self._descriptors(interaction)
            try:
                if tuple(d.id for d in descriptors) == handle.part_ids:
                    self.registry.update(handle.id, descriptors)
                else:
                    self.registry.remove(handle.id)
                    self.render(interaction)
                    if not handle.visible:
                        self.registry.set_visibility(handle.id, False)
            except Exception as exc:
                result.failed[handle.id] = exc
            else:
                result.succeeded.append(handle.id)
        logger.debug(f"redrew {len(result.succeeded)} interactions with updated config")
        return result

    # ----------------------------------------------------------- lifecycle
    def remove(self, interaction_id: str) -> None:
        self._require(interaction_id)
        self.registry.remove(interaction_id)

    def clear(self) -> int:
        result = self.registry.remove_many([h.id for h in self.handles()])
        if result.failed:
            raise next(iter(result.failed.values()))
        return len(result.succeeded)

    def get_statistics(self) -> Dict[str, Any]:
        handles = self.handles()
        visible = sum(1 for h in handles if h.visible)
        by_type: Dict[str, int] = defaultdict(int)
        by_bond_type: Dict[str, int] = defaultdict(int)
        for h in handles:
            by_type[h.metadata['interaction_type']] += 1
            if 'bond_type' in h.metadata:
                by_bond_type[h.metadata['bond_type']] += 1
        return {
            'total': len(handles),
            'visible': visible,
            'hidden': len(handles) - visible,
            'by_strength': {s: len(ids) for s, ids in self.bonds_by_strength().items()},
            'by_interaction_type': dict(by_type),
            'by_bond_type': dict(by_bond_type),
        }


__all__ = ["InteractionRenderer", "INTERACTION_KIND"]
