"""Detector registry mapping interaction types to detector classes.

Importing this module imports every detector module, which registers the
classes through ``@register_detector``.
"""
from __future__ import annotations
from typing import Any, List, Optional

from analysis import cation_pi_interactions, hydrogen_bonds, hydrophobic_contacts, pi_pi_stacking, salt_bridges  # noqa: F401
from analysis.base import INTERACTION_TYPES
from analysis.base_detector import DETECTOR_REGISTRY
from utils.errors import ValidationError


def list_interaction_keys() -> List[str]:
    return [k for k in INTERACTION_TYPES if k in DETECTOR_REGISTRY]


def get_detector(key: str, config: Optional[Any] = None):
    """Instantiate the detector registered for ``key``."""
    try:
        cls = DETECTOR_REGISTRY[key]
    except KeyError:
        raise ValidationError(f"no detector registered for '{key}'") from None
    if config is None:
        from utils.config import load_config
        config = load_config()
    return cls(config)


__all__ = ["DETECTOR_REGISTRY", "list_interaction_keys", "get_detector"]
