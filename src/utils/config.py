"""
Configuration management for the interaction / measurement core.
"""

from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union
import hashlib
import json

import yaml

from utils.errors import ValidationError
from utils.settings import get_settings


@dataclass
class InteractionConfig:
    """Configuration for interaction detection parameters."""

    # Hydrogen bonds
    hbond_distance_cutoff: float = 3.5
    hbond_min_distance: float = 2.5
    hbond_angle_cutoff: float = 120.0
    # Explicit hydrogens are looked up within this radius of the donor (same residue)
    hbond_explicit_h_distance: float = 1.2
    hbond_strong_distance: float = 2.8
    hbond_strong_angle: float = 170.0
    hbond_moderate_distance: float = 3.2
    hbond_moderate_angle: float = 140.0

    # Hydrogen inference
    covalent_bond_cutoff: float = 1.9
    hydrogen_bond_lengths: Dict[str, float] = field(default_factory=lambda: {
        "N": 1.01,
        "O": 0.96,
        "S": 1.34,
    })
    default_hydrogen_bond_length: float = 1.0

    # Salt bridges
    salt_bridge_distance_cutoff: float = 4.0
    salt_bridge_strong_distance: float = 3.0
    salt_bridge_moderate_distance: float = 3.5

    # Hydrophobic contacts
    hydrophobic_distance_cutoff: float = 5.0
    hydrophobic_strong_distance: float = 4.0
    hydrophobic_moderate_distance: float = 4.5
    hydrophobic_min_sequence_separation: int = 3

    # π-π stacking
    pi_pi_distance_cutoff: float = 5.0
    pi_pi_angle_cutoff: float = 30.0          # parallel below this inter-plane angle
    pi_pi_perpendicular_angle: float = 60.0   # edge-to-face above this
    pi_pi_face_offset: float = 2.0            # face-to-face lateral offset bound
    pi_pi_offset_cutoff: float = 3.5          # lateral offset bound for displaced stacking
    pi_pi_offset_max_angle: float = 45.0

    # Cation-π
    cation_pi_distance_cutoff: float = 6.0
    cation_pi_angle_cutoff: float = 45.0
    cation_pi_strong_distance: float = 4.5
    cation_pi_moderate_distance: float = 5.5

    # Internal version & hash fields (auto-managed)
    _version: int = 1  # bump manually when semantic meaning of any param changes
    _param_hash: str = field(default="", init=False, repr=False)

    def compute_hash(self) -> str:
        """Compute a stable hash of all public interaction parameters.

        Excludes private / cache fields (those starting with underscore).
        Produces a short 10-char hex digest for compact cache keys.
        """
        data = {k: v for k, v in asdict(self).items() if not k.startswith('_')}
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"))
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:10]
        self._param_hash = digest
        return digest

    @property
    def param_hash(self) -> str:
        if not self._param_hash:
            return self.compute_hash()
        return self._param_hash

    def default_max_distance(self, interaction_type: str) -> float:
        """Per-type distance cutoff used when DetectionOptions.max_distance is None."""
        mapping = {
            "hydrogen-bond": self.hbond_distance_cutoff,
            "salt-bridge": self.salt_bridge_distance_cutoff,
            "hydrophobic": self.hydrophobic_distance_cutoff,
            "pi-stacking": self.pi_pi_distance_cutoff,
            "cation-pi": self.cation_pi_distance_cutoff,
        }
        try:
            return mapping[interaction_type]
        except KeyError:
            raise ValidationError(f"unknown interaction type '{interaction_type}'") from None


@dataclass
class MeasurementConfig:
    """Visual constants for measurement geometry."""

    arc_radius: float = 1.0
    arc_segments: int = 32
    line_width: float = 0.1
    line_style: str = "solid"
    default_color: str = "#FFFF00"
    plane_opacity: float = 0.3
    label_billboard: bool = True
    label_style: Dict[str, Any] = field(default_factory=lambda: {
        "size": 1.0,
        "color": "#FFFFFF",
        "background": True,
    })


@dataclass
class VisualizationConfig:
    """Configuration for interaction rendering."""

    interaction_colors: Dict[str, str] = field(default_factory=lambda: {
        "hydrogen-bond": "#FF6B6B",
        "salt-bridge": "#2E86C1",
        "hydrophobic": "#E67E22",
        "pi-stacking": "#F39C12",
        "cation-pi": "#1ABC9C",
    })
    strength_colors: Dict[str, str] = field(default_factory=lambda: {
        "strong": "#00FF00",
        "moderate": "#FFFF00",
        "weak": "#FF0000",
    })
    color_by_strength: bool = True
    show_labels: bool = True
    line_width: float = 0.1
    dash_length: float = 0.2


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Lab Visualizer Core"
    version: str = "0.1.0"

    interactions: InteractionConfig = field(default_factory=InteractionConfig)
    measurements: MeasurementConfig = field(default_factory=MeasurementConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)

    # Interaction presets
    presets: Dict[str, Dict[str, float]] = field(default_factory=lambda: {
        "conservative": {
            "hbond_distance_cutoff": 3.2, "hbond_angle_cutoff": 130.0,
            "salt_bridge_distance_cutoff": 3.8,
            "hydrophobic_distance_cutoff": 4.8,
            "pi_pi_distance_cutoff": 4.8, "pi_pi_angle_cutoff": 25.0,
            "cation_pi_distance_cutoff": 5.5, "cation_pi_angle_cutoff": 35.0,
        },
        "literature_default": {
            "hbond_distance_cutoff": 3.5, "hbond_angle_cutoff": 120.0,
            "salt_bridge_distance_cutoff": 4.0,
            "hydrophobic_distance_cutoff": 5.0,
            "pi_pi_distance_cutoff": 5.0, "pi_pi_angle_cutoff": 30.0,
            "cation_pi_distance_cutoff": 6.0, "cation_pi_angle_cutoff": 45.0,
        },
        "exploratory": {
            "hbond_distance_cutoff": 3.9, "hbond_angle_cutoff": 110.0,
            "salt_bridge_distance_cutoff": 4.3,
            "hydrophobic_distance_cutoff": 5.5,
            "pi_pi_distance_cutoff": 5.5, "pi_pi_angle_cutoff": 35.0,
            "cation_pi_distance_cutoff": 6.5, "cation_pi_angle_cutoff": 55.0,
        },
    })

    def apply_preset(self, name: str) -> None:
        """Overwrite interaction cutoffs with a named preset."""
        key = name.strip().lower().replace(" ", "_")
        if key not in self.presets:
            raise ValidationError(f"unknown preset '{name}' (known: {', '.join(sorted(self.presets))})")
        _apply_overrides(self.interactions, self.presets[key], section="interactions")
        self.interactions.compute_hash()


_SECTIONS = ("interactions", "measurements", "visualization")


def _apply_overrides(target: Any, overrides: Dict[str, Any], section: str) -> None:
    known = {f.name for f in fields(target) if not f.name.startswith('_')}
    for key, value in overrides.items():
        if key not in known:
            raise ValidationError(f"unknown {section} option '{key}'")
        setattr(target, key, value)


def load_config(path: Optional[Union[str, Path]] = None, preset: Optional[str] = None) -> AppConfig:
    """Load application configuration.

    Starts from defaults, applies ``preset`` (or ``Settings.default_preset``)
    and then the optional YAML overlay whose top-level keys are section names:

        interactions:
          hbond_distance_cutoff: 3.3
        measurements:
          arc_radius: 0.8
    """
    config = AppConfig()
    config.apply_preset(preset or get_settings().default_preset)
    if path is None:
        return config
    with Path(path).open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"config file {path} must contain a mapping")
    for section, overrides in data.items():
        if section not in _SECTIONS:
            raise ValidationError(f"unknown config section '{section}'")
        if not isinstance(overrides, dict):
            raise ValidationError(f"config section '{section}' must be a mapping")
        _apply_overrides(getattr(config, section), overrides, section=section)
    config.interactions.compute_hash()
    return config


def get_interaction_display_names() -> Dict[str, str]:
    """Get human-readable names for interaction types."""
    return {
        "hydrogen-bond": "Hydrogen Bonds",
        "salt-bridge": "Salt Bridges",
        "hydrophobic": "Hydrophobic Contacts",
        "pi-stacking": "π-π Stacking",
        "cation-pi": "Cation–π Interactions",
    }
