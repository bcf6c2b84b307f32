"""Visualizer configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import ConfigError
from .defaults import (
    ANALYSIS_CONTENT_LIMIT,
    CHARGE_STRENGTH,
    LINK_DISTANCE,
    MAX_CONTENT_BYTES,
    NODE_RADIUS,
    ROOT_CHARGE_STRENGTH,
)


@dataclass
class ForceSettings:
    """Force layout tuning, per node kind where it matters."""

    node_radius: dict[str, float] = field(default_factory=lambda: dict(NODE_RADIUS))
    link_distance: dict[str, float] = field(
        default_factory=lambda: dict(LINK_DISTANCE)
    )
    charge_strength: dict[str, float] = field(
        default_factory=lambda: dict(CHARGE_STRENGTH)
    )
    root_charge_strength: float = ROOT_CHARGE_STRENGTH

    link_strength: float = 0.4  # Fraction of the distance error corrected per tick
    collision_margin: float = 30.0  # Label clearance added to the radius
    collision_strength: float = 0.9
    collision_iterations: int = 3
    center_strength: float = 0.05

    # Simulation energy ("alpha"), d3-force conventions
    alpha_min: float = 0.001
    alpha_decay: float = 1 - 0.001 ** (1 / 300)  # ~300 ticks from 1.0 to alpha_min
    velocity_decay: float = 0.4
    reheat_alpha: float = 1.0
    drag_alpha_target: float = 0.3

    # Spawn offset range around the parent for newly revealed nodes
    spawn_jitter: float = 60.0

    def radius_for(self, kind: str) -> float:
        return self.node_radius.get(kind, 5.0)

    def distance_for(self, kind: str) -> float:
        return self.link_distance.get(kind, 180.0)

    def charge_for(self, kind: str, is_root: bool = False) -> float:
        if is_root:
            return self.root_charge_strength
        return self.charge_strength.get(kind, -80.0)


@dataclass
class CameraSettings:
    """Viewport and focus animation settings."""

    width: float = 1280.0
    height: float = 800.0
    min_zoom: float = 0.1
    max_zoom: float = 8.0
    focus_zoom: float = 2.0
    focus_duration: float = 1.2  # seconds


@dataclass
class EnrichmentSettings:
    """Limits applied when fetching and analyzing file content."""

    max_content_bytes: int = MAX_CONTENT_BYTES
    analysis_content_limit: int = ANALYSIS_CONTENT_LIMIT


@dataclass
class SchedulerSettings:
    """Animation loop settings."""

    tick_rate: float = 60.0  # ticks per second


@dataclass
class VisualizerSettings:
    """Complete visualizer configuration."""

    forces: ForceSettings = field(default_factory=ForceSettings)
    camera: CameraSettings = field(default_factory=CameraSettings)
    enrichment: EnrichmentSettings = field(default_factory=EnrichmentSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)

    @classmethod
    def load(cls, path: Path) -> VisualizerSettings:
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            VisualizerSettings instance (defaults if the file does not exist)

        Raises:
            ConfigError: If the file is not valid YAML or has unknown keys
        """
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {path}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VisualizerSettings:
        """Create settings from dictionary.

        Per-kind tables are merged over the defaults so a file only needs
        to mention the kinds it changes.
        """
        forces_data = dict(data.get("forces") or {})
        for table in ("node_radius", "link_distance", "charge_strength"):
            if table in forces_data:
                merged = dict(getattr(ForceSettings(), table))
                merged.update(forces_data[table] or {})
                forces_data[table] = merged

        try:
            return cls(
                forces=ForceSettings(**forces_data),
                camera=CameraSettings(**(data.get("camera") or {})),
                enrichment=EnrichmentSettings(**(data.get("enrichment") or {})),
                scheduler=SchedulerSettings(**(data.get("scheduler") or {})),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid visualizer settings: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
