"""Configuration for map-my-repo."""

from .settings import (
    CameraSettings,
    EnrichmentSettings,
    ForceSettings,
    SchedulerSettings,
    VisualizerSettings,
)

__all__ = [
    "CameraSettings",
    "EnrichmentSettings",
    "ForceSettings",
    "SchedulerSettings",
    "VisualizerSettings",
]
