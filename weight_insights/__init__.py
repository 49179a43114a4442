"""Zoom, brush and render coordination for the weight insights dashboard."""

from .dashboard import AnalyticsProvider, DashboardEngine, DrawingSurface, build_engine
from .engine_config import EngineSettings, load_engine_settings

__all__ = [
    "AnalyticsProvider",
    "DashboardEngine",
    "DrawingSurface",
    "EngineSettings",
    "build_engine",
    "load_engine_settings",
]
