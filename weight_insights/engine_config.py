"""Configuration helpers for the view-synchronisation engine."""
from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from weight_insights.time_window import DAY_MS

SETTINGS_ENV_VAR = "WEIGHT_INSIGHTS_SETTINGS"
DEFAULT_SETTINGS_FILENAME = "engine_settings.json"

# Empirically chosen dead-bands; tunable, not derived.
DEFAULT_REGRESSION_TOLERANCE_MS = DAY_MS // 4
DEFAULT_BRUSH_MATCH_TOLERANCE_PX = 1.0


@dataclass(frozen=True)
class EngineSettings:
    """Tunable timings, paddings and bounds for the engine."""

    debounce_settle_ms: int = 300
    range_input_debounce_ms: int = 400
    resize_debounce_ms: int = 350
    regression_change_tolerance_ms: int = DEFAULT_REGRESSION_TOLERANCE_MS
    brush_match_tolerance_px: float = DEFAULT_BRUSH_MATCH_TOLERANCE_PX
    y_axis_padding_pct: float = 0.02
    y_axis_padding_min_abs: float = 0.1
    goal_buffer_abs: float = 0.5
    initial_view_span_months: int = 3
    zoom_scale_min: float = 0.5
    zoom_scale_max: float = 20.0
    frame_delay_ms: int = 0
    fallback_y_domain: Tuple[float, float] = field(default=(60.0, 80.0))
    px_per_tick: int = 40
    log_retention: int = 5


def _coerce_int(raw: Any, fallback: int, *, minimum: int) -> int:
    if raw is None or isinstance(raw, bool):
        return fallback
    try:
        value = int(raw)
    except (TypeError, ValueError, OverflowError):
        return fallback
    return max(minimum, value)


def _coerce_float(raw: Any, fallback: float, *, minimum: float) -> float:
    if raw is None or isinstance(raw, bool):
        return fallback
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(value):
        return fallback
    return max(minimum, value)


def _coerce_domain(raw: Any, fallback: Tuple[float, float]) -> Tuple[float, float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        return fallback
    try:
        low, high = float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        return fallback
    if not (math.isfinite(low) and math.isfinite(high)) or low >= high:
        return fallback
    return low, high


def settings_from_mapping(data: Dict[str, Any]) -> EngineSettings:
    defaults = EngineSettings()
    zoom_min = _coerce_float(data.get("zoom_scale_min"), defaults.zoom_scale_min, minimum=1e-3)
    zoom_max = _coerce_float(data.get("zoom_scale_max"), defaults.zoom_scale_max, minimum=1e-3)
    if zoom_min > zoom_max:
        zoom_min, zoom_max = defaults.zoom_scale_min, defaults.zoom_scale_max
    return EngineSettings(
        debounce_settle_ms=_coerce_int(data.get("debounce_settle_ms"), defaults.debounce_settle_ms, minimum=25),
        range_input_debounce_ms=_coerce_int(
            data.get("range_input_debounce_ms"), defaults.range_input_debounce_ms, minimum=0
        ),
        resize_debounce_ms=_coerce_int(data.get("resize_debounce_ms"), defaults.resize_debounce_ms, minimum=0),
        regression_change_tolerance_ms=_coerce_int(
            data.get("regression_change_tolerance_ms"), defaults.regression_change_tolerance_ms, minimum=0
        ),
        brush_match_tolerance_px=_coerce_float(
            data.get("brush_match_tolerance_px"), defaults.brush_match_tolerance_px, minimum=0.0
        ),
        y_axis_padding_pct=_coerce_float(data.get("y_axis_padding_pct"), defaults.y_axis_padding_pct, minimum=0.0),
        y_axis_padding_min_abs=_coerce_float(
            data.get("y_axis_padding_min_abs"), defaults.y_axis_padding_min_abs, minimum=0.0
        ),
        goal_buffer_abs=_coerce_float(data.get("goal_buffer_abs"), defaults.goal_buffer_abs, minimum=0.0),
        initial_view_span_months=_coerce_int(
            data.get("initial_view_span_months"), defaults.initial_view_span_months, minimum=1
        ),
        zoom_scale_min=zoom_min,
        zoom_scale_max=zoom_max,
        frame_delay_ms=_coerce_int(data.get("frame_delay_ms"), defaults.frame_delay_ms, minimum=0),
        fallback_y_domain=_coerce_domain(data.get("fallback_y_domain"), defaults.fallback_y_domain),
        px_per_tick=_coerce_int(data.get("px_per_tick"), defaults.px_per_tick, minimum=1),
        log_retention=_coerce_int(data.get("log_retention"), defaults.log_retention, minimum=1),
    )


def load_engine_settings(settings_path: Path) -> EngineSettings:
    """Read engine settings from JSON; any unreadable input yields defaults."""
    try:
        raw = settings_path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return EngineSettings()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return EngineSettings()
    if not isinstance(data, dict):
        return EngineSettings()
    return settings_from_mapping(data)


def resolve_settings_path(root: Optional[Path] = None) -> Path:
    env_value = os.environ.get(SETTINGS_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    base = root if root is not None else Path.cwd()
    return base / DEFAULT_SETTINGS_FILENAME
