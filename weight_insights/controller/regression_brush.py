"""Secondary range selector for the regression sub-range."""
from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from weight_insights.engine_config import EngineSettings
from weight_insights.interaction_state import GestureSource, InteractionGuard, InteractionState
from weight_insights.logging_utils import ENGINE_LOGGER_NAME
from weight_insights.render.scheduler import RenderOptions
from weight_insights.scales import PixelRange
from weight_insights.time_window import TimeWindow, to_ms
from weight_insights.view_context import ChartContext

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Regression")

_IGNORED_SOURCES = frozenset({GestureSource.REGRESSION, GestureSource.PROGRAMMATIC})


def _noop(*_args: object) -> None:
    return None


class RegressionRangeBrush:
    """Applies gesture-end regression selections behind a millisecond dead-band."""

    def __init__(
        self,
        *,
        settings: EngineSettings,
        chart_fn: Callable[[], ChartContext],
        window_fn: Callable[[], TimeWindow],
        guard: Optional[InteractionGuard] = None,
        move_brush_fn: Optional[Callable[[Optional[PixelRange]], None]] = None,
        request_render_fn: Optional[Callable[[RenderOptions], None]] = None,
        on_change_fn: Optional[Callable[[Optional[TimeWindow]], None]] = None,
    ) -> None:
        self._tolerance_ms = float(settings.regression_change_tolerance_ms)
        self._match_tolerance_px = float(settings.brush_match_tolerance_px)
        self._chart_fn = chart_fn
        self._window_fn = window_fn
        self._guard = guard or InteractionGuard()
        self._move_brush = move_brush_fn or _noop
        self._request_render = request_render_fn or _noop
        self._on_change = on_change_fn or _noop
        self._range: Optional[TimeWindow] = None
        self._displayed: Optional[PixelRange] = None

    @property
    def regression_range(self) -> Optional[TimeWindow]:
        return self._range

    @property
    def displayed_selection(self) -> Optional[PixelRange]:
        return self._displayed

    def apply_regression_brush(
        self,
        selection: Optional[PixelRange],
        source: GestureSource = GestureSource.USER,
    ) -> bool:
        """Handle a gesture-end selection. Returns True when the regression range changed."""
        if source in _IGNORED_SOURCES:
            _LOGGER.debug("Ignoring regression brush echo from %s", source.value)
            return False
        chart = self._chart_fn()
        if not chart.is_ready:
            _LOGGER.warning("Regression brush ignored: chart context not ready")
            return False
        with self._guard.active(InteractionState.COMMITTING_REGRESSION, reason="regression_brush") as entered:
            if not entered:
                return False
            new_range: Optional[TimeWindow] = None
            if selection is not None and selection[0] != selection[1]:
                x0, x1 = float(selection[0]), float(selection[1])
                if not (math.isfinite(x0) and math.isfinite(x1)):
                    _LOGGER.warning("Discarded regression selection %r: non-finite pixels", selection)
                    return False
                new_range = chart.focus_scale(self._window_fn()).invert_selection((x0, x1))
                if new_range is None:
                    _LOGGER.warning("Discarded regression selection %r: no matching window", selection)
                    return False
                self._displayed = (min(x0, x1), max(x0, x1))
                changed = self._exceeds_tolerance(new_range)
            else:
                self._displayed = None
                changed = self._range is not None
            if not changed:
                _LOGGER.debug("Regression range change within tolerance; keeping %s", self._range)
                return False
            self._set_range(new_range)
            return True

    def clear(self, *, reason: str = "clear") -> bool:
        """Drop the regression range and collapse the brush without re-running the handler."""
        if self._range is None and self._displayed is None:
            return False
        with self._guard.active(InteractionState.COMMITTING_REGRESSION, reason=f"regression:{reason}") as entered:
            if not entered:
                return False
            self._displayed = None
            self._move_brush(None)
            if self._range is None:
                return False
            self._set_range(None)
            return True

    def sync_display(self) -> Optional[PixelRange]:
        """Move the brush to match the regression range when it drifted past the pixel tolerance."""
        chart = self._chart_fn()
        if not chart.is_ready:
            return self._displayed
        target: Optional[PixelRange] = None
        if self._range is not None:
            focus_width = float(chart.dimensions.focus_width)
            start_px, end_px = chart.focus_scale(self._window_fn()).map_window(self._range)
            if (
                math.isfinite(start_px)
                and math.isfinite(end_px)
                and end_px > start_px
                and start_px <= focus_width
                and end_px >= 0
            ):
                clamped = (max(0.0, start_px), min(focus_width, end_px))
                if clamped[1] > clamped[0]:
                    target = clamped
        if not self._selection_differs(self._displayed, target):
            return self._displayed
        with self._guard.active(InteractionState.COMMITTING_REGRESSION, reason="regression:sync_display") as entered:
            if entered:
                self._move_brush(target)
                self._displayed = target
        return self._displayed

    def _set_range(self, new_range: Optional[TimeWindow]) -> None:
        self._range = new_range
        _LOGGER.debug("Regression range %s", "reset" if new_range is None else f"{new_range.start} - {new_range.end}")
        try:
            self._on_change(new_range)
        except Exception:
            _LOGGER.exception("Regression range listener failed")
        self._request_render(RenderOptions(interactive=False, reason="regression"))

    def _exceeds_tolerance(self, candidate: TimeWindow) -> bool:
        current = self._range
        if current is None:
            return True
        return (
            abs(to_ms(current.start) - to_ms(candidate.start)) > self._tolerance_ms
            or abs(to_ms(current.end) - to_ms(candidate.end)) > self._tolerance_ms
        )

    def _selection_differs(self, current: Optional[PixelRange], target: Optional[PixelRange]) -> bool:
        if current is None or target is None:
            return (current is None) != (target is None)
        tolerance = self._match_tolerance_px
        return abs(current[0] - target[0]) > tolerance or abs(current[1] - target[1]) > tolerance
