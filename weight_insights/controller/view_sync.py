"""Bidirectional sync between the focus zoom transform and the overview brush."""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Callable, Optional, Sequence

from weight_insights.engine_config import EngineSettings
from weight_insights.interaction_state import GestureSource, InteractionGuard, InteractionState
from weight_insights.logging_utils import ENGINE_LOGGER_NAME
from weight_insights.render.scheduler import RenderOptions
from weight_insights.scales import PixelRange, ViewTransform, clamp_selection, constrain_transform
from weight_insights.series import DataPoint
from weight_insights.time_window import TimeWindow, from_ms, to_ms
from weight_insights.view_context import ChartContext, ViewContext

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Sync")

_ZOOM_IGNORED_SOURCES = frozenset({GestureSource.BRUSH, GestureSource.PROGRAMMATIC})
_BRUSH_IGNORED_SOURCES = frozenset({GestureSource.ZOOM, GestureSource.PROGRAMMATIC})


def _noop(*_args: object) -> None:
    return None


class ViewTransformSync:
    """Owns the view window, zoom transform and overview brush selection.

    Each gesture handler converts its input into a time window and then pushes
    the reciprocal representation to the drawing surface. The surface may echo
    that programmatic update back as an event; echoes are dropped either by
    their source tag or by the interaction guard.
    """

    def __init__(
        self,
        *,
        settings: EngineSettings,
        view: ViewContext,
        chart: ChartContext,
        guard: Optional[InteractionGuard] = None,
        move_brush_fn: Optional[Callable[[Optional[PixelRange]], None]] = None,
        set_transform_fn: Optional[Callable[[ViewTransform], None]] = None,
        request_render_fn: Optional[Callable[[RenderOptions], None]] = None,
        note_interaction_fn: Optional[Callable[[], object]] = None,
    ) -> None:
        self._settings = settings
        self._view = view
        self._chart = chart
        self._guard = guard or InteractionGuard()
        self._move_brush = move_brush_fn or _noop
        self._set_transform = set_transform_fn or _noop
        self._request_render = request_render_fn or _noop
        self._note_interaction = note_interaction_fn or _noop
        self.discarded = 0

    @property
    def view(self) -> ViewContext:
        return self._view

    @property
    def chart(self) -> ChartContext:
        return self._chart

    @property
    def guard(self) -> InteractionGuard:
        return self._guard

    @property
    def view_window(self) -> TimeWindow:
        return self._view.view_window

    # Owner-driven resets ----------------------------------------------------

    def reset(self, chart: ChartContext, overview_window: TimeWindow, view_window: TimeWindow) -> None:
        """Install new overview bounds / dimensions and re-derive both representations."""
        self._chart = chart
        self._view.overview_window = overview_window
        self._view.view_window = view_window
        self.sync_to_window(reason="reset")

    # Gesture handlers -------------------------------------------------------

    def apply_zoom(self, transform: ViewTransform, source: GestureSource = GestureSource.USER) -> bool:
        if source in _ZOOM_IGNORED_SOURCES:
            _LOGGER.debug("Ignoring zoom event echoed from %s", source.value)
            return False
        chart = self._chart
        if not chart.is_ready:
            _LOGGER.warning("Zoom ignored: chart context not ready")
            return False
        with self._guard.active(InteractionState.ZOOMING, reason=f"zoom:{source.value}") as entered:
            if not entered:
                return False
            if not transform.is_valid():
                return self._discard("zoom", f"invalid transform {transform!r}")
            dims = chart.dimensions
            overview_scale = chart.overview_scale
            constrained = constrain_transform(
                transform,
                focus_width=dims.focus_width,
                overview_range=overview_scale.range,
                scale_min=self._settings.zoom_scale_min,
                scale_max=self._settings.zoom_scale_max,
            )
            window = constrained.rescale(overview_scale, dims.focus_width)
            if window is None or window.is_degenerate:
                return self._discard("zoom", f"transform {constrained!r} maps to no window")
            selection = clamp_selection(overview_scale.map_window(window), overview_scale.range)
            self._view.transform = constrained
            self._view.view_window = window
            self._view.brush_selection = selection
            if constrained != transform:
                self._set_transform(constrained)
            self._move_brush(selection)
            self._request_render(RenderOptions(interactive=True, reason="zoom"))
            self._note_interaction()
            return True

    def apply_brush(self, selection: Optional[PixelRange], source: GestureSource = GestureSource.USER) -> bool:
        if source in _BRUSH_IGNORED_SOURCES:
            _LOGGER.debug("Ignoring brush event echoed from %s", source.value)
            return False
        chart = self._chart
        if not chart.is_ready:
            _LOGGER.warning("Brush ignored: chart context not ready")
            return False
        with self._guard.active(InteractionState.BRUSHING, reason=f"brush:{source.value}") as entered:
            if not entered:
                return False
            overview_scale = chart.overview_scale
            pixels = selection if selection is not None else overview_scale.range
            x0, x1 = float(pixels[0]), float(pixels[1])
            if not (math.isfinite(x0) and math.isfinite(x1)) or x1 <= x0:
                return self._discard("brush", f"degenerate selection {selection!r}")
            window = overview_scale.invert_selection((x0, x1))
            transform = ViewTransform.from_selection((x0, x1), chart.dimensions.focus_width)
            if window is None or transform is None or window.is_degenerate:
                return self._discard("brush", f"selection {selection!r} maps to no window")
            self._view.view_window = window
            self._view.transform = transform
            self._view.brush_selection = (x0, x1) if selection is not None else None
            self._set_transform(transform)
            self._request_render(RenderOptions(interactive=True, reason="brush"))
            self._note_interaction()
            return True

    # Programmatic updates ---------------------------------------------------

    def sync_to_window(self, *, reason: str = "sync") -> bool:
        """Re-derive transform and brush from the current window without running either handler."""
        chart = self._chart
        if not chart.is_ready:
            return False
        with self._guard.active(InteractionState.ZOOMING, reason=f"programmatic:{reason}") as entered:
            if not entered:
                return False
            overview_scale = chart.overview_scale
            x0, x1 = overview_scale.map_window(self._view.view_window)
            transform = ViewTransform.from_selection((x0, x1), chart.dimensions.focus_width)
            if transform is None:
                return self._discard("sync", f"window {self._view.view_window!r} has no pixel width")
            selection = clamp_selection((x0, x1), overview_scale.range)
            self._view.transform = transform
            self._view.brush_selection = selection
            self._set_transform(transform)
            self._move_brush(selection)
            return True

    def set_window(self, window: TimeWindow, *, reason: str = "set_window") -> bool:
        """Show ``window`` clipped to the overview; windows outside it are discarded."""
        clipped = window.intersection(self._view.overview_window)
        if clipped is None or clipped.is_degenerate:
            return self._discard(reason, f"window {window!r} lies outside the overview")
        self._view.view_window = clipped
        return self.sync_to_window(reason=reason)

    def center_on(self, when: datetime, points: Sequence[DataPoint] = ()) -> Optional[TimeWindow]:
        """Recenter the current view width on the data point nearest ``when``, clamped to the overview."""
        if not isinstance(when, datetime):
            return None
        target = when
        if points:
            nearest = min(points, key=lambda point: abs((point.date - when).total_seconds()))
            target = nearest.date
        window = self._view.view_window
        overview = self._view.overview_window
        width_ms = window.span_ms
        min_ms = to_ms(overview.start)
        max_ms = to_ms(overview.end)
        start_ms = max(min_ms, to_ms(target) - width_ms / 2.0)
        end_ms = start_ms + width_ms
        if end_ms > max_ms:
            end_ms = max_ms
            start_ms = max(min_ms, end_ms - width_ms)
        end_ms = max(end_ms, start_ms)
        start = from_ms(start_ms)
        end = from_ms(end_ms)
        if start is None or end is None:
            self._discard("center", f"cannot centre on {when!r}")
            return None
        centred = TimeWindow(start, end)
        if centred.is_degenerate:
            self._discard("center", f"view around {when!r} has no width")
            return None
        self.set_window(centred, reason="center_on")
        return centred

    def _discard(self, kind: str, detail: str) -> bool:
        self.discarded += 1
        _LOGGER.warning("Discarded %s update: %s", kind, detail)
        return False
