"""Engine wiring: one controller instance per dashboard, collaborators injected."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence, Tuple

from weight_insights.controller import RegressionRangeBrush, ViewTransformSync
from weight_insights.domain_calculator import Domain, DomainCalculator
from weight_insights.engine_config import EngineSettings, load_engine_settings, resolve_settings_path
from weight_insights.interaction_state import GestureSource, InteractionGuard
from weight_insights.logging_utils import ENGINE_LOGGER_NAME, configure_engine_logger
from weight_insights.render.render_pass import RenderFrame, RenderPass, range_input_values
from weight_insights.render.scheduler import RenderOptions, RenderScheduler
from weight_insights.scales import PixelRange, ViewTransform
from weight_insights.series import DataPoint, GoalOverlay, OverlaySet, date_extent
from weight_insights.services.debounce_timers import DebounceTimers
from weight_insights.services.debounced_committer import AfterCancelFn, AfterFn, DebouncedCommitter
from weight_insights.time_window import (
    TimeWindow,
    add_months,
    end_of_day,
    parse_input_date,
    start_of_day,
    start_of_month,
)
from weight_insights.view_context import ChartContext, ChartDimensions, ViewContext

_LOGGER = logging.getLogger(ENGINE_LOGGER_NAME)

# Width added on each side of an overview that covers a single instant.
SINGLE_DATE_PADDING = timedelta(days=1)

_RANGE_INPUTS_KEY = "range_inputs"
_RESIZE_KEY = "resize"


class AnalyticsProvider(Protocol):
    def compute_overlays(
        self,
        analysis_range: TimeWindow,
        regression_range: Optional[TimeWindow],
    ) -> OverlaySet: ...


class DrawingSurface(Protocol):
    def draw(self, frame: RenderFrame) -> None: ...

    def move_brush(self, selection: Optional[PixelRange]) -> None: ...

    def set_transform(self, transform: ViewTransform) -> None: ...

    def move_regression_brush(self, selection: Optional[PixelRange]) -> None: ...

    def clear_hover(self) -> None: ...


def compute_initial_windows(
    points: Sequence[DataPoint],
    goal_date: Optional[datetime],
    span_months: int,
    now: datetime,
    annotation_dates: Sequence[datetime] = (),
) -> Tuple[TimeWindow, TimeWindow]:
    """Return ``(overview_window, initial_view_window)``.

    The overview covers the data and annotation dates, extended to a later
    goal date. The initial view ends at the overview end and starts on the
    first day of the last ``span_months`` calendar months of data, clamped to
    the overview start.
    """
    extent = date_extent(points)
    if extent is None:
        _LOGGER.warning("No valid date range in data; using fallback window ending now")
        fallback = TimeWindow(add_months(now, -span_months), now)
        return fallback, fallback
    overview_start, overview_end = extent.start, extent.end
    for when in annotation_dates:
        if isinstance(when, datetime):
            overview_start = min(overview_start, when)
            overview_end = max(overview_end, when)
    if isinstance(goal_date, datetime) and goal_date > overview_end:
        overview_end = goal_date
    overview = TimeWindow(overview_start, overview_end)
    if overview.is_degenerate:
        _LOGGER.warning("Data covers a single instant %s; padding overview by %s", overview.start, SINGLE_DATE_PADDING)
        overview = overview.expanded(SINGLE_DATE_PADDING)
    view_start = start_of_month(add_months(extent.end, -(span_months - 1)))
    if view_start < overview.start:
        view_start = overview.start
    return overview, TimeWindow(view_start, overview.end)


class DashboardEngine:
    """Owns the view context and routes gestures, analytics output and render requests."""

    def __init__(
        self,
        *,
        settings: EngineSettings,
        surface: DrawingSurface,
        after: AfterFn,
        after_cancel: AfterCancelFn,
        analytics: Optional[AnalyticsProvider] = None,
        now_fn: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.settings = settings
        self._surface = surface
        self._analytics = analytics
        self._now = now_fn
        self.points: Tuple[DataPoint, ...] = ()
        self.overlays = OverlaySet()
        self.goal = GoalOverlay()
        self.annotation_dates: Tuple[datetime, ...] = ()
        self.hover_point: Optional[DataPoint] = None
        self.dimensions: Optional[ChartDimensions] = None

        now = now_fn()
        placeholder = TimeWindow(add_months(now, -settings.initial_view_span_months), now)
        self.guard = InteractionGuard()
        self.domains = DomainCalculator(settings)
        self.overview_y_domain: Domain = settings.fallback_y_domain
        self.render_pass = RenderPass(self, surface.draw)
        self.scheduler = RenderScheduler(
            self.render_pass,
            after=after,
            after_cancel=after_cancel,
            frame_delay_ms=settings.frame_delay_ms,
        )
        self.committer = DebouncedCommitter(
            window_fn=lambda: self.sync.view_window,
            after=after,
            after_cancel=after_cancel,
            settle_ms=settings.debounce_settle_ms,
            clear_hover_fn=self._clear_hover,
        )
        self.sync = ViewTransformSync(
            settings=settings,
            view=ViewContext(overview_window=placeholder, view_window=placeholder),
            chart=ChartContext.uninitialized(),
            guard=self.guard,
            move_brush_fn=surface.move_brush,
            set_transform_fn=surface.set_transform,
            request_render_fn=self.scheduler.request_render,
            note_interaction_fn=self.committer.note_interaction,
        )
        self.regression = RegressionRangeBrush(
            settings=settings,
            chart_fn=lambda: self.sync.chart,
            window_fn=lambda: self.sync.view_window,
            guard=self.guard,
            move_brush_fn=surface.move_regression_brush,
            request_render_fn=self.scheduler.request_render,
            on_change_fn=self._on_regression_changed,
        )
        self.committer.add_listener(self._on_analysis_range_changed)
        self.timers = DebounceTimers(after=after, after_cancel=after_cancel)
        self._pending_inputs: Optional[Tuple[object, object]] = None
        self._pending_dimensions: Optional[ChartDimensions] = None

    # Read-only views ------------------------------------------------------

    @property
    def analysis_range(self) -> Optional[TimeWindow]:
        return self.committer.analysis_range

    @property
    def view_window(self) -> TimeWindow:
        return self.sync.view_window

    def range_input_values(self) -> Tuple[str, str]:
        return range_input_values(self.sync.view_window)

    # Data & layout --------------------------------------------------------

    def load_dataset(
        self,
        points: Sequence[DataPoint],
        *,
        goal: Optional[GoalOverlay] = None,
        annotation_dates: Optional[Sequence[datetime]] = None,
        dimensions: Optional[ChartDimensions] = None,
    ) -> TimeWindow:
        valid = [point for point in points if isinstance(getattr(point, "date", None), datetime)]
        if len(valid) != len(points):
            _LOGGER.warning("Dropped %d records without a valid date", len(points) - len(valid))
        self.points = tuple(sorted(valid, key=lambda point: point.date))
        if goal is not None:
            self.goal = goal
            self.overlays = replace(self.overlays, goal=goal)
        if annotation_dates is not None:
            self.annotation_dates = tuple(sorted(annotation_dates))
        if dimensions is not None:
            self.timers.cancel(_RESIZE_KEY)
            self._pending_dimensions = None
            self.dimensions = dimensions
        overview, view_window = self._windows()
        self.sync.reset(self._chart_for(overview), overview, view_window)
        self.refresh_overview_domain()
        self.committer.commit_now(view_window)
        self.request_render(RenderOptions(interactive=False, reason="load"))
        return view_window

    def set_goal(self, goal: GoalOverlay) -> None:
        """Goal changes may extend the overview; the current view is kept."""
        self.goal = goal
        self.overlays = replace(self.overlays, goal=goal)
        self._refresh_overview_window(reason="goal")

    def set_annotations(self, dates: Sequence[datetime]) -> None:
        self.annotation_dates = tuple(sorted(dates))
        self._refresh_overview_window(reason="annotations")

    def resize(self, dimensions: ChartDimensions) -> None:
        """Debounced; the latest dimensions win once the window stops changing."""
        self._pending_dimensions = dimensions
        self.timers.schedule(_RESIZE_KEY, self._apply_resize, delay_ms=self.settings.resize_debounce_ms)

    def flush_resize(self) -> bool:
        return self.timers.flush(_RESIZE_KEY)

    def set_overlays(self, overlays: OverlaySet) -> None:
        self.overlays = replace(overlays, goal=self.goal)
        self.request_render(RenderOptions(interactive=False, reason="overlays"))

    def set_visibility(self, **flags: bool) -> None:
        self.overlays = self.overlays.with_visibility(flags)
        self.goal = self.overlays.goal
        self.request_render(RenderOptions(interactive=False, reason="visibility"))

    def refresh_overview_domain(self) -> Domain:
        self.overview_y_domain = self.domains.compute_overview_y_domain(self.points, self.overlays)
        return self.overview_y_domain

    def request_render(self, options: Optional[RenderOptions] = None) -> None:
        self.scheduler.request_render(options)

    # Gestures -------------------------------------------------------------

    def on_zoom(self, transform: ViewTransform, source: GestureSource = GestureSource.USER) -> bool:
        return self.sync.apply_zoom(transform, source)

    def on_brush(self, selection: Optional[PixelRange], source: GestureSource = GestureSource.USER) -> bool:
        return self.sync.apply_brush(selection, source)

    def on_regression_brush_end(
        self,
        selection: Optional[PixelRange],
        source: GestureSource = GestureSource.USER,
    ) -> bool:
        return self.regression.apply_regression_brush(selection, source)

    def on_background_click(self) -> None:
        self._clear_hover()
        self.regression.clear(reason="background_click")

    def set_hover(self, point: Optional[DataPoint]) -> None:
        self.hover_point = point

    def center_on(self, when: datetime) -> Optional[TimeWindow]:
        window = self.sync.center_on(when, self.points)
        if window is None:
            return None
        self.committer.commit_now(window)
        self.request_render(RenderOptions(interactive=False, reason="center_on"))
        return window

    def apply_range_inputs(self, start_raw: object, end_raw: object) -> bool:
        start = parse_input_date(start_raw)
        end = parse_input_date(end_raw)
        if start is None or end is None or start > end:
            _LOGGER.warning("Invalid analysis range inputs: start=%r end=%r", start_raw, end_raw)
            return False
        window = TimeWindow(start_of_day(start), end_of_day(end))
        overview = self.sync.view.overview_window
        clipped = window.intersection(overview)
        if clipped is None or clipped.is_degenerate:
            _LOGGER.warning(
                "Analysis range %s - %s lies outside the data range %s - %s",
                window.start,
                window.end,
                overview.start,
                overview.end,
            )
            return False
        if clipped.whole_days() == self.analysis_range:
            _LOGGER.debug("Analysis range inputs unchanged")
            return False
        self.regression.clear(reason="range_inputs")
        self.sync.set_window(clipped, reason="range_inputs")
        self.committer.commit_now(clipped)
        self.request_render(RenderOptions(interactive=False, reason="range_inputs"))
        return True

    def note_range_inputs(self, start_raw: object, end_raw: object) -> None:
        """Debounced edit of the range boxes; only the last pair is applied."""
        self._pending_inputs = (start_raw, end_raw)
        self.timers.schedule(
            _RANGE_INPUTS_KEY,
            self._apply_pending_inputs,
            delay_ms=self.settings.range_input_debounce_ms,
        )

    def flush_range_inputs(self) -> bool:
        """Apply button: run pending range edits now."""
        if not self.timers.is_pending(_RANGE_INPUTS_KEY):
            return False
        self.timers.cancel(_RANGE_INPUTS_KEY)
        return self._apply_pending_inputs()

    def flush(self) -> bool:
        return self.committer.flush()

    def shutdown(self) -> None:
        self.timers.cancel_all()
        self.committer.cancel()
        self.scheduler.cancel()

    # Internals ------------------------------------------------------------

    def _windows(self) -> Tuple[TimeWindow, TimeWindow]:
        return compute_initial_windows(
            self.points,
            self.goal.date,
            self.settings.initial_view_span_months,
            self._now(),
            self.annotation_dates,
        )

    def _refresh_overview_window(self, *, reason: str) -> None:
        overview, _ = self._windows()
        self.sync.reset(self._chart_for(overview), overview, self.sync.view_window)
        self.request_render(RenderOptions(interactive=False, reason=reason))

    def _apply_pending_inputs(self) -> bool:
        inputs, self._pending_inputs = self._pending_inputs, None
        if inputs is None:
            return False
        return self.apply_range_inputs(*inputs)

    def _apply_resize(self) -> None:
        dimensions, self._pending_dimensions = self._pending_dimensions, None
        if dimensions is None:
            return
        self.dimensions = dimensions
        self._clear_hover()
        overview = self.sync.view.overview_window
        restored = self.sync.view_window
        if self.analysis_range is not None:
            committed = self.analysis_range.intersection(overview)
            if committed is not None and not committed.is_degenerate:
                restored = committed
        self.sync.reset(self._chart_for(overview), overview, restored)
        self.request_render(RenderOptions(interactive=False, reason="resize"))

    def _chart_for(self, overview: TimeWindow) -> ChartContext:
        if self.dimensions is None:
            return ChartContext.uninitialized()
        return ChartContext.ready(self.dimensions, overview)

    def _clear_hover(self) -> None:
        if self.hover_point is None:
            return
        self.hover_point = None
        self._surface.clear_hover()

    def _on_analysis_range_changed(self, analysis_range: TimeWindow) -> None:
        self._recompute_overlays(analysis_range, self.regression.regression_range)

    def _on_regression_changed(self, regression_range: Optional[TimeWindow]) -> None:
        analysis_range = self.analysis_range
        if analysis_range is not None:
            self._recompute_overlays(analysis_range, regression_range)

    def _recompute_overlays(self, analysis_range: TimeWindow, regression_range: Optional[TimeWindow]) -> None:
        if self._analytics is None:
            return
        try:
            overlays = self._analytics.compute_overlays(analysis_range, regression_range)
        except Exception:
            _LOGGER.exception("Analytics failed for range %s - %s", analysis_range.start, analysis_range.end)
            return
        self.set_overlays(overlays)


def build_engine(
    *,
    surface: DrawingSurface,
    analytics: Optional[AnalyticsProvider] = None,
    root: Optional[Path] = None,
    after: Optional[AfterFn] = None,
    after_cancel: Optional[AfterCancelFn] = None,
    configure_logging: bool = False,
) -> DashboardEngine:
    """Build an engine from on-disk settings, defaulting to Qt event-loop timers."""
    settings = load_engine_settings(resolve_settings_path(root))
    if configure_logging:
        configure_engine_logger(retention=settings.log_retention)
    if after is None or after_cancel is None:
        from weight_insights.services.qt_timers import QtTimerScheduler

        timers = QtTimerScheduler()
        after = timers.after
        after_cancel = timers.after_cancel
    return DashboardEngine(
        settings=settings,
        surface=surface,
        analytics=analytics,
        after=after,
        after_cancel=after_cancel,
    )
