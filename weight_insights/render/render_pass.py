"""One full render pass: refresh domains, assemble a frame, hand it to the drawing surface."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, Tuple

from weight_insights.domain_calculator import Domain
from weight_insights.logging_utils import ENGINE_LOGGER_NAME
from weight_insights.render.scheduler import RenderOptions
from weight_insights.scales import PixelRange, ViewTransform
from weight_insights.series import GOAL_LINE, SMOOTHED, DataPoint, OverlaySet, Series, SeriesPoint, slice_window
from weight_insights.time_window import TimeWindow, format_input_date
from weight_insights.view_context import ChartDimensions

if TYPE_CHECKING:  # pragma: no cover
    from weight_insights.dashboard import DashboardEngine

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Render")


@dataclass(frozen=True)
class ViewDomains:
    x: TimeWindow
    y: Domain


@dataclass(frozen=True)
class RenderFrame:
    """Everything the drawing step needs for one pass."""

    options: RenderOptions
    dimensions: ChartDimensions
    focus: ViewDomains
    overview: ViewDomains
    balance: ViewDomains
    rate: ViewDomains
    tdee_diff: ViewDomains
    visible_points: Tuple[DataPoint, ...]
    overlays: OverlaySet
    goal_line: Optional[Series]
    transform: ViewTransform
    brush_selection: Optional[PixelRange]
    regression_range: Optional[TimeWindow]
    regression_selection: Optional[PixelRange]
    range_inputs: Tuple[str, str]
    annotation_dates: Tuple[datetime, ...] = ()


def build_goal_line(overlays: OverlaySet, overview_end: datetime) -> Optional[Series]:
    """Goal line from the last smoothed point to the goal date (or overview end)."""
    goal = overlays.goal
    if goal.value is None:
        return None
    smoothed = overlays.get(SMOOTHED)
    anchor = smoothed.last_value_point() if smoothed is not None else None
    if anchor is None:
        return None
    end_date = goal.date if goal.date is not None else overview_end
    if end_date < anchor.date:
        return None
    return Series(
        name=GOAL_LINE,
        points=(SeriesPoint(anchor.date, anchor.value), SeriesPoint(end_date, goal.value)),
        visible=goal.visible,
    )


def range_input_values(window: Optional[TimeWindow]) -> Tuple[str, str]:
    if window is None:
        return "", ""
    return format_input_date(window.start), format_input_date(window.end)


class RenderPass:
    """Callable handed to the render scheduler."""

    def __init__(self, engine: "DashboardEngine", draw_fn: Callable[[RenderFrame], None]) -> None:
        self._engine = engine
        self._draw = draw_fn
        self.last_frame: Optional[RenderFrame] = None
        self.skipped = 0

    def __call__(self, options: RenderOptions) -> None:
        engine = self._engine
        chart = engine.sync.chart
        if not chart.is_ready:
            self.skipped += 1
            _LOGGER.warning("Skipping render (reason=%s): chart context not ready", options.reason)
            return

        if not options.interactive:
            engine.refresh_overview_domain()
            engine.sync.sync_to_window(reason="render")
            engine.regression.sync_display()

        frame = self.build_frame(options)
        self.last_frame = frame
        self._draw(frame)

    def build_frame(self, options: RenderOptions) -> RenderFrame:
        engine = self._engine
        dims = engine.sync.chart.dimensions
        view = engine.sync.view
        window = view.view_window
        calculator = engine.domains
        overlays = engine.overlays
        visible = slice_window(engine.points, window)
        goal_line = build_goal_line(overlays, view.overview_window.end)
        domain_overlays = overlays.with_series(goal_line) if goal_line is not None else overlays
        overview_y = engine.overview_y_domain
        focus_y = calculator.compute_y_domain(
            visible,
            domain_overlays,
            window=window,
            height=dims.focus_height,
            overview_domain=overview_y,
        )
        secondary_x = calculator.compute_x_domain(window)
        return RenderFrame(
            options=options,
            dimensions=dims,
            focus=ViewDomains(window, focus_y),
            overview=ViewDomains(view.overview_window, overview_y),
            balance=ViewDomains(secondary_x, calculator.compute_balance_y_domain(visible)),
            rate=ViewDomains(secondary_x, calculator.compute_rate_y_domain(visible)),
            tdee_diff=ViewDomains(secondary_x, calculator.compute_tdee_diff_y_domain(visible)),
            visible_points=visible,
            overlays=overlays,
            goal_line=goal_line,
            transform=view.transform,
            brush_selection=view.brush_selection,
            regression_range=engine.regression.regression_range,
            regression_selection=engine.regression.displayed_selection,
            range_inputs=range_input_values(window),
            annotation_dates=tuple(when for when in engine.annotation_dates if window.contains(when)),
        )
