"""Axis domain computation for the focus, overview and secondary views."""
from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from weight_insights.engine_config import EngineSettings
from weight_insights.logging_utils import ENGINE_LOGGER_NAME
from weight_insights.scales import nice_domain
from weight_insights.series import BAND, SMOOTHED, DataPoint, OverlaySet, finite_or_none
from weight_insights.time_window import TimeWindow

_LOGGER = logging.getLogger(f"{ENGINE_LOGGER_NAME}.Domains")

Domain = Tuple[float, float]

BALANCE_MIN_HALF_RANGE = 500.0
RATE_FALLBACK: Domain = (-0.5, 0.5)
TDEE_DIFF_FALLBACK: Domain = (-300.0, 300.0)
OVERVIEW_MIN_PADDING = 0.5


def is_finite_domain(domain: Optional[Sequence[float]]) -> bool:
    if domain is None or len(domain) != 2:
        return False
    low, high = domain
    return (
        isinstance(low, (int, float))
        and isinstance(high, (int, float))
        and math.isfinite(low)
        and math.isfinite(high)
        and low <= high
    )


def _extent(values: Iterable[float]) -> Optional[Domain]:
    low = math.inf
    high = -math.inf
    for value in values:
        if value < low:
            low = value
        if value > high:
            high = value
    if low == math.inf:
        return None
    return low, high


class DomainCalculator:
    """Computes Y domains from the visible slice and overlays, never returning non-finite bounds."""

    def __init__(self, settings: EngineSettings) -> None:
        self._settings = settings

    def tick_count(self, height: Optional[float]) -> int:
        if height is None or not math.isfinite(height) or height <= 0:
            return 10
        return max(int(height // self._settings.px_per_tick), 5)

    # Focus view -----------------------------------------------------------

    def gather_values(
        self,
        visible_slice: Sequence[DataPoint],
        overlays: OverlaySet,
        window: Optional[TimeWindow] = None,
    ) -> List[float]:
        """Every numeric value the focus Y axis has to contain."""
        values: List[float] = []
        if overlays.raw_visible:
            for point in visible_slice:
                if point.is_outlier:
                    continue
                number = finite_or_none(point.value)
                if number is not None:
                    values.append(number)

        for series in overlays.visible_series():
            points = series.within(window) if window is not None else iter(series.points)
            for point in points:
                values.extend(point.numeric_values())

        trend_lines = list(overlays.visible_trend_lines())
        if trend_lines:
            dates = [point.date for point in visible_slice]
            if not dates and window is not None:
                dates = [window.start, window.end]
            for line in trend_lines:
                for when in dates:
                    number = line.value_at(when)
                    if number is not None:
                        values.append(number)

        goal = overlays.goal
        goal_value = finite_or_none(goal.value)
        if goal.visible and goal_value is not None:
            buffer = self._settings.goal_buffer_abs
            values.append(goal_value - buffer)
            values.append(goal_value + buffer)
        return values

    def compute_y_domain(
        self,
        visible_slice: Sequence[DataPoint],
        overlays: OverlaySet,
        padding_pct: Optional[float] = None,
        padding_min_abs: Optional[float] = None,
        *,
        window: Optional[TimeWindow] = None,
        height: Optional[float] = None,
        overview_domain: Optional[Domain] = None,
    ) -> Domain:
        pct = self._settings.y_axis_padding_pct if padding_pct is None else padding_pct
        min_abs = self._settings.y_axis_padding_min_abs if padding_min_abs is None else padding_min_abs
        extent = _extent(self.gather_values(visible_slice, overlays, window))
        if extent is None:
            _LOGGER.debug("No visible values for focus Y domain; engaging fallback chain")
            return self.fallback_domain(overview_domain, height)
        low, high = extent
        if low == high:
            pad = min_abs * 2 if min_abs > 0 else 1.0
        else:
            pad = max(pct * (high - low), min_abs)
        domain = nice_domain(low - pad, high + pad, self.tick_count(height))
        if not is_finite_domain(domain):
            _LOGGER.warning("Computed invalid focus Y domain %s; engaging fallback chain", domain)
            return self.fallback_domain(overview_domain, height)
        return domain

    def fallback_domain(self, overview_domain: Optional[Domain], height: Optional[float] = None) -> Domain:
        if is_finite_domain(overview_domain) and overview_domain[0] < overview_domain[1]:  # type: ignore[index]
            return nice_domain(overview_domain[0], overview_domain[1], self.tick_count(height))  # type: ignore[index]
        _LOGGER.warning(
            "Overview Y domain %s unusable; using hardcoded fallback %s",
            overview_domain,
            self._settings.fallback_y_domain,
        )
        return self._settings.fallback_y_domain

    # Overview strip -------------------------------------------------------

    def compute_overview_y_domain(self, points: Sequence[DataPoint], overlays: OverlaySet) -> Domain:
        values: List[float] = []
        smoothed = overlays.get(SMOOTHED)
        if smoothed is not None and smoothed.visible:
            for point in smoothed.points:
                number = finite_or_none(point.value)
                if number is not None:
                    values.append(number)
        else:
            for point in points:
                number = finite_or_none(point.value)
                if number is not None:
                    values.append(number)
        band = overlays.get(BAND)
        if band is not None and band.visible:
            for point in band.points:
                values.extend(point.numeric_values())

        extent = _extent(values)
        if extent is None:
            _LOGGER.warning("No valid data for overview Y domain; using %s", self._settings.fallback_y_domain)
            return self._settings.fallback_y_domain
        low, high = extent
        if low == high:
            low, high = low - 1.0, high + 1.0
        else:
            pad = max(OVERVIEW_MIN_PADDING, (high - low) * 0.05)
            low, high = low - pad, high + pad
        return nice_domain(low, high)

    # Secondary views ------------------------------------------------------

    @staticmethod
    def compute_x_domain(focus_window: TimeWindow) -> TimeWindow:
        """Secondary views mirror the focus window."""
        return focus_window

    @staticmethod
    def compute_balance_y_domain(visible_slice: Sequence[DataPoint]) -> Domain:
        magnitudes = [abs(number) for number in (finite_or_none(p.net_balance) for p in visible_slice) if number is not None]
        max_abs = max(magnitudes, default=0.0)
        half = max(BALANCE_MIN_HALF_RANGE, max_abs * 1.1)
        return nice_domain(-half, half)

    @staticmethod
    def compute_rate_y_domain(visible_slice: Sequence[DataPoint]) -> Domain:
        extent = _extent(
            number for number in (finite_or_none(p.smoothed_weekly_rate) for p in visible_slice) if number is not None
        )
        return _padded_secondary(extent, fallback=RATE_FALLBACK, single_pad=0.1, min_pad=0.05)

    @staticmethod
    def compute_tdee_diff_y_domain(visible_slice: Sequence[DataPoint]) -> Domain:
        extent = _extent(
            number for number in (finite_or_none(p.avg_tdee_difference) for p in visible_slice) if number is not None
        )
        return _padded_secondary(extent, fallback=TDEE_DIFF_FALLBACK, single_pad=50.0, min_pad=50.0)


def _padded_secondary(extent: Optional[Domain], *, fallback: Domain, single_pad: float, min_pad: float) -> Domain:
    if extent is None:
        low, high = fallback
    else:
        low, high = extent
        if low == high:
            low, high = low - single_pad, high + single_pad
    pad = max(min_pad, abs(high - low) * 0.1)
    return nice_domain(low - pad, high + pad)
