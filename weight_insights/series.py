"""Dataset records and overlay series consumed by domain computation and drawing."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from weight_insights.time_window import TimeWindow

SMOOTHED = "smoothed"
BAND = "band"
REGRESSION = "regression"
REGRESSION_CI = "regression_ci"
GOAL_LINE = "goal_line"


def finite_or_none(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class DataPoint:
    """One dated record. Only ``date`` is required."""

    date: datetime
    value: Optional[float] = None
    is_outlier: bool = False
    net_balance: Optional[float] = None
    smoothed_weekly_rate: Optional[float] = None
    avg_tdee_difference: Optional[float] = None


@dataclass(frozen=True)
class SeriesPoint:
    date: datetime
    value: Optional[float] = None
    lower: Optional[float] = None
    upper: Optional[float] = None

    def numeric_values(self) -> Iterator[float]:
        for raw in (self.value, self.lower, self.upper):
            number = finite_or_none(raw)
            if number is not None:
                yield number


@dataclass(frozen=True)
class Series:
    """Named overlay stream with its own visibility flag."""

    name: str
    points: Tuple[SeriesPoint, ...] = ()
    visible: bool = True

    def within(self, window: TimeWindow) -> Iterator[SeriesPoint]:
        return (point for point in self.points if window.contains(point.date))

    def last_value_point(self) -> Optional[SeriesPoint]:
        for point in reversed(self.points):
            if finite_or_none(point.value) is not None:
                return point
        return None


@dataclass(frozen=True)
class TrendLine:
    """Manual trend: ``initial_value`` at ``start_date`` changing by ``weekly_change`` per week."""

    name: str
    start_date: datetime
    initial_value: float
    weekly_change: float
    visible: bool = True

    def value_at(self, when: datetime) -> Optional[float]:
        weeks = (when - self.start_date) / timedelta(days=7)
        return finite_or_none(self.initial_value + self.weekly_change * weeks)


@dataclass(frozen=True)
class GoalOverlay:
    value: Optional[float] = None
    date: Optional[datetime] = None
    visible: bool = True


@dataclass(frozen=True)
class OverlaySet:
    """Everything the analytics collaborator produces for one analysis range."""

    series: Tuple[Series, ...] = ()
    trend_lines: Tuple[TrendLine, ...] = ()
    goal: GoalOverlay = field(default_factory=GoalOverlay)
    raw_visible: bool = True

    def get(self, name: str) -> Optional[Series]:
        for item in self.series:
            if item.name == name:
                return item
        return None

    def visible_series(self) -> Iterator[Series]:
        return (item for item in self.series if item.visible)

    def visible_trend_lines(self) -> Iterator[TrendLine]:
        return (line for line in self.trend_lines if line.visible)

    def with_series(self, extra: Series) -> "OverlaySet":
        kept = tuple(item for item in self.series if item.name != extra.name)
        return replace(self, series=kept + (extra,))

    def with_visibility(self, flags: Mapping[str, bool]) -> "OverlaySet":
        """Apply visibility toggles by series / trend-line name; ``raw`` and ``goal`` are accepted too."""
        series = tuple(replace(item, visible=bool(flags.get(item.name, item.visible))) for item in self.series)
        trends = tuple(
            replace(line, visible=bool(flags.get(line.name, line.visible))) for line in self.trend_lines
        )
        goal = replace(self.goal, visible=bool(flags.get("goal", self.goal.visible)))
        return OverlaySet(
            series=series,
            trend_lines=trends,
            goal=goal,
            raw_visible=bool(flags.get("raw", self.raw_visible)),
        )


def slice_window(points: Sequence[DataPoint], window: TimeWindow) -> Tuple[DataPoint, ...]:
    return tuple(point for point in points if window.contains(point.date))


def date_extent(points: Iterable[DataPoint]) -> Optional[TimeWindow]:
    dates = [point.date for point in points if isinstance(point.date, datetime)]
    if not dates:
        return None
    return TimeWindow(min(dates), max(dates))
