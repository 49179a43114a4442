"""Explicit view state shared between the sync controller and its readers."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from weight_insights.scales import IDENTITY, PixelRange, TimeScale, ViewTransform
from weight_insights.time_window import TimeWindow


@dataclass(frozen=True)
class ChartDimensions:
    """Drawable pixel sizes for every linked view."""

    focus_width: float
    focus_height: float
    overview_width: float
    overview_height: float = 60.0
    balance_height: float = 100.0
    rate_height: float = 100.0
    tdee_height: float = 100.0

    def is_valid(self) -> bool:
        values = (
            self.focus_width,
            self.focus_height,
            self.overview_width,
            self.overview_height,
            self.balance_height,
            self.rate_height,
            self.tdee_height,
        )
        return all(math.isfinite(value) and value > 0 for value in values)


class ChartContext:
    """Either Uninitialized or Ready(dimensions, overview scale).

    Operations check ``is_ready`` once on entry instead of guarding each field.
    """

    __slots__ = ("_dimensions", "_overview_scale")

    def __init__(self, dimensions: Optional[ChartDimensions] = None, overview_scale: Optional[TimeScale] = None) -> None:
        self._dimensions = dimensions
        self._overview_scale = overview_scale

    @classmethod
    def uninitialized(cls) -> "ChartContext":
        return cls()

    @classmethod
    def ready(cls, dimensions: ChartDimensions, overview_window: TimeWindow) -> "ChartContext":
        if not dimensions.is_valid():
            return cls()
        return cls(dimensions, TimeScale(overview_window, (0.0, float(dimensions.overview_width))))

    @property
    def is_ready(self) -> bool:
        return self._dimensions is not None and self._overview_scale is not None

    @property
    def dimensions(self) -> ChartDimensions:
        if self._dimensions is None:
            raise RuntimeError("ChartContext is not ready")
        return self._dimensions

    @property
    def overview_scale(self) -> TimeScale:
        if self._overview_scale is None:
            raise RuntimeError("ChartContext is not ready")
        return self._overview_scale

    def focus_scale(self, window: TimeWindow) -> TimeScale:
        return TimeScale(window, (0.0, float(self.dimensions.focus_width)))

    def __repr__(self) -> str:
        if not self.is_ready:
            return "ChartContext(Uninitialized)"
        return f"ChartContext(Ready, dimensions={self._dimensions!r})"


@dataclass
class ViewContext:
    """Time window, transform and brush selection for one dashboard instance.

    Only the view sync controller writes these fields; everything else reads.
    """

    overview_window: TimeWindow
    view_window: TimeWindow
    transform: ViewTransform = IDENTITY
    brush_selection: Optional[PixelRange] = None
