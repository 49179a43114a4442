"""Scale and transform math decoupled from any drawing toolkit."""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from weight_insights.time_window import TimeWindow, from_ms, to_ms

PixelRange = Tuple[float, float]

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)


def _finite(*values: float) -> bool:
    return all(isinstance(value, (int, float)) and math.isfinite(value) for value in values)


@dataclass(frozen=True)
class TimeScale:
    """Linear map between a time window and a pixel range."""

    domain: TimeWindow
    range: PixelRange

    @property
    def width(self) -> float:
        return abs(self.range[1] - self.range[0])

    def __call__(self, value: datetime) -> float:
        d0 = to_ms(self.domain.start)
        d1 = to_ms(self.domain.end)
        r0, r1 = self.range
        if d1 == d0:
            return (r0 + r1) / 2.0
        return r0 + (to_ms(value) - d0) / (d1 - d0) * (r1 - r0)

    def invert(self, pixel: float) -> Optional[datetime]:
        r0, r1 = self.range
        if not _finite(pixel) or r0 == r1:
            return None
        d0 = to_ms(self.domain.start)
        d1 = to_ms(self.domain.end)
        return from_ms(d0 + (pixel - r0) / (r1 - r0) * (d1 - d0))

    def invert_selection(self, selection: PixelRange) -> Optional[TimeWindow]:
        start = self.invert(selection[0])
        end = self.invert(selection[1])
        if start is None or end is None:
            return None
        return TimeWindow.ordered(start, end)

    def map_window(self, window: TimeWindow) -> PixelRange:
        return self(window.start), self(window.end)

    def pixel_resolution_ms(self) -> float:
        """Milliseconds covered by a single pixel."""
        if self.width <= 0:
            return math.inf
        return self.domain.span_ms / self.width


@dataclass(frozen=True)
class ViewTransform:
    """Affine map from overview pixels to focus pixels: ``focus = overview * scale + translate_x``."""

    scale: float = 1.0
    translate_x: float = 0.0

    def is_valid(self) -> bool:
        return _finite(self.scale, self.translate_x) and self.scale > 0

    def apply_x(self, overview_px: float) -> float:
        return overview_px * self.scale + self.translate_x

    def invert_x(self, focus_px: float) -> float:
        return (focus_px - self.translate_x) / self.scale

    def translated(self, dx_overview: float) -> "ViewTransform":
        if dx_overview == 0:
            return self
        return ViewTransform(self.scale, self.translate_x + self.scale * dx_overview)

    def rescale(self, overview: TimeScale, focus_width: float) -> Optional[TimeWindow]:
        """Time window visible in a focus view of ``focus_width`` pixels under this transform."""
        if not self.is_valid() or not _finite(focus_width) or focus_width <= 0:
            return None
        return overview.invert_selection((self.invert_x(0.0), self.invert_x(focus_width)))

    def selection(self, focus_width: float) -> PixelRange:
        """Overview pixel span currently shown in the focus view."""
        return self.invert_x(0.0), self.invert_x(focus_width)

    @classmethod
    def from_selection(cls, selection: PixelRange, focus_width: float) -> Optional["ViewTransform"]:
        x0, x1 = selection
        if not _finite(x0, x1, focus_width) or focus_width <= 0 or x1 <= x0:
            return None
        scale = focus_width / (x1 - x0)
        return cls(scale=scale, translate_x=-x0 * scale)


IDENTITY = ViewTransform()


def constrain_transform(
    transform: ViewTransform,
    *,
    focus_width: float,
    overview_range: PixelRange,
    scale_min: float,
    scale_max: float,
) -> ViewTransform:
    """Clamp scale to ``[scale_min, scale_max]`` and keep the view inside the overview range.

    When the view is wider than the overview it is centred instead.
    """
    scale = min(max(transform.scale, scale_min), scale_max)
    if scale != transform.scale:
        # Re-anchor around the focus centre so clamping does not jump the view.
        centre = transform.invert_x(focus_width / 2.0)
        transform = ViewTransform(scale, focus_width / 2.0 - centre * scale)
    dx0 = transform.invert_x(0.0) - overview_range[0]
    dx1 = transform.invert_x(focus_width) - overview_range[1]
    if dx1 > dx0:
        shift = (dx0 + dx1) / 2.0
    else:
        shift = min(0.0, dx0) or max(0.0, dx1)
    return transform.translated(shift)


def clamp_selection(selection: PixelRange, bounds: PixelRange) -> Optional[PixelRange]:
    low, high = min(bounds), max(bounds)
    x0 = min(max(selection[0], low), high)
    x1 = min(max(selection[1], low), high)
    if not _finite(x0, x1) or x1 <= x0:
        return None
    return x0, x1


def _tick_increment(start: float, stop: float, count: int) -> float:
    step = (stop - start) / max(0, count)
    power = math.floor(math.log10(step))
    error = step / math.pow(10, power)
    if error >= _E10:
        factor = 10
    elif error >= _E5:
        factor = 5
    elif error >= _E2:
        factor = 2
    else:
        factor = 1
    if power >= 0:
        return factor * math.pow(10, power)
    return -math.pow(10, -power) / factor


def nice_domain(low: float, high: float, count: int = 10) -> Tuple[float, float]:
    """Expand ``[low, high]`` outward to round tick boundaries."""
    if not _finite(low, high) or count <= 0:
        return low, high
    reverse = high < low
    start, stop = (high, low) if reverse else (low, high)
    if stop == start:
        return low, high
    prestep: Optional[float] = None
    for _ in range(10):
        step = _tick_increment(start, stop, count)
        if step == prestep:
            break
        if step > 0:
            start = math.floor(start / step) * step
            stop = math.ceil(stop / step) * step
        elif step < 0:
            start = math.ceil(start * step) / step
            stop = math.floor(stop * step) / step
        else:
            break
        prestep = step
    return (stop, start) if reverse else (start, stop)
