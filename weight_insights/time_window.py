"""Time window primitives shared by the view-synchronisation engine."""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

DAY_MS = 86_400_000
INPUT_DATE_FORMAT = "%Y-%m-%d"

# Naive epoch keeps millisecond arithmetic free of local DST offsets.
_EPOCH = datetime(1970, 1, 1)


def to_ms(value: datetime) -> float:
    return (value - _EPOCH) / timedelta(milliseconds=1)


def from_ms(value: float) -> Optional[datetime]:
    """Convert epoch milliseconds back to a datetime; None for non-finite or out-of-range input."""
    if not math.isfinite(value):
        return None
    try:
        return _EPOCH + timedelta(milliseconds=value)
    except OverflowError:
        return None


def is_valid_datetime(value: object) -> bool:
    return isinstance(value, datetime)


@dataclass(frozen=True)
class TimeWindow:
    """Ordered ``[start, end]`` pair of timestamps."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"TimeWindow start {self.start} is after end {self.end}")

    @classmethod
    def ordered(cls, first: datetime, second: datetime) -> "TimeWindow":
        if first <= second:
            return cls(first, second)
        return cls(second, first)

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    @property
    def span_ms(self) -> float:
        return self.span / timedelta(milliseconds=1)

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end

    def as_tuple(self) -> Tuple[datetime, datetime]:
        return self.start, self.end

    def expanded(self, delta: timedelta) -> "TimeWindow":
        return TimeWindow(self.start - delta, self.end + delta)

    @property
    def is_degenerate(self) -> bool:
        return self.start == self.end

    def intersection(self, other: "TimeWindow") -> Optional["TimeWindow"]:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start > end:
            return None
        return TimeWindow(start, end)

    def whole_days(self) -> "TimeWindow":
        return TimeWindow(start_of_day(self.start), end_of_day(self.end))


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999_000)


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month offset; the day is clamped to the target month length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def windows_equal(left: Optional[TimeWindow], right: Optional[TimeWindow]) -> bool:
    if left is None or right is None:
        return left is right
    return left.start == right.start and left.end == right.end


def format_input_date(value: Optional[datetime]) -> str:
    if not is_valid_datetime(value):
        return ""
    return value.strftime(INPUT_DATE_FORMAT)  # type: ignore[union-attr]


def parse_input_date(raw: object) -> Optional[datetime]:
    if not isinstance(raw, str):
        return None
    token = raw.strip()
    if not token:
        return None
    try:
        return datetime.strptime(token, INPUT_DATE_FORMAT)
    except ValueError:
        return None
