from __future__ import annotations

import os
from datetime import datetime, timedelta
from typing import Callable, List, Tuple

import pytest

from weight_insights.series import DataPoint


def pytest_runtest_setup(item):
    if item.get_closest_marker("pyqt_required"):
        if not os.getenv("PYQT_TESTS"):
            pytest.skip("PYQT_TESTS not set; skipping PyQt-dependent test")


class AfterHarness:
    """Records ``after`` calls; callbacks only run when a test drives them."""

    def __init__(self) -> None:
        self.scheduled: List[Tuple[str, int, Callable[[], None]]] = []
        self.cancelled: List[object] = []
        self.fired: List[str] = []

    def after(self, ms: int, cb) -> str:
        handle = f"h{len(self.scheduled) + 1}"
        self.scheduled.append((handle, ms, cb))
        return handle

    def cancel(self, handle: object) -> None:
        self.cancelled.append(handle)

    def live(self) -> List[str]:
        return [h for h, _ms, _cb in self.scheduled if h not in self.cancelled and h not in self.fired]

    def run(self, handle: str) -> None:
        for h, _ms, cb in list(self.scheduled):
            if h == handle:
                self.fired.append(h)
                cb()
                return
        raise AssertionError(f"Handle {handle} not found")

    def run_pending(self, limit: int = 100) -> int:
        """Fire live callbacks, including ones they schedule, until none remain."""
        count = 0
        while self.live():
            if count >= limit:
                raise AssertionError("Scheduled callbacks did not settle")
            self.run(self.live()[0])
            count += 1
        return count


class FakeClock:
    """Millisecond clock paired with a harness to fire timers by deadline."""

    def __init__(self, harness: AfterHarness) -> None:
        self.harness = harness
        self.now_ms = 0
        self._deadlines = {}

    def after(self, ms: int, cb) -> str:
        handle = self.harness.after(ms, cb)
        self._deadlines[handle] = self.now_ms + ms
        return handle

    def advance(self, ms: int) -> None:
        target = self.now_ms + ms
        while True:
            due = [h for h in self.harness.live() if self._deadlines.get(h, 0) <= target]
            if not due:
                break
            handle = min(due, key=lambda h: self._deadlines[h])
            self.now_ms = max(self.now_ms, self._deadlines[handle])
            self.harness.run(handle)
        self.now_ms = target


@pytest.fixture
def harness() -> AfterHarness:
    return AfterHarness()


@pytest.fixture
def clock(harness: AfterHarness) -> FakeClock:
    return FakeClock(harness)


@pytest.fixture
def half_year_points() -> List[DataPoint]:
    start = datetime(2024, 1, 1)
    end = datetime(2024, 6, 30)
    points = []
    day = start
    index = 0
    while day <= end:
        points.append(
            DataPoint(
                date=day,
                value=80.0 - index * 0.02,
                net_balance=-300.0 + (index % 7) * 20,
                smoothed_weekly_rate=-0.3,
                avg_tdee_difference=-150.0,
            )
        )
        day += timedelta(days=1)
        index += 1
    return points
