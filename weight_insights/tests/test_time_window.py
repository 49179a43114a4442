from __future__ import annotations

import math
from datetime import datetime

import pytest

from weight_insights.time_window import (
    DAY_MS,
    TimeWindow,
    add_months,
    end_of_day,
    format_input_date,
    from_ms,
    parse_input_date,
    start_of_month,
    to_ms,
    windows_equal,
)


def test_time_window_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        TimeWindow(datetime(2024, 2, 1), datetime(2024, 1, 1))

    window = TimeWindow.ordered(datetime(2024, 2, 1), datetime(2024, 1, 1))
    assert window.start == datetime(2024, 1, 1)
    assert window.span_ms == 31 * DAY_MS


def test_whole_days_expands_to_midnight_and_last_millisecond() -> None:
    window = TimeWindow(datetime(2024, 3, 4, 13, 30), datetime(2024, 3, 9, 1, 5)).whole_days()

    assert window.start == datetime(2024, 3, 4)
    assert window.end == datetime(2024, 3, 9, 23, 59, 59, 999000)
    assert window.whole_days() == window


def test_add_months_clamps_day_and_crosses_years() -> None:
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2024, 1, 15), -2) == datetime(2023, 11, 15)
    assert start_of_month(datetime(2024, 6, 30, 8)) == datetime(2024, 6, 1)


def test_ms_conversion_round_trips_and_rejects_non_finite() -> None:
    moment = datetime(2024, 5, 6, 7, 8, 9, 10000)
    assert from_ms(to_ms(moment)) == moment
    assert from_ms(math.nan) is None
    assert from_ms(math.inf) is None
    assert from_ms(1e20) is None


def test_input_dates_parse_and_format() -> None:
    assert parse_input_date(" 2024-04-01 ") == datetime(2024, 4, 1)
    assert parse_input_date("2024-13-01") is None
    assert parse_input_date("") is None
    assert parse_input_date(None) is None
    assert format_input_date(end_of_day(datetime(2024, 6, 30))) == "2024-06-30"
    assert format_input_date(None) == ""


def test_windows_equal_handles_missing_sides() -> None:
    window = TimeWindow(datetime(2024, 1, 1), datetime(2024, 1, 2))
    assert windows_equal(None, None) is True
    assert windows_equal(window, None) is False
    assert windows_equal(window, TimeWindow(datetime(2024, 1, 1), datetime(2024, 1, 2))) is True


def test_intersection_clips_and_reports_disjoint_windows() -> None:
    window = TimeWindow(datetime(2024, 1, 1), datetime(2024, 6, 30))

    assert window.intersection(TimeWindow(datetime(2023, 6, 1), datetime(2024, 2, 1))) == TimeWindow(
        datetime(2024, 1, 1), datetime(2024, 2, 1)
    )
    assert window.intersection(TimeWindow(datetime(2025, 1, 1), datetime(2025, 2, 1))) is None
    touching = window.intersection(TimeWindow(datetime(2024, 6, 30), datetime(2024, 7, 30)))
    assert touching is not None and touching.is_degenerate
    assert not window.is_degenerate
