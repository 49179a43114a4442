from __future__ import annotations

import math
from datetime import datetime, timedelta

import pytest

from weight_insights.domain_calculator import (
    RATE_FALLBACK,
    DomainCalculator,
    is_finite_domain,
)
from weight_insights.engine_config import EngineSettings
from weight_insights.series import (
    BAND,
    SMOOTHED,
    DataPoint,
    GoalOverlay,
    OverlaySet,
    Series,
    SeriesPoint,
    TrendLine,
    slice_window,
)
from weight_insights.time_window import TimeWindow

WINDOW = TimeWindow(datetime(2024, 4, 1), datetime(2024, 4, 30))


def make_points(values, *, start=datetime(2024, 4, 1), outliers=()):
    return [
        DataPoint(date=start + timedelta(days=i), value=value, is_outlier=i in outliers)
        for i, value in enumerate(values)
    ]


@pytest.fixture
def calculator() -> DomainCalculator:
    return DomainCalculator(EngineSettings())


def test_y_domain_contains_every_visible_value(calculator) -> None:
    points = make_points([71.3, 72.0, 79.6, 75.5])
    smoothed = Series(SMOOTHED, tuple(SeriesPoint(p.date, 74.0, 70.9, 80.2) for p in points))
    overlays = OverlaySet(series=(smoothed,))

    low, high = calculator.compute_y_domain(points, overlays, window=WINDOW, height=400)

    assert low <= 70.9
    assert high >= 80.2
    assert is_finite_domain((low, high))


def test_y_domain_is_idempotent(calculator) -> None:
    points = make_points([68.2, 69.9, 70.4])
    overlays = OverlaySet()
    first = calculator.compute_y_domain(points, overlays, window=WINDOW, height=300)
    second = calculator.compute_y_domain(points, overlays, window=WINDOW, height=300)
    assert first == second


def test_outliers_and_hidden_series_do_not_widen_domain(calculator) -> None:
    points = make_points([70.0, 71.0, 150.0], outliers={2})
    hidden = Series(BAND, (SeriesPoint(points[0].date, 70.0, 10.0, 200.0),), visible=False)

    low, high = calculator.compute_y_domain(points, OverlaySet(series=(hidden,)), window=WINDOW, height=400)

    assert high < 100.0
    assert low > 50.0


def test_padding_uses_minimum_absolute(calculator) -> None:
    points = make_points([70.0, 70.01])
    values = calculator.gather_values(points, OverlaySet(), WINDOW)
    assert values == [70.0, 70.01]
    low, high = calculator.compute_y_domain(points, OverlaySet(), 0.0, 0.1, window=WINDOW, height=400)
    assert low <= 69.9
    assert high >= 70.11


def test_single_value_gets_a_non_zero_span(calculator) -> None:
    low, high = calculator.compute_y_domain(make_points([72.0]), OverlaySet(), window=WINDOW, height=400)
    assert low < 72.0 < high


def test_trend_lines_and_goal_contribute(calculator) -> None:
    points = make_points([70.0, 70.5])
    trend = TrendLine("manual", datetime(2024, 4, 1), 90.0, -1.0)
    overlays = OverlaySet(trend_lines=(trend,), goal=GoalOverlay(value=60.0))

    low, high = calculator.compute_y_domain(points, overlays, window=WINDOW, height=400)

    assert low <= 59.5
    assert high >= 90.0


def test_empty_slice_falls_back_to_overview_domain(calculator) -> None:
    domain = calculator.compute_y_domain([], OverlaySet(), window=WINDOW, height=400, overview_domain=(65.0, 75.0))
    assert domain[0] <= 65.0 and domain[1] >= 75.0


@pytest.mark.parametrize("overview", [None, (math.nan, 80.0), (80.0, 80.0), (math.inf, math.inf)])
def test_unusable_overview_falls_back_to_constant(calculator, overview) -> None:
    domain = calculator.compute_y_domain([], OverlaySet(), window=WINDOW, height=400, overview_domain=overview)
    assert domain == EngineSettings().fallback_y_domain


def test_non_finite_values_are_ignored(calculator) -> None:
    points = make_points([math.nan, math.inf, None, 70.0])
    domain = calculator.compute_y_domain(points, OverlaySet(), window=WINDOW, height=400)
    assert is_finite_domain(domain)
    assert domain[0] < 70.0 < domain[1]


def test_tick_count_scales_with_height(calculator) -> None:
    assert calculator.tick_count(400) == 10
    assert calculator.tick_count(100) == 5
    assert calculator.tick_count(None) == 10


def test_x_domain_mirrors_focus_window(calculator) -> None:
    assert calculator.compute_x_domain(WINDOW) is WINDOW


def test_overview_domain_prefers_smoothed_series(calculator) -> None:
    points = make_points([60.0, 90.0])
    smoothed = Series(SMOOTHED, (SeriesPoint(points[0].date, 74.0), SeriesPoint(points[1].date, 76.0)))

    low, high = calculator.compute_overview_y_domain(points, OverlaySet(series=(smoothed,)))
    assert low <= 73.5 and high >= 76.5
    assert high < 90.0

    raw_low, raw_high = calculator.compute_overview_y_domain(points, OverlaySet())
    assert raw_low <= 58.5 and raw_high >= 91.5


def test_overview_domain_without_data_uses_constant(calculator) -> None:
    assert calculator.compute_overview_y_domain([], OverlaySet()) == (60.0, 80.0)


def test_secondary_domains() -> None:
    points = [
        DataPoint(date=datetime(2024, 4, 1), net_balance=-900.0, smoothed_weekly_rate=-0.4, avg_tdee_difference=120.0),
        DataPoint(date=datetime(2024, 4, 2), net_balance=200.0, smoothed_weekly_rate=-0.2, avg_tdee_difference=120.0),
    ]
    balance = DomainCalculator.compute_balance_y_domain(points)
    assert balance[0] <= -990.0 and balance[1] >= 990.0
    assert balance[0] == -balance[1]

    rate = DomainCalculator.compute_rate_y_domain(points)
    assert rate[0] <= -0.45 and rate[1] >= -0.15

    tdee = DomainCalculator.compute_tdee_diff_y_domain(points)
    assert tdee[0] <= 20.0 and tdee[1] >= 220.0


def test_secondary_domains_without_data_use_fallbacks() -> None:
    assert DomainCalculator.compute_balance_y_domain([]) == (-500.0, 500.0)
    low, high = DomainCalculator.compute_rate_y_domain([])
    assert low <= RATE_FALLBACK[0] and high >= RATE_FALLBACK[1]


def test_slice_window_is_inclusive(calculator) -> None:
    points = make_points([1.0] * 50, start=datetime(2024, 3, 20))
    visible = slice_window(points, WINDOW)
    assert visible[0].date == WINDOW.start
    assert visible[-1].date == WINDOW.end
