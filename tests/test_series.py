from datetime import datetime, timezone

from models import MetricPoint, MetricSeries
from normalize.series import points_from_datapoints


def _ts(hour):
    return datetime(2026, 1, 4, hour, tzinfo=timezone.utc)


def test_points_sorted_and_filtered():
    dps = [
        {"Timestamp": _ts(3), "Maximum": 3.0},
        {"Timestamp": _ts(1), "Maximum": "1"},
        {"Timestamp": _ts(2), "Maximum": float('nan')},
        {"Timestamp": _ts(4), "Average": 9.0},
        {"Maximum": 7.0},
        {"Timestamp": _ts(5), "Maximum": "junk"},
    ]
    points = points_from_datapoints(dps)
    assert [p.timestamp for p in points] == [_ts(1), _ts(3)]
    assert [p.value for p in points] == [1.0, 3.0]


def test_points_other_statistic():
    dps = [{"Timestamp": _ts(1), "Maximum": 5.0, "Average": 2.0}]
    assert [p.value for p in points_from_datapoints(dps, statistic="Average")] == [2.0]


def test_series_peak():
    s = MetricSeries("api", "MemoryUtilization", [MetricPoint(_ts(1), 12.0), MetricPoint(_ts(2), 45.0)])
    assert s.peak == 45.0


def test_series_peak_without_points_is_none():
    assert MetricSeries("api", "MemoryUtilization").peak is None


def test_series_zero_peak_is_not_none():
    s = MetricSeries("api", "CPUUtilization", [MetricPoint(_ts(1), 0.0)])
    assert s.peak == 0.0
