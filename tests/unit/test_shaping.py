"""Unit tests for chart grouping and statistics"""
import math

from sensorboard.api.queries.shaping import (
    chart_payload, compute_statistics, group_for_chart, limit_readings, series_key, summarize,
)
from sensorboard.api.queries.types import Reading


def reading(minute, value, measurement="temp", bucket="b1"):
    return Reading(timestamp=f"2024-01-01T00:{minute:02d}:00Z", value=value,
                   measurement=measurement, bucket=bucket)


class TestSeriesKey:

    def test_qualified(self):
        assert series_key(reading(0, 1.0)) == "b1:temp"

    def test_bare_and_unknown(self):
        assert series_key(reading(0, 1.0, bucket=None)) == "temp"
        assert series_key(reading(0, 1.0, measurement=None, bucket=None)) == "Unknown"


class TestGroupForChart:
    """Chart series grouping"""

    def test_first_seen_order_and_values(self):
        readings = [
            reading(0, 1.0, "temp", "b1"),
            reading(0, 5.0, "temp", "b2"),
            reading(1, 2.0, "temp", "b1"),
        ]

        series = group_for_chart(readings)

        assert list(series) == ["b1:temp", "b2:temp"]
        assert series["b1:temp"] == {
            "timestamps": ["2024-01-01T00:00:00Z", "2024-01-01T00:01:00Z"],
            "values": [1.0, 2.0],
        }

    def test_key_sets_match_statistics(self):
        """Chart keys and statistics keys are always identical"""
        readings = [
            reading(0, 1.0, "temp", "b1"),
            reading(0, float("nan"), "hum", "b1"),
            reading(1, 3.0, "temp", None),
            reading(2, 4.0, None, None),
        ]

        assert set(group_for_chart(readings)) == set(compute_statistics(readings))

    def test_chart_payload_replaces_nan(self):
        series = group_for_chart([reading(0, float("nan")), reading(1, 2.0)])

        assert chart_payload(series)["b1:temp"]["values"] == [None, 2.0]


class TestComputeStatistics:
    """Per-series statistics"""

    def test_example_series(self):
        """Values 1 then 3 -> count 2, average 2, min 1, max 3, latest 3"""
        stats = compute_statistics([reading(0, 1.0), reading(1, 3.0)])

        assert stats == {"b1:temp": {"count": 2, "average": 2.0, "min": 1.0, "max": 3.0, "latest": 3.0}}

    def test_nan_values_ignored(self):
        stats = compute_statistics([reading(0, 4.0), reading(1, float("nan")), reading(2, 6.0)])

        assert stats["b1:temp"]["count"] == 2
        assert stats["b1:temp"]["average"] == 5.0
        assert stats["b1:temp"]["latest"] == 6.0

    def test_latest_skips_trailing_nan(self):
        stats = compute_statistics([reading(0, 4.0), reading(1, float("nan"))])

        assert stats["b1:temp"]["latest"] == 4.0

    def test_no_numeric_values_reports_zeros(self):
        stats = compute_statistics([reading(0, float("nan"))])

        assert stats["b1:temp"] == {"count": 0, "average": 0.0, "min": 0.0, "max": 0.0, "latest": 0.0}

    def test_empty(self):
        assert compute_statistics([]) == {}


class TestSummary:

    def test_summarize(self):
        stats = compute_statistics([
            reading(0, 1.0, "temp"), reading(1, 3.0, "temp"),
            reading(0, 10.0, "hum"),
        ])

        summary = summarize(stats)

        assert summary["active_measurements"] == 2
        assert summary["total_readings"] == 3
        assert math.isclose(summary["average_latest"], 6.5)

    def test_summarize_ignores_series_without_values(self):
        """An all-NaN series does not pull the latest average toward zero"""
        stats = compute_statistics([
            reading(0, 1.0, "temp"), reading(1, 3.0, "temp"),
            reading(0, float("nan"), "hum"), reading(1, float("nan"), "hum"),
        ])

        summary = summarize(stats)

        assert stats["b1:hum"]["count"] == 0
        assert summary["active_measurements"] == 2
        assert summary["total_readings"] == 2
        assert summary["average_latest"] == 3.0

    def test_summarize_empty(self):
        assert summarize({}) == {"active_measurements": 0, "total_readings": 0, "average_latest": 0.0}

    def test_limit_readings(self):
        readings = [reading(i, float(i)) for i in range(5)]

        assert limit_readings(readings, 2) == readings[:2]
        assert limit_readings(readings, None) == readings
        assert limit_readings(readings, 10) == readings
