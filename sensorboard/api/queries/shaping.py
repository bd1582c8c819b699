"""
Chart and statistics shaping.

Both group_for_chart and compute_statistics key series through
series_key(), so their key sets are always identical.
"""

import math
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .types import Reading, SeriesKey

EMPTY_STATS = {"count": 0, "average": 0.0, "min": 0.0, "max": 0.0, "latest": 0.0}


def series_key(reading: Reading) -> str:
    """bucket:measurement, else the bare measurement, else 'Unknown'."""
    return SeriesKey(reading.bucket, reading.measurement).qualified


def group_for_chart(readings: Sequence[Reading]) -> Dict[str, Dict[str, list]]:
    """Group readings into {key: {timestamps, values}} in first-seen order."""
    series: Dict[str, Dict[str, list]] = {}
    for reading in readings:
        entry = series.setdefault(series_key(reading), {"timestamps": [], "values": []})
        entry["timestamps"].append(reading.timestamp)
        entry["values"].append(reading.value)
    return series


def compute_statistics(readings: Sequence[Reading]) -> Dict[str, Dict[str, float]]:
    """
    Per-series count/average/min/max/latest over numeric values.

    Non-numeric and NaN values are ignored; latest is the last numeric value
    in reading order. A series without numeric values reports zeros.
    """
    stats: Dict[str, Dict[str, float]] = {}
    for key, series in group_for_chart(readings).items():
        values = pd.to_numeric(pd.Series(series["values"], dtype=object), errors="coerce").dropna()
        if values.empty:
            stats[key] = dict(EMPTY_STATS)
            continue
        stats[key] = {
            "count": int(values.size),
            "average": float(values.mean()),
            "min": float(values.min()),
            "max": float(values.max()),
            "latest": float(values.iloc[-1]),
        }
    return stats


def chart_payload(series: Dict[str, Dict[str, list]]) -> Dict[str, Dict[str, list]]:
    """Chart series with NaN values replaced by None for JSON."""
    return {
        key: {
            "timestamps": entry["timestamps"],
            "values": [None if isinstance(v, float) and math.isnan(v) else v for v in entry["values"]],
        }
        for key, entry in series.items()
    }


def summarize(statistics: Dict[str, Dict[str, float]]) -> Dict[str, float]:
    """Headline numbers: active series, total readings, mean of latest values."""
    # Series without numeric values carry a placeholder latest of 0.0
    latest = pd.Series([s["latest"] for s in statistics.values() if s["count"] > 0], dtype=float).dropna()
    return {
        "active_measurements": len(statistics),
        "total_readings": int(sum(s["count"] for s in statistics.values())),
        "average_latest": float(latest.mean()) if not latest.empty else 0.0,
    }


def limit_readings(readings: List[Reading], limit: Optional[int]) -> List[Reading]:
    """Keep the first `limit` readings of an already ordered list."""
    if limit is None or limit >= len(readings):
        return readings
    return readings[:max(limit, 0)]
