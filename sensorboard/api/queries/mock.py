"""
Synthetic readings for development.

Only used when `mock_data_fallback` is enabled in the config and every
bucket query failed or the failures left no readings. Responses built from
these readings carry mock=True.
"""

import logging
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .merger import merge
from .types import Reading, RelativeWindow, TimeWindow, format_timestamp

logger = logging.getLogger("sensorboard.queries")


def generate_mock_readings(measurements_by_bucket: Dict[str, List[str]], window: TimeWindow,
                           points: int = 60, seed: Optional[int] = None) -> List[Reading]:
    """Random-walk series for every bucket/measurement over the window."""
    absolute = window.resolve() if isinstance(window, RelativeWindow) else window
    times = pd.date_range(absolute.start, absolute.stop, periods=points).floor("us")
    rng = np.random.default_rng(seed)

    per_bucket: Dict[str, List[Reading]] = {}
    for bucket, measurements in measurements_by_bucket.items():
        readings = []
        for measurement in measurements:
            values = 20.0 + np.cumsum(rng.normal(0.0, 0.5, points))
            readings.extend(
                Reading(format_timestamp(ts.to_pydatetime()), round(float(v), 3), measurement, bucket)
                for ts, v in zip(times, values)
            )
        per_bucket[bucket] = readings

    logger.warning(f"Serving synthetic readings for {len(per_bucket)} buckets")
    return merge(per_bucket)
