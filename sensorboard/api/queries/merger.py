"""
Result merging across buckets.
"""

import logging
from typing import Dict, List, Mapping

import numpy as np
import pandas as pd

from .types import Reading

logger = logging.getLogger("sensorboard.queries")


def successful_readings(per_bucket_results: Mapping[str, object]) -> Dict[str, List[Reading]]:
    """Drop buckets whose outcome is an error."""
    return {
        bucket: outcome
        for bucket, outcome in per_bucket_results.items()
        if not isinstance(outcome, Exception)
    }


def merge(per_bucket_results: Mapping[str, object]) -> List[Reading]:
    """
    Concatenate per-bucket readings in bucket order.

    A single queried bucket keeps the store's order. Several buckets are
    stable-sorted by timestamp, so ties keep bucket order. Nothing is
    deduplicated.
    """
    combined = [
        reading
        for readings in successful_readings(per_bucket_results).values()
        for reading in readings
    ]

    if len(per_bucket_results) <= 1 or len(combined) < 2:
        return combined

    times = pd.to_datetime([r.timestamp for r in combined], utc=True, format="ISO8601")
    order = np.argsort(times.asi8, kind="stable")
    logger.debug(f"Merged {len(combined)} readings from {len(per_bucket_results)} buckets")
    return [combined[i] for i in order]
