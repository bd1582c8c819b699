"""
Bucket fan-out executor.

Runs one query per bucket concurrently and settles all of them: a failing
bucket is recorded and logged, its siblings keep going.
"""

import asyncio
import logging
import math
from typing import Any, Dict, List, Union

from ...core.errors import BackendQueryError
from .types import Reading, format_timestamp

logger = logging.getLogger("sensorboard.queries")

BucketOutcome = Union[List[Reading], BackendQueryError]


def to_float(value: Any) -> float:
    """Coerce a row value; anything non-numeric becomes NaN."""
    if value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def parse_row(row: Dict[str, Any], bucket: str) -> Reading:
    """Convert one result row into a Reading tagged with its bucket."""
    time_value = row.get("_time")
    if time_value is None:
        raise BackendQueryError(f"Malformed row from bucket {bucket}: missing _time", bucket=bucket)
    try:
        timestamp = format_timestamp(time_value)
    except (TypeError, ValueError) as e:
        raise BackendQueryError(f"Malformed row from bucket {bucket}: bad _time {time_value!r}",
                                bucket=bucket) from e

    return Reading(
        timestamp=timestamp,
        value=to_float(row.get("_value")),
        measurement=row.get("_measurement"),
        bucket=bucket,
    )


async def run_bucket_query(bucket: str, flux: str, client) -> List[Reading]:
    """Stream one bucket's rows to completion."""
    readings: List[Reading] = []
    try:
        async for row in client.stream(flux):
            readings.append(parse_row(row, bucket))
    except BackendQueryError:
        raise
    except Exception as e:
        raise BackendQueryError(f"Query failed for bucket {bucket}: {e}", bucket=bucket) from e

    logger.debug(f"Bucket {bucket}: fetched {len(readings)} points")
    return readings


async def execute_all(queries_by_bucket: Dict[str, str], client) -> Dict[str, BucketOutcome]:
    """
    Execute every bucket query concurrently.

    Returns a map of bucket -> readings, or the BackendQueryError recorded
    for that bucket. Raises BackendQueryError only when every bucket failed.
    """
    if not queries_by_bucket:
        return {}

    buckets = list(queries_by_bucket.keys())
    outcomes = await asyncio.gather(
        *(run_bucket_query(bucket, queries_by_bucket[bucket], client) for bucket in buckets),
        return_exceptions=True,
    )

    results: Dict[str, BucketOutcome] = {}
    failed: List[str] = []
    total = 0
    for bucket, outcome in zip(buckets, outcomes):
        if isinstance(outcome, BackendQueryError):
            logger.warning(f"Bucket {bucket} query failed: {outcome.message}")
            results[bucket] = outcome
            failed.append(bucket)
        elif isinstance(outcome, BaseException):
            # Cancellation and other non-query errors are not absorbed
            raise outcome
        else:
            results[bucket] = outcome
            total += len(outcome)

    if len(failed) == len(buckets):
        logger.error(f"All {len(buckets)} bucket queries failed: {', '.join(failed)}")
        raise BackendQueryError("All bucket queries failed", failed_buckets=failed)

    logger.info(f"Fan-out complete: {len(buckets)} buckets, {len(failed)} failed, {total} readings")
    return results
