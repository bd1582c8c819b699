"""
Bucket and measurement discovery.

Listing is best-effort: a failing bucket only removes its own
measurements from the result, and a failed bucket listing yields an
empty list.
"""

import asyncio
import logging
from typing import List

from ...core.errors import DiscoveryError
from .compiler import flux_string
from .types import SeriesKey

logger = logging.getLogger("sensorboard.queries")

BUCKETS_QUERY = 'buckets()\n  |> keep(columns: ["name"])'


def measurements_query(bucket: str) -> str:
    return "\n".join([
        'import "influxdata/influxdb/schema"',
        f"schema.measurements(bucket: {flux_string(bucket, 'bucket')})",
    ])


async def fetch_bucket_names(client) -> List[str]:
    """All bucket names visible to the client's token, reserved ones included."""
    names = []
    try:
        async for row in client.stream(BUCKETS_QUERY):
            name = row.get("name")
            if name:
                names.append(name)
    except Exception as e:
        raise DiscoveryError(f"Bucket listing failed: {e}") from e
    return names


async def list_buckets(client, reserved_prefix: str = "_") -> List[str]:
    """List non-internal buckets, sorted; [] when the backend is unavailable."""
    try:
        names = await fetch_bucket_names(client)
    except DiscoveryError as e:
        logger.error(e.message)
        return []

    buckets = sorted({n for n in names if not (reserved_prefix and n.startswith(reserved_prefix))})
    logger.debug(f"Discovered {len(buckets)} buckets")
    return buckets


async def fetch_measurements(client, bucket: str) -> List[str]:
    measurements = []
    try:
        async for row in client.stream(measurements_query(bucket)):
            name = row.get("_value")
            if name:
                measurements.append(str(name))
    except Exception as e:
        raise DiscoveryError(f"Measurement listing failed for bucket {bucket}: {e}", bucket=bucket) from e
    return measurements


async def list_measurements(client, buckets: List[str]) -> List[str]:
    """
    Union of bucket-qualified measurement names across buckets.

    Buckets are queried concurrently; failures are logged and skipped.
    """
    if not buckets:
        return []

    # Validate every name before any I/O
    for bucket in buckets:
        flux_string(bucket, "bucket")

    outcomes = await asyncio.gather(
        *(fetch_measurements(client, bucket) for bucket in buckets),
        return_exceptions=True,
    )

    qualified = set()
    failed = 0
    for bucket, outcome in zip(buckets, outcomes):
        if isinstance(outcome, DiscoveryError):
            logger.warning(outcome.message)
            failed += 1
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        qualified.update(SeriesKey(bucket, m).qualified for m in outcome)

    logger.debug(f"Discovered {len(qualified)} measurements across {len(buckets)} buckets ({failed} failed)")
    return sorted(qualified)
