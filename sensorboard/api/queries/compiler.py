"""
Flux query compilation.

Turns a QueryRequest into one Flux query per bucket. Bucket, measurement
and field names come from user input, so every name is validated and
emitted as an escaped Flux string literal.
"""

import logging
import re
from collections import OrderedDict
from typing import Dict, List

from ...core.errors import InvalidRequestError, InvalidTimeWindowError
from .types import (
    AbsoluteWindow, QueryRequest, RelativeWindow, SeriesKey, TimeWindow,
    format_timestamp, relative_window,
)

logger = logging.getLogger("sensorboard.queries")

MAX_NAME_LENGTH = 255
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def flux_string(value: str, kind: str = "name") -> str:
    """
    Quote a user-supplied name as a Flux string literal.

    Rejects empty, over-long and control-character names; escapes
    backslash, double quote and the ${ interpolation opener.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError(f"Empty {kind} is not allowed.")
    if len(value) > MAX_NAME_LENGTH:
        raise InvalidRequestError(f"{kind.capitalize()} is too long: {value[:32]}...")
    if _CONTROL_CHARS.search(value):
        raise InvalidRequestError(f"Invalid characters in {kind}: {value!r}")
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("${", "\\${")
    return f'"{escaped}"'


def range_clause(window: TimeWindow) -> str:
    """Relative durations pass through verbatim; absolute instants go through time(v:)."""
    if isinstance(window, RelativeWindow):
        relative_window(window.duration)
        return f"|> range(start: {window.duration})"

    if isinstance(window, AbsoluteWindow):
        if window.start is None or window.stop is None:
            raise InvalidTimeWindowError("Both start and stop are required for an absolute range.")
        try:
            ordered = window.start < window.stop
        except TypeError:
            raise InvalidTimeWindowError("Start and stop must both be timezone-aware instants.")
        if not ordered:
            raise InvalidTimeWindowError("Start time must be before stop time.")
        start = flux_string(format_timestamp(window.start), "start")
        stop = flux_string(format_timestamp(window.stop), "stop")
        return f"|> range(start: time(v: {start}), stop: time(v: {stop}))"

    raise InvalidTimeWindowError("A relative range or a start/stop pair is required.")


def split_measurements(request: QueryRequest, default_measurement: str) -> "OrderedDict[str, List[str]]":
    """
    Route measurements to buckets.

    Qualified entries go to their bucket only; bare entries go to every
    requested bucket. Lists are deduplicated in first-seen order.
    """
    per_bucket: "OrderedDict[str, List[str]]" = OrderedDict((b, []) for b in request.buckets)
    measurements = request.measurements or [default_measurement]

    for value in measurements:
        key = SeriesKey.parse(value)
        if key.bucket is not None:
            if key.bucket not in per_bucket:
                logger.debug(f"Dropping {value}: bucket {key.bucket} not requested")
                continue
            targets = [key.bucket]
        else:
            targets = list(per_bucket.keys())

        for bucket in targets:
            if key.measurement and key.measurement not in per_bucket[bucket]:
                per_bucket[bucket].append(key.measurement)

    return per_bucket


def build_bucket_query(bucket: str, measurements: List[str], window_clause: str,
                       field: str = "value") -> str:
    measurement_filter = " or ".join(
        f"r._measurement == {flux_string(m, 'measurement')}" for m in measurements
    )
    return "\n".join([
        f"from(bucket: {flux_string(bucket, 'bucket')})",
        f"  {window_clause}",
        f"  |> filter(fn: (r) => {measurement_filter})",
        f"  |> filter(fn: (r) => r._field == {flux_string(field, 'field')})",
        '  |> sort(columns: ["_time"], desc: false)',
    ])


def compile_bucket_queries(request: QueryRequest, default_measurement: str = "home_pt",
                           field: str = "value") -> Dict[str, str]:
    """
    Build one Flux query per bucket.

    Raises InvalidTimeWindowError/InvalidRequestError before anything is
    emitted; buckets left without measurements are skipped.
    """
    window_clause = range_clause(request.time_window)

    queries: Dict[str, str] = {}
    for bucket, measurements in split_measurements(request, default_measurement).items():
        if not measurements:
            continue
        queries[bucket] = build_bucket_query(bucket, measurements, window_clause, field)

    logger.debug(f"Compiled {len(queries)} bucket queries for organization {request.organization_id}")
    return queries
