"""
Query layer value types.

Readings, series keys, time windows and the logical query request shared
by the compiler, executor, merger and shaping modules.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from ...core.errors import InvalidRequestError, InvalidTimeWindowError

RELATIVE_RANGE_PATTERN = re.compile(r"-(\d+)([smhdw])")

UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
}

# Longest relative range; keeps now - range well inside datetime's range
MAX_RANGE_SECONDS = 1000 * 52 * UNIT_SECONDS["w"]

UNKNOWN_SERIES = "Unknown"


@dataclass(frozen=True)
class SeriesKey:
    """A measurement inside a bucket; the qualified form is bucket:measurement."""
    bucket: Optional[str]
    measurement: Optional[str]

    @property
    def qualified(self) -> str:
        if self.bucket and self.measurement:
            return f"{self.bucket}:{self.measurement}"
        return self.measurement or UNKNOWN_SERIES

    @classmethod
    def parse(cls, value: str) -> "SeriesKey":
        """Split on the first ':'; a bare name has no bucket."""
        bucket, sep, measurement = value.partition(":")
        if not sep:
            return cls(bucket=None, measurement=value)
        return cls(bucket=bucket, measurement=measurement)

    def __str__(self) -> str:
        return self.qualified


@dataclass(frozen=True)
class Reading:
    """One timestamped value from one bucket/measurement."""
    timestamp: str
    value: float
    measurement: Optional[str]
    bucket: Optional[str]

    @property
    def series(self) -> SeriesKey:
        return SeriesKey(self.bucket, self.measurement)

    def to_dict(self) -> Dict[str, Any]:
        # NaN is not valid JSON
        value = None if isinstance(self.value, float) and math.isnan(self.value) else self.value
        return {
            "timestamp": self.timestamp,
            "value": value,
            "measurement": self.measurement,
            "bucket": self.bucket,
        }


def format_timestamp(value: Union[datetime, str]) -> str:
    """Render an instant as ISO-8601 UTC with a 'Z' suffix."""
    if isinstance(value, str):
        value = parse_instant(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant (any fraction precision); naive values are taken as UTC."""
    text = value.strip()
    # pd.Timestamp also accepts words like "now"
    if not text[:1].isdigit():
        raise ValueError(f"not an ISO-8601 instant: {value!r}")
    parsed = pd.Timestamp(text)
    if parsed is pd.NaT:
        raise ValueError(f"not an ISO-8601 instant: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return parsed.floor("us").to_pydatetime()


@dataclass(frozen=True)
class RelativeWindow:
    """Duration before now, e.g. -1h."""
    duration: str

    @property
    def delta(self) -> timedelta:
        match = RELATIVE_RANGE_PATTERN.fullmatch(self.duration)
        if match is None:
            raise InvalidTimeWindowError(f"Invalid range {self.duration!r}.")
        amount, unit = int(match.group(1)), match.group(2)
        return timedelta(seconds=amount * UNIT_SECONDS[unit])

    def resolve(self, now: Optional[datetime] = None) -> "AbsoluteWindow":
        stop = now or datetime.now(timezone.utc)
        if stop.tzinfo is None:
            stop = stop.replace(tzinfo=timezone.utc)
        try:
            start = stop - self.delta
        except OverflowError:
            raise InvalidTimeWindowError(f"Range {self.duration} reaches before the earliest representable time.")
        return AbsoluteWindow(start=start, stop=stop)

    def to_dict(self) -> Dict[str, Any]:
        return {"range": self.duration}


@dataclass(frozen=True)
class AbsoluteWindow:
    """Explicit start/stop instants, start < stop."""
    start: datetime
    stop: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"start": format_timestamp(self.start), "stop": format_timestamp(self.stop)}


TimeWindow = Union[RelativeWindow, AbsoluteWindow]


def relative_window(duration: str) -> RelativeWindow:
    match = RELATIVE_RANGE_PATTERN.fullmatch(duration or "")
    if not match:
        raise InvalidTimeWindowError(
            "Invalid range parameter. Use format like -1h, -30m, -7d."
        )
    seconds = int(match.group(1)) * UNIT_SECONDS[match.group(2)]
    if seconds == 0:
        raise InvalidTimeWindowError("Range duration must be greater than zero.")
    if seconds > MAX_RANGE_SECONDS:
        raise InvalidTimeWindowError("Range duration is too long (at most 52000w).")
    return RelativeWindow(duration)


def absolute_window(start: Union[str, datetime], stop: Union[str, datetime]) -> AbsoluteWindow:
    try:
        start_dt = parse_instant(start) if isinstance(start, str) else start
        stop_dt = parse_instant(stop) if isinstance(stop, str) else stop
    except (TypeError, ValueError):
        raise InvalidTimeWindowError(
            "Invalid start/stop parameters. Must be valid ISO 8601 dates."
        )
    if start_dt.tzinfo is None:
        start_dt = start_dt.replace(tzinfo=timezone.utc)
    if stop_dt.tzinfo is None:
        stop_dt = stop_dt.replace(tzinfo=timezone.utc)
    if start_dt >= stop_dt:
        raise InvalidTimeWindowError("Start time must be before stop time.")
    return AbsoluteWindow(start=start_dt, stop=stop_dt)


def parse_time_window(range_: Optional[str] = None, start: Optional[str] = None,
                      stop: Optional[str] = None, default_range: str = "-1h") -> TimeWindow:
    """
    Build a time window from API-style parameters.

    start/stop take precedence; giving only one of them is an error.
    Without either, range (or default_range) must be a relative duration.
    """
    if start or stop:
        if not (start and stop):
            raise InvalidTimeWindowError("Both start and stop are required for an absolute range.")
        return absolute_window(start, stop)
    return relative_window(range_ or default_range)


@dataclass
class QueryRequest:
    """Logical request: which buckets/measurements over which window."""
    organization_id: int
    time_window: TimeWindow
    buckets: List[str] = field(default_factory=list)
    measurements: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.organization_id is None:
            raise InvalidRequestError("Organization is required.")
        if not isinstance(self.time_window, (RelativeWindow, AbsoluteWindow)):
            raise InvalidTimeWindowError("A relative range or a start/stop pair is required.")
        if not self.buckets:
            # Derive from qualified measurements, first appearance order
            derived = []
            for value in self.measurements:
                key = SeriesKey.parse(value)
                if key.bucket and key.bucket not in derived:
                    derived.append(key.bucket)
            self.buckets = derived
        if not self.buckets:
            raise InvalidRequestError("At least one bucket is required.")
