"""
Shared query-string filters for the data routes.

Lists arrive comma separated (`buckets=a,b&measurements=a:temp,hum`).
"""

from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Query

from .queries.types import QueryRequest, parse_time_window


def parse_list(value: Optional[str]) -> List[str]:
    """Split a comma separated parameter, dropping blanks and duplicates."""
    if not value:
        return []
    return list(dict.fromkeys(item.strip() for item in value.split(",") if item.strip()))


@dataclass
class SensorFilters:
    range: Optional[str] = None
    start: Optional[str] = None
    stop: Optional[str] = None
    buckets: List[str] = field(default_factory=list)
    measurements: List[str] = field(default_factory=list)

    def to_request(self, organization_id: int) -> QueryRequest:
        return QueryRequest(
            organization_id=organization_id,
            time_window=parse_time_window(self.range, self.start, self.stop),
            buckets=list(self.buckets),
            measurements=list(self.measurements),
        )


def sensor_filters(
    range_: Optional[str] = Query(None, alias="range", description="Relative range, e.g. -1h"),
    start: Optional[str] = Query(None, description="ISO-8601 start (with stop)"),
    stop: Optional[str] = Query(None, description="ISO-8601 stop (with start)"),
    buckets: Optional[str] = Query(None, description="Comma separated bucket names"),
    measurements: Optional[str] = Query(None, description="Comma separated measurements"),
) -> SensorFilters:
    return SensorFilters(
        range=range_,
        start=start,
        stop=stop,
        buckets=parse_list(buckets),
        measurements=parse_list(measurements),
    )
