"""
Sensor Query Modules

Organized by concern:
- types.py: Reading, SeriesKey, time windows, QueryRequest
- credentials.py: organization → InfluxDB endpoint/token
- compiler.py: per-bucket Flux query compilation
- client.py: per-request async InfluxDB client
- executor.py: concurrent per-bucket fan-out
- merger.py: cross-bucket merge
- discovery.py: bucket and measurement listing
- shaping.py: chart series and statistics
- mock.py: synthetic readings (explicit opt-in)
- service.py: SensorQueryService orchestration
"""

from .types import (
    Reading, SeriesKey, QueryRequest, RelativeWindow, AbsoluteWindow,
    parse_time_window, format_timestamp,
)
from .credentials import InfluxCredentials, resolve_credentials
from .compiler import compile_bucket_queries, split_measurements, flux_string
from .executor import execute_all
from .merger import merge
from .discovery import list_buckets, list_measurements
from .shaping import (
    series_key, group_for_chart, compute_statistics, summarize, limit_readings, chart_payload,
)
from .service import SensorQueryService, QueryResult

__all__ = [
    # Types
    'Reading',
    'SeriesKey',
    'QueryRequest',
    'RelativeWindow',
    'AbsoluteWindow',
    'parse_time_window',
    'format_timestamp',

    # Credentials
    'InfluxCredentials',
    'resolve_credentials',

    # Compilation and execution
    'compile_bucket_queries',
    'split_measurements',
    'flux_string',
    'execute_all',
    'merge',

    # Discovery
    'list_buckets',
    'list_measurements',

    # Shaping
    'series_key',
    'group_for_chart',
    'compute_statistics',
    'summarize',
    'limit_readings',
    'chart_payload',

    # Service
    'SensorQueryService',
    'QueryResult',
]
