"""
Sensor query service.

Per-request orchestration: resolve credentials, open a client for the
organization's endpoint, then compile → fan out → merge. The client
factory is injected so tests can substitute a fake store.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from ...core.config import ServerConfig
from ...core.errors import BackendQueryError
from .client import open_client
from .compiler import compile_bucket_queries, split_measurements
from .credentials import InfluxCredentials, resolve_credentials
from .discovery import list_buckets, list_measurements
from .executor import execute_all
from .merger import merge
from .mock import generate_mock_readings
from .types import QueryRequest, Reading

logger = logging.getLogger("sensorboard.queries")


@dataclass
class QueryResult:
    readings: List[Reading]
    queried_buckets: List[str] = field(default_factory=list)
    failed_buckets: List[str] = field(default_factory=list)
    mock: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "readings": [r.to_dict() for r in self.readings],
            "failed_buckets": self.failed_buckets,
            "mock": self.mock,
        }


class SensorQueryService:
    """Entry point used by routes and the dashboard controller."""

    def __init__(self, config: ServerConfig, client_factory: Callable = open_client):
        self.config = config
        self.client_factory = client_factory

    def credentials_for(self, organization_id: int) -> InfluxCredentials:
        return resolve_credentials(organization_id, self.config.influx)

    async def list_buckets(self, organization_id: int) -> List[str]:
        credentials = self.credentials_for(organization_id)
        async with self.client_factory(credentials) as client:
            return await list_buckets(client, self.config.reserved_bucket_prefix)

    async def list_measurements(self, organization_id: int, buckets: List[str]) -> List[str]:
        if not buckets:
            return []
        credentials = self.credentials_for(organization_id)
        async with self.client_factory(credentials) as client:
            return await list_measurements(client, buckets)

    async def fetch_readings(self, request: QueryRequest) -> QueryResult:
        """
        Run a query request across its buckets.

        Raises:
            InvalidRequestError / InvalidTimeWindowError: before any I/O
            ConfigurationError: organization endpoint cannot be resolved
            BackendQueryError: failures left no readings (unless mock fallback is on)
        """
        queries = compile_bucket_queries(
            request,
            default_measurement=self.config.default_measurement,
            field=self.config.value_field,
        )
        credentials = self.credentials_for(request.organization_id)
        if not queries:
            return QueryResult(readings=[])

        queried = list(queries.keys())
        try:
            async with self.client_factory(credentials) as client:
                outcomes = await execute_all(queries, client)
            failed = [bucket for bucket, outcome in outcomes.items() if isinstance(outcome, Exception)]
            readings = merge(outcomes)
            if failed and not readings:
                # Survivors came back empty: the failures are all there is to report
                raise BackendQueryError("Failed buckets left no readings", failed_buckets=failed)
        except BackendQueryError as e:
            if not self.config.mock_data_fallback:
                raise
            routed = split_measurements(request, self.config.default_measurement)
            readings = generate_mock_readings({b: routed[b] for b in queried}, request.time_window)
            return QueryResult(readings=readings, queried_buckets=queried,
                               failed_buckets=e.failed_buckets, mock=True)

        logger.debug(f"Organization {request.organization_id}: {len(readings)} readings "
                     f"from {len(queried)} buckets")
        return QueryResult(readings=readings, queried_buckets=queried, failed_buckets=failed)
