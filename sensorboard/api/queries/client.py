"""
Per-request InfluxDB client.

A client is built from resolved credentials for each request and closed
when the request is done; nothing is shared across requests.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from influxdb_client.client.influxdb_client_async import InfluxDBClientAsync

from .credentials import InfluxCredentials

logger = logging.getLogger("sensorboard.queries")


class InfluxQueryClient:
    """Thin async row-stream facade over InfluxDBClientAsync."""

    def __init__(self, client: InfluxDBClientAsync, org: Optional[str] = None):
        self._client = client
        self._query_api = client.query_api()
        self.org = org or None

    async def stream(self, flux: str) -> AsyncIterator[Dict[str, Any]]:
        """Yield each result row's column values as delivered by the store."""
        records = await self._query_api.query_stream(flux, org=self.org)
        async for record in records:
            yield record.values


@asynccontextmanager
async def open_client(credentials: InfluxCredentials) -> AsyncIterator[InfluxQueryClient]:
    """Open a client for one organization's endpoint."""
    logger.debug(f"Opening InfluxDB client for {credentials.url} (org={credentials.org or '-'})")
    async with InfluxDBClientAsync(url=credentials.url, token=credentials.token,
                                   org=credentials.org or None) as client:
        yield InfluxQueryClient(client, credentials.org)
