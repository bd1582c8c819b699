"""Unit tests for bucket and measurement discovery"""
import asyncio

import pytest

from conftest import FakeFluxClient
from sensorboard.api.queries.discovery import list_buckets, list_measurements, measurements_query
from sensorboard.core.errors import InvalidRequestError


class TestListBuckets:
    """Bucket listing"""

    def test_reserved_buckets_hidden_and_sorted(self):
        client = FakeFluxClient(buckets=["zeta", "_monitoring", "alpha", "_tasks"])

        assert asyncio.run(list_buckets(client)) == ["alpha", "zeta"]

    def test_custom_reserved_prefix(self):
        client = FakeFluxClient(buckets=["sys.internal", "greenhouse"])

        assert asyncio.run(list_buckets(client, reserved_prefix="sys.")) == ["greenhouse"]

    def test_backend_failure_returns_empty(self):
        client = FakeFluxClient(buckets=["alpha"], fail_listing=True)

        assert asyncio.run(list_buckets(client)) == []


class TestListMeasurements:
    """Measurement listing across buckets"""

    def test_union_is_qualified_and_sorted(self):
        client = FakeFluxClient(measurements={"b2": ["temp"], "b1": ["temp", "hum"]})

        result = asyncio.run(list_measurements(client, ["b1", "b2"]))

        assert result == ["b1:hum", "b1:temp", "b2:temp"]

    def test_empty_bucket_list_does_no_io(self):
        client = FakeFluxClient(measurements={"b1": ["temp"]})

        assert asyncio.run(list_measurements(client, [])) == []
        assert client.queries == []

    def test_failing_bucket_is_skipped(self):
        client = FakeFluxClient(measurements={"b1": ["temp"], "b2": ["hum"]}, failing={"b2"})

        assert asyncio.run(list_measurements(client, ["b1", "b2"])) == ["b1:temp"]

    def test_invalid_bucket_rejected_before_io(self):
        client = FakeFluxClient(measurements={"b1": ["temp"]})

        with pytest.raises(InvalidRequestError):
            asyncio.run(list_measurements(client, ["b1", ""]))
        assert client.queries == []

    def test_schema_query_escapes_bucket(self):
        query = measurements_query('we"ird')

        assert 'import "influxdata/influxdb/schema"' in query
        assert 'schema.measurements(bucket: "we\\"ird")' in query
