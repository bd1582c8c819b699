"""Pytest configuration and shared fixtures"""
import re
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from peewee import SqliteDatabase

from sensorboard.core.config import InfluxSettings, ServerConfig
from sensorboard.models import ALL_MODELS, Organization, User

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

_FROM_BUCKET = re.compile(r'from\(bucket: "([^"]*)"\)')
_SCHEMA_BUCKET = re.compile(r'schema\.measurements\(bucket: "([^"]*)"\)')
_MEASUREMENT_FILTER = re.compile(r'r\._measurement == "([^"]*)"')


def flux_row(minute, measurement, value, field="value"):
    """One result row the way the store hands it over (record.values)."""
    return {
        "result": "_result",
        "table": 0,
        "_time": BASE_TIME + timedelta(minutes=minute),
        "_measurement": measurement,
        "_field": field,
        "_value": value,
    }


class FakeFluxClient:
    """
    In-memory stand-in for InfluxQueryClient.

    Answers bucket listing, schema.measurements and from(bucket:) queries,
    honoring the measurement filter. Buckets in `failing` raise mid-query.
    """

    def __init__(self, rows=None, measurements=None, buckets=None, failing=(), fail_listing=False):
        self.rows = rows or {}
        self.measurements = measurements or {}
        if buckets is None:
            buckets = list(dict.fromkeys(list(self.rows) + list(self.measurements)))
        self.buckets = buckets
        self.failing = set(failing)
        self.fail_listing = fail_listing
        self.queries = []

    async def stream(self, flux):
        self.queries.append(flux)

        if flux.startswith("buckets()"):
            if self.fail_listing:
                raise ConnectionError("influx unavailable")
            for name in self.buckets:
                yield {"name": name}
            return

        schema = _SCHEMA_BUCKET.search(flux)
        bucket = schema.group(1) if schema else _FROM_BUCKET.search(flux).group(1)
        if bucket in self.failing:
            raise ConnectionError(f"bucket {bucket} unreachable")

        if schema:
            for name in self.measurements.get(bucket, []):
                yield {"_value": name}
            return

        wanted = set(_MEASUREMENT_FILTER.findall(flux))
        for row in self.rows.get(bucket, []):
            if row["_measurement"] in wanted:
                yield dict(row)


def make_client_factory(fake):
    """Client factory yielding `fake`; opened credentials are recorded on .opened."""
    opened = []

    @asynccontextmanager
    async def factory(credentials):
        opened.append(credentials)
        yield fake

    factory.opened = opened
    return factory


@pytest.fixture
def test_db():
    """Create an in-memory test database"""
    # Route tests touch the DB from TestClient worker threads
    test_database = SqliteDatabase(':memory:', thread_safe=False, check_same_thread=False)

    test_database.bind(ALL_MODELS, bind_refs=False, bind_backrefs=False)
    test_database.connect()
    test_database.create_tables(ALL_MODELS)

    yield test_database

    test_database.drop_tables(ALL_MODELS)
    test_database.close()


@pytest.fixture
def server_config(tmp_path):
    """Config with a default endpoint and no admin token on disk"""
    return ServerConfig(
        auth_dir=str(tmp_path / "auth"),
        db_path=str(tmp_path / "sensorboard.db"),
        influx=InfluxSettings(url="http://influx.default:8086", token="default-token", org="default-org"),
        test_mode=True,
    )


@pytest.fixture
def sample_organization(test_db):
    """Organization with its own endpoint and token"""
    return Organization.create_organization(
        name="acme",
        description="Acme greenhouse",
        influx_url="http://influx.acme:8086",
        influx_token="acme-token",
    )


@pytest.fixture
def default_organization(test_db):
    """Organization relying on the default endpoint"""
    return Organization.create_organization(name="tenant-b")


@pytest.fixture
def sample_user(sample_organization):
    """Active client user of the sample organization"""
    return User.create_user("alice", sample_organization.id)


@pytest.fixture
def sample_rows():
    """Two buckets with interleaved timestamps"""
    return {
        "b1": [
            flux_row(0, "temp", 20.5),
            flux_row(2, "temp", 21.0),
            flux_row(4, "temp", 21.5),
            flux_row(1, "hum", 40.0),
        ],
        "b2": [
            flux_row(1, "temp", 18.0),
            flux_row(3, "temp", 18.5),
            flux_row(3, "hum", 55.0),
        ],
    }
