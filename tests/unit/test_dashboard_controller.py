"""Unit tests for the dashboard state machine"""
import asyncio
import json
from datetime import datetime, timezone

import pytest

from conftest import BASE_TIME, FakeFluxClient, flux_row, make_client_factory
from sensorboard.api.queries import SensorQueryService
from sensorboard.core.errors import InvalidTimeWindowError
from sensorboard.dashboard import DashboardController, DashboardState

NOW = datetime(2024, 1, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def fake_client(sample_rows):
    return FakeFluxClient(
        rows=sample_rows,
        measurements={"b1": ["temp", "hum"], "b2": ["temp", "hum"]},
        buckets=["b1", "b2", "_monitoring"],
    )


@pytest.fixture
def controller(server_config, sample_organization, fake_client):
    service = SensorQueryService(server_config, client_factory=make_client_factory(fake_client))
    return DashboardController(service, sample_organization.id)


class TestBucketAndMeasurementLoading:
    """idle -> buckets -> measurements"""

    def test_initial_state(self, controller):
        assert controller.state == DashboardState.IDLE
        assert controller.snapshot()["notice"] == "noMeasurements"

    def test_load_buckets_auto_selects_first(self, controller):
        asyncio.run(controller.load_buckets())

        assert controller.all_buckets == ["b1", "b2"]
        assert controller.selected_buckets == ["b1"]
        assert controller.all_measurements == ["b1:hum", "b1:temp"]
        assert controller.state == DashboardState.MEASUREMENTS_LOADED
        assert controller.history[:5] == [
            DashboardState.IDLE,
            DashboardState.BUCKETS_LOADING,
            DashboardState.BUCKETS_LOADED,
            DashboardState.MEASUREMENTS_LOADING,
            DashboardState.MEASUREMENTS_LOADED,
        ]

    def test_bucket_listing_failure_clears_selection(self, controller, fake_client):
        fake_client.fail_listing = True

        asyncio.run(controller.load_buckets())

        assert controller.all_buckets == []
        assert controller.selected_buckets == []
        assert controller.state == DashboardState.IDLE

    def test_reload_keeps_only_existing_measurements(self, controller, fake_client):
        asyncio.run(controller.load_buckets())
        controller.selected_measurements = ["b1:temp", "b1:gone"]

        asyncio.run(controller.load_measurements())

        assert controller.selected_measurements == ["b1:temp"]

    def test_deselecting_all_buckets_returns_to_idle(self, controller):
        asyncio.run(controller.load_buckets())

        asyncio.run(controller.select_buckets([]))

        assert controller.state == DashboardState.IDLE
        assert controller.all_measurements == []


class TestDataLoading:
    """measurements -> data_rendered | data_error"""

    def test_render_selected_measurements(self, controller):
        asyncio.run(controller.load_buckets())
        asyncio.run(controller.select_buckets(["b1", "b2"]))

        asyncio.run(controller.select_measurements(["b1:temp", "b2:temp"], now=NOW))

        snapshot = controller.snapshot()
        assert controller.state == DashboardState.DATA_RENDERED
        assert snapshot["notice"] is None
        assert set(snapshot["series"]) == {"b1:temp", "b2:temp"}
        assert set(snapshot["series"]) == set(snapshot["statistics"])
        assert snapshot["statistics"]["b1:temp"]["latest"] == 21.5
        assert snapshot["summary"]["total_readings"] == 5
        assert snapshot["interval"] == {"start": "2024-01-01T11:30:00Z", "stop": "2024-01-01T12:30:00Z"}
        json.dumps(snapshot, allow_nan=False)

    def test_no_measurements_shows_empty_chart(self, controller):
        asyncio.run(controller.load_buckets())

        asyncio.run(controller.select_measurements([], now=NOW))

        assert controller.state == DashboardState.IDLE
        assert controller.snapshot()["series"] == {}
        assert controller.notice == "noMeasurements"

    def test_empty_result_is_no_data(self, controller, fake_client):
        fake_client.rows = {"b1": []}
        asyncio.run(controller.load_buckets())

        asyncio.run(controller.select_measurements(["b1:temp"], now=NOW))

        assert controller.state == DashboardState.DATA_RENDERED
        assert controller.notice == "noData"

    def test_backend_outage_degrades_to_no_data(self, controller, fake_client):
        asyncio.run(controller.load_buckets())
        fake_client.failing = {"b1"}

        asyncio.run(controller.select_measurements(["b1:temp"], now=NOW))

        assert controller.state == DashboardState.DATA_RENDERED
        assert controller.notice == "noData"
        assert controller.failed_buckets == ["b1"]

    def test_configuration_error_is_data_error(self, controller, sample_organization):
        asyncio.run(controller.load_buckets())
        controller.selected_measurements = ["b1:temp"]
        controller.organization_id = 999

        asyncio.run(controller.load_and_render(now=NOW))

        assert controller.state == DashboardState.DATA_ERROR
        assert controller.notice == "error"
        assert "999" in controller.error

    def test_range_change_reloads(self, controller):
        asyncio.run(controller.load_buckets())
        asyncio.run(controller.select_measurements(["b1:temp"], now=NOW))

        asyncio.run(controller.set_range("-15m", now=NOW))

        assert controller.current_range == "-15m"
        assert controller.interval.to_dict()["start"] == "2024-01-01T12:15:00Z"

    def test_absolute_range(self, controller):
        asyncio.run(controller.load_buckets())
        asyncio.run(controller.select_measurements(["b1:temp"], now=NOW))

        asyncio.run(controller.set_absolute_range("2024-01-01T12:00:00Z", "2024-01-01T12:03:00Z"))

        assert controller.snapshot()["range"] is None
        assert controller.interval.start == BASE_TIME

    def test_invalid_range_rejected(self, controller):
        with pytest.raises(InvalidTimeWindowError):
            asyncio.run(controller.set_range("forever"))

    def test_huge_range_rejected(self, controller, fake_client):
        with pytest.raises(InvalidTimeWindowError):
            asyncio.run(controller.set_range("-99999999999d"))

        assert fake_client.queries == []

    def test_unresolvable_range_is_data_error(self, controller, fake_client):
        """A range past datetime's limits ends in the error state, not an exception"""
        asyncio.run(controller.load_buckets())
        controller.selected_measurements = ["b1:temp"]
        controller.current_range = "-99999999999d"
        queried = len(fake_client.queries)

        asyncio.run(controller.load_and_render(now=NOW))

        assert controller.state == DashboardState.DATA_ERROR
        assert controller.notice == "error"
        assert len(fake_client.queries) == queried

    def test_partial_failure_without_readings_is_no_data(self, controller, fake_client):
        fake_client.rows = {"b1": []}
        asyncio.run(controller.load_buckets())
        asyncio.run(controller.select_buckets(["b1", "b2"]))
        fake_client.failing = {"b2"}

        asyncio.run(controller.select_measurements(["b1:temp", "b2:temp"], now=NOW))

        assert controller.state == DashboardState.DATA_RENDERED
        assert controller.notice == "noData"
        assert controller.failed_buckets == ["b2"]

    def test_nan_values_serialize_as_null(self, controller, fake_client):
        fake_client.rows = {"b1": [flux_row(0, "temp", "n/a"), flux_row(1, "temp", 2.0)]}
        asyncio.run(controller.load_buckets())

        asyncio.run(controller.select_measurements(["b1:temp"], now=NOW))

        values = controller.snapshot()["series"]["b1:temp"]["values"]
        assert values == [None, 2.0]
