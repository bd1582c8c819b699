"""
Dashboard Controller

Drives the dashboard selection flow as a state machine:

    idle → buckets_loading → buckets_loaded → measurements_loading
         → measurements_loaded → data_loading → data_rendered | data_error

With no measurement selected the controller sits in idle with an empty
chart. All methods leave plain Python data behind, see snapshot().
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..api.queries import (
    QueryRequest, chart_payload, compute_statistics, group_for_chart, summarize,
)
from ..api.queries.service import SensorQueryService
from ..api.queries.types import (
    AbsoluteWindow, RelativeWindow, TimeWindow, absolute_window, relative_window,
)
from ..core.errors import BackendQueryError, InvalidTimeWindowError, SensorBoardError

logger = logging.getLogger("sensorboard.dashboard")


class DashboardState(str, Enum):
    IDLE = "idle"
    BUCKETS_LOADING = "buckets_loading"
    BUCKETS_LOADED = "buckets_loaded"
    MEASUREMENTS_LOADING = "measurements_loading"
    MEASUREMENTS_LOADED = "measurements_loaded"
    DATA_LOADING = "data_loading"
    DATA_RENDERED = "data_rendered"
    DATA_ERROR = "data_error"


# Notices shown in place of the chart
NOTICE_NO_MEASUREMENTS = "noMeasurements"
NOTICE_NO_DATA = "noData"
NOTICE_ERROR = "error"


class DashboardController:
    """One dashboard session for one organization."""

    def __init__(self, service: SensorQueryService, organization_id: int, default_range: str = "-1h"):
        self.service = service
        self.organization_id = organization_id

        self.state = DashboardState.IDLE
        self.history: List[DashboardState] = [DashboardState.IDLE]

        self.all_buckets: List[str] = []
        self.selected_buckets: List[str] = []
        self.all_measurements: List[str] = []
        self.selected_measurements: List[str] = []

        self.current_range = relative_window(default_range).duration
        self.absolute_range: Optional[AbsoluteWindow] = None

        self._reset_view(NOTICE_NO_MEASUREMENTS)

    # ---- state helpers ----

    def _transition(self, state: DashboardState) -> None:
        logger.debug(f"dashboard org={self.organization_id}: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _reset_view(self, notice: Optional[str]) -> None:
        self.interval: Optional[AbsoluteWindow] = None
        self.series: Dict[str, Dict[str, list]] = {}
        self.statistics: Dict[str, Dict[str, float]] = {}
        self.summary: Dict[str, float] = {}
        self.failed_buckets: List[str] = []
        self.mock = False
        self.error: Optional[str] = None
        self.notice = notice

    def _show_empty_chart(self) -> None:
        self._reset_view(NOTICE_NO_MEASUREMENTS)
        self._transition(DashboardState.IDLE)

    def clear_measurements(self) -> None:
        self.all_measurements = []
        self.selected_measurements = []
        self._show_empty_chart()

    # ---- buckets ----

    async def load_buckets(self) -> None:
        """Load buckets; auto-select the first one when nothing is selected."""
        self._transition(DashboardState.BUCKETS_LOADING)
        try:
            buckets = await self.service.list_buckets(self.organization_id)
        except SensorBoardError as e:
            logger.error(f"Failed to load buckets: {e.message}")
            self.all_buckets = []
            self.selected_buckets = []
            self.clear_measurements()
            return

        self.all_buckets = buckets
        self.selected_buckets = [b for b in self.selected_buckets if b in buckets]
        self._transition(DashboardState.BUCKETS_LOADED)

        if not buckets:
            self.clear_measurements()
            return
        if not self.selected_buckets:
            self.selected_buckets = [buckets[0]]
        await self.load_measurements()

    async def select_buckets(self, buckets: List[str]) -> None:
        self.selected_buckets = [b for b in dict.fromkeys(buckets) if b in self.all_buckets]
        await self.load_measurements()

    # ---- measurements ----

    async def load_measurements(self) -> None:
        """Reload measurements for the selected buckets, keeping still-valid selections."""
        if not self.selected_buckets:
            self.clear_measurements()
            return

        self._transition(DashboardState.MEASUREMENTS_LOADING)
        try:
            measurements = await self.service.list_measurements(self.organization_id, self.selected_buckets)
        except SensorBoardError as e:
            logger.error(f"Failed to load measurements: {e.message}")
            self.clear_measurements()
            return

        self.all_measurements = measurements
        self.selected_measurements = [m for m in self.selected_measurements if m in measurements]
        self._transition(DashboardState.MEASUREMENTS_LOADED)

    async def select_measurements(self, measurements: List[str], now: Optional[datetime] = None) -> None:
        self.selected_measurements = [m for m in dict.fromkeys(measurements) if m in self.all_measurements]
        if self.selected_measurements:
            await self.load_and_render(now=now)
        else:
            self._show_empty_chart()

    # ---- time range ----

    async def set_range(self, range_: str, now: Optional[datetime] = None) -> None:
        self.current_range = relative_window(range_).duration
        self.absolute_range = None
        if self.selected_measurements:
            await self.load_and_render(now=now)

    async def set_absolute_range(self, start: str, stop: str) -> None:
        self.absolute_range = absolute_window(start, stop)
        if self.selected_measurements:
            await self.load_and_render()

    def effective_window(self, now: Optional[datetime] = None) -> AbsoluteWindow:
        """The window for one load; relative ranges resolve against `now` once."""
        if self.absolute_range is not None:
            return self.absolute_range
        return RelativeWindow(self.current_range).resolve(now)

    # ---- data ----

    async def load_and_render(self, now: Optional[datetime] = None) -> None:
        if not self.selected_measurements:
            self._show_empty_chart()
            return

        try:
            window: TimeWindow = self.effective_window(now)
        except InvalidTimeWindowError as e:
            self._render_error(e.message)
            return

        self._reset_view(None)
        self.interval = window
        self._transition(DashboardState.DATA_LOADING)

        try:
            request = QueryRequest(
                organization_id=self.organization_id,
                time_window=window,
                buckets=list(self.selected_buckets),
                measurements=list(self.selected_measurements),
            )
            result = await self.service.fetch_readings(request)
        except BackendQueryError as e:
            # Backend outage degrades to the no-data view
            logger.warning(f"No data for dashboard org={self.organization_id}: {e.message}")
            self.failed_buckets = e.failed_buckets
            self.notice = NOTICE_NO_DATA
            self._transition(DashboardState.DATA_RENDERED)
            return
        except SensorBoardError as e:
            self._render_error(e.message)
            return

        self.failed_buckets = result.failed_buckets
        self.mock = result.mock
        if not result.readings:
            self.notice = NOTICE_NO_DATA
        else:
            self.series = group_for_chart(result.readings)
            self.statistics = compute_statistics(result.readings)
            self.summary = summarize(self.statistics)
        self._transition(DashboardState.DATA_RENDERED)

    def _render_error(self, message: str) -> None:
        logger.error(f"Dashboard load failed for org={self.organization_id}: {message}")
        interval = self.interval
        self._reset_view(NOTICE_ERROR)
        self.interval = interval
        self.error = message
        self._transition(DashboardState.DATA_ERROR)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "notice": self.notice,
            "error": self.error,
            "buckets": {"available": self.all_buckets, "selected": self.selected_buckets},
            "measurements": {"available": self.all_measurements, "selected": self.selected_measurements},
            "range": None if self.absolute_range else self.current_range,
            "interval": self.interval.to_dict() if self.interval else None,
            "series": chart_payload(self.series),
            "statistics": self.statistics,
            "summary": self.summary,
            "failed_buckets": self.failed_buckets,
            "mock": self.mock,
        }
