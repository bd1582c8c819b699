#!/usr/bin/env python3
"""
Dashboard Routes - JSON snapshot of the dashboard state machine
"""

import logging

from fastapi import APIRouter, Depends

from ...dashboard import DashboardController
from ...models import User
from ..dependencies import AuthDependencies
from ..params import SensorFilters, sensor_filters
from ..queries import SensorQueryService
from ..queries.types import AbsoluteWindow, parse_time_window

logger = logging.getLogger("sensorboard.server")


def create_dashboard_routes(auth_deps: AuthDependencies, service: SensorQueryService) -> APIRouter:
    """Create dashboard data routes."""
    router = APIRouter()

    @router.get("/api/dashboard")
    async def dashboard(
        filters: SensorFilters = Depends(sensor_filters),
        user: User = Depends(auth_deps.require_user_auth),
    ):
        """
        Replay the dashboard flow for the given filters and return its snapshot.

        Buckets default to the first available one; without measurements the
        dashboard stays idle with an empty chart.
        """
        window = parse_time_window(filters.range, filters.start, filters.stop)
        controller = DashboardController(service, user.organization_id)

        await controller.load_buckets()
        if filters.buckets:
            await controller.select_buckets(filters.buckets)

        if isinstance(window, AbsoluteWindow):
            await controller.set_absolute_range(window.start, window.stop)
        else:
            await controller.set_range(window.duration)
        await controller.select_measurements(filters.measurements)

        logger.debug(f"Dashboard for user {user.id}: {controller.state.value}")

        return controller.snapshot()

    return router
