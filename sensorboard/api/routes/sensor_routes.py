#!/usr/bin/env python3
"""
Sensor Routes - Discovery, Readings and Statistics
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...models import User
from ..dependencies import AuthDependencies
from ..params import SensorFilters, parse_list, sensor_filters
from ..queries import SensorQueryService, compute_statistics, limit_readings, summarize

logger = logging.getLogger("sensorboard.server")


def create_sensor_routes(auth_deps: AuthDependencies, service: SensorQueryService) -> APIRouter:
    """Create data routes scoped to the caller's organization."""
    router = APIRouter()

    @router.get("/api/buckets")
    async def get_buckets(user: User = Depends(auth_deps.require_user_auth)):
        """List user-visible buckets of the caller's organization."""
        buckets = await service.list_buckets(user.organization_id)
        return {"buckets": buckets}

    @router.get("/api/measurements")
    async def get_measurements(
        buckets: Optional[str] = Query(None, description="Comma separated bucket names"),
        user: User = Depends(auth_deps.require_user_auth),
    ):
        """List qualified measurements (bucket:measurement) across buckets."""
        measurements = await service.list_measurements(user.organization_id, parse_list(buckets))
        return {"measurements": measurements}

    @router.get("/api/sensors")
    async def get_sensors(
        filters: SensorFilters = Depends(sensor_filters),
        limit: Optional[int] = Query(None, ge=1, description="Keep the first N merged readings"),
        user: User = Depends(auth_deps.require_user_auth),
    ):
        """Readings merged across buckets, ordered by timestamp."""
        result = await service.fetch_readings(filters.to_request(user.organization_id))

        # Never return more than max_readings regardless of limit
        cap = service.config.max_readings
        result.readings = limit_readings(result.readings, min(limit or cap, cap))
        return result.to_dict()

    @router.get("/api/statistics")
    async def get_statistics(
        filters: SensorFilters = Depends(sensor_filters),
        user: User = Depends(auth_deps.require_user_auth),
    ):
        """Per-series statistics plus headline summary."""
        result = await service.fetch_readings(filters.to_request(user.organization_id))
        statistics = compute_statistics(result.readings)
        return {
            "statistics": statistics,
            "summary": summarize(statistics),
            "failed_buckets": result.failed_buckets,
            "mock": result.mock,
        }

    return router
