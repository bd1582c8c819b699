#!/usr/bin/env python3
"""
Export Routes - CSV and Excel downloads
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from ...core.audit import audit_logger
from ...export import EXPORT_FORMATS, export_filename, render_export
from ...models import User
from ..dependencies import AuthDependencies
from ..params import SensorFilters, sensor_filters
from ..queries import SensorQueryService

logger = logging.getLogger("sensorboard.server")


def create_export_routes(auth_deps: AuthDependencies, service: SensorQueryService) -> APIRouter:
    """Create export download routes."""
    router = APIRouter()

    @router.get("/export")
    async def export_readings(
        request: Request,
        filters: SensorFilters = Depends(sensor_filters),
        export_format: str = Query("csv", alias="format", pattern="^(csv|excel)$"),
        user: User = Depends(auth_deps.require_user_auth),
    ):
        """Download the merged readings as an attachment."""
        result = await service.fetch_readings(filters.to_request(user.organization_id))
        if not result.readings:
            return JSONResponse(status_code=404, content={"error": "No data found"})

        media_type, extension = EXPORT_FORMATS[export_format]
        content = render_export(result.readings, export_format)
        label = filters.range or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        filename = export_filename(extension, label)

        audit_logger.data_export(
            user_id=user.id,
            organization_id=user.organization_id,
            export_format=export_format,
            details={"readings": len(result.readings), "buckets": result.queried_buckets,
                     "failed_buckets": result.failed_buckets, "mock": result.mock},
            request=request
        )
        logger.info(f"Export {filename} for user {user.username}: {len(result.readings)} readings")

        return Response(
            content=content,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    return router
