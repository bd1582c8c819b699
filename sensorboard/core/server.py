#!/usr/bin/env python3
"""
sensorboard FastAPI application factory.

create_app() wires configuration, the SQLite database, the query service
and all route factories, and maps the SensorBoardError hierarchy onto JSON
error responses.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..api.dependencies import AuthDependencies
from ..api.queries import SensorQueryService
from ..api.routes import (
    create_admin_routes, create_dashboard_routes, create_export_routes, create_sensor_routes,
)
from ..models import DatabaseManager
from .config import ServerConfig, resolve_admin_token
from .errors import (
    BackendQueryError, ConfigurationError, InvalidRequestError, SensorBoardError,
)

logger = logging.getLogger("sensorboard.server")


def register_error_handlers(app: FastAPI) -> None:
    """Render domain errors as {"error": ...} with the class status code."""

    @app.exception_handler(BackendQueryError)
    async def backend_query_error(request: Request, exc: BackendQueryError):
        logger.warning(f"{request.url.path}: {exc.message} (failed buckets: {exc.failed_buckets})")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "No data available", "failed_buckets": exc.failed_buckets},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        logger.error(f"{request.url.path}: configuration error: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(InvalidRequestError)
    async def invalid_request(request: Request, exc: InvalidRequestError):
        logger.info(f"{request.url.path}: rejected request: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(SensorBoardError)
    async def sensorboard_error(request: Request, exc: SensorBoardError):
        logger.error(f"{request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


def create_app(config: ServerConfig, service: Optional[SensorQueryService] = None,
               admin_token: Optional[str] = None) -> FastAPI:
    """Create the FastAPI app; the database is opened in the lifespan."""
    db_manager = DatabaseManager(config.db_path)
    service = service or SensorQueryService(config)
    auth_deps = AuthDependencies(admin_token or resolve_admin_token(config), test_mode=config.test_mode)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not db_manager.connect():
            raise RuntimeError(f"cannot open database at {config.db_path}")
        logger.info(f"sensorboard {__version__} listening on {config.host}:{config.port}")
        yield
        db_manager.close()

    app = FastAPI(title="sensorboard", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.service = service

    register_error_handlers(app)

    app.include_router(create_sensor_routes(auth_deps, service))
    app.include_router(create_export_routes(auth_deps, service))
    app.include_router(create_dashboard_routes(auth_deps, service))
    app.include_router(create_admin_routes(auth_deps, db_manager))

    return app
