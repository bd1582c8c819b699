#!/usr/bin/env python3
"""
Admin Routes - Organization and User Management, Health Checks
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from peewee import IntegrityError, PeeweeException

from ...core.audit import audit_logger
from ...models import DatabaseManager, Organization, User
from ..dependencies import AuthDependencies
from ..schemas import OrganizationCreate, UserCreate

logger = logging.getLogger("sensorboard.server")


def create_admin_routes(auth_deps: AuthDependencies, db_manager: DatabaseManager) -> APIRouter:
    """Create admin-only routes."""
    router = APIRouter()

    @router.get("/api/admin/organizations", dependencies=[Depends(auth_deps.require_admin_auth)])
    def list_organizations(request: Request):
        """List all organizations (admin only)."""
        items = [o.to_dict() for o in Organization.select().order_by(Organization.name)]

        audit_logger.admin_action(
            action="list_organizations",
            details={"organization_count": len(items)},
            request=request
        )
        return {"organizations": items}

    @router.post("/api/admin/organizations", status_code=201,
                 dependencies=[Depends(auth_deps.require_admin_auth)])
    def create_organization(body: OrganizationCreate, request: Request):
        """Create an organization with an optional InfluxDB endpoint/token."""
        try:
            org = Organization.create_organization(
                name=body.name.strip(),
                description=body.description,
                influx_url=body.influx_url or None,
                influx_token=body.influx_token or None,
            )
        except IntegrityError:
            raise HTTPException(status_code=409, detail=f"organization '{body.name}' already exists")

        audit_logger.admin_action(
            action="create_organization",
            details={"organization_id": org.id, "name": org.name},
            request=request
        )
        logger.info(f"Created organization {org.name} (id={org.id})")
        return org.to_dict()

    @router.get("/api/admin/users", dependencies=[Depends(auth_deps.require_admin_auth)])
    def list_users(request: Request):
        """List all users (admin only). Tokens are not included."""
        items = [u.to_dict() for u in User.select().order_by(User.last_seen.desc(nulls="LAST"))]

        audit_logger.admin_action(
            action="list_users",
            details={"user_count": len(items)},
            request=request
        )
        return {"users": items}

    @router.post("/api/admin/users", status_code=201,
                 dependencies=[Depends(auth_deps.require_admin_auth)])
    def create_user(body: UserCreate, request: Request):
        """Create a user; the API token is returned only in this response."""
        if Organization.get_or_none(Organization.id == body.organization_id) is None:
            raise HTTPException(status_code=404, detail=f"organization {body.organization_id} not found")

        try:
            user = User.create_user(body.username, body.organization_id, role=body.role)
        except IntegrityError:
            raise HTTPException(status_code=409, detail=f"user '{body.username}' already exists")

        audit_logger.admin_action(
            action="create_user",
            details={"user_id": user.id, "username": user.username,
                     "organization_id": body.organization_id, "role": user.role},
            request=request
        )
        logger.info(f"Created user {user.username} for organization {body.organization_id}")
        return {**user.to_dict(), "api_token": user.api_token}

    @router.get("/api/admin/stats", dependencies=[Depends(auth_deps.require_admin_auth)])
    def get_stats(request: Request):
        """Database statistics (admin only)."""
        stats = db_manager.get_stats()

        audit_logger.admin_action(
            action="get_stats",
            details={"stats_requested": list(stats.keys())},
            request=request
        )
        return stats

    @router.get("/health", dependencies=[Depends(auth_deps.require_admin_auth)])
    def health(request: Request):
        """Health check endpoint (admin only)."""
        audit_logger.admin_action(
            action="health_check",
            details={},
            request=request
        )
        try:
            Organization.select().limit(1).execute()
            db_ok = True
        except PeeweeException as e:
            logger.error(f"Health check database query failed: {e}")
            db_ok = False
        return {"status": "ok", "db": "connected" if db_ok else "down"}

    return router
