#!/usr/bin/env python3
"""
sensorboard API Dependencies - Authentication and Dependency Injection
"""

import base64
import logging
from secrets import compare_digest
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..models import User
from ..core.audit import audit_logger

logger = logging.getLogger("sensorboard.server")
security = HTTPBearer(auto_error=False)


class AuthDependencies:
    """Container for authentication dependencies with admin token."""

    def __init__(self, admin_token: Optional[str], test_mode: bool = False):
        self.admin_token = admin_token
        self.test_mode = test_mode

    def require_admin_auth(self, request: Request) -> None:
        """
        Basic Auth for admin routes: any username + admin token as password.
        """
        auth_header = request.headers.get("authorization", "")

        if auth_header.startswith("Basic "):
            try:
                credentials = base64.b64decode(auth_header[6:]).decode("utf-8")
                if ":" in credentials:
                    username, password = credentials.split(":", 1)
                    if self.admin_token and compare_digest(password, self.admin_token):
                        logger.debug("Admin authenticated via Basic Auth")
                        audit_logger.auth_attempt(
                            success=True,
                            auth_type="admin_basic",
                            details={"username": username, "test_mode": self.test_mode},
                            request=request
                        )
                        return
            except (ValueError, UnicodeDecodeError) as e:
                logger.debug(f"Basic Auth parsing failed: {e}")

        audit_logger.auth_attempt(
            success=False,
            auth_type="admin_basic",
            details={"reason": "invalid_credentials", "test_mode": self.test_mode},
            request=request
        )

        logger.warning("Admin authentication failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Basic realm=\"sensorboard Admin\""}
        )

    def require_user_auth(self, request: Request,
                          creds: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> User:
        """Authenticate a dashboard user by bearer token and return the User."""
        if creds is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")

        token = creds.credentials
        user = User.get_by_token(token)

        if not user or not user.is_active:
            audit_logger.auth_attempt(
                success=False,
                auth_type="user_bearer",
                details={"token_prefix": token[:8], "endpoint": str(request.url),
                         "reason": "inactive" if user else "unknown_token"},
                request=request
            )
            logger.warning(f"User authentication failed with token: {token[:8]}...")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid user token")

        if logger.isEnabledFor(logging.DEBUG):
            audit_logger.auth_attempt(
                success=True,
                auth_type="user_bearer",
                details={"user_id": user.id, "organization_id": user.organization_id,
                         "endpoint": str(request.url)},
                request=request
            )

        user.update_last_seen()
        return user
