"""
Audit trail for sensorboard.

Each event is one JSON line on the "sensorboard.audit" logger so it can be
shipped separately from the application log. Records look like

    {"ts": 1700000000, "event": "data_export", "org": 3, "fields": {...},
     "request": {"ip": "10.0.0.4", "method": "GET", "path": "/export"}}

Rejected authentication is logged at WARNING, everything else at INFO.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

from fastapi import Request


def _request_context(request: Request) -> Dict[str, str]:
    """Who called and on which endpoint; query strings are left out."""
    return {
        "ip": request.client.host if request.client else "-",
        "agent": request.headers.get("user-agent", "-"),
        "method": request.method,
        "path": request.url.path,
    }


class AuditLogger:
    """Writes audit events for logins, admin operations and exports."""

    def __init__(self, name: str = "sensorboard.audit"):
        self.logger = logging.getLogger(name)

    def _log_event(self, event: str, fields: Dict[str, Any], request: Optional[Request] = None,
                   organization_id: Optional[int] = None, level: int = logging.INFO):
        record: Dict[str, Any] = {"ts": int(time.time()), "event": event}
        if organization_id is not None:
            record["org"] = organization_id
        record["fields"] = fields
        if request is not None:
            record["request"] = _request_context(request)

        self.logger.log(level, json.dumps(record, default=str, sort_keys=True))

    def auth_attempt(self, success: bool, auth_type: str, details: Dict[str, Any],
                     request: Optional[Request] = None):
        """auth_type is "admin_basic" or "user_bearer"."""
        self._log_event(
            "auth_success" if success else "auth_failure",
            {"scheme": auth_type, **details},
            request=request,
            organization_id=details.get("organization_id"),
            level=logging.INFO if success else logging.WARNING,
        )

    def admin_action(self, action: str, details: Dict[str, Any], request: Optional[Request] = None):
        self._log_event("admin_action", {"action": action, **details}, request=request)

    def data_export(self, user_id: int, organization_id: int, export_format: str,
                    details: Dict[str, Any], request: Optional[Request] = None):
        """One record per downloaded file; details carry row count and bucket outcome."""
        self._log_event(
            "data_export",
            {"user_id": user_id, "format": export_format, **details},
            request=request,
            organization_id=organization_id,
        )


audit_logger = AuditLogger()
