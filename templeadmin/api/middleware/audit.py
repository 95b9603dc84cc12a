"""Request ids, access logging and the activity trail.

Every request gets a short id, echoed back in ``X-Request-ID`` and copied
into any ``activity_logs`` row written while serving it. Endpoints record
what they changed through ``AuditLogger``; the row joins the endpoint's own
transaction, so a rolled back change leaves no trail.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from templeadmin.db.models.activity import ActivityLog, ActivitySeverity

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Never written to the activity trail or the access log
SENSITIVE_FIELDS = frozenset({
    "password",
    "password_hash",
    "current_password",
    "new_password",
    "token",
    "access_token",
    "secret",
    "aadhaar_number",
    "owner_aadhaar",
})

QUIET_PATHS = frozenset({"/health", "/health/live", "/health/ready", "/favicon.ico"})


def get_client_ip(request: Request) -> str:
    """Caller address, preferring what a reverse proxy reports."""
    forwarded_for = request.headers.get("x-forwarded-for", "")
    candidates = [
        forwarded_for.split(",")[0].strip(),
        request.headers.get("x-real-ip", "").strip(),
        request.client.host if request.client else "",
    ]
    return next((ip for ip in candidates if ip), "unknown")


def redact_sensitive(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_FIELDS else redact_sensitive(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_sensitive(item) for item in data]
    return data


def _log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code in (401, 403, 429):
        return logging.WARNING
    return logging.INFO


class AuditMiddleware(BaseHTTPMiddleware):
    """Assign ``request.state.request_id`` and log one line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        if request.url.path not in QUIET_PATHS:
            claims = getattr(request.state, "user", None)
            logger.log(
                _log_level(response.status_code),
                "[%s] %s %s %d %.0fms ip=%s user=%s",
                request_id,
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
                get_client_ip(request),
                claims.id if claims else "-",
            )
        return response


class AuditLogger:
    """Writes ``activity_logs`` rows on behalf of the calling user.

    Example::

        AuditLogger(db, request, current_user).log(
            "member_created", "members", member.id, new_values={"name": member.name}
        )
        db.commit()
    """

    def __init__(self, db, request: Request, user):
        self.db = db
        self.request = request
        self.user = user

    def log(
        self,
        action: str,
        target_table: Optional[str] = None,
        target_id: Optional[int] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: ActivitySeverity = ActivitySeverity.INFO,
    ) -> ActivityLog:
        """Stage an entry on the session; the caller commits."""
        details = dict(details or {})
        request_id = getattr(self.request.state, "request_id", None)
        if request_id:
            details["request_id"] = request_id

        entry = ActivityLog.create_entry(
            temple_id=getattr(self.user, "temple_id", None),
            action=action,
            target_table=target_table,
            actor_user_id=getattr(self.user, "id", None),
            target_id=target_id,
            old_values=redact_sensitive(old_values) or None,
            new_values=redact_sensitive(new_values) or None,
            details=redact_sensitive(details) or None,
            ip_address=get_client_ip(self.request),
            user_agent=self.request.headers.get("user-agent"),
            severity=severity,
        )
        self.db.add(entry)
        return entry
