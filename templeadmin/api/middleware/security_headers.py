"""Response hardening headers."""

from typing import Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from templeadmin.core.config import get_settings

BASE_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}

PRODUCTION_HEADERS: Dict[str, str] = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'self'",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp every API response with the hardening headers.

    The API only serves JSON and PDF exports, so the policy is locked down
    to nothing. Exported PDFs may be framed by the dashboard's own origin.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        headers = dict(BASE_HEADERS)
        if not get_settings().debug:
            headers.update(PRODUCTION_HEADERS)
        if response.headers.get("content-type", "").startswith("application/pdf"):
            headers["X-Frame-Options"] = "SAMEORIGIN"

        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response
