"""Bearer-token authentication for the ``/api`` surface.

Every request under ``/api`` either matches the public allowlist and
proceeds anonymously, or must carry a valid ``Authorization: Bearer``
token. Decoded claims land on ``request.state.user``.
"""

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from templeadmin.core.security import CredentialError, CredentialVerifier

logger = logging.getLogger(__name__)

PROTECTED_PREFIX = "/api"


def request_target(request: Request) -> str:
    """Path plus query string, as matched by public route patterns."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


class AuthMiddleware(BaseHTTPMiddleware):
    """Rejects unauthenticated ``/api`` requests with 401 or 403."""

    def __init__(self, app, verifier: Optional[CredentialVerifier] = None):
        super().__init__(app)
        self.verifier = verifier or CredentialVerifier.from_settings()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.user = None
        path = request.url.path

        if request.method == "OPTIONS" or not (
            path == PROTECTED_PREFIX or path.startswith(PROTECTED_PREFIX + "/")
        ):
            return await call_next(request)

        if self.verifier.is_public(request.method, request_target(request)):
            return await call_next(request)

        try:
            request.state.user = self.verifier.verify(request.headers.get("authorization"))
        except CredentialError as e:
            logger.info("Rejected %s %s: %s", request.method, path, e.message)
            return JSONResponse(status_code=e.status_code, content={"error": e.message})

        return await call_next(request)
