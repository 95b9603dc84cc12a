import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from templeadmin import __version__
from templeadmin.api.middleware.audit import AuditMiddleware
from templeadmin.api.middleware.auth import AuthMiddleware
from templeadmin.api.middleware.rate_limit import RateLimiter, RateLimitMiddleware
from templeadmin.api.middleware.security_headers import SecurityHeadersMiddleware
from templeadmin.api.routers import (
    activity_logs,
    auth,
    events,
    health,
    ledger,
    master_data,
    members,
    permissions,
    properties,
    receipts,
    sessions,
    tax_registrations,
    tax_settings,
    temples,
    users,
)
from templeadmin.core.config import Settings, get_settings
from templeadmin.core.logger import configure_logging
from templeadmin.core.security import CredentialVerifier

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    from templeadmin.db.session import init_db

    init_db()
    yield
    limiter = getattr(app.state, "rate_limiter", None)
    if limiter is not None:
        await limiter.close()


def create_app(
    settings: Optional[Settings] = None,
    verifier: Optional[CredentialVerifier] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Build the API application."""
    settings = settings or get_settings()

    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Temple administration API",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Innermost first: rate limiting needs the identity set by AuthMiddleware
    if settings.rate_limit_enabled:
        app.state.rate_limiter = limiter or RateLimiter(settings=settings)
        app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)
    app.add_middleware(AuthMiddleware, verifier=verifier or CredentialVerifier.from_settings(settings))
    app.add_middleware(AuditMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins_list,
        allow_credentials=not settings.debug,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(auth.router, prefix="/api")
    app.include_router(temples.router, prefix="/api")
    app.include_router(users.router, prefix="/api")
    app.include_router(permissions.router, prefix="/api")
    app.include_router(members.router, prefix="/api")
    app.include_router(master_data.router, prefix="/api")
    app.include_router(tax_registrations.router, prefix="/api")
    app.include_router(tax_settings.router, prefix="/api")
    app.include_router(tax_settings.calculations_router, prefix="/api")
    app.include_router(receipts.router, prefix="/api")
    app.include_router(ledger.router, prefix="/api")
    app.include_router(properties.router, prefix="/api")
    app.include_router(events.router, prefix="/api")
    app.include_router(activity_logs.router, prefix="/api")
    app.include_router(sessions.router, prefix="/api")

    @app.get("/")
    def root():
        return {
            "name": settings.app_name,
            "version": __version__,
            "docs": "/docs" if settings.debug else None,
        }

    return app


app = create_app()
