"""Health checks for load balancers and the operations dashboard.

``/health`` and ``/health/live`` answer without touching anything.
``/health/ready`` fails only when the database is unreachable, since a
missing Redis merely switches rate limiting off. ``/health/detailed`` also
reports Redis, disk and memory.
"""

import functools
from datetime import datetime
from typing import Any, Callable, Dict

import psutil
import redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from templeadmin import __version__
from templeadmin.api.deps import get_db
from templeadmin.core.config import get_settings

router = APIRouter(tags=["health"])

GIB = 1024 ** 3

# (warning, critical) percent used
DISK_LIMITS = (85, 95)
MEMORY_LIMITS = (85, 95)


def _now() -> str:
    return datetime.utcnow().isoformat()


def _threshold_status(percent_used: float, warning: float, critical: float) -> str:
    if percent_used >= critical:
        return "critical"
    return "warning" if percent_used >= warning else "healthy"


def _check(failure_status: str) -> Callable:
    """Turn any exception raised by a check into a ``failure_status`` report."""

    def decorator(check: Callable[..., Dict[str, Any]]):
        @functools.wraps(check)
        def wrapper(*args, **kwargs) -> Dict[str, Any]:
            try:
                return check(*args, **kwargs)
            except Exception as exc:
                return {"status": failure_status, "error": str(exc)}

        return wrapper

    return decorator


@_check("unhealthy")
def check_database(db: Session) -> Dict[str, Any]:
    db.execute(text("SELECT 1")).scalar()
    dialect = db.get_bind().dialect
    version = dialect.server_version_info or ()
    return {
        "status": "healthy",
        "dialect": dialect.name,
        "version": ".".join(map(str, version)) or "unknown",
    }


@_check("unhealthy")
def check_redis() -> Dict[str, Any]:
    client = redis.from_url(get_settings().redis_url, socket_connect_timeout=2, socket_timeout=2)
    try:
        client.ping()
        server = client.info("server")
    finally:
        client.close()
    return {"status": "healthy", "version": server.get("redis_version", "unknown")}


@_check("unknown")
def check_disk() -> Dict[str, Any]:
    usage = psutil.disk_usage("/")
    return {
        "status": _threshold_status(usage.percent, *DISK_LIMITS),
        "free_gb": round(usage.free / GIB, 2),
        "total_gb": round(usage.total / GIB, 2),
        "percent_used": usage.percent,
    }


@_check("unknown")
def check_memory() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    return {
        "status": _threshold_status(memory.percent, *MEMORY_LIMITS),
        "available_gb": round(memory.available / GIB, 2),
        "total_gb": round(memory.total / GIB, 2),
        "percent_used": memory.percent,
    }


def _overall(checks: Dict[str, Dict[str, Any]]) -> str:
    seen = {check.get("status", "unknown") for check in checks.values()}
    if checks["database"]["status"] != "healthy" or "critical" in seen:
        return "unhealthy"
    if seen & {"warning", "unhealthy"}:
        return "degraded"
    return "healthy"


@router.get("/health")
def health_check():
    return {"status": "healthy", "version": __version__, "timestamp": _now()}


@router.get("/health/live")
def liveness_check():
    return {"status": "alive", "timestamp": _now()}


@router.get("/health/ready")
def readiness_check(db: Session = Depends(get_db)):
    database = check_database(db)
    ready = database["status"] == "healthy"
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "checks": {"database": database},
            "timestamp": _now(),
        },
    )


@router.get("/health/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """Every dependency; 503 only when the API cannot serve requests."""
    checks = {
        "database": check_database(db),
        "redis": check_redis(),
        "disk": check_disk(),
        "memory": check_memory(),
    }
    overall = _overall(checks)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE if overall == "unhealthy" else status.HTTP_200_OK,
        content={"status": overall, "version": __version__, "checks": checks, "timestamp": _now()},
    )
