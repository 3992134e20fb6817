"""Health check endpoints router for monitoring service availability."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.library.api.http.app_data import ApplicationDependencies
from src.library.runtime.context import get_config

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(request: Request) -> dict[str, str]:
    """Liveness probe with a database ping.

    Answers 200 as long as the process is running; a failed ping is reported
    in the body rather than through the status code.
    """
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    db_healthy = app_deps.database_service.health_check()
    return {
        "status": "healthy",
        "service": "library-api",
        "database": "healthy" if db_healthy else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe: checks database connectivity.

    Returns 200 when the database answers, 503 otherwise.
    """
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    config = get_config()

    db_healthy = app_deps.database_service.health_check()
    response = {
        "status": "ready" if db_healthy else "not_ready",
        "environment": config.app.environment,
        "checks": {
            "database": {
                "status": "healthy" if db_healthy else "unhealthy",
                "type": "sqlite" if config.database.is_sqlite else "postgresql",
            },
        },
    }

    if not db_healthy:
        return JSONResponse(status_code=503, content=response)
    return response
