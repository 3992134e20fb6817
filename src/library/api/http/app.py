"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.library.api.http.app_data import ApplicationDependencies
from src.library.api.http.routers.auth import router as auth_router
from src.library.api.http.routers.health import router as health_router
from src.library.api.http.routers.service.book import router as book_router
from src.library.api.utils.app_startup import configure_logging
from src.library.core.exceptions import LibraryError
from src.library.core.services import (
    DbManageService,
    DbSessionService,
    JwtGeneratorService,
    JwtVerificationService,
    LocalCoverStorage,
)
from src.library.runtime.context import get_config

__all__ = ["app", "create_app"]


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Referrer-Policy", "strict-origin-when-cross-origin"
        )
        # HSTS only in prod
        if get_config().app.environment == "production":
            response.headers.setdefault(
                "Strict-Transport-Security",
                "max-age=31536000; includeSubDomains",
            )
        return response


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "-"


def create_app() -> FastAPI:
    """Build the application from the current configuration."""
    config = get_config()
    configure_logging()

    # --- Lifecycle hooks ---
    async def startup() -> None:
        database_service = DbSessionService()
        DbManageService(database_service.engine).create_all()

        deps = ApplicationDependencies(
            database_service=database_service,
            jwt_generation_service=JwtGeneratorService(),
            jwt_verify_service=JwtVerificationService(),
            cover_store=LocalCoverStorage(get_config().uploads),
        )
        app.state.app_dependencies = deps
        logger.info(
            "Starting up application in {} environment", get_config().app.environment
        )

    async def shutdown() -> None:
        logger.info("Shutting down application")
        app_dependencies: ApplicationDependencies = app.state.app_dependencies
        app_dependencies.database_service.engine.dispose()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup()
        try:
            yield
        finally:
            await shutdown()

    is_production = config.app.environment == "production"
    app = FastAPI(
        title="Library API",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )

    app.add_middleware(SecurityHeadersMiddleware)

    # --- CORS configuration ---
    if is_production and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )

    # --- Request logging middleware ---
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        xff = request.headers.get("x-forwarded-for")
        client_ip = (
            xff.split(",")[0].strip()
            if xff
            else request.client.host
            if request.client
            else "unknown"
        )

        base_ctx = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": client_ip,
            "user_agent": request.headers.get("user-agent", "unknown"),
        }

        start = time.perf_counter()

        # Everything that logs within this block inherits base_ctx
        with logger.contextualize(**base_ctx):
            try:
                logger.info("request.start")
                response = await call_next(request)

                duration_ms = (time.perf_counter() - start) * 1000
                logger.bind(
                    status_code=response.status_code,
                    duration_ms=round(duration_ms, 1),
                ).info("request.end")

                response.headers.setdefault("X-Request-ID", request_id)
                return response

            except Exception as exc:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.bind(
                    status_code=500,
                    duration_ms=round(duration_ms, 1),
                    error_type=type(exc).__name__,
                ).exception("request.error")
                return JSONResponse(
                    status_code=500,
                    content={"detail": "Internal Server Error", "request_id": request_id},
                    headers={"X-Request-ID": request_id},
                )

    # --- Error translation ---
    @app.exception_handler(LibraryError)
    async def handle_library_error(request: Request, exc: LibraryError) -> JSONResponse:
        request_id = _request_id(request)
        logger.bind(
            status_code=exc.status_code,
            error_type=type(exc).__name__,
        ).warning("request.rejected: {}", exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "request_id": request_id},
            headers={"X-Request-ID": request_id},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        request_id = _request_id(request)
        logger.bind(
            status_code=400,
            error_type=type(exc).__name__,
        ).warning("request.validation_error")
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors()), "request_id": request_id},
            headers={"X-Request-ID": request_id},
        )

    # --- Router registration ---
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(book_router, prefix="/api/books", tags=["books"])
    app.include_router(health_router)

    # Uploaded cover images
    upload_dir = Path(config.uploads.directory)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(
        config.uploads.url_prefix,
        StaticFiles(directory=str(upload_dir)),
        name="uploads",
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=get_config().app.host,
        port=get_config().app.port,
        access_log=False,  # We handle access logging in middleware
    )
