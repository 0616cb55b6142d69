"""Main FastAPI application."""

import time
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware

from pumpflix.config import settings
from pumpflix.database import db_manager
from pumpflix.exceptions import PumpFlixException
from pumpflix.metrics import REQUEST_COUNT, REQUEST_DURATION

logger = structlog.get_logger()

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting PumpFlix application", version=settings.app_version)

    try:
        await db_manager.initialize()
        logger.info("Application startup completed")
        yield
    finally:
        logger.info("Shutting down PumpFlix application")
        await db_manager.close()


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def register_exception_handlers(app: FastAPI) -> None:
    """Turn every error into a JSON ``{error, message}`` body."""

    @app.exception_handler(PumpFlixException)
    async def pumpflix_exception_handler(request: Request, exc: PumpFlixException):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Request failed",
            error=exc.error,
            message=exc.message,
            status_code=exc.status_code,
            url=str(request.url),
            method=request.method,
        )
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(
            "HTTP error",
            status_code=exc.status_code,
            detail=exc.detail,
            url=str(request.url),
            method=request.method,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": _status_phrase(exc.status_code), "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_encoder(exc.errors())
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", []) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
        logger.warning("Request validation failed", url=str(request.url), errors=len(errors))
        return JSONResponse(
            status_code=422,
            content={"error": "Validation Error", "message": message, "details": errors},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            url=str(request.url),
            method=request.method,
            exc_info=True,
        )

        content = {"error": "Internal Server Error", "message": "An unexpected error occurred"}
        if settings.is_development:
            content["message"] = str(exc)
            content["type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant workflow automation platform",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_credentials,
            allow_methods=settings.cors_methods,
            allow_headers=settings.cors_headers,
        )

    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Request logging and metrics middleware
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next) -> Response:
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_host=request.client.host if request.client else None,
        )

        response = await call_next(request)
        duration = time.time() - start_time

        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
        ).inc()
        REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(duration)

        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            duration=duration,
        )
        return response

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        db_health = await db_manager.health_check()

        # Disabled services do not degrade the status
        overall_healthy = all(
            db["status"] in ("healthy", "disabled") for db in db_health.values()
        )

        return {
            "status": "healthy" if overall_healthy else "degraded",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": time.time(),
            "databases": db_health,
        }

    if settings.metrics_enabled:
        @app.get("/metrics", tags=["Health"])
        async def metrics():
            """Prometheus metrics endpoint."""
            return Response(generate_latest(), media_type="text/plain")

    register_exception_handlers(app)

    from pumpflix.ai.routes import router as ai_router
    from pumpflix.analytics.routes import router as analytics_router
    from pumpflix.audit.routes import router as audit_router
    from pumpflix.auth.routes import router as auth_router
    from pumpflix.billing.routes import router as billing_router
    from pumpflix.credentials.routes import router as credentials_router
    from pumpflix.executions.routes import router as executions_router
    from pumpflix.exports.routes import router as exports_router
    from pumpflix.notifications.routes import router as notifications_router
    from pumpflix.organizations.routes import router as organizations_router
    from pumpflix.realtime.routes import router as realtime_router
    from pumpflix.templates.routes import router as templates_router
    from pumpflix.workflows.routes import router as workflows_router

    for router in (
        auth_router,
        organizations_router,
        workflows_router,
        templates_router,
        executions_router,
        credentials_router,
        billing_router,
        notifications_router,
        exports_router,
        ai_router,
        realtime_router,
        analytics_router,
        audit_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    return app


# Create the app instance
app = create_app()
