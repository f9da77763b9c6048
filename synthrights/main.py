"""
FastAPI application entry point.
Configures middleware, routers, and lifecycle events.
"""

import hmac
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from synthrights.core.config import get_settings
from synthrights.core.logging import configure_logging, get_logger
from synthrights.core.middleware import SecurityHeadersMiddleware
from synthrights.db.session import close_db, get_db_session, init_db
from synthrights.modules.certificates.router import router as certificates_router
from synthrights.modules.verification.router import router as verification_router

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the database pool on startup and release it on shutdown."""
    settings = get_settings()
    logger.info(
        "starting_application",
        environment=settings.environment,
        version=settings.version,
        anchor_backend=settings.anchor_backend,
    )

    await init_db()
    logger.info("database_initialized")

    yield

    await close_db()
    logger.info("application_shutdown_complete")


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_application() -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application with all middleware,
    routers, and settings applied.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        openapi_url=f"{settings.api_v1_prefix}/openapi.json",
        docs_url=f"{settings.api_v1_prefix}/docs",
        redoc_url=f"{settings.api_v1_prefix}/redoc",
        lifespan=lifespan,
    )

    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # ==========================================================================
    # Middleware Configuration
    # ==========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Request-ID"],
        expose_headers=[
            "Content-Disposition",
            "X-Batch-Total",
            "X-Batch-Succeeded",
            "X-Batch-Failed",
            "X-Batch-Already-Certified",
        ],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # ==========================================================================
    # Router Registration
    # ==========================================================================

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, object]:
        checks: dict[str, str] = {}
        try:
            async for session in get_db_session():
                await session.execute(text("SELECT 1"))
            checks["db"] = "ok"
        except (SQLAlchemyError, OSError, RuntimeError):
            logger.warning("health_db_unavailable", exc_info=True)
            checks["db"] = "unavailable"

        overall = "healthy" if all(v == "ok" for v in checks.values()) else "degraded"
        return {"status": overall, "version": settings.version, "checks": checks}

    app.include_router(
        certificates_router,
        prefix=f"{settings.api_v1_prefix}/certificates",
        tags=["Certificates"],
    )
    app.include_router(
        verification_router,
        prefix=f"{settings.api_v1_prefix}/verify",
        tags=["Verification"],
    )

    # Prometheus metrics endpoint
    instrumentator = Instrumentator().instrument(app)

    if settings.environment == "development" and not settings.metrics_auth_token:
        instrumentator.expose(app, endpoint="/metrics")
    else:

        @app.get("/metrics", include_in_schema=False)
        async def metrics_endpoint(
            authorization: str | None = Header(default=None),
        ) -> Response:
            if not settings.metrics_auth_token:
                return Response(status_code=status.HTTP_404_NOT_FOUND)
            if not authorization or not authorization.startswith("Bearer "):
                return Response(status_code=status.HTTP_401_UNAUTHORIZED)
            provided = authorization.removeprefix("Bearer ")
            if not hmac.compare_digest(provided, settings.metrics_auth_token):
                return Response(status_code=status.HTTP_401_UNAUTHORIZED)
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_application()
