"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatehouse import __version__
from gatehouse.api.deps import NotAuthenticatedError
from gatehouse.api.middleware import RequestIDMiddleware, RequestLoggingMiddleware
from gatehouse.api.router import api_router
from gatehouse.config import settings
from gatehouse.services.container import Services, build_services

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


async def not_authenticated_handler(_request: Request, _exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=401, content={"isLogIn": False})


def create_app(services: Services | None = None) -> FastAPI:
    """Create the application.

    When ``services`` is given it is used as-is and left open on shutdown;
    otherwise the container is built from settings on startup and closed on
    shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        if services is not None:
            yield
            return

        # Tables are created with `gatehouse db init`
        app.state.services = build_services(settings)
        try:
            yield
        finally:
            await app.state.services.aclose()

    app = FastAPI(
        title="Gatehouse API",
        description="Authentication and session service",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug_enabled else None,
        redoc_url="/api/redoc" if settings.debug_enabled else None,
        openapi_url="/api/openapi.json" if settings.debug_enabled else None,
    )

    # ASGI test transports skip the lifespan, so injected services are attached here
    if services is not None:
        app.state.services = services

    app.add_exception_handler(NotAuthenticatedError, not_authenticated_handler)

    app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]
    # Request ID middleware for distributed tracing
    app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID", "X-Access-Token", "X-Session-Id"],
        expose_headers=["X-Request-ID", "X-Access-Token", "X-Session-Id"],
    )

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from gatehouse.logging import get_uvicorn_log_config

    uvicorn.run(
        "gatehouse.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=get_uvicorn_log_config(),
    )
