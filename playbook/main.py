"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    STORE_MOCK_MODE=true uvicorn playbook.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.dependencies import get_document_store
from .api.routes import analytics, health, logs, players, programs
from .config.settings import get_settings
from .core.errors import StoreError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    On startup: report missing configuration and, when running against
    Snowflake, make sure the documents table exists.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "Playbook API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {"store": settings.store_mock_mode},
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Log and keep going; /health/ready reports not_ready
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
    elif not settings.store_mock_mode:
        try:
            get_document_store(settings).ensure_schema()
        except StoreError as e:
            logger.error("Could not prepare documents table", extra={"error": str(e)})

    yield

    logger.info("Playbook API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Training programs and performance logs for throwing athletes.

        ## Features

        - Edit per-player throwing and lifting programs
        - Watch a program live while someone else edits it
        - Log wellness check-ins, throwing days and lifting sessions
        - Chart squat progression, throwing feel and sleep vs. arm feel
        - Ask for an AI summary of recent training

        ## Authentication

        All endpoints except health checks require an API key provided
        in the `X-API-Key` header.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        players.router,
        prefix="/api/v1/players",
        tags=["Players"],
    )

    app.include_router(
        programs.router,
        prefix="/api/v1/players",
        tags=["Programs"],
    )

    app.include_router(
        logs.router,
        prefix="/api/v1/players",
        tags=["Logs"],
    )

    app.include_router(
        analytics.router,
        prefix="/api/v1/players",
        tags=["Analytics"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "Playbook API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Logs the full error server-side and returns a generic message,
        so stack traces never reach clients.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": __version__,
        }
    )

    return app


# The instance uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "playbook.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
