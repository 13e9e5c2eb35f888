"""Main application entrypoint for repodrop."""

from fastapi import FastAPI

from repodrop.api.v1 import routes_health
from repodrop.api.v1.routes_contents import router as contents_router
from repodrop.api.v1.routes_upload import router as upload_router
from repodrop.core.config import settings
from repodrop.core.logging import setup_logging


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)
    app.include_router(contents_router)

    return app


# Export app instance for ASGI servers
app = create_app()
