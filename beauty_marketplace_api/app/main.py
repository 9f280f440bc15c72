"""
Main entrypoint for the Beauty Marketplace API.

``create_app`` configures logging, mounts the versioned routers and
registers the database migrations on startup.  The application is
instantiated at import time as ``app`` so it can be served with::

    uvicorn beauty_marketplace_api.app.main:app --reload
"""

import logging
import time

from fastapi import FastAPI, Request

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.logging_config import setup_logging


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    setup_logging()

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("%s %s - Error: %s", request.method, request.url.path, e)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok", "version": settings.api_version}

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file on first start.
        init_db()

    return app


app = create_app()
