"""FastAPI application factory."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rawi import __version__
from rawi.api.middleware import rawi_error_handler
from rawi.api.routes import download, functions, pipeline
from rawi.config import get_settings
from rawi.models.errors import RawiError

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Rawi",
        description="Narrated, illustrated story generation pipeline",
        version=__version__,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_ALLOW_HEADERS,
    )

    # Error handlers
    app.add_exception_handler(RawiError, rawi_error_handler)

    # Routes
    app.include_router(functions.router)
    app.include_router(pipeline.router)
    app.include_router(download.router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    return app


app = create_app()
