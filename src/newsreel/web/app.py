"""FastAPI application factory for the Newsreel web API."""

from __future__ import annotations

from fastapi import FastAPI

from newsreel.config import Config
from newsreel.web.routes import health_router, router


def create_app(config: Config, lifespan=None) -> FastAPI:
    """Build and return a configured FastAPI application."""
    app = FastAPI(title="Newsreel", docs_url="/api/docs", lifespan=lifespan)
    app.state.database_path = config.database_path
    app.state.config = config
    app.include_router(health_router)
    app.include_router(router, prefix="/api/v1")
    return app
