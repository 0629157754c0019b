"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from dex_publisher.infrastructure.config import get_settings
from dex_publisher.interface.dependencies import shutdown, startup
from dex_publisher.interface.error_handlers import register_error_handlers
from dex_publisher.interface.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the shared GitHub client and ETag cache for the app's lifetime."""
    await startup()
    settings = get_settings()
    logger.info(
        "DEX publisher ready (GitHub API %s, default branch '%s', conditional ref updates %s)",
        settings.github_api_url,
        settings.default_branch,
        "on" if settings.conditional_ref_update else "off",
    )
    try:
        yield
    finally:
        await shutdown()


def create_app() -> FastAPI:
    """Build and wire the FastAPI application."""
    app = FastAPI(
        title="DEX Publisher",
        version="1.0.0",
        description=(
            "Publishes DEX configuration to forked template repositories as "
            "single atomic commits, with ETag-cached GitHub reads."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.include_router(router, tags=["dex"])

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
