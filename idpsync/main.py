"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from idpsync.api.error_handlers import register_exception_handlers
from idpsync.api.routers import get_api_router
from idpsync.core.config import AppSettings, get_settings
from idpsync.core.logging import configure_logging
from idpsync.gateway.client import close_gateway_client


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: D401
    """Release the shared gateway connection pool on shutdown."""

    yield
    close_gateway_client()


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Application factory."""

    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="IDP Message Sync",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.include_router(get_api_router())
    return app
