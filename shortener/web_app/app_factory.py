"""FastAPI application factory."""

from fastapi import FastAPI

from shortener.lib.keygen import KeyGenerator
from .api import api_router
from .web import web_router
from .middleware.logging import LoggingMiddleware


def create_app(
    store_instance,
    cache_instance,
    service_instance,
    config,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        store_instance: Link store instance
        cache_instance: Cache instance (or None)
        service_instance: Service instance
        config: Configuration instance

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="URL Shortener",
        description="URL shortening service with per-session links",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Store instances in app state for access in pipelines
    app.state.store = store_instance
    app.state.cache = cache_instance
    app.state.service = service_instance
    app.state.config = config
    app.state.session_ids = KeyGenerator(length=config.session_id_length)

    app.add_middleware(LoggingMiddleware)

    # Must be registered before the web router and its catch-all "/{key}"
    app.include_router(api_router, prefix="/api", tags=["API"])
    app.include_router(web_router, tags=["Web"])

    return app
