#!/usr/bin/env python3
"""
Main entry point for URL shortener service.

Concurrency: requests are independent coroutines on one event loop per
uvicorn worker. The link store is the only shared state. The memory and file
stores live inside a single process, so WORKERS > 1 only makes sense with
DATABASE_DSN.

Usage:
    python -m shortener.app [-a host:port] [-b base_url] [-f file] [-d dsn]

Environment variables:
    HOST / PORT - Listen address
    BASE_URL - Base URL for short links
    FILE_STORAGE_PATH - JSON file for the file-backed store
    DATABASE_DSN - PostgreSQL DSN (selects the relational store)
    DB_CREATE_TABLES - Set to 'true' to create the schema on first connection
    REDIS_URL - Redis connection URL (optional)
    KEY_LENGTH - Length of generated keys
    WORKERS - Number of uvicorn worker processes (default 1)
    LOG_LEVEL - Logging level
"""

import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from shortener.config import load_config
from shortener.lib.bulk import BulkEngine
from shortener.lib.database import create_store
from shortener.lib.database.cache import RedisCache
from shortener.lib.service import URLShortenerService
from shortener.lib.common.logging_config import setup_logging
from shortener.lib.common.url_builder import scheme_of
from shortener.web_app import create_app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    config = app.state.config
    logger = app.state.logger

    logger.info("Starting URL shortener service...")

    store = create_store(config, logger=logger)

    # Initialize cache (optional)
    if config.redis_url:
        logger.info(f"Connecting to Redis at {config.redis_url}")
        cache = RedisCache(
            redis_url=config.redis_url,
            ttl_seconds=config.cache_ttl_seconds,
            logger=logger,
        )
        await cache.connect()
    else:
        logger.info("Redis caching disabled")
        cache = None

    service = URLShortenerService(
        store=store,
        cache=cache,
        bulk_engine=BulkEngine(store, max_items=config.max_bulk_items, logger=logger),
        logger=logger,
        scheme=scheme_of(config.base_url),
    )

    app.state.store = store
    app.state.cache = cache
    app.state.service = service

    logger.info("Service started successfully")

    yield

    # Runs once, after uvicorn has drained in-flight requests
    logger.info("Shutting down URL shortener service...")
    await service.close()
    logger.info("Service stopped")


def main(argv=None):
    """Main entry point."""
    config = load_config(sys.argv[1:] if argv is None else argv)

    logger = setup_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_format=config.log_json,
    )

    logger.info("URL Shortener Service")
    logger.info(f"Configuration: {config.model_dump(exclude={'database_dsn', 'redis_url'})}")

    # Store, cache and service are composed in the lifespan handler
    app = create_app(
        store_instance=None,
        cache_instance=None,
        service_instance=None,
        config=config,
    )

    app.state.logger = logger
    app.router.lifespan_context = lifespan

    uvicorn_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        workers=config.workers,
        log_level=config.log_level.lower(),
        access_log=False,
        timeout_graceful_shutdown=config.shutdown_grace_seconds,
    )

    server = uvicorn.Server(uvicorn_config)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        server.should_exit = True

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        logger.info(f"Starting server on {config.host}:{config.port}")
        server.run()
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
