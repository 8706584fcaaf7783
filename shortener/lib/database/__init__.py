"""Storage layer for the URL shortener."""

import enum
import logging
from typing import Optional

from .base import LinkStoreBase
from .memory import MemoryLinkStore
from .file import FileLinkStore
from .postgres import PostgresLinkStore
from .cache import RedisCache
from .models import ShortLink, CreateOutcome, CreateResult, BatchItem, ResultItem, DeleteReport
from ..keygen import KeyGenerator


class StoreBackend(enum.Enum):
    """Closed set of link store variants."""

    MEMORY = "memory"
    FILE = "file"
    POSTGRES = "postgres"


def select_backend(config) -> StoreBackend:
    """Pick the backend from configuration: a DSN wins over a file path."""
    if config.database_dsn:
        return StoreBackend.POSTGRES
    if config.file_storage_path:
        return StoreBackend.FILE
    return StoreBackend.MEMORY


def create_store(config, logger: Optional[logging.Logger] = None) -> LinkStoreBase:
    """Build the link store selected by configuration.

    Args:
        config: Configuration instance
        logger: Optional logger

    Returns:
        Link store instance
    """
    logger = logger or logging.getLogger(__name__)
    generator = KeyGenerator(length=config.key_length, alphabet=config.key_alphabet)
    backend = select_backend(config)
    logger.info(f"Using {backend.value} link store")

    if backend is StoreBackend.POSTGRES:
        return PostgresLinkStore(
            dsn=config.database_dsn,
            base_url=config.base_url,
            key_generator=generator,
            max_collision_retries=config.max_collision_retries,
            pool_max_size=config.db_pool_max_size,
            create_tables=config.db_create_tables,
            logger=logger,
        )
    if backend is StoreBackend.FILE:
        return FileLinkStore(
            file_path=config.file_storage_path,
            base_url=config.base_url,
            key_generator=generator,
            max_collision_retries=config.max_collision_retries,
            logger=logger,
        )
    return MemoryLinkStore(
        base_url=config.base_url,
        key_generator=generator,
        max_collision_retries=config.max_collision_retries,
        logger=logger,
    )


__all__ = [
    "LinkStoreBase",
    "MemoryLinkStore",
    "FileLinkStore",
    "PostgresLinkStore",
    "RedisCache",
    "ShortLink",
    "CreateOutcome",
    "CreateResult",
    "BatchItem",
    "ResultItem",
    "DeleteReport",
    "StoreBackend",
    "select_backend",
    "create_store",
]
