"""Business logic service for URL shortener."""

import logging
from typing import Optional, Dict, Any, List, Sequence

from .bulk import BulkEngine
from .deadline import Deadline
from .exceptions import LinkGoneError, ValidationError
from .database.base import LinkStoreBase
from .database.cache import REMOVED, RedisCache
from .database.models import BatchItem, CreateOutcome, DeleteReport
from .common.validators import is_valid_url
from .common.url_builder import build_short_url


class URLShortenerService:
    """Service layer the request pipeline calls into."""

    def __init__(
        self,
        store: LinkStoreBase,
        cache: Optional[RedisCache] = None,
        bulk_engine: Optional[BulkEngine] = None,
        logger: Optional[logging.Logger] = None,
        scheme: str = "http",
    ):
        """Initialize URL shortener service.

        Args:
            store: Link store instance
            cache: Optional cache instance
            bulk_engine: Optional bulk engine (one over ``store`` is built otherwise)
            logger: Optional logger
            scheme: Scheme of the short URLs handed out
        """
        self.store = store
        self.cache = cache
        self.bulk = bulk_engine or BulkEngine(store, logger=logger)
        self.logger = logger or logging.getLogger(__name__)
        self.scheme = scheme

    def short_url(self, key: str) -> str:
        """Absolute short URL for a key."""
        return build_short_url(key, self.store.host(), self.scheme)

    async def create_short_url(
        self,
        original_url: str,
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> Dict[str, Any]:
        """Create a short URL, or return the existing one for an already shortened URL.

        Args:
            original_url: The original long URL
            owner: Session creating the link
            deadline: Optional request deadline

        Returns:
            Dictionary with key, short_url, original_url and conflict flag

        Raises:
            ValidationError: If the URL is invalid
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise ValidationError(f"Invalid URL: {error}")

        result = await self.store.create(original_url, owner, deadline=deadline)
        conflict = result.outcome is CreateOutcome.CONFLICT
        if conflict:
            self.logger.info(f"URL already shortened: {original_url} -> {result.key}")

        return {
            "key": result.key,
            "short_url": self.short_url(result.key),
            "original_url": original_url,
            "conflict": conflict,
        }

    async def get_original_url(self, key: str, deadline: Optional[Deadline] = None) -> str:
        """Resolve a key to its original URL.

        Raises:
            LinkNotFoundError: If the key is unknown
            LinkGoneError: If the key has been deleted
        """
        if self.cache:
            cached_url = await self.cache.get_target(key)
            if cached_url == REMOVED:
                raise LinkGoneError(f"Key '{key}' has been deleted")
            if cached_url:
                self.logger.debug(f"Cache hit for {key}")
                return cached_url

        original_url = await self.store.get(key, deadline=deadline)

        if self.cache:
            await self.cache.put_target(key, original_url)

        self.logger.debug(f"Retrieved URL: {key} -> {original_url}")
        return original_url

    async def list_user_urls(self, owner: str, deadline: Optional[Deadline] = None) -> List[Dict[str, str]]:
        """List the live short URLs of a session.

        Raises:
            LinkNotFoundError: If the session has none
        """
        links = await self.store.list_by_owner(owner, deadline=deadline)
        return [
            {"short_url": self.short_url(link.key), "original_url": link.target}
            for link in links
        ]

    async def shorten_batch(
        self,
        items: Sequence[BatchItem],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> List[Dict[str, str]]:
        """Create a batch of short URLs, all or nothing."""
        results = await self.bulk.batch(items, owner, deadline=deadline)
        return [
            {"correlation_id": item.correlation_id, "short_url": self.short_url(item.key)}
            for item in results
        ]

    async def delete_user_urls(
        self,
        keys: Sequence[str],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> DeleteReport:
        """Soft-delete the given keys of a session, all or nothing."""
        report = await self.bulk.delete(keys, owner, deadline=deadline)

        if self.cache and report.removed_keys:
            await self.cache.mark_removed(report.removed_keys)

        self.logger.info(
            f"Delete for {owner}: {report.deleted} deleted, {report.skipped} skipped"
        )
        return report

    async def ping(self, deadline: Optional[Deadline] = None) -> None:
        """Check the store is reachable.

        Raises:
            StorageUnavailableError: If it is not
        """
        await self.store.ping(deadline=deadline)

    async def close(self) -> None:
        """Close store and cache."""
        try:
            await self.store.close()
        finally:
            if self.cache:
                await self.cache.close()
