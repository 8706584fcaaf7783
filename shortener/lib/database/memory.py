"""In-memory link store."""

import asyncio
import dataclasses
import logging
from typing import Optional, List, Dict, Sequence, Container

from ..deadline import Deadline, check_deadline
from ..exceptions import LinkNotFoundError, LinkGoneError, StorageError
from ..keygen import KeyGenerator
from .base import LinkStoreBase
from .models import ShortLink, CreateOutcome, CreateResult, BatchItem, ResultItem


class MemoryLinkStore(LinkStoreBase):
    """Link store keeping every record in process memory.

    Two maps are kept: ``key -> ShortLink`` and the reverse index
    ``target -> key``. A single asyncio lock guards both; nothing awaits while
    holding it, so every operation is atomic with respect to other requests.
    """

    def __init__(
        self,
        base_url: str,
        key_generator: Optional[KeyGenerator] = None,
        max_collision_retries: int = 5,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(base_url, key_generator, max_collision_retries)
        self.logger = logger or logging.getLogger(__name__)
        self._links: Dict[str, ShortLink] = {}
        self._by_target: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._links)

    def _new_key(self, taken: Container[str] = ()) -> str:
        """Draw a key not used by any stored or staged record."""
        for _ in range(self.max_collision_retries + 1):
            key = self.generator.generate()
            if key not in self._links and key not in taken:
                return key
            self.logger.debug(f"Key collision on {key}, redrawing")

        raise StorageError(
            f"Unable to allocate a unique key after {self.max_collision_retries + 1} attempts"
        )

    def _insert(self, link: ShortLink) -> None:
        self._links[link.key] = link
        self._by_target[link.target] = link.key

    async def create(
        self,
        target: str,
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> CreateResult:
        check_deadline(deadline)

        async with self._lock:
            existing = self._by_target.get(target)
            if existing is not None:
                self.logger.debug(f"Target already shortened: {target} -> {existing}")
                return CreateResult(existing, CreateOutcome.CONFLICT)

            key = self._new_key()
            self._insert(ShortLink(key=key, target=target, owner=owner))

        self.logger.info(f"Created short link: {key} -> {target}")
        return CreateResult(key, CreateOutcome.CREATED)

    async def get(self, key: str, deadline: Optional[Deadline] = None) -> str:
        check_deadline(deadline)

        async with self._lock:
            link = self._links.get(key)

        if link is None:
            raise LinkNotFoundError(f"Key '{key}' not found")
        if link.removed:
            raise LinkGoneError(f"Key '{key}' has been deleted")
        return link.target

    async def lookup(self, key: str, deadline: Optional[Deadline] = None) -> Optional[ShortLink]:
        check_deadline(deadline)

        async with self._lock:
            link = self._links.get(key)
            return dataclasses.replace(link) if link else None

    async def find(self, target: str, deadline: Optional[Deadline] = None) -> str:
        check_deadline(deadline)

        async with self._lock:
            key = self._by_target.get(target)

        if key is None:
            raise LinkNotFoundError(f"Target '{target}' has not been shortened")
        return key

    async def list_by_owner(self, owner: str, deadline: Optional[Deadline] = None) -> List[ShortLink]:
        check_deadline(deadline)

        async with self._lock:
            links = [
                dataclasses.replace(link)
                for link in self._links.values()
                if link.owner == owner and not link.removed
            ]

        if not links:
            raise LinkNotFoundError(f"No links for owner '{owner}'")
        return links

    async def batch(
        self,
        items: Sequence[BatchItem],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> List[ResultItem]:
        check_deadline(deadline)

        results: List[ResultItem] = []
        staged: Dict[str, ShortLink] = {}
        staged_targets: Dict[str, str] = {}

        async with self._lock:
            # Stage everything first; the maps are only touched once every
            # item has a key.
            for item in items:
                target = item.original_url
                existing = self._by_target.get(target) or staged_targets.get(target)
                if existing is not None:
                    results.append(ResultItem(item.correlation_id, existing, CreateOutcome.CONFLICT))
                    continue

                key = self._new_key(staged)
                staged[key] = ShortLink(key=key, target=target, owner=owner)
                staged_targets[target] = key
                results.append(ResultItem(item.correlation_id, key, CreateOutcome.CREATED))

            for link in staged.values():
                self._insert(link)

        self.logger.info(f"Batch created {len(staged)} of {len(items)} links for {owner}")
        return results

    async def delete(
        self,
        keys: Sequence[str],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> int:
        check_deadline(deadline)

        deleted = 0
        async with self._lock:
            for key in keys:
                link = self._links.get(key)
                if link is None or link.owner != owner or link.removed:
                    continue
                link.removed = True
                deleted += 1

        self.logger.info(f"Soft-deleted {deleted} of {len(keys)} keys for {owner}")
        return deleted

    async def ping(self, deadline: Optional[Deadline] = None) -> None:
        check_deadline(deadline)

    async def close(self) -> None:
        """Nothing to release."""
        pass
