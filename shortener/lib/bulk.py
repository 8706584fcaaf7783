"""Bulk delete and batch create on top of a link store.

Bulk delete fans out one task per key to look the key up and decide whether
the caller may delete it, fans the results back in, and only then commits
every owned key with a single store call. No task writes, so no database
handle is shared between concurrently running tasks, and a failed lookup
aborts the request before anything has been marked as removed.
"""

import asyncio
import enum
import logging
from typing import Optional, List, Sequence, Tuple

from .deadline import Deadline, check_deadline
from .exceptions import ValidationError
from .common.validators import is_valid_url
from .database.base import LinkStoreBase
from .database.models import BatchItem, ResultItem, DeleteReport


class KeyStatus(enum.Enum):
    """Classification of one key of a bulk delete."""

    OWNED = "owned"
    FOREIGN = "foreign"
    UNKNOWN = "unknown"
    REMOVED = "removed"


class BulkEngine:
    """Fan-out/fan-in orchestration of bulk operations."""

    def __init__(
        self,
        store: LinkStoreBase,
        max_items: int = 1000,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize bulk engine.

        Args:
            store: Link store the operations run against
            max_items: Upper bound on keys/items per request
            logger: Optional logger
        """
        self.store = store
        self.max_items = max_items
        self.logger = logger or logging.getLogger(__name__)

    def _check_size(self, count: int, what: str) -> None:
        if count > self.max_items:
            raise ValidationError(f"Too many {what}: {count} (max {self.max_items})")

    async def _classify(
        self,
        key: str,
        owner: str,
        deadline: Optional[Deadline],
    ) -> Tuple[str, KeyStatus]:
        """Worker: decide what a delete request may do with one key."""
        link = await self.store.lookup(key, deadline=deadline)
        if link is None:
            return key, KeyStatus.UNKNOWN
        if link.owner != owner:
            return key, KeyStatus.FOREIGN
        if link.removed:
            return key, KeyStatus.REMOVED
        return key, KeyStatus.OWNED

    async def _fan_in(self, tasks: List[asyncio.Task]) -> List[Tuple[str, KeyStatus]]:
        """Wait for every worker; on the first failure cancel the rest and re-raise.

        Returns only after every task has finished, whatever the outcome.
        """
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except BaseException:
            # Caller cancelled: take the workers down with it
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        failed = next((t for t in done if not t.cancelled() and t.exception() is not None), None)
        if failed is not None:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            # Retrieve every other exception so none is reported as unhandled
            for task in done:
                if task is not failed and not task.cancelled():
                    task.exception()
            raise failed.exception()

        return [task.result() for task in tasks]

    async def delete(
        self,
        keys: Sequence[str],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> DeleteReport:
        """Soft-delete ``keys`` for ``owner``, all or nothing.

        Args:
            keys: Keys named by the caller
            owner: Session the keys must belong to
            deadline: Optional deadline checked before any work

        Returns:
            DeleteReport with requested/deleted/skipped counts

        Raises:
            ValidationError: If too many keys are given
            ShortenerError: If any lookup or the commit fails; nothing is deleted then
        """
        check_deadline(deadline)
        self._check_size(len(keys), "keys")

        unique_keys = list(dict.fromkeys(keys))
        if not unique_keys:
            return DeleteReport(requested=0, deleted=0, skipped=0)

        tasks = [
            asyncio.create_task(self._classify(key, owner, deadline))
            for key in unique_keys
        ]
        statuses = await self._fan_in(tasks)

        owned = [key for key, status in statuses if status is KeyStatus.OWNED]
        skipped = len(unique_keys) - len(owned)
        if skipped:
            self.logger.debug(
                f"Skipping {skipped} keys not deletable by {owner}: "
                f"{[key for key, status in statuses if status is not KeyStatus.OWNED]}"
            )

        # Single writer: the store applies every owned key in one step
        deleted = await self.store.delete(owned, owner, deadline=deadline) if owned else 0

        return DeleteReport(
            requested=len(unique_keys),
            deleted=deleted,
            skipped=len(unique_keys) - deleted,
            removed_keys=tuple(owned),
        )

    async def batch(
        self,
        items: Sequence[BatchItem],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> List[ResultItem]:
        """Validate and create a batch of links as one unit.

        Raises:
            ValidationError: If the batch is empty, too large or holds an invalid URL
        """
        check_deadline(deadline)

        if not items:
            raise ValidationError("Batch must contain at least one item")
        self._check_size(len(items), "batch items")

        for item in items:
            is_valid, error = is_valid_url(item.original_url)
            if not is_valid:
                raise ValidationError(f"Invalid URL for '{item.correlation_id}': {error}")

        return await self.store.batch(items, owner, deadline=deadline)
