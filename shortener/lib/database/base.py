"""Abstract base class for link store implementations."""

from abc import ABC, abstractmethod
from typing import Optional, List, Sequence
from urllib.parse import urlparse

from ..deadline import Deadline
from ..keygen import KeyGenerator
from .models import ShortLink, CreateResult, BatchItem, ResultItem


class LinkStoreBase(ABC):
    """Abstract base class for link store operations.

    Invariants every implementation keeps:
        - ``key`` is unique across all records, removed ones included.
        - ``target`` is unique: creating an already shortened target returns
          the existing key with ``CreateOutcome.CONFLICT``.
        - Records are never erased; delete only sets ``removed``.

    Every operation takes an optional :class:`Deadline` that is checked once
    before any work is done.
    """

    def __init__(
        self,
        base_url: str,
        key_generator: Optional[KeyGenerator] = None,
        max_collision_retries: int = 5,
    ):
        """Initialize store.

        Args:
            base_url: Public base URL short links are served from
            key_generator: Generator for new keys
            max_collision_retries: Redraws allowed when a new key is taken
        """
        self.base_url = base_url
        self.generator = key_generator or KeyGenerator()
        self.max_collision_retries = max_collision_retries

    def host(self) -> str:
        """Return the authority (host[:port]) short URLs are built with."""
        parsed = urlparse(self.base_url)
        if parsed.netloc:
            return parsed.netloc
        # Bare "host:port" values parse without a netloc
        return self.base_url.strip("/")

    @abstractmethod
    async def create(
        self,
        target: str,
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> CreateResult:
        """Create a short link for ``target`` owned by ``owner``.

        Returns:
            CreateResult with outcome CREATED for a new key, or CONFLICT and the
            existing key when ``target`` was already shortened

        Raises:
            StorageError: If no free key was found or the write failed
        """
        pass

    @abstractmethod
    async def get(self, key: str, deadline: Optional[Deadline] = None) -> str:
        """Resolve a key to its target URL.

        Raises:
            LinkNotFoundError: If the key is unknown
            LinkGoneError: If the key has been removed
        """
        pass

    @abstractmethod
    async def lookup(self, key: str, deadline: Optional[Deadline] = None) -> Optional[ShortLink]:
        """Return the raw record for a key, removed or not, or None."""
        pass

    @abstractmethod
    async def find(self, target: str, deadline: Optional[Deadline] = None) -> str:
        """Return the key already assigned to ``target``.

        Raises:
            LinkNotFoundError: If ``target`` has not been shortened
        """
        pass

    @abstractmethod
    async def list_by_owner(self, owner: str, deadline: Optional[Deadline] = None) -> List[ShortLink]:
        """List the non-removed links of ``owner``.

        Raises:
            LinkNotFoundError: If the owner has no links
        """
        pass

    @abstractmethod
    async def batch(
        self,
        items: Sequence[BatchItem],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> List[ResultItem]:
        """Create every item as one unit.

        Each item is deduplicated like :meth:`create`. If any item fails, no
        item of the batch becomes visible.
        """
        pass

    @abstractmethod
    async def delete(
        self,
        keys: Sequence[str],
        owner: str,
        deadline: Optional[Deadline] = None,
    ) -> int:
        """Soft-delete the keys of ``keys`` owned by ``owner`` in one step.

        Keys owned by someone else, unknown keys and already removed keys are
        left untouched.

        Returns:
            Number of records marked as removed
        """
        pass

    @abstractmethod
    async def ping(self, deadline: Optional[Deadline] = None) -> None:
        """Check backend reachability.

        Raises:
            StorageUnavailableError: If the backend cannot be reached
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release resources and persist pending state."""
        pass
