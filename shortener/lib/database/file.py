"""File-backed link store.

Records live in memory (see :class:`MemoryLinkStore`) and are written to a
JSON document once, when the store is closed at shutdown. The document is
read back when the store is constructed.

File layout::

    {"links": [{"key": "...", "target": "...", "owner": "...",
                "removed": false, "created_at": "..."}, ...]}
"""

import json
import logging
import os
import tempfile
from typing import Optional

from ..exceptions import StorageError
from ..keygen import KeyGenerator
from .memory import MemoryLinkStore
from .models import ShortLink


class FileLinkStore(MemoryLinkStore):
    """Memory store persisted to a JSON file."""

    def __init__(
        self,
        file_path: str,
        base_url: str,
        key_generator: Optional[KeyGenerator] = None,
        max_collision_retries: int = 5,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize file store and load existing records.

        Args:
            file_path: Path of the JSON document
            base_url: Public base URL short links are served from
            key_generator: Generator for new keys
            max_collision_retries: Redraws allowed when a new key is taken
            logger: Optional logger instance
        """
        super().__init__(base_url, key_generator, max_collision_retries, logger)
        self.file_path = file_path
        self._closed = False
        self._load()

    def _load(self) -> None:
        """Read records from disk. A missing, empty or unreadable file starts an empty store."""
        if not os.path.exists(self.file_path) or os.path.getsize(self.file_path) == 0:
            self.logger.info(f"No stored links at {self.file_path}, starting empty")
            return

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            links = [ShortLink.from_dict(item) for item in data.get("links", [])]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Error loading links from {self.file_path}: {e}; starting empty")
            return

        for link in links:
            self._insert(link)

        self.logger.info(f"Loaded {len(links)} links from {self.file_path}")

    async def save(self) -> None:
        """Write every record to disk atomically.

        Raises:
            StorageError: If the file cannot be written
        """
        async with self._lock:
            data = {"links": [link.to_dict() for link in self._links.values()]}

            directory = os.path.dirname(os.path.abspath(self.file_path))
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".links-", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f)
                    os.replace(tmp_path, self.file_path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            except OSError as e:
                self.logger.error(f"Error saving links to {self.file_path}: {e}")
                raise StorageError(f"Unable to save links: {e}") from e

        self.logger.info(f"Saved {len(data['links'])} links to {self.file_path}")

    async def close(self) -> None:
        """Persist records. Only the first call writes."""
        if self._closed:
            return
        self._closed = True
        await self.save()
