"""Core business logic for URL shortener."""

from .keygen import KeyGenerator
from .deadline import Deadline
from .bulk import BulkEngine
from .service import URLShortenerService

__all__ = ["KeyGenerator", "Deadline", "BulkEngine", "URLShortenerService"]
