"""Common utilities for URL shortener."""

from .validators import is_valid_url
from .url_builder import build_short_url, scheme_of
from .logging_config import setup_logging

__all__ = [
    "is_valid_url",
    "build_short_url",
    "scheme_of",
    "setup_logging",
]
