"""URL building utilities for URL shortener."""

from urllib.parse import urlparse


def build_short_url(
    short_code: str,
    host: str,
    scheme: str = "http",
) -> str:
    """Build complete short URL.

    Args:
        short_code: The short link key
        host: Authority the service is reachable at (e.g., example.com:8080)
        scheme: URL scheme

    Returns:
        Complete short URL
    """
    return f"{scheme}://{host.strip('/')}/{short_code}"


def scheme_of(base_url: str, default: str = "http") -> str:
    """Scheme of a configured base URL, or ``default`` for bare host:port values."""
    scheme = urlparse(base_url).scheme
    return scheme if scheme in ("http", "https") else default
