"""URL shortener service with pluggable link storage."""

__version__ = "1.0.0"
