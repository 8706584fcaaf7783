"""Configuration management for URL shortener."""

import argparse
from typing import Optional, Sequence
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator

from shortener.lib.keygen import KeyGenerator


class Config(BaseSettings):
    """Application configuration."""

    # Server settings
    host: str = Field(
        default="127.0.0.1",
        description="Host to bind to"
    )

    port: int = Field(
        default=8080,
        description="Port to listen on"
    )

    workers: int = Field(
        default=1,
        ge=1,
        description="Number of uvicorn worker processes. Only valid with a shared (database) store."
    )

    shutdown_grace_seconds: int = Field(
        default=2,
        ge=0,
        description="Grace period for in-flight requests on shutdown"
    )

    request_timeout_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Deadline for store operations of one request (0 disables)"
    )

    # URL shortener settings
    base_url: str = Field(
        default="http://127.0.0.1:8080",
        description="Base URL short links are served from"
    )

    key_length: int = Field(
        default=9,
        ge=1,
        description="Length of generated keys"
    )

    key_alphabet: str = Field(
        default=KeyGenerator.BASE62_CHARS,
        min_length=2,
        description="Characters keys are drawn from"
    )

    max_collision_retries: int = Field(
        default=5,
        ge=0,
        description="Maximum redraws when a generated key is already taken"
    )

    max_bulk_items: int = Field(
        default=1000,
        ge=1,
        description="Maximum keys per bulk delete / items per batch"
    )

    # Session settings
    session_cookie_name: str = Field(
        default="shortener-session",
        description="Cookie carrying the session id"
    )

    session_id_length: int = Field(
        default=16,
        ge=6,
        description="Length of minted session ids"
    )

    # Storage settings
    file_storage_path: Optional[str] = Field(
        default=None,
        description="JSON file for the file-backed store"
    )

    database_dsn: Optional[str] = Field(
        default=None,
        description="PostgreSQL DSN; selects the relational store"
    )

    db_pool_max_size: int = Field(
        default=10,
        ge=1,
        description="Maximum size of the database connection pool"
    )

    db_create_tables: bool = Field(
        default=False,
        description="Create the schema on first connection"
    )

    # Redis settings (optional)
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL for caching"
    )

    cache_ttl_seconds: int = Field(
        default=3600,
        description="Cache TTL in seconds"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Log file path (logs to stdout if not specified)"
    )

    log_json: bool = Field(
        default=False,
        description="Use JSON format for logs"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra environment variables
    }

    @field_validator("file_storage_path", "database_dsn", "redis_url")
    @classmethod
    def empty_as_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from the environment as unset."""
        return v or None


def _split_address(address: str) -> dict:
    host, _, port = address.rpartition(":")
    if not host or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected host:port, got '{address}'")
    return {"host": host, "port": int(port)}


def parse_args(argv: Optional[Sequence[str]] = None) -> dict:
    """Command-line overrides (only flags that were given)."""
    parser = argparse.ArgumentParser(description="URL shortener service")
    parser.add_argument("-a", dest="address", help="Server address (host:port)")
    parser.add_argument("-b", dest="base_url", help="Base URL for short links")
    parser.add_argument("-f", dest="file_storage_path", help="File storage path")
    parser.add_argument("-d", dest="database_dsn", help="Database DSN")

    args = parser.parse_args(argv)

    overrides = {}
    if args.address:
        try:
            overrides.update(_split_address(args.address))
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))
    for name in ("base_url", "file_storage_path", "database_dsn"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    return overrides


def load_config(argv: Optional[Sequence[str]] = None) -> Config:
    """Load configuration from environment, then command-line flags.

    Args:
        argv: Command-line arguments; ``None`` reads no flags

    Returns:
        Config instance
    """
    overrides = parse_args(argv) if argv is not None else {}
    return Config(**overrides)
