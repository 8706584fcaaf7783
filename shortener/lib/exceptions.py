"""Exceptions raised by the link store and the request pipeline.

Every exception carries the HTTP status code the request pipeline answers
with, so callers never have to inspect message text to pick a response.

Classes:
    ShortenerError:
        Generic base class for all service errors.

    ValidationError:
        Malformed request body, JSON payload or URL.

    LinkNotFoundError:
        The key (or the owner's link list) does not exist.

    LinkGoneError:
        The key exists but has been soft-deleted.

    StorageError:
        A persistence operation failed.

    StorageUnavailableError:
        The backend cannot be reached (ping/connection failure).

    OperationCancelledError:
        The caller's deadline expired or was cancelled before the operation started.

    EncodingError:
        A response could not be encoded or compressed.
"""


class ShortenerError(Exception):
    """Generic base class for service errors."""

    status_code = 500


class ValidationError(ShortenerError):
    """Raised when a request payload is malformed."""

    status_code = 400


class LinkNotFoundError(ShortenerError):
    """Raised when a key or an owner's links are not in the store."""

    status_code = 400


class LinkGoneError(ShortenerError):
    """Raised when a key has been soft-deleted."""

    status_code = 410


class StorageError(ShortenerError):
    """Raised when the store fails to read or write."""

    status_code = 500


class StorageUnavailableError(StorageError):
    """Raised when the store cannot be reached.

    e.g. connection refused, pool exhausted, timeouts.
    """

    pass


class OperationCancelledError(ShortenerError):
    """Raised when an operation is started after its deadline."""

    status_code = 500


class EncodingError(ShortenerError):
    """Raised when a response body cannot be produced."""

    status_code = 500
