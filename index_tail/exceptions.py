"""
Exception types for index-tail.

Everything the package raises on purpose derives from :class:`IndexTailError`
so the CLI can turn it into a one-line diagnostic instead of a traceback.
"""

from __future__ import annotations

__all__ = [
    "ConfigError",
    "IndexTailError",
    "ListingError",
    "ListingStatusError",
    "ListingUnreachableError",
    "WorkerSpawnError",
    "is_success_status",
]


class IndexTailError(RuntimeError):
    """Base class for index-tail errors."""


class ConfigError(IndexTailError, ValueError):
    """Raised when startup options cannot be turned into a usable configuration."""


class ListingError(IndexTailError):
    """The directory listing could not be retrieved."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ListingUnreachableError(ListingError):
    """Transport-level failure: DNS, refused connection, timeout, TLS."""


class ListingStatusError(ListingError):
    """The listing endpoint answered with a status outside ``[200, 300)``."""

    def __init__(self, status_code: int, *, url: str | None = None) -> None:
        super().__init__(f"invalid status code {status_code}", url=url)
        self.status_code = status_code


class WorkerSpawnError(IndexTailError):
    """The streaming worker process could not be launched."""

    def __init__(self, command: str, reason: BaseException) -> None:
        super().__init__(f"could not launch {command}: {reason}")
        self.command = command
        self.reason = reason


def is_success_status(status_code: int) -> bool:
    """Return ``True`` for 2xx status codes."""
    return 200 <= status_code < 300
