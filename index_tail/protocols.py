"""
Structural interfaces for the pluggable collaborators of the refresh loop.

The scheduler only needs "something that fetches the listing text" and
"something that turns that text into entries".  The default implementations
live in :mod:`index_tail.listing`; tests and alternative listing formats can
supply anything matching these protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Awaitable

    from .listing import IndexEntry

__all__ = [
    "ListingFetcher",
    "ListingParser",
    "SpawnFunction",
    "WorkerProcess",
]


@runtime_checkable
class ListingFetcher(Protocol):
    """Blocking fetch of the raw listing page."""

    def fetch(self) -> str:
        """Return the body, or raise :class:`~index_tail.exceptions.ListingError`."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class ListingParser(Protocol):
    """Turns listing text into entries."""

    def parse(self, text: str) -> list[IndexEntry]: ...


@runtime_checkable
class WorkerProcess(Protocol):
    """The subset of :class:`asyncio.subprocess.Process` the supervisor uses."""

    pid: int
    returncode: int | None
    stdout: asyncio.StreamReader | None
    stderr: asyncio.StreamReader | None

    def terminate(self) -> None: ...

    def kill(self) -> None: ...

    def wait(self) -> Awaitable[int]: ...


class SpawnFunction(Protocol):
    """Signature of :func:`asyncio.create_subprocess_exec`."""

    def __call__(self, program: str, *args: str, **kwargs: Any) -> Awaitable[WorkerProcess]: ...
