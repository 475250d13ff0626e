"""
Refresh Scheduler: the loop that keeps the stream pointed at the right file.

Usage::

    async with RefreshScheduler(config) as scheduler:
        await scheduler.run()   # until scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .exceptions import ListingError
from .listing import ApacheIndexParser, ListingFetcher
from .selector import select_candidate
from .supervisor import StreamSupervisor
from .tracker import ChangedTo, ClearedToNone, WatchTarget, WatchTargetTracker, build_watch_url

if TYPE_CHECKING:
    from .config import WatchConfig
    from .listing import IndexEntry
    from .protocols import ListingFetcher as ListingFetcherProtocol
    from .protocols import ListingParser
    from .tracker import Decision

logger = logging.getLogger("index_tail")

__all__ = ["RefreshScheduler"]


class RefreshScheduler:
    """
    Runs fetch -> parse -> select -> track -> supervise every
    ``config.refresh_interval`` seconds, starting immediately.

    The scheduler owns the :class:`WatchTarget`; the tracker mutates it and the
    fetch-failure path clears it.  Ticks never overlap: the next one is only
    scheduled once the previous decision has been applied.
    """

    def __init__(
        self,
        config: WatchConfig,
        *,
        fetcher: ListingFetcherProtocol | None = None,
        parser: ListingParser | None = None,
        supervisor: StreamSupervisor | None = None,
    ) -> None:
        self.config = config
        self.target = WatchTarget()
        self.tracker = WatchTargetTracker(self.target)
        self.supervisor = supervisor if supervisor is not None else StreamSupervisor(config)
        self._fetcher = fetcher if fetcher is not None else ListingFetcher.from_config(config)
        self._parser = parser if parser is not None else ApacheIndexParser()
        self._stopped = asyncio.Event()
        self.ticks = 0

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RefreshScheduler:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self) -> IndexEntry | None:
        """Fetch and parse the listing and return the selected file entry.

        Raises:
            ListingError: when the listing cannot be fetched.
        """
        body = await asyncio.to_thread(self._fetcher.fetch)
        files = [entry for entry in self._parser.parse(body) if not entry.is_directory]
        return select_candidate(files, self.config.pattern, self.config.order)

    async def preview(self) -> str | None:
        """Return the URL a tick would watch, without touching any state."""
        candidate = await self.resolve()
        if candidate is None:
            return None
        return build_watch_url(self.config.url, candidate.name)

    async def tick(self) -> Decision:
        """Run one refresh cycle and return the decision applied to the supervisor."""
        self.ticks += 1
        try:
            candidate = await self.resolve()
        except ListingError as exc:
            # An unreachable listing is not "nothing matched": bypass the tracker.
            logger.error(
                "[Scheduler] Can not find file to watch. "
                f"Stopping the stream until the index is back: {exc}"
            )
            self.target.clear()
            decision: Decision = ClearedToNone()
            await self.supervisor.apply(decision)
            return decision

        if candidate is None:
            logger.warning(
                "[Scheduler] Unable to find a file matching %r in %s. "
                "Waiting for something to watch",
                self.config.pattern.pattern,
                self.config.url,
            )

        previous = self.target.url
        decision = self.tracker.update(candidate, self.config.url)
        if isinstance(decision, ChangedTo):
            logger.info(
                "[Scheduler] File to watch changed from %s to %s",
                previous or "(none)",
                decision.url,
            )
        elif isinstance(decision, ClearedToNone):
            logger.info("[Scheduler] No longer watching %s", previous)
        await self.supervisor.apply(decision)
        return decision

    async def run(self) -> None:
        """Tick now and then at a fixed rate until :meth:`stop` is called."""
        loop = asyncio.get_running_loop()
        self._stopped.clear()
        next_tick = loop.time()
        logger.info(
            "[Scheduler] Watching %s for %r every %ss",
            self.config.url,
            self.config.pattern.pattern,
            self.config.refresh_interval,
        )

        while not self._stopped.is_set():
            try:
                await self.tick()
            except Exception:
                logger.exception("[Scheduler] Refresh failed")

            next_tick += self.config.refresh_interval
            delay = next_tick - loop.time()
            if delay <= 0:
                # A tick overran the interval; restart the schedule from now.
                next_tick = loop.time()
                delay = 0
            try:
                await asyncio.wait_for(self._stopped.wait(), delay)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        """Ask :meth:`run` to return after the current tick."""
        self._stopped.set()

    async def close(self) -> None:
        """Stop the worker and release the HTTP session."""
        self.stop()
        try:
            await self.supervisor.shutdown()
        finally:
            self._fetcher.close()
