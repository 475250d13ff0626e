"""
Stream Supervisor: owns the single streaming worker process.

The worker is launched with :func:`asyncio.create_subprocess_exec`.  Each of
its output pipes gets a relay task that forwards trimmed lines to this
process's stdout/stderr, and a reaper task notices when it exits.  None of
these tasks block the refresh loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import TYPE_CHECKING, Literal

from .exceptions import WorkerSpawnError
from .tracker import ChangedTo, ClearedToNone, Unchanged

if TYPE_CHECKING:
    from collections.abc import Coroutine
    from typing import Any, TextIO

    from .config import WatchConfig
    from .protocols import SpawnFunction, WorkerProcess
    from .tracker import Decision

logger = logging.getLogger("index_tail")

__all__ = ["StreamSupervisor", "read_line", "write_line"]

# Pipe buffer size for the worker (asyncio's default is 64 KiB).
_STREAM_LIMIT = 1024 * 1024


async def read_line(reader: asyncio.StreamReader) -> bytes:
    """
    Read one complete line from *reader*, however long it is.

    Lines longer than the reader's buffer limit are collected chunk by
    chunk.  Returns the trailing partial line at EOF, and ``b""`` once the
    stream is exhausted.
    """
    chunks: list[bytes] = []
    while True:
        try:
            chunks.append(await reader.readuntil(b"\n"))
            break
        except asyncio.LimitOverrunError as exc:
            # The buffered data is kept; take it and keep looking for the newline.
            chunks.append(await reader.readexactly(exc.consumed))
        except asyncio.IncompleteReadError as exc:
            chunks.append(exc.partial)
            break
    return b"".join(chunks)


def write_line(stream: TextIO, text: str) -> None:
    """Write *text* trimmed of surrounding whitespace, plus a newline."""
    stream.write(text.strip() + "\n")
    stream.flush()


class StreamSupervisor:
    """
    Manages at most one live streaming worker.

    ``apply()`` is the state machine: :class:`ChangedTo` (re)starts the worker
    for the new URL, :class:`ClearedToNone` stops it and :class:`Unchanged`
    leaves a running worker alone.

    A restart sends SIGTERM to the old worker and spawns the new one straight
    away, so two workers may briefly write at the same time.  Set
    ``WatchConfig.stop_timeout`` to wait for the old worker to exit first.
    """

    def __init__(
        self,
        config: WatchConfig,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        spawn: SpawnFunction | None = None,
    ) -> None:
        self._config = config
        self._stdout = stdout
        self._stderr = stderr
        self._spawn: SpawnFunction = spawn if spawn is not None else asyncio.create_subprocess_exec
        self._process: WorkerProcess | None = None
        # Workers that were signalled but not awaited.
        self._retired: set[WorkerProcess] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def process(self) -> WorkerProcess | None:
        """The handle of the current worker, if one was started."""
        return self._process

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def apply(self, decision: Decision) -> None:
        """Act on a tracker decision."""
        if isinstance(decision, Unchanged):
            return
        if isinstance(decision, ChangedTo):
            await self.start(decision.url)
        elif isinstance(decision, ClearedToNone):
            await self.stop()
        else:
            raise TypeError(f"Unknown decision: {decision!r}")

    async def start(self, url: str, *, raise_on_error: bool = False) -> WorkerProcess | None:
        """
        Stop the current worker (if any) and launch one following *url*.

        A launch failure is logged and leaves the supervisor idle; with
        ``raise_on_error=True`` it raises :class:`WorkerSpawnError` instead.
        """
        await self.stop()

        argv = self._config.worker_argv(url)
        try:
            process = await self._spawn(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=_STREAM_LIMIT,
            )
        except OSError as exc:
            error = WorkerSpawnError(argv[0], exc)
            if raise_on_error:
                raise error from exc
            logger.error(f"[Supervisor] {error}. Waiting for the next file change.")
            return None

        self._process = process
        logger.info("[Supervisor] Started worker pid %s for %s", process.pid, url)
        self._track(self._relay(process.stdout, "stdout"), f"relay-stdout-{process.pid}")
        self._track(self._relay(process.stderr, "stderr"), f"relay-stderr-{process.pid}")
        self._track(self._reap(process), f"reap-{process.pid}")
        return process

    async def stop(self) -> None:
        """Send SIGTERM to the current worker and forget its handle."""
        process, self._process = self._process, None
        if process is None:
            return

        if process.returncode is None:
            logger.info("[Supervisor] Terminating worker pid %s", process.pid)
            with contextlib.suppress(ProcessLookupError):
                process.terminate()

        if self._config.stop_timeout is not None:
            await self._wait_or_kill(process, self._config.stop_timeout)
        elif process.returncode is None:
            self._retired.add(process)

    async def shutdown(self, timeout: float | None = None) -> None:
        """Stop every worker, waiting up to *timeout* seconds before killing."""
        if timeout is None:
            timeout = self._config.shutdown_timeout

        process = self._process
        await self.stop()
        if process is not None:
            await self._wait_or_kill(process, timeout)
        for retired in list(self._retired):
            await self._wait_or_kill(retired, timeout)

        if self._tasks:
            _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _stream(self, which: Literal["stdout", "stderr"]) -> TextIO:
        override = self._stdout if which == "stdout" else self._stderr
        # Resolved per line so redirections of sys.stdout/sys.stderr are honoured.
        return override if override is not None else getattr(sys, which)

    def _track(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[Supervisor] %s failed: %s", task.get_name(), exc)

    async def _relay(
        self, reader: asyncio.StreamReader | None, which: Literal["stdout", "stderr"]
    ) -> None:
        if reader is None:
            return
        while True:
            raw = await read_line(reader)
            if not raw:
                return
            write_line(self._stream(which), raw.decode("utf-8", errors="replace"))

    async def _reap(self, process: WorkerProcess) -> None:
        returncode = await process.wait()
        self._retired.discard(process)
        if process is self._process:
            logger.warning(
                "[Supervisor] Worker pid %s exited with status %s; it will be restarted "
                "when the watched file changes",
                process.pid,
                returncode,
            )
        else:
            logger.debug(
                "[Supervisor] Worker pid %s exited with status %s", process.pid, returncode
            )

    async def _wait_or_kill(self, process: WorkerProcess, timeout: float) -> None:
        try:
            await asyncio.wait_for(process.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "[Supervisor] Worker pid %s still alive after %.1fs; killing it",
                process.pid,
                timeout,
            )
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
        self._retired.discard(process)
