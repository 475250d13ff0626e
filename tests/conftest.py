"""
Shared fixtures and fakes for the index-tail test suite.

The supervisor state machine is exercised with :class:`FakeProcess` handles
produced by :class:`FakeSpawner`; output relay tests launch real
``sys.executable -c`` children instead.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import re

import pytest

from index_tail.config import WatchConfig
from index_tail.exceptions import ListingUnreachableError

BASE_URL = "http://logs.example.test/app"

_pids = itertools.count(1000)


# ---------------------------------------------------------------------------
# Listing pages
# ---------------------------------------------------------------------------


def apache_table_listing(names: list[str], directories: list[str] | None = None) -> str:
    """Render an Apache 2.4 ``mod_autoindex`` page (HTMLTable layout)."""
    rows = [
        '<tr><th valign="top"><img src="/icons/blank.gif" alt="[ICO]"></th>'
        '<th><a href="?C=N;O=D">Name</a></th><th><a href="?C=M;O=A">Last modified</a></th>'
        '<th><a href="?C=S;O=A">Size</a></th><th><a href="?C=D;O=A">Description</a></th></tr>',
        '<tr><td valign="top"><img src="/icons/back.gif" alt="[PARENTDIR]"></td>'
        '<td><a href="/">Parent Directory</a></td><td>&nbsp;</td><td align="right">  - </td>'
        "<td>&nbsp;</td></tr>",
    ]
    for name in directories or []:
        rows.append(
            f'<tr><td valign="top"><img src="/icons/folder.gif" alt="[DIR]"></td>'
            f'<td><a href="{name}/">{name}/</a></td>'
            f'<td align="right">2024-05-01 09:00  </td><td align="right">  - </td>'
            f"<td>&nbsp;</td></tr>"
        )
    for name in names:
        href = name.replace(" ", "%20")
        rows.append(
            f'<tr><td valign="top"><img src="/icons/text.gif" alt="[TXT]"></td>'
            f'<td><a href="{href}">{name}</a></td>'
            f'<td align="right">2024-05-01 10:00  </td><td align="right">1.2K</td>'
            f"<td>&nbsp;</td></tr>"
        )
    return (
        '<!DOCTYPE HTML PUBLIC "-//W3C//DTD HTML 3.2 Final//EN">\n'
        "<html><head><title>Index of /app</title></head><body>"
        "<h1>Index of /app</h1><table>" + "\n".join(rows) + "</table></body></html>"
    )


def apache_pre_listing(names: list[str]) -> str:
    """Render an Apache ``FancyIndexing`` page without tables (``<pre>`` layout)."""
    lines = [
        '<img src="/icons/blank.gif" alt="Icon "> <a href="?C=N;O=D">Name</a>'
        '                    <a href="?C=M;O=A">Last modified</a>      <a href="?C=S;O=A">Size</a>',
        '<hr><img src="/icons/back.gif" alt="[PARENTDIR]"> <a href="/">Parent Directory</a>'
        "                             -",
    ]
    for name in names:
        lines.append(
            f'<img src="/icons/text.gif" alt="[TXT]"> <a href="{name}">{name}</a>'
            f"                 2024-05-01 10:00  1.2K"
        )
    return (
        "<html><head><title>Index of /app</title></head><body><h1>Index of /app</h1>"
        "<pre>" + "\n".join(lines) + "<hr></pre></body></html>"
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeProcess:
    """Stand-in for ``asyncio.subprocess.Process``."""

    def __init__(self, argv: tuple[str, ...]) -> None:
        self.argv = argv
        self.pid = next(_pids)
        self.returncode: int | None = None
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.terminate_calls = 0
        self.kill_calls = 0
        self.ignore_terminate = False
        self._exited = asyncio.Event()

    @property
    def url(self) -> str:
        return self.argv[-1]

    def emit(self, stdout: bytes = b"", stderr: bytes = b"") -> None:
        if stdout:
            self.stdout.feed_data(stdout)
        if stderr:
            self.stderr.feed_data(stderr)

    def exit(self, returncode: int = 0) -> None:
        if self.returncode is not None:
            return
        self.returncode = returncode
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    def terminate(self) -> None:
        self.terminate_calls += 1
        if not self.ignore_terminate:
            self.exit(-15)

    def kill(self) -> None:
        self.kill_calls += 1
        self.exit(-9)

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode


class FakeSpawner:
    """Records every launch; behaves like ``asyncio.create_subprocess_exec``."""

    def __init__(self, error: BaseException | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, ...]] = []
        self.kwargs: list[dict] = []
        self.processes: list[FakeProcess] = []
        # Number of still-running workers at the moment of each launch.
        self.live_at_spawn: list[int] = []

    async def __call__(self, *argv: str, **kwargs) -> FakeProcess:
        self.calls.append(argv)
        self.kwargs.append(kwargs)
        self.live_at_spawn.append(len(self.live()))
        if self.error is not None:
            raise self.error
        process = FakeProcess(argv)
        self.processes.append(process)
        return process

    def live(self) -> list[FakeProcess]:
        return [p for p in self.processes if p.returncode is None]


class FakeFetcher:
    """Serves queued listing bodies (or raises queued errors) in order.

    The last queued item keeps being served once it is the only one left.
    """

    def __init__(self, *responses: str | BaseException) -> None:
        self.responses = list(responses)
        self.fetches = 0
        self.closed = False

    def push(self, *responses: str | BaseException) -> None:
        self.responses.extend(responses)

    def fetch(self) -> str:
        self.fetches += 1
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


def unreachable(message: str = "connection refused") -> ListingUnreachableError:
    return ListingUnreachableError(message, url=BASE_URL)


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_config():
    """Factory for :class:`WatchConfig` with fast test-friendly defaults."""

    def _make(**overrides) -> WatchConfig:
        values = {
            "pattern": re.compile("^a"),
            "url": BASE_URL,
            "worker_command": ("tailurl",),
            "refresh_interval": 0.05,
            "shutdown_timeout": 1.0,
        }
        values.update(overrides)
        return WatchConfig(**values)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def spawner():
    return FakeSpawner()


@pytest.fixture(autouse=True)
def _reset_console_logging():
    """Drop handlers installed by CLI tests so they never outlive their stream."""
    yield
    logger = logging.getLogger("index_tail")
    for handler in list(logger.handlers):
        if getattr(handler, "_index_tail_console", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
