"""
Command-line interface: ``index-tail [OPTIONS] PATTERN URL``.

Streams the newest file under URL whose name matches PATTERN, switching to a
newer file whenever one appears in the listing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

import click

from . import __version__
from ._logging import configure_logging
from .config import (
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SCAN_INTERVAL,
    DEFAULT_WORKER_COMMAND,
    WatchConfig,
)
from .exceptions import ConfigError, IndexTailError, ListingError
from .scheduler import RefreshScheduler

logger = logging.getLogger("index_tail")

__all__ = ["cli", "cli_entry"]


def _install_signal_handlers(scheduler: RefreshScheduler) -> None:
    loop = asyncio.get_running_loop()
    # add_signal_handler is POSIX-only; Ctrl-C is covered by asyncio.run everywhere.
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGTERM, scheduler.stop)


async def _watch(config: WatchConfig) -> None:
    async with RefreshScheduler(config) as scheduler:
        _install_signal_handlers(scheduler)
        await scheduler.run()


async def _preview(config: WatchConfig) -> str | None:
    async with RefreshScheduler(config) as scheduler:
        return await scheduler.preview()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("pattern")
@click.argument("url")
@click.option("-u", "--user", envvar="INDEX_TAIL_USER", help="User name for authentication.")
@click.option("-p", "--password", envvar="INDEX_TAIL_PASSWORD", help="Password for authentication.")
@click.option(
    "-s",
    "--scan",
    type=click.IntRange(min=1),
    default=DEFAULT_SCAN_INTERVAL,
    show_default=True,
    help="Scan interval of the streaming worker, in seconds.",
)
@click.option(
    "-r",
    "--refresh",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_REFRESH_INTERVAL,
    show_default=True,
    help="Index refresh interval, in seconds.",
)
@click.option(
    "-o",
    "--order",
    type=click.Choice(["asc", "desc"], case_sensitive=False),
    default="asc",
    show_default=True,
    help="Watch the first (asc) or last (desc) matching file by name.",
)
@click.option(
    "-w",
    "--worker",
    envvar="INDEX_TAIL_WORKER",
    default=" ".join(DEFAULT_WORKER_COMMAND),
    show_default=True,
    help="Streaming worker command.",
)
@click.option(
    "--verify-tls/--no-verify-tls",
    default=False,
    show_default=True,
    help="Verify TLS certificates of the listing server.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_REQUEST_TIMEOUT,
    show_default=True,
    help="Listing request timeout, in seconds.",
)
@click.option(
    "--stop-timeout",
    type=click.FloatRange(min=0),
    default=None,
    help="Wait this long for the old worker to exit before starting a new one.",
)
@click.option("--once", is_flag=True, help="Print the URL that would be watched and exit.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors.")
@click.version_option(__version__, prog_name="index-tail")
def cli(
    pattern: str,
    url: str,
    user: str | None,
    password: str | None,
    scan: int,
    refresh: float,
    order: str,
    worker: str,
    verify_tls: bool,
    timeout: float,
    stop_timeout: float | None,
    once: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Stream the newest file matching PATTERN from the directory listing at URL."""
    configure_logging(verbose=verbose, quiet=quiet)

    try:
        config = WatchConfig.from_options(
            pattern,
            url,
            order=order,
            worker_command=worker,
            user=user or None,
            password=password or None,
            scan_interval=scan,
            refresh_interval=refresh,
            verify_tls=verify_tls,
            request_timeout=timeout,
            stop_timeout=stop_timeout,
        )
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc

    if once:
        try:
            watch_url = asyncio.run(_preview(config))
        except ListingError as exc:
            raise click.ClickException(str(exc)) from exc
        if watch_url is None:
            click.echo("No file to watch", err=True)
            sys.exit(1)
        click.echo(watch_url)
        return

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_watch(config))
    logger.info("[Scheduler] Stopped")


def cli_entry() -> None:
    """Console-script entry point."""
    try:
        cli()
    except IndexTailError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(2) from exc


if __name__ == "__main__":
    cli_entry()
