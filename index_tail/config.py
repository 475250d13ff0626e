"""
Runtime configuration for index-tail.

All settings live on one frozen :class:`WatchConfig`; the CLI builds it with
:meth:`WatchConfig.from_options`, tests usually construct it directly.
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass
from typing import Any

from .exceptions import ConfigError
from .selector import Order

__all__ = [
    "DEFAULT_REFRESH_INTERVAL",
    "DEFAULT_REQUEST_TIMEOUT",
    "DEFAULT_SCAN_INTERVAL",
    "DEFAULT_WORKER_COMMAND",
    "WatchConfig",
]

DEFAULT_SCAN_INTERVAL = 5
DEFAULT_REFRESH_INTERVAL = 300.0
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_SHUTDOWN_TIMEOUT = 5.0
DEFAULT_WORKER_COMMAND = ("./tailurl.sh",)


@dataclass(frozen=True)
class WatchConfig:
    """Everything the scheduler, fetcher and supervisor need to know."""

    pattern: re.Pattern[str]
    url: str
    user: str | None = None
    password: str | None = None
    scan_interval: int = DEFAULT_SCAN_INTERVAL
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    order: Order = Order.ASC
    worker_command: tuple[str, ...] = DEFAULT_WORKER_COMMAND
    verify_tls: bool = False
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    stop_timeout: float | None = None
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT

    @classmethod
    def from_options(
        cls,
        pattern: str | re.Pattern[str],
        url: str,
        *,
        order: str | Order = Order.ASC,
        worker_command: str | tuple[str, ...] | list[str] = DEFAULT_WORKER_COMMAND,
        **kwargs: Any,
    ) -> WatchConfig:
        """Validate raw option values and build a config.

        Raises:
            ConfigError: if the pattern does not compile, the order is unknown,
                the worker command is empty or an interval is not positive.
        """
        if isinstance(pattern, str):
            try:
                compiled = re.compile(pattern)
            except re.error as exc:
                raise ConfigError(f"Invalid pattern {pattern!r}: {exc}") from exc
        else:
            compiled = pattern

        if not url:
            raise ConfigError("A listing URL is required")

        try:
            parsed_order = Order.parse(order)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

        if isinstance(worker_command, str):
            command = tuple(shlex.split(worker_command))
        else:
            command = tuple(worker_command)
        if not command:
            raise ConfigError("The worker command must not be empty")

        config = cls(
            pattern=compiled,
            url=url,
            order=parsed_order,
            worker_command=command,
            **kwargs,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise :class:`ConfigError` for intervals that cannot work."""
        if self.scan_interval <= 0:
            raise ConfigError("scan_interval must be > 0")
        if self.refresh_interval <= 0:
            raise ConfigError("refresh_interval must be > 0")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be > 0")
        if self.stop_timeout is not None and self.stop_timeout < 0:
            raise ConfigError("stop_timeout must be >= 0")

    @property
    def credentials(self) -> tuple[str, str] | None:
        """Basic-auth pair for the listing request, only when both parts are set."""
        if self.user and self.password:
            return self.user, self.password
        return None

    def worker_argv(self, url: str) -> list[str]:
        """Command line for a streaming worker following *url*."""
        argv = list(self.worker_command)
        if self.user:
            argv += ["-u", self.user]
        if self.password:
            argv += ["-p", self.password]
        argv += ["-s", str(self.scan_interval), "-f", url]
        return argv
