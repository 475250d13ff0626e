"""
index-tail public API.

Follow the newest matching file of a remote HTTP directory listing and
stream its content to the console through an external worker process.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import WatchConfig
from .exceptions import (
    ConfigError,
    IndexTailError,
    ListingError,
    ListingStatusError,
    ListingUnreachableError,
    WorkerSpawnError,
)
from .listing import ApacheIndexParser, IndexEntry, ListingFetcher, parse_listing
from .scheduler import RefreshScheduler
from .selector import Order, select_candidate
from .supervisor import StreamSupervisor
from .tracker import ChangedTo, ClearedToNone, Unchanged, WatchTarget, WatchTargetTracker

__all__ = [
    "ApacheIndexParser",
    "ChangedTo",
    "ClearedToNone",
    "ConfigError",
    "IndexEntry",
    "IndexTailError",
    "ListingError",
    "ListingFetcher",
    "ListingStatusError",
    "ListingUnreachableError",
    "Order",
    "RefreshScheduler",
    "StreamSupervisor",
    "Unchanged",
    "WatchConfig",
    "WatchTarget",
    "WatchTargetTracker",
    "WorkerSpawnError",
    "__version__",
    "parse_listing",
    "select_candidate",
]
