"""
Watch target tracking.

:class:`WatchTarget` is the one piece of mutable state shared across a
refresh cycle: the URL currently being streamed, or ``""`` when there is
nothing to watch.  :class:`WatchTargetTracker` turns each freshly selected
candidate into a :class:`Decision` for the supervisor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union
from urllib.parse import quote

if TYPE_CHECKING:
    from .listing import IndexEntry

__all__ = [
    "ChangedTo",
    "ClearedToNone",
    "Decision",
    "Unchanged",
    "WatchTarget",
    "WatchTargetTracker",
    "build_watch_url",
]

# Characters encodeURIComponent leaves alone besides ASCII letters and digits.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class Unchanged:
    """The selected file is the one already being watched."""


@dataclass(frozen=True)
class ChangedTo:
    """A different file should be watched from now on."""

    url: str


@dataclass(frozen=True)
class ClearedToNone:
    """Nothing should be watched any more."""


Decision = Union[Unchanged, ChangedTo, ClearedToNone]


@dataclass
class WatchTarget:
    """The URL currently being watched (empty when idle)."""

    url: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.url

    def clear(self) -> None:
        self.url = ""


def build_watch_url(base_url: str, name: str) -> str:
    """Join *base_url* and the percent-encoded file *name*."""
    return f"{base_url.rstrip('/')}/{quote(name, safe=_URI_COMPONENT_SAFE)}"


class WatchTargetTracker:
    """Decides whether a selected candidate means the stream must change."""

    def __init__(self, target: WatchTarget | None = None) -> None:
        self.target = target if target is not None else WatchTarget()

    def update(self, candidate: IndexEntry | None, base_url: str) -> Decision:
        """
        Compare *candidate* with the current target and record the new URL.

        Returns :class:`Unchanged` when the URL is the same as before (so a
        running stream is never restarted needlessly), :class:`ChangedTo` for
        a new URL and :class:`ClearedToNone` when a watched file disappeared
        from the selection.
        """
        new_url = build_watch_url(base_url, candidate.name) if candidate is not None else ""
        previous = self.target.url
        if new_url == previous:
            return Unchanged()

        self.target.url = new_url
        if not new_url:
            return ClearedToNone()
        return ChangedTo(new_url)
