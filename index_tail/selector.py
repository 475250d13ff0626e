"""
Candidate selection: which listing entry is the "current" file.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import re
    from collections.abc import Iterable

    from .listing import IndexEntry

__all__ = ["Order", "select_candidate"]


class Order(enum.Enum):
    """Which end of the name-sorted candidates is current."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | Order) -> Order:
        """Return the :class:`Order` for ``"asc"`` / ``"desc"`` (any case)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid order={value!r}. Must be one of: asc, desc") from None


def select_candidate(
    entries: Iterable[IndexEntry],
    pattern: re.Pattern[str],
    order: Order = Order.ASC,
) -> IndexEntry | None:
    """
    Pick the entry to watch from *entries*.

    Entries whose name matches *pattern* anywhere are sorted by name; the
    smallest wins for :attr:`Order.ASC`, the largest for :attr:`Order.DESC`.
    Returns ``None`` when nothing matches.
    """
    matching = sorted(
        (entry for entry in entries if pattern.search(entry.name)),
        key=lambda entry: entry.name,
    )
    if order is Order.DESC:
        matching.reverse()
    return matching[0] if matching else None
