"""
Remote directory listings: fetching the index page and parsing its entries.

The fetcher is deliberately synchronous (``requests``); the scheduler runs it
through ``asyncio.to_thread`` so a slow server never stalls output relay.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import unquote

import requests
import urllib3
from bs4 import BeautifulSoup, NavigableString

from .exceptions import ListingStatusError, ListingUnreachableError, is_success_status

if TYPE_CHECKING:
    from bs4 import Tag

    from .config import WatchConfig

logger = logging.getLogger("index_tail")

__all__ = [
    "ApacheIndexParser",
    "IndexEntry",
    "ListingFetcher",
    "parse_listing",
]

_PRE_COLUMNS = re.compile(r"\s{2,}")


@dataclass(frozen=True)
class IndexEntry:
    """One row of a directory listing."""

    name: str
    is_directory: bool = False
    last_modified: str | None = None
    size: str | None = None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _entry_name(href: str) -> tuple[str, bool] | None:
    """Return ``(name, is_directory)`` for a listing link, or ``None`` to skip it."""
    href = href.strip()
    if not href or href.startswith(("?", "#", "/")) or ":" in href.split("/", 1)[0]:
        # Sort links, anchors, absolute paths (parent directory) and other schemes.
        return None

    path = href.split("#", 1)[0].split("?", 1)[0]
    if path.startswith("./"):
        path = path[2:]
    is_directory = path.endswith("/")
    path = path.rstrip("/")
    if not path or path == ".." or "/" in path:
        return None
    return unquote(path), is_directory


def _cell_text(tag: Tag) -> str | None:
    text = tag.get_text(" ", strip=True)
    return text if text and text != "-" else None


def _row_details(anchor: Tag) -> tuple[str | None, str | None]:
    """Pull the last-modified and size columns that follow *anchor*."""
    row = anchor.find_parent("tr")
    if row is not None:
        cells = row.find_all("td")
        owner = anchor.find_parent("td")
        # Tag.__eq__ compares markup, so locate the cell by identity.
        position = next((i for i, cell in enumerate(cells) if cell is owner), None)
        if position is None:
            return None, None
        rest = cells[position + 1 :]
        last_modified = _cell_text(rest[0]) if len(rest) > 0 else None
        size = _cell_text(rest[1]) if len(rest) > 1 else None
        return last_modified, size

    sibling = anchor.next_sibling
    if isinstance(sibling, NavigableString):
        columns = [c for c in _PRE_COLUMNS.split(str(sibling).strip()) if c]
        last_modified = columns[0] if columns else None
        size = columns[1] if len(columns) > 1 and columns[1] != "-" else None
        return last_modified, size
    return None, None


class ApacheIndexParser:
    """
    Parser for Apache ``mod_autoindex`` pages (table and ``<pre>`` layouts).

    Also copes with the similar ``<pre>`` listings produced by nginx and
    ``python -m http.server``.
    """

    def parse(self, text: str) -> list[IndexEntry]:
        soup = BeautifulSoup(text, "html.parser")
        entries: list[IndexEntry] = []
        seen: set[str] = set()
        for anchor in soup.find_all("a", href=True):
            parsed = _entry_name(str(anchor["href"]))
            if parsed is None:
                continue
            name, is_directory = parsed
            if name in seen:
                continue
            seen.add(name)
            last_modified, size = _row_details(anchor)
            entries.append(
                IndexEntry(
                    name=name,
                    is_directory=is_directory,
                    last_modified=last_modified,
                    size=size,
                )
            )
        return entries


def parse_listing(text: str) -> list[IndexEntry]:
    """Parse *text* with the default :class:`ApacheIndexParser`."""
    return ApacheIndexParser().parse(text)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


class ListingFetcher:
    """Fetches the raw listing page over HTTP(S)."""

    def __init__(
        self,
        url: str,
        *,
        auth: tuple[str, str] | None = None,
        verify: bool = False,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()
        # requests sends basic auth with the first request, no 401 round trip.
        self._session.auth = auth
        self._session.verify = verify
        if not verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @classmethod
    def from_config(cls, config: WatchConfig) -> ListingFetcher:
        return cls(
            config.url,
            auth=config.credentials,
            verify=config.verify_tls,
            timeout=config.request_timeout,
        )

    def fetch(self) -> str:
        """Return the listing body.

        Raises:
            ListingUnreachableError: on any transport failure.
            ListingStatusError: when the status is outside ``[200, 300)``.
        """
        logger.debug("[Listing] GET %s", self.url)
        try:
            response = self._session.get(self.url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ListingUnreachableError(f"can't reach {self.url}: {exc}", url=self.url) from exc

        if not is_success_status(response.status_code):
            raise ListingStatusError(response.status_code, url=self.url)
        return response.text

    def close(self) -> None:
        self._session.close()
