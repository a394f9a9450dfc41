"""Page URL discovery.

The viewer only lists a small neighbourhood of pages around a pivot page per
request, and many of the listed pages come back without an image URL. The
discovery loop keeps asking about the first page that is still missing its
URL until every known page has one.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from .errors import FetchError
from .http_client import HttpClient
from .progress import ProgressObserver
from .session import Session
from .throttle import RequestGate
from .urls import SEED_PAGE_ID, neighbours_url

log = logging.getLogger(__name__)


@dataclass
class PageEntry:
    page_id: str
    url: str | None = None

    @property
    def resolved(self) -> bool:
        return bool(self.url)


class DiscoveryMap:
    """Page ids in first-seen order, each with its image URL once known."""

    def __init__(self, entries: Iterable[PageEntry] = ()) -> None:
        self._entries: dict[str, PageEntry] = {}
        self.iterations = 0
        self.complete = False
        for entry in entries:
            self.add(entry.page_id, entry.url)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PageEntry]:
        return iter(self._entries.values())

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._entries

    def __getitem__(self, page_id: str) -> PageEntry:
        return self._entries[page_id]

    def page_ids(self) -> list[str]:
        return list(self._entries)

    def add(self, page_id: str, url: str | None) -> bool:
        """Insert ``page_id`` if unseen; returns True when it was new."""

        if page_id in self._entries:
            return False
        self._entries[page_id] = PageEntry(page_id, url or None)
        return True

    def resolve(self, page_id: str, url: str) -> bool:
        """Fill in the URL of a known, unresolved page.

        Resolved pages are never overwritten and empty URLs are ignored.
        """

        entry = self._entries.get(page_id)
        if entry is None or entry.resolved or not url:
            return False
        entry.url = url
        return True

    def frontier(self) -> str | None:
        for entry in self._entries.values():
            if not entry.resolved:
                return entry.page_id
        return None

    @property
    def resolved_count(self) -> int:
        return sum(1 for e in self._entries.values() if e.resolved)

    def urls(self) -> list[str]:
        """URLs in page order; unresolved pages yield an empty string."""

        return [e.url or "" for e in self._entries.values()]


def _lookup(obj: dict[str, Any], key: str) -> Any:
    if key in obj:
        return obj[key]
    lowered = key.lower()
    for k, v in obj.items():
        if isinstance(k, str) and k.lower() == lowered:
            return v
    return None


def parse_neighbours(payload: Any) -> list[PageEntry]:
    """Extract ``(pid, src)`` pairs from a neighbour-listing payload.

    Expected shape: ``{"page": [{"pid": ..., "src": ...}, ...]}``. Keys are
    matched case-insensitively; anything else yields no entries.
    """

    if not isinstance(payload, dict):
        return []
    pages = _lookup(payload, "page")
    if not isinstance(pages, list):
        return []

    out: list[PageEntry] = []
    for item in pages:
        if not isinstance(item, dict):
            continue
        pid = _lookup(item, "pid")
        if not isinstance(pid, str) or not pid.strip():
            continue
        src = _lookup(item, "src")
        url = src.strip() if isinstance(src, str) else ""
        out.append(PageEntry(pid.strip(), url or None))
    return out


class PageDiscovery:
    def __init__(
        self,
        *,
        http: HttpClient,
        base_url: str,
        session: Session,
        gate: RequestGate,
        observer: ProgressObserver | None = None,
    ) -> None:
        self.http = http
        self.base_url = base_url
        self.session = session
        self.gate = gate
        self.observer = observer or ProgressObserver()

    def fetch_neighbours(self, document_id: str, pivot: str) -> list[PageEntry]:
        """Ask for the pages around ``pivot``.

        Transport failures, error statuses and unusable bodies all count as
        an empty answer.
        """

        self.gate.wait()
        url = neighbours_url(self.base_url, document_id, pivot)
        try:
            res = self.http.get(url, headers=self.session.headers())
        except FetchError as e:
            log.warning("Neighbour query for %s failed: %s", pivot, e)
            return []
        if not res.ok:
            log.warning("Neighbour query for %s returned %d", pivot, res.status_code)
            return []
        try:
            payload = json.loads(res.text())
        except json.JSONDecodeError:
            log.warning("Neighbour query for %s returned invalid JSON", pivot)
            return []
        return parse_neighbours(payload)

    def discover(self, document_id: str) -> DiscoveryMap:
        pages = DiscoveryMap()

        for entry in self.fetch_neighbours(document_id, SEED_PAGE_ID):
            pages.add(entry.page_id, entry.url)

        self.observer.on_discovery_start(len(pages), pages.resolved_count)
        log.info("Seed query found %d pages", len(pages))

        while True:
            pivot = pages.frontier()
            if pivot is None:
                pages.complete = True
                break
            # Backstop for pivots that never get resolved.
            if pages.iterations >= len(pages):
                log.warning(
                    "Giving up on %s after %d queries: %d of %d page urls found",
                    document_id,
                    pages.iterations,
                    pages.resolved_count,
                    len(pages),
                )
                break

            pages.iterations += 1
            for entry in self.fetch_neighbours(document_id, pivot):
                if not entry.resolved:
                    continue
                if pages.add(entry.page_id, entry.url):
                    self.observer.on_page_discovered(len(pages))
                    self.observer.on_page_resolved(entry.page_id)
                elif pages.resolve(entry.page_id, entry.url or ""):
                    self.observer.on_page_resolved(entry.page_id)

        self.observer.on_discovery_end(pages.resolved_count, len(pages))
        log.info(
            "Discovered %d/%d page urls in %d queries",
            pages.resolved_count,
            len(pages),
            pages.iterations,
        )
        return pages
