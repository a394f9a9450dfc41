from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from bs4 import BeautifulSoup

from .errors import BootstrapError, FetchError
from .http_client import HttpClient
from .throttle import RequestGate
from .urls import landing_url

log = logging.getLogger(__name__)

TITLE_SELECTOR = ".gb-volume-title"


@dataclass(frozen=True)
class Session:
    """Cookies and referer captured from a book's landing page."""

    cookie_header: str = ""
    referer: str | None = None

    def headers(self) -> dict[str, str]:
        out: dict[str, str] = {}
        if self.cookie_header:
            out["Cookie"] = self.cookie_header
        if self.referer:
            out["Referer"] = self.referer
        return out


@dataclass(frozen=True)
class BootstrapResult:
    title: str
    session: Session


def cookie_header_from(set_cookie_values: Iterable[str]) -> str:
    """Reduce ``Set-Cookie`` values to a ``Cookie`` request header.

    Only the leading ``name=value`` pair of each cookie is kept.
    """

    pairs: list[str] = []
    for value in set_cookie_values:
        pair = value.split(";", 1)[0].strip()
        if pair:
            pairs.append(pair)
    return "; ".join(pairs)


def extract_volume_title(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    node = soup.select_one(TITLE_SELECTOR)
    if node is None:
        return None
    title = node.get_text(" ", strip=True)
    return title or None


def bootstrap(
    http: HttpClient,
    document_id: str,
    *,
    base_url: str,
    gate: RequestGate,
    reuse: Session | None = None,
) -> BootstrapResult:
    """Open the landing page of ``document_id``.

    Captures the session cookies (unless ``reuse`` carries cookies from an
    earlier book) and the book title, then takes one politeness wait.
    Raises :class:`BootstrapError` when the landing page cannot be fetched.
    """

    url = landing_url(base_url, document_id)
    try:
        res = http.get(url, headers=reuse.headers() if reuse else None)
    except FetchError as e:
        raise BootstrapError(document_id, reason=str(e.cause)) from e

    if not res.ok:
        reason = res.reason or "non-success status"
        raise BootstrapError(document_id, status_code=res.status_code, reason=reason)

    if reuse is not None and reuse.cookie_header:
        session = replace(reuse, referer=url)
    else:
        session = Session(cookie_header=cookie_header_from(res.cookies), referer=url)
        if not session.cookie_header:
            log.warning("No session cookies returned for %s", document_id)

    title = extract_volume_title(res.text()) or document_id
    log.info("Title: %s", title)

    gate.wait()
    return BootstrapResult(title=title, session=session)
