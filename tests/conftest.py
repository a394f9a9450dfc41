from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator
from urllib.parse import parse_qs, urlparse

import pytest

from gbook_dl.errors import FetchError
from gbook_dl.http_client import FetchResult, StreamedResponse
from gbook_dl.throttle import RequestGate


def query_param(url: str, name: str) -> str | None:
    values = parse_qs(urlparse(url).query).get(name)
    return values[0] if values else None


def json_result(url: str, payload: object, status_code: int = 200) -> FetchResult:
    return FetchResult(
        url=url,
        final_url=url,
        status_code=status_code,
        headers={"Content-Type": "application/json; charset=utf-8"},
        fetched_at=0.0,
        body=json.dumps(payload).encode("utf-8"),
    )


def html_result(
    url: str,
    html: str,
    *,
    status_code: int = 200,
    cookies: tuple[str, ...] = (),
) -> FetchResult:
    return FetchResult(
        url=url,
        final_url=url,
        status_code=status_code,
        headers={"Content-Type": "text/html; charset=utf-8"},
        fetched_at=0.0,
        body=html.encode("utf-8"),
        cookies=cookies,
        reason="OK" if status_code < 400 else "Not Found",
    )


@dataclass
class FakeBody:
    chunks: list[bytes]
    closed: bool = False

    def iter_content(self, chunk_size: int = 1) -> Iterator[bytes]:
        yield from self.chunks

    def close(self) -> None:
        self.closed = True


@dataclass
class FakeHttp:
    """Stands in for HttpClient; routes on the request URL."""

    get_handler: Callable[[str], FetchResult] | None = None
    images: dict[str, tuple[int, str, bytes]] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, str] | None]] = field(default_factory=list)

    def get(self, url: str, *, headers: dict[str, str] | None = None) -> FetchResult:
        self.calls.append((url, headers))
        if self.get_handler is None:
            raise FetchError(url, None)
        return self.get_handler(url)

    @contextmanager
    def stream(
        self, url: str, *, headers: dict[str, str] | None = None
    ) -> Iterator[StreamedResponse]:
        self.calls.append((url, headers))
        if url not in self.images:
            raise FetchError(url, ConnectionError("refused"))
        status, media_type, body = self.images[url]
        yield StreamedResponse(
            url=url,
            status_code=status,
            headers={"Content-Type": media_type} if media_type else {},
            _response=FakeBody([body[:3], body[3:]]),
        )

    def pivots(self) -> list[str | None]:
        return [
            query_param(url, "pg")
            for url, _ in self.calls
            if query_param(url, "jscmd") == "click3"
        ]


@pytest.fixture
def gate() -> RequestGate:
    return RequestGate(sleep=lambda _s: None)


@pytest.fixture
def fake_http() -> FakeHttp:
    return FakeHttp()
